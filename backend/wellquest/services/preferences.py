from __future__ import annotations

import logging

from wellquest.core.config import settings
from wellquest.core.redis_client import get_redis
from wellquest.schemas.progress import FinishState
from wellquest.services.quest_engine import QuestEngine


log = logging.getLogger(__name__)


def _prefs_key(viewer_id: str) -> str:
    return f"prefs:{viewer_id}"


def _dismissed_key(viewer_id: str) -> str:
    return f"finish:dismissed:{viewer_id}"


def get_preferences(viewer_id: str) -> dict[str, str]:
    prefs = {"quest": str(settings.quest_config), "ui_theme": str(settings.ui_theme)}
    try:
        r = get_redis()
        stored = r.hgetall(_prefs_key(viewer_id)) or {}
    except Exception:
        log.warning("preferences unavailable for %s, using defaults", viewer_id)
        return prefs

    for field in ("quest", "ui_theme"):
        value = str(stored.get(field) or "").strip()
        if value:
            prefs[field] = value
    return prefs


def set_preferences(viewer_id: str, *, quest: str | None = None, ui_theme: str | None = None) -> dict[str, str]:
    mapping = {k: v for k, v in {"quest": quest, "ui_theme": ui_theme}.items() if v}
    if mapping:
        r = get_redis()
        r.hset(_prefs_key(viewer_id), mapping=mapping)
    return get_preferences(viewer_id)


def get_dismissed_finish_screens(viewer_id: str) -> set[str]:
    try:
        r = get_redis()
        stored = r.hgetall(_dismissed_key(viewer_id)) or {}
    except Exception:
        return set()
    return {str(k) for k in stored.keys()}


def record_finish_dismissal(viewer_id: str, screen_type: str, task_number: int) -> None:
    try:
        r = get_redis()
        r.hset(_dismissed_key(viewer_id), mapping={screen_type: str(int(task_number))})
    except Exception:
        log.warning("could not record %s dismissal for %s", screen_type, viewer_id)


def viewer_finish_state(engine: QuestEngine, viewer_id: str, task_number: int) -> FinishState:
    """Finish overlay for the viewer, minus overlays already dismissed.

    "finish" stays dismissed for the remaining intermediate positions, so
    the next overlay the viewer sees is "dzen" at the final milestone.
    """
    state = engine.get_finish_state(task_number, is_viewer=True)
    if state.should_show and state.type in get_dismissed_finish_screens(viewer_id):
        return FinishState(type=state.type, should_show=False, task_number=state.task_number)
    return state
