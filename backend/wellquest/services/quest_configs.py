from __future__ import annotations

import logging
from typing import Any, Callable

from pydantic import ValidationError

from wellquest.schemas.quest import QuestConfig


log = logging.getLogger(__name__)


class QuestConfigError(Exception):
    def __init__(self, message: str, errors: list[str] | None = None):
        super().__init__(message)
        self.errors = list(errors or [])


TASK_START = "Старт"
TASK_TODO_LIST = "1. Список справ"
TASK_FROM_LIST = "2. Пункт зі списку"
TASK_FRESH_AIR_WALK = "3. Прогулянка на свіжому повітрі"
TASK_GRATITUDE_LIST = "4. Список вдячності"
TASK_GOOD_DEED = "5. Добра справа"

FIRST_FINISH_TASK_ID = 9
FINAL_FINISH_TASK_ID = 14


def _well_being_tasks() -> list[dict[str, Any]]:
    # 0 is the start, 1-4 core tasks, 5-14 repeated good deeds.
    labels = [TASK_START, TASK_TODO_LIST, TASK_FROM_LIST, TASK_FRESH_AIR_WALK, TASK_GRATITUDE_LIST]
    tasks: list[dict[str, Any]] = [{"id": i, "label": label, "type": "core"} for i, label in enumerate(labels)]
    for i in range(len(labels), FINAL_FINISH_TASK_ID + 1):
        kind = "finish" if i in (FIRST_FINISH_TASK_ID, FINAL_FINISH_TASK_ID) else "extra"
        tasks.append({"id": i, "label": TASK_GOOD_DEED, "type": kind})
    return tasks


def _finish_animations() -> dict[str, Any]:
    return {
        "final_finish": {"top": "38%", "left": "245%"},
        "first_finish": {"top": "130%", "left": "-75%"},
    }


def _default_quest() -> dict[str, Any]:
    return {
        "name": "Well Being Quest",
        "task_count": FINAL_FINISH_TASK_ID + 1,
        "tasks": _well_being_tasks(),
        "final_task_ids": [FIRST_FINISH_TASK_ID, FINAL_FINISH_TASK_ID],
        "first_finish_task_id": FIRST_FINISH_TASK_ID,
        "final_finish_task_id": FINAL_FINISH_TASK_ID,
        "finish_animations": _finish_animations(),
    }


def _extreme_quest() -> dict[str, Any]:
    data = _default_quest()
    data.update(
        {
            "name": "WELL BEING EXTREME QUEST",
            "title": "Extreme wellness challenge",
            "theme": {"primary": "#ff3d00", "secondary": "#1a1a1a", "accent": "#ffd600"},
            "rules": {"steps": FINAL_FINISH_TASK_ID, "max_daily_points": 3, "completion_reward": "Extreme badge"},
        }
    )
    return data


_QUEST_FACTORIES: dict[str, Callable[[], dict[str, Any]]] = {
    "default": _default_quest,
    "extreme": _extreme_quest,
}


def _format_errors(exc: ValidationError) -> list[str]:
    out: list[str] = []
    for err in exc.errors():
        path = ".".join(str(p) for p in err.get("loc") or ()) or "root"
        out.append(f"{path}: {err.get('msg')}")
    return out


def validate_quest_config(data: Any) -> tuple[bool, QuestConfig | None, list[str]]:
    if not isinstance(data, dict):
        return False, None, ["root: configuration must be an object"]
    try:
        config = QuestConfig.model_validate(data)
    except ValidationError as e:
        errors = _format_errors(e)
        log.error("quest config validation failed errors=%s", errors)
        return False, None, errors
    return True, config, []


def available_quest_configs() -> list[str]:
    return list(_QUEST_FACTORIES.keys())


def is_valid_quest_config_type(name: str) -> bool:
    return name in _QUEST_FACTORIES


def load_quest_config(name: str) -> QuestConfig:
    factory = _QUEST_FACTORIES.get(str(name or "").strip())
    if factory is None:
        raise QuestConfigError(f"unknown quest config type: {name}")

    ok, config, errors = validate_quest_config(factory())
    if not ok or config is None:
        raise QuestConfigError(f"quest config {name!r} is invalid", errors)
    log.info("loaded quest config %s (%s tasks)", name, config.task_count)
    return config
