from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException

from wellquest.core.security import Viewer, get_current_viewer
from wellquest.schemas.me import PreferencesResponse, PreferencesUpdateRequest
from wellquest.services.preferences import get_dismissed_finish_screens, get_preferences, set_preferences
from wellquest.services.quest_configs import is_valid_quest_config_type
from wellquest.services.ui_configs import discover_ui_themes

router = APIRouter(prefix="/me", tags=["me"])


def _preferences_payload(viewer_id: str, prefs: dict[str, str]) -> dict:
    return {
        "quest": prefs["quest"],
        "ui_theme": prefs["ui_theme"],
        "dismissed_finish_screens": sorted(get_dismissed_finish_screens(viewer_id)),
    }


@router.get("/preferences", response_model=PreferencesResponse)
def my_preferences(viewer: Viewer = Depends(get_current_viewer)):
    return _preferences_payload(viewer.id, get_preferences(viewer.id))


@router.put("/preferences", response_model=PreferencesResponse)
def update_my_preferences(payload: PreferencesUpdateRequest, viewer: Viewer = Depends(get_current_viewer)):
    if payload.quest is not None and not is_valid_quest_config_type(payload.quest):
        raise HTTPException(status_code=400, detail="unknown quest config")
    if payload.ui_theme is not None and payload.ui_theme not in discover_ui_themes():
        raise HTTPException(status_code=400, detail="unknown ui theme")

    try:
        prefs = set_preferences(viewer.id, quest=payload.quest, ui_theme=payload.ui_theme)
    except Exception as e:
        raise HTTPException(status_code=503, detail="preferences store unavailable") from e
    return _preferences_payload(viewer.id, prefs)
