from __future__ import annotations

from fastapi import APIRouter, HTTPException

from wellquest.core.config import settings
from wellquest.schemas.quest import QuestConfig, QuestConfigListResponse
from wellquest.schemas.ui import UIConfigLoadResult, UIThemeListResponse
from wellquest.services.quest_configs import (
    QuestConfigError,
    available_quest_configs,
    is_valid_quest_config_type,
    load_quest_config,
)
from wellquest.services.ui_configs import discover_ui_themes, load_ui_config

router = APIRouter(prefix="/config", tags=["config"])


@router.get("/quests", response_model=QuestConfigListResponse)
def list_quests():
    items = []
    for key in available_quest_configs():
        cfg = load_quest_config(key)
        items.append(
            {
                "key": key,
                "name": cfg.name,
                "task_count": cfg.task_count,
                "first_finish_task_id": cfg.first_finish_task_id,
                "final_finish_task_id": cfg.final_finish_task_id,
            }
        )
    return {"items": items, "active": settings.quest_config}


@router.get("/quests/{name}", response_model=QuestConfig)
def get_quest(name: str):
    if not is_valid_quest_config_type(name):
        raise HTTPException(status_code=404, detail="quest config not found")
    try:
        return load_quest_config(name)
    except QuestConfigError as e:
        raise HTTPException(status_code=500, detail={"error_code": "config_invalid", "error_message": str(e), "errors": e.errors}) from e


@router.get("/ui", response_model=UIThemeListResponse)
def list_ui_themes():
    return {"items": discover_ui_themes(), "active": settings.ui_theme}


@router.get("/ui/{key}", response_model=UIConfigLoadResult)
def get_ui_theme(key: str):
    if key not in discover_ui_themes():
        raise HTTPException(status_code=404, detail="ui theme not found")
    return load_ui_config(key)
