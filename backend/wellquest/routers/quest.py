from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException

from wellquest.core.security import Viewer, get_current_viewer
from wellquest.schemas.progress import (
    DismissFinishRequest,
    DismissFinishResponse,
    FinishState,
    QuestMapResponse,
    UserProgress,
    UsersResponse,
)
from wellquest.services.preferences import get_preferences, record_finish_dismissal, viewer_finish_state
from wellquest.services.quest_engine import FINISH_SCREEN_DZEN, FINISH_SCREEN_FINISH, QuestEngine
from wellquest.services.runtime import QuestRuntime, get_runtime

router = APIRouter(prefix="/quest", tags=["quest"])


def _engine_for_viewer(runtime: QuestRuntime, viewer: Viewer) -> tuple[str, QuestEngine]:
    prefs = get_preferences(viewer.id)
    engine = runtime.engine_for(prefs["quest"], prefs["ui_theme"])
    return prefs["quest"], engine


def _evaluate(runtime: QuestRuntime, engine: QuestEngine, viewer: Viewer) -> tuple[list[UserProgress], UserProgress | None]:
    users = engine.evaluate_all_users_progress(runtime.data_service.get_rows())
    return users, next((u for u in users if u.id == viewer.id), None)


def _updated_at(runtime: QuestRuntime) -> str | None:
    ts = runtime.data_service.snapshot.updated_at
    return ts.isoformat() if ts else None


@router.get("/map", response_model=QuestMapResponse)
def quest_map(runtime: QuestRuntime = Depends(get_runtime), viewer: Viewer = Depends(get_current_viewer)):
    quest_key, engine = _engine_for_viewer(runtime, viewer)
    users, me = _evaluate(runtime, engine, viewer)

    return {
        "quest": quest_key,
        "viewer_id": viewer.id,
        "positions": engine.group_users_by_position(users, viewer.id),
        "avatar_fallback_url": engine.avatar_fallback_url,
        "finish_state": viewer_finish_state(engine, viewer.id, me.task_number) if me else FinishState(),
        "viewer_progress": engine.get_progress_summary(me.task_number) if me else None,
        "updated_at": _updated_at(runtime),
    }


@router.get("/users", response_model=UsersResponse)
def quest_users(runtime: QuestRuntime = Depends(get_runtime), viewer: Viewer = Depends(get_current_viewer)):
    _, engine = _engine_for_viewer(runtime, viewer)
    return {
        "items": engine.evaluate_all_users_progress(runtime.data_service.get_rows()),
        "updated_at": _updated_at(runtime),
    }


@router.get("/finish-state", response_model=FinishState)
def finish_state(runtime: QuestRuntime = Depends(get_runtime), viewer: Viewer = Depends(get_current_viewer)):
    _, engine = _engine_for_viewer(runtime, viewer)
    _, me = _evaluate(runtime, engine, viewer)
    if me is None:
        return FinishState()
    return viewer_finish_state(engine, viewer.id, me.task_number)


@router.post("/finish-state/dismiss", response_model=DismissFinishResponse)
def dismiss_finish_state(
    payload: DismissFinishRequest,
    runtime: QuestRuntime = Depends(get_runtime),
    viewer: Viewer = Depends(get_current_viewer),
):
    if payload.type not in (FINISH_SCREEN_FINISH, FINISH_SCREEN_DZEN):
        raise HTTPException(status_code=400, detail="invalid finish screen type")

    _, engine = _engine_for_viewer(runtime, viewer)
    _, me = _evaluate(runtime, engine, viewer)
    state = engine.get_finish_state(me.task_number, is_viewer=True) if me else FinishState()
    if not state.should_show or state.type != payload.type:
        raise HTTPException(status_code=409, detail="finish screen is not shown")

    record_finish_dismissal(viewer.id, state.type, state.task_number)
    return {
        "type": state.type,
        "task_number": state.task_number,
        "animation": engine.get_finish_animation_coordinates(state.type, state.task_number),
    }
