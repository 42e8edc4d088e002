from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException

from wellquest.core.security import Viewer, get_current_viewer, require_admin
from wellquest.schemas.data_source import DataSourceStatus, RefreshResponse, SwitchDataSourceRequest
from wellquest.services.providers import DataSourceError, create_provider
from wellquest.services.quest_data import QuestDataService
from wellquest.services.runtime import QuestRuntime, get_runtime

router = APIRouter(prefix="/data-source", tags=["data-source"])


def _status(service: QuestDataService) -> dict:
    snap = service.snapshot
    return {
        "type": service.provider.source_type.value,
        "url": service.provider.url,
        "polling": service.polling,
        "polling_interval_seconds": service.polling_interval_seconds if service.polling else None,
        "row_count": len(snap.rows),
        "updated_at": snap.updated_at.isoformat() if snap.updated_at else None,
        "last_error": service.last_error,
    }


@router.get("", response_model=DataSourceStatus)
def data_source_status(runtime: QuestRuntime = Depends(get_runtime), _: Viewer = Depends(get_current_viewer)):
    return _status(runtime.data_service)


@router.put("", response_model=DataSourceStatus)
def switch_data_source(
    payload: SwitchDataSourceRequest,
    runtime: QuestRuntime = Depends(get_runtime),
    _: Viewer = Depends(require_admin),
):
    try:
        provider = create_provider(payload.type, payload.url, headers=payload.headers)
    except DataSourceError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e

    runtime.data_service.switch_provider(provider, polling_interval_seconds=payload.polling_interval_seconds)
    return _status(runtime.data_service)


@router.post("/refresh", response_model=RefreshResponse)
def refresh_data_source(runtime: QuestRuntime = Depends(get_runtime), _: Viewer = Depends(require_admin)):
    service = runtime.data_service
    snap = service.refresh()
    return {
        "ok": service.last_error is None,
        "row_count": len(snap.rows),
        "updated_at": snap.updated_at.isoformat() if snap.updated_at else None,
    }
