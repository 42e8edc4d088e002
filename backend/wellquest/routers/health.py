from fastapi import APIRouter, HTTPException, Request

from wellquest.core.redis_client import get_redis

router = APIRouter(tags=["health"])


@router.get("/health")
def health():
    return {"status": "ok"}


@router.get("/health/live")
def live():
    return {"status": "live"}


@router.get("/health/ready")
def ready(request: Request):
    runtime = getattr(request.app.state, "quest_runtime", None)
    if runtime is None or not runtime.is_valid:
        raise HTTPException(status_code=503, detail="config not ready")

    if not runtime.data_service.snapshot.loaded:
        raise HTTPException(status_code=503, detail="quest data not loaded")

    try:
        r = get_redis()
        r.ping()
    except Exception as e:
        raise HTTPException(status_code=503, detail="redis not ready") from e

    return {"status": "ready"}
