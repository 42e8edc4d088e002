import uuid
import time
import json
import logging
from datetime import datetime, timezone
from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from wellquest.core.config import settings
from wellquest.routers import auth, config, data_source, health, me, quest
from wellquest.services.quest_data import polling_enabled
from wellquest.services.runtime import QuestRuntime


def create_app(runtime: QuestRuntime | None = None) -> FastAPI:
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s %(message)s")
    app = FastAPI(title="Wellness Quest API", version="1.0.0")

    logger = logging.getLogger("wellquest")
    logging.getLogger("httpx").setLevel(logging.WARNING)

    allow_origins = [o.strip() for o in str(settings.cors_allow_origins or "").split(",") if o.strip()]
    if "*" in allow_origins:
        raise RuntimeError("CORS_ALLOW_ORIGINS must not include '*' when allow_credentials=true")

    quest_runtime = runtime or QuestRuntime()
    quest_runtime.load()
    app.state.quest_runtime = quest_runtime

    @app.middleware("http")
    async def request_id_middleware(request: Request, call_next):
        t0 = time.perf_counter()
        rid = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        request.state.request_id = rid
        status_code: int | None = None
        try:
            if request.method in {"POST", "PUT", "PATCH", "DELETE"}:
                origin = (request.headers.get("origin") or "").strip()
                if origin and origin not in allow_origins:
                    return JSONResponse(
                        status_code=403,
                        content={"ok": False, "error_code": "forbidden", "error_message": "invalid origin", "request_id": rid},
                    )
            response = await call_next(request)
            status_code = int(getattr(response, "status_code", 0) or 0)
        except Exception:
            status_code = 500
            raise
        finally:
            path = getattr(getattr(request, "url", None), "path", "")
            if not path.startswith("/health"):
                logger.info(
                    json.dumps(
                        {
                            "ts": datetime.now(timezone.utc).isoformat(),
                            "rid": rid,
                            "user_id": getattr(getattr(request, "state", None), "user_id", None),
                            "method": request.method,
                            "path": path,
                            "status": status_code,
                            "duration_ms": int((time.perf_counter() - t0) * 1000),
                        },
                        ensure_ascii=False,
                    )
                )
        response.headers["X-Request-ID"] = rid
        response.headers.setdefault("X-Content-Type-Options", "nosniff")
        response.headers.setdefault("Referrer-Policy", "no-referrer")
        return response

    def _request_id(request: Request) -> str | None:
        rid = getattr(getattr(request, "state", None), "request_id", None)
        rid = str(rid or "").strip()
        return rid or None

    @app.exception_handler(HTTPException)
    async def http_exception_handler(request: Request, exc: HTTPException):
        rid = _request_id(request)
        detail = exc.detail
        payload: dict = {"ok": False}
        if isinstance(detail, dict):
            payload["error_code"] = str(detail.get("error_code") or "http_error")
            payload["error_message"] = str(detail.get("error_message") or detail.get("detail") or "request failed")
            if detail.get("errors"):
                payload["errors"] = list(detail["errors"])
        else:
            status = int(exc.status_code)
            payload["error_code"] = (
                "forbidden" if status == 403
                else "unauthorized" if status == 401
                else "not_found" if status == 404
                else "conflict" if status == 409
                else "unavailable" if status == 503
                else "http_error"
            )
            payload["error_message"] = str(detail or "request failed")
        payload["request_id"] = rid
        return JSONResponse(status_code=int(exc.status_code), content=payload, headers=getattr(exc, "headers", None))

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception):
        rid = _request_id(request)
        logger.exception("unhandled exception", extra={"rid": rid})
        return JSONResponse(
            status_code=500,
            content={
                "ok": False,
                "error_code": "internal_error",
                "error_message": "internal server error",
                "request_id": rid,
            },
        )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=allow_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "OPTIONS"],
        allow_headers=["authorization", "content-type", "x-request-id"],
    )

    app.include_router(health.router)
    app.include_router(auth.router)
    app.include_router(quest.router)
    app.include_router(config.router)
    app.include_router(me.router)
    app.include_router(data_source.router)

    @app.on_event("startup")
    async def _startup_tasks() -> None:
        service = quest_runtime.data_service
        if service is None:
            return
        if polling_enabled():
            service.start_polling()
        else:
            service.refresh()

    @app.on_event("shutdown")
    async def _shutdown_tasks() -> None:
        if quest_runtime.data_service is not None:
            quest_runtime.data_service.stop_polling()

    return app

app = create_app()
