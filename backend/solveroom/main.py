from __future__ import annotations

from datetime import datetime, timezone
import logging

from fastapi import APIRouter, FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse, Response
from starlette.middleware.cors import CORSMiddleware

from .config import settings
from .errors import InvalidTransitionError, PermissionDeniedError
from .logging_utils import configure_logging
from .metrics import CONTENT_TYPE_LATEST, REQUESTS_TOTAL, generate_latest
from .routers.lifecycle import router as lifecycle_router
from .routers.permissions import router as permissions_router
from .routers.roles import router as roles_router

configure_logging()
logger = logging.getLogger("solveroom.app")

app = FastAPI(title="SolveRoom Rules API", version="1.0.0")
api_router = APIRouter(prefix="/api")


@app.on_event("startup")
async def startup_event() -> None:
    logger.info(
        "Rules service startup complete",
        extra={"event": "startup", "status": settings.env},
    )


app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def request_metrics_middleware(request: Request, call_next):
    response = await call_next(request)
    REQUESTS_TOTAL.labels(
        method=request.method,
        path=request.url.path,
        status=str(response.status_code),
    ).inc()
    return response


@app.exception_handler(PermissionDeniedError)
async def permission_denied_handler(request: Request, exc: PermissionDeniedError) -> JSONResponse:
    decision = exc.decision
    return JSONResponse(
        status_code=403,
        content={
            "detail": decision.reason,
            "denial": decision.denial.value if decision.denial else None,
        },
    )


@app.exception_handler(InvalidTransitionError)
async def invalid_transition_handler(request: Request, exc: InvalidTransitionError) -> JSONResponse:
    return JSONResponse(status_code=409, content={"detail": str(exc)})


@api_router.get("/")
async def root() -> dict[str, str]:
    return {"message": "SolveRoom Rules API"}


@api_router.get("/health")
async def api_healthcheck() -> dict[str, str]:
    return {"status": "ok", "ts": datetime.now(timezone.utc).isoformat()}


@app.get("/health")
async def healthcheck() -> dict[str, str]:
    return {"status": "ok", "ts": datetime.now(timezone.utc).isoformat()}


@app.get("/metrics")
async def metrics() -> Response:
    if not settings.enable_prometheus_metrics:
        raise HTTPException(status_code=404, detail="Metrics disabled")
    return Response(generate_latest(), media_type=CONTENT_TYPE_LATEST)


api_router.include_router(permissions_router)
api_router.include_router(roles_router)
api_router.include_router(lifecycle_router)
app.include_router(api_router)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("solveroom.main:app", host="0.0.0.0", port=settings.port, reload=settings.debug)
