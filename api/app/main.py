from contextlib import asynccontextmanager
import logging
import time
import traceback

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from opentelemetry import trace
from starlette.requests import Request

from app.api.router import api_router
from app.core.config import Settings, get_settings
from app.core.telemetry import (
    TelemetryRuntime,
    configure_api_logging,
    log_startup_configuration,
    setup_api_telemetry,
    shutdown_api_telemetry,
)
from app.services.identity import get_identity_verifier
from app.services.repository import get_repository

settings = get_settings()
_telemetry_runtime: TelemetryRuntime | None = None
logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)


@asynccontextmanager
async def lifespan(_: FastAPI):
    configure_api_logging()
    log_startup_configuration(get_settings())
    try:
        yield
    finally:
        if _telemetry_runtime is not None:
            shutdown_api_telemetry(app, _telemetry_runtime)
        # Ensure asyncpg pool shuts down on app teardown.
        await get_repository().close()
        get_repository.cache_clear()
        get_identity_verifier.cache_clear()


app = FastAPI(title=settings.app_name, lifespan=lifespan)
_telemetry_runtime = setup_api_telemetry(app, settings)


def _allowed_origins(raw: str) -> list[str]:
    stripped = raw.strip()
    if stripped == "*":
        return ["*"]
    return [origin.strip() for origin in stripped.split(",") if origin.strip()]


app.add_middleware(
    CORSMiddleware,
    allow_origins=_allowed_origins(settings.cors_allowed_origins),
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def request_logging_middleware(request: Request, call_next):
    started_at = time.perf_counter()
    with tracer.start_as_current_span("http.request") as span:
        span.set_attribute("http.method", request.method)
        span.set_attribute("http.target", request.url.path)
        response = await call_next(request)
        span.set_attribute("http.status_code", response.status_code)
    elapsed_ms = (time.perf_counter() - started_at) * 1000.0
    logger.info(
        "http request method=%s path=%s status=%s duration_ms=%.2f",
        request.method,
        request.url.path,
        response.status_code,
        elapsed_ms,
    )
    return response


def format_error_response(exc: Exception, current: Settings) -> dict[str, object]:
    body: dict[str, object] = {"success": False, "message": f"Server error: {exc}"}
    if current.is_development:
        body["error"] = "".join(traceback.format_exception(exc))
    return body


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("unhandled error method=%s path=%s", request.method, request.url.path)
    return JSONResponse(status_code=500, content=format_error_response(exc, get_settings()))


app.include_router(api_router)
