"""uiforge: validation and repair service for generated UI artifacts.

FastAPI application: structured logging, Redis-backed run store, error mapping.
"""

import logging
from contextlib import asynccontextmanager
from typing import Optional

import structlog
import redis.asyncio as aioredis
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from uiforge.config import Settings, get_settings
from uiforge.api.router import api_router, ws_router
from uiforge.errors import ToolInvocationError
from uiforge.services.run_store import RunNotFoundError, RunStore

VERSION = "1.0.0"


def configure_logging(settings: Optional[Settings] = None) -> None:
    settings = settings or get_settings()
    renderer = structlog.dev.ConsoleRenderer() if settings.DEBUG else structlog.processors.JSONRenderer()
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(
            logging.getLevelName(settings.LOG_LEVEL.upper())
        ),
    )


configure_logging()

logger = structlog.get_logger()


async def _connect_redis(url: str):
    """Connected client, or None when Redis is unreachable."""
    client = aioredis.from_url(url, decode_responses=True, encoding="utf-8")
    try:
        await client.ping()
    except Exception as e:
        logger.error("redis_connection_failed", url=url, error=str(e))
        await client.aclose()
        return None
    logger.info("redis_connected", url=url)
    return client


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = get_settings()
    logger.info("app_starting", debug=settings.DEBUG, max_attempts=settings.MAX_VALIDATION_ATTEMPTS)

    # Without Redis the app still starts; run endpoints answer 500 until it is back
    app.state.redis = await _connect_redis(settings.REDIS_URL)
    app.state.run_store = RunStore(app.state.redis)
    logger.info("app_started")

    yield

    if app.state.redis is not None:
        await app.state.redis.aclose()
        logger.info("redis_disconnected")
    logger.info("app_stopped")


app = FastAPI(
    title="uiforge",
    description=(
        "Validation and repair loop for generated UI components. "
        "Type checks and lints every artifact, routes failures to repair agents, "
        "and reports what could not be fixed within the attempt budget."
    ),
    version=VERSION,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ── Error mapping ──

@app.exception_handler(ToolInvocationError)
async def tool_error_handler(request: Request, exc: ToolInvocationError):
    logger.error("tool_invocation_failed", path=request.url.path, tool=exc.tool, error=str(exc))
    return JSONResponse(
        status_code=502,
        content={"error": "tool_invocation_error", "tool": exc.tool, "message": str(exc)},
    )


@app.exception_handler(RunNotFoundError)
async def run_not_found_handler(request: Request, exc: RunNotFoundError):
    return JSONResponse(
        status_code=404,
        content={"error": "run_not_found", "message": f"Run {exc.args[0]} not found"},
    )


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.error(
        "unhandled_exception",
        path=request.url.path,
        method=request.method,
        error=str(exc),
        error_type=type(exc).__name__,
    )
    return JSONResponse(
        status_code=500,
        content={"error": "internal_server_error", "message": "An unexpected error occurred."},
    )


app.include_router(api_router, prefix="/api/v1")
app.include_router(ws_router)


@app.get("/")
async def root():
    return {
        "name": "uiforge",
        "version": VERSION,
        "docs": "/docs",
        "health": "/api/v1/health",
        "websocket": "/ws/runs/{run_id}",
    }
