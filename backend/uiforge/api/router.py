"""Main API router — combines all endpoint routers."""

from fastapi import APIRouter

from uiforge.api.health import router as health_router
from uiforge.api.runs import router as runs_router
from uiforge.api.websocket import router as websocket_router

api_router = APIRouter()

api_router.include_router(health_router, tags=["Health"])
api_router.include_router(runs_router, tags=["Runs"])

# Mounted at app root (no /api/v1 prefix)
ws_router = websocket_router
