"""FastAPI application for the Fleet Gateway."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, WebSocket, WebSocketDisconnect
from fastapi.middleware.cors import CORSMiddleware

from .app_state import get_state
from .config import config
from .ws.manager import ws_manager

logging.basicConfig(level=config.log_level, format="%(asctime)s [%(name)s] %(levelname)s: %(message)s")
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application startup and shutdown."""
    logger.info("Fleet Gateway starting on %s:%d", config.host, config.port)
    logger.info("Port registry: %s", config.registry_url)
    logger.info("Process manager: %s", config.pm_url)

    state = get_state()
    ws_manager.attach(state)

    # Initial snapshot so the first dashboard request is not empty
    result = await state.fetcher.refresh()
    if result.error:
        logger.warning("Initial refresh degraded: %s", result.error)

    ws_manager.start_poller(config.refresh_interval)

    yield

    # Shutdown
    ws_manager.stop_poller()
    ws_manager.detach()
    await state.close()

    logger.info("Fleet Gateway stopped")


app = FastAPI(
    title="Fleet Gateway",
    description="Operator dashboard API for locally-managed agents and infrastructure services",
    version="0.1.0",
    lifespan=lifespan,
)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=config.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

from .routers.dashboard import router as dashboard_router
from .routers.health import router as health_router
from .routers.pm2 import router as pm2_router
from .routers.projects import router as projects_router

app.include_router(health_router)
app.include_router(dashboard_router)
app.include_router(projects_router)
app.include_router(pm2_router)


@app.websocket("/api/ws")
async def websocket_endpoint(ws: WebSocket):
    """WebSocket endpoint pushing the dashboard view on every change."""
    await ws_manager.connect(ws, host=ws.url.hostname or "localhost")
    try:
        while True:
            # Keep connection alive; we don't expect client messages
            # but we need to read to detect disconnects
            await ws.receive_text()
    except WebSocketDisconnect:
        ws_manager.disconnect(ws)
    except Exception:
        ws_manager.disconnect(ws)
