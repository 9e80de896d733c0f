# roomrelay/main.py

from __future__ import annotations

from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from roomrelay.api import websocket as websocket_module
from roomrelay.api.routes import health, metrics, publish, root, rooms
from roomrelay.core import state
from roomrelay.core.config import settings
from roomrelay.core.logging import get_logger, setup_logging

# Configure logging first
setup_logging()
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(_app: FastAPI):
    state.init_state()
    logger.info("🚀 Room relay starting - room registry initialised")
    yield
    logger.info("Room relay shutting down")


# FastAPI app
app = FastAPI(title="Room Relay", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# REST routes
app.include_router(root.router)
app.include_router(health.router)
app.include_router(metrics.router)
app.include_router(rooms.router)
app.include_router(publish.router)

# WebSocket routes
app.include_router(websocket_module.router)


def run() -> None:
    uvicorn.run("roomrelay.main:app", host=settings.HOST, port=settings.PORT)


if __name__ == "__main__":
    run()
