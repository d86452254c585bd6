"""FastAPI application entry point."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from emojify.api.routes import router
from emojify.config import get_settings
from emojify.ml.inference import InferencePool
from emojify.ml.preprocessing import load_catalog

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Application lifespan: load overlays on startup, stop workers on shutdown."""
    settings = get_settings()
    app.state.settings = settings

    logging.basicConfig(level=logging.INFO, format=LOG_FORMAT)

    logger.info(
        "Starting Emojify (max_concurrent=%s, scale_factor=%s, assets_dir=%s)",
        settings.max_concurrent,
        settings.scale_factor,
        settings.assets_dir,
    )

    app.state.catalog = load_catalog(settings.assets_dir)
    inference_pool = InferencePool(settings)
    app.state.inference_pool = inference_pool

    logger.info("Emojify ready")
    yield

    logger.info("Shutting down Emojify")
    inference_pool.shutdown()
    logger.info("Emojify shutdown complete")


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    application = FastAPI(
        title="Emojify",
        description="Classifies face expressions and overlays the matching emoji",
        version="0.1.0",
        lifespan=lifespan,
    )

    application.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    application.include_router(router)
    return application


app = create_app()


def run() -> None:
    """Serve the application with uvicorn using the configured host and port."""
    settings = get_settings()
    uvicorn.run("emojify.main:app", host=settings.host, port=settings.port, log_config=None)
