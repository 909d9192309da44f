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

from hydrocolor.analysis.pool import AnalysisPool
from hydrocolor.api.routes import router
from hydrocolor.config import get_settings

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Application lifespan: initialize on startup, clean up on shutdown."""
    settings = get_settings()
    app.state.settings = settings

    logging.basicConfig(level=logging.INFO, format=LOG_FORMAT)

    logger.info(
        "Starting HydroColor (canvas=%dx%d, region=%d, max_concurrent=%s)",
        settings.canvas_width,
        settings.canvas_height,
        settings.default_region_size,
        settings.max_concurrent,
    )

    analysis_pool = AnalysisPool(settings)
    app.state.analysis_pool = analysis_pool

    logger.info("HydroColor ready")
    yield

    logger.info("Shutting down HydroColor")
    analysis_pool.shutdown()
    logger.info("HydroColor shutdown complete")


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    application = FastAPI(
        title="HydroColor",
        description="Hydration color level estimation from urine sample photos",
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
    """Serve the app with uvicorn on the configured host and port."""
    settings = get_settings()
    uvicorn.run("hydrocolor.main:app", host=settings.host, port=settings.port)
