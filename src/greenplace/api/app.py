# src/greenplace/api/app.py
"""
FastAPI application factory for the GreenPlace API.

Uses the factory pattern so the app can be created with or without
lifespan management (tests skip the background refresh workers and the
periodic jobs).
"""

import logging
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from greenplace import __version__
from greenplace.api.routers import config as config_router
from greenplace.api.routers import sustainability
from greenplace.core.config import config

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Start the refresh workers and periodic jobs, stop them on shutdown."""
    from greenplace.core.factory import get_cache, get_jobs
    from greenplace.core.scheduler import Scheduler

    logger.info("Starting GreenPlace API...")
    cache = get_cache()
    jobs = get_jobs()
    cache.start()

    scheduler = Scheduler()
    scheduler.add_job_from_string(jobs.warm_cache, config.CACHE_WARM_INTERVAL)
    scheduler.add_job_from_string(jobs.rebuild_snapshot, config.SNAPSHOT_INTERVAL)
    app.state.scheduler = scheduler
    yield
    logger.info("Shutting down GreenPlace API...")
    await scheduler.stop()
    await jobs.node_collector.close()
    await cache.close()
    logger.info("Background work stopped and provider clients closed.")


def create_app(use_lifespan: bool = False) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        use_lifespan: If True, attach the lifespan handler that runs the
                      background refresh and periodic jobs. Set to False for testing.

    Returns:
        A configured FastAPI application instance.
    """
    app = FastAPI(
        title="GreenPlace API",
        description="Carbon-aware placement engine: carbon intensity, forecasts and cluster footprints.",
        version=__version__,
        docs_url="/api/v1/docs",
        openapi_url="/api/v1/openapi.json",
        lifespan=lifespan if use_lifespan else None,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Register API routers
    app.include_router(sustainability.router, prefix="/api/v1", tags=["Sustainability"])
    app.include_router(config_router.router, prefix="/api/v1", tags=["Config"])

    return app


def main():
    """Entry point for the greenplace-api console script."""
    logging.basicConfig(
        level=config.LOG_LEVEL.upper(),
        format="%(asctime)s - %(levelname)s - %(message)s",
    )
    app = create_app(use_lifespan=True)
    uvicorn.run(app, host=config.API_HOST, port=config.API_PORT)
