"""Liveness, readiness and service information probes."""

import logging
from typing import Any

from fastapi import APIRouter, Request
from sqlalchemy import text

from .. import __version__
from ..core.observability import SERVICE_NAME

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Health"])


async def _database_status(request: Request) -> str:
    try:
        async with request.app.state.engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
    except Exception as e:
        logger.warning(f"Readiness database check failed: {e!s}")
        return "unavailable"
    return "ok"


@router.get("/health", summary="Liveness")
async def health(request: Request) -> dict[str, Any]:
    """The process is up and serving requests."""
    return {
        "status": "healthy",
        "service": SERVICE_NAME,
        "version": __version__,
        "environment": request.app.state.config.environment,
    }


@router.get("/ready", summary="Readiness")
async def ready(request: Request) -> dict[str, Any]:
    """
    Ready once the database answers and booking event handlers are registered.

    The lifespan registers the handlers, so a request that arrives before
    startup completes reports not_ready.
    """
    database = await _database_status(request)
    container = getattr(request.app.state, "container", None)
    handlers = container.event_bus.get_registered_events() if container else []

    return {
        "status": "ready" if database == "ok" and handlers else "not_ready",
        "service": SERVICE_NAME,
        "checks": {"database": database, "event_handlers": handlers},
    }


@router.get("/info", summary="Service Information", tags=["Info"])
async def info(request: Request) -> dict[str, Any]:
    config = request.app.state.config
    worker_manager = getattr(request.app.state, "worker_manager", None)
    return {
        "service": SERVICE_NAME,
        "version": __version__,
        "environment": config.environment,
        "features": {
            "manager_channel": config.manager_channel_address is not None,
            "workers": worker_manager.get_worker_status() if worker_manager else {},
            "problem_details": True,
        },
        "endpoints": {
            "health": "/health",
            "readiness": "/ready",
            "info": "/info",
            "metrics": "/metrics",
            "docs": "/docs" if config.debug else None,
        },
    }
