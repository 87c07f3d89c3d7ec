"""Application factory for the trip broker API."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.ext.asyncio import AsyncEngine

from . import __version__
from .bootstrap import build_container
from .core.config import Settings, settings
from .core.database import build_engine, build_session_factory, init_db
from .core.exceptions import (
    ProblemDetailsException,
    generic_exception_handler,
    problem_details_handler,
    validation_exception_handler,
)
from .core.middleware import REQUEST_ID_HEADER, setup_middleware
from .core.observability import (
    SERVICE_NAME,
    instrument_fastapi,
    instrument_sqlalchemy,
    setup_metrics,
    setup_structured_logging,
    setup_tracing,
)
from .notifications import NotificationTransport
from .routers import booking, chat, metrics, offer, probes
from .workers import WorkerManager

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Own the long-lived components for the lifetime of the app.

    Startup wires the container over the engine, creates missing tables and
    starts the workers. Shutdown stops the workers, waits for in-flight
    event handlers and disposes of the engine, in that order.
    """
    config: Settings = app.state.config
    engine: AsyncEngine = app.state.engine
    logger.info("Starting trip broker API", extra={"environment": config.environment})

    setup_tracing(SERVICE_NAME, config)
    setup_metrics(SERVICE_NAME, config)
    instrument_sqlalchemy(engine)
    await init_db(engine)

    container = build_container(config, build_session_factory(engine), app.state.transport)
    worker_manager = WorkerManager(container)
    app.state.container = container
    app.state.worker_manager = worker_manager

    if config.workers_enabled:
        await worker_manager.start_all()
    logger.info("Application startup complete")

    try:
        yield
    finally:
        logger.info("Shutting down trip broker API")
        try:
            await worker_manager.stop_all()
            await container.event_bus.drain()
        finally:
            await engine.dispose()
        logger.info("Application shutdown complete")


def create_app(
    config: Settings = settings,
    engine: AsyncEngine | None = None,
    transport: NotificationTransport | None = None,
) -> FastAPI:
    """
    Build the FastAPI application.

    Args:
        config: Application settings
        engine: Database engine; built from config.database_url when omitted
        transport: Notification transport; messages are logged when omitted
    """
    setup_structured_logging(config)

    app = FastAPI(
        title="Trip Broker API",
        description="RPC-over-HTTP API for accepting travel offers, driving booking lifecycles and notifying participants",
        version=__version__,
        debug=config.debug,
        lifespan=lifespan,
        docs_url="/docs" if config.debug else None,
        redoc_url="/redoc" if config.debug else None,
    )
    app.state.config = config
    app.state.engine = engine or build_engine(config.database_url, echo=config.debug)
    app.state.transport = transport

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["*"],
        expose_headers=[REQUEST_ID_HEADER, "traceparent", "tracestate"],
    )
    setup_middleware(app, enable_access_log=True, config=config)
    instrument_fastapi(app)

    app.add_exception_handler(ProblemDetailsException, problem_details_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, generic_exception_handler)

    for module in (probes, offer, booking, chat, metrics):
        app.include_router(module.router)

    return app


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "tripbroker.main:create_app",
        factory=True,
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
        log_level=settings.log_level.lower(),
    )
