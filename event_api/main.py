from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .config import Settings, get_settings
from .database import Database
from .observability import RequestTimingLoggingMiddleware, add_exception_handlers, configure_logging
from .routers import health
from .routers import users as users_router
from .routers import scans as scans_router
from .routers import attendance as attendance_router
from .routers import social as social_router


logger = logging.getLogger(__name__)


def create_app(settings: Optional[Settings] = None, database: Optional[Database] = None) -> FastAPI:
    """Build the API.

    When ``database`` is given the caller owns it (opened and disposed outside the app);
    otherwise one is opened from ``settings.database_url`` at startup and disposed at shutdown.
    """
    settings = settings or get_settings()
    configure_logging(settings.log_level)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        owned = app.state.database is None
        if owned:
            app.state.database = Database(settings.database_url, echo=settings.sql_echo)
        app.state.database.create_all()
        logger.info("database ready url=%s", app.state.database.engine.url.render_as_string(hide_password=True))
        try:
            yield
        finally:
            if owned:
                app.state.database.dispose()
                app.state.database = None

    application = FastAPI(
        title="Event API",
        version="0.1.0",
        description="Attendees, activity scans, check-in/out and badge-to-badge scanning.",
        docs_url="/api-docs",
        lifespan=lifespan,
    )
    application.state.settings = settings
    application.state.database = database

    application.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    application.add_middleware(RequestTimingLoggingMiddleware)

    add_exception_handlers(application)

    # Routers
    application.include_router(health.router)
    application.include_router(users_router.router)
    application.include_router(scans_router.router)
    application.include_router(attendance_router.router)
    application.include_router(social_router.router)

    return application


app = create_app()
