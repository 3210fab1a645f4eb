import asyncio
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from outdrinkme.config import get_settings
from outdrinkme.infrastructure.database import SessionLocal, engine, initialize_database
from outdrinkme.infrastructure.notifications import (
    build_notification_dispatcher,
    realtime_publisher,
    set_notification_dispatcher,
)
from outdrinkme.interfaces.api.routes import register_routes

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Initialize the database and run the notification dispatcher while the app is up."""

    settings = get_settings()
    initialize_database()

    dispatcher = None
    if settings.dispatcher_enabled:
        dispatcher = build_notification_dispatcher(settings, SessionLocal)
        set_notification_dispatcher(dispatcher)
        dispatcher.start()
    else:
        logger.info("Notification dispatcher disabled by configuration")
    realtime_publisher.bind_loop(asyncio.get_running_loop())

    try:
        yield
    finally:
        realtime_publisher.bind_loop(None)
        if dispatcher is not None:
            dispatcher.stop()
            set_notification_dispatcher(None)
        engine.dispose()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""

    settings = get_settings()
    app = FastAPI(title="OutDrinkMe Notifications", lifespan=lifespan)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_allow_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_routes(app)
    return app


app = create_app()
