# healthclub/main.py
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from healthclub.config.settings import settings
from healthclub.db.database import Base, engine
from healthclub.errors import setup_error_handlers
from healthclub.routers import check_in, cron, fcm, scheduled_notifications
from healthclub.services.fcm_push import init_firebase

# create_all needs every model registered on Base
import healthclub.models  # noqa: F401

logging.basicConfig(level=logging.INFO, format="%(asctime)s [%(levelname)s] %(name)s: %(message)s")
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # creates missing tables only; columns on existing tables are not altered
    Base.metadata.create_all(bind=engine)

    init_firebase(settings.firebase_key_path)

    if not settings.cron_secret:
        if settings.is_production:
            logger.error("[startup] CRON_SECRET is not set; cron and operator endpoints will reject every call")
        else:
            logger.warning("[startup] CRON_SECRET is not set; cron and operator endpoints are open")

    logger.info("[startup] %s %s (%s)", settings.app_name, settings.version, settings.environment)
    yield
    logger.info("[shutdown] %s stopped", settings.app_name)


def create_application() -> FastAPI:
    app = FastAPI(title=settings.app_name, version=settings.version, lifespan=lifespan)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    setup_error_handlers(app)

    app.include_router(check_in.router)
    app.include_router(fcm.router)
    app.include_router(cron.router)
    app.include_router(scheduled_notifications.router)

    @app.get("/")
    async def root():
        return {
            "message": f"{settings.app_name} is running",
            "version": settings.version,
        }

    return app


app = create_application()
