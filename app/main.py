"""FastAPI application — main entry point."""

import structlog
from contextlib import asynccontextmanager

from fastapi import FastAPI

from app.config import get_settings
from app.infrastructure.database import engine, Base, SessionLocal
from app.infrastructure.mailer import MailClient
from app.infrastructure.storage import ObjectStorage
from app.core.logging import configure_logging
from app.core.middleware import setup_middleware
from app.core.exceptions import register_exception_handlers

# Import all models so SQLAlchemy knows about them
from app.domain.models.user import User, UserRole
from app.domain.models.maintenance_request import MaintenanceRequest
from app.domain.models.message import Message
from app.domain.models.feedback import Feedback
from app.domain.models.scheduled_email import ScheduledEmail

# Import routers
from app.interfaces.api.auth import router as auth_router
from app.interfaces.api.profile import router as profile_router
from app.interfaces.api.requests import router as requests_router
from app.interfaces.api.messages import router as messages_router
from app.interfaces.api.admin import router as admin_router
from app.interfaces.api.uploads import router as uploads_router
from app.interfaces.api.public import router as public_router

settings = get_settings()

# Configure logging immediately
configure_logging()
logger = structlog.get_logger(__name__)


def ensure_default_admin() -> None:
    """Create the bootstrap admin account if it does not exist yet."""
    from app.application.services.auth_service import get_user_by_email, create_user

    db = SessionLocal()
    try:
        if not get_user_by_email(db, settings.DEFAULT_ADMIN_EMAIL):
            create_user(
                db,
                email=settings.DEFAULT_ADMIN_EMAIL,
                password=settings.DEFAULT_ADMIN_PASSWORD,
                first_name="Admin",
                last_name="HomeFix",
                role=UserRole.ADMIN,
            )
            logger.info("Default admin user created", email=settings.DEFAULT_ADMIN_EMAIL)
    finally:
        db.close()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan — startup and shutdown events."""
    logger.info("Starting HomeFix API...", env=settings.ENVIRONMENT)

    # Create DB tables (dev only, use migrations in production)
    Base.metadata.create_all(bind=engine)
    logger.info("Database tables created/verified")
    ensure_default_admin()

    app.state.mailer = MailClient(settings)
    app.state.storage = ObjectStorage(settings)

    from app.scheduler.jobs import start_scheduler
    start_scheduler(app.state.mailer)

    yield

    from app.scheduler.jobs import stop_scheduler
    stop_scheduler()
    await app.state.mailer.aclose()
    logger.info("HomeFix API stopped")


app = FastAPI(
    title="HomeFix — Marketplace de Manutenção Doméstica",
    description="API Backend — pedidos de manutenção, chat, avaliações e notificações por email",
    version="1.0.0",
    lifespan=lifespan,
)

# Correlation ID, request logging, CORS
setup_middleware(app)

# AppError envelope, 400 on validation, 500 fallback
register_exception_handlers(app)

# Include routers
app.include_router(auth_router)
app.include_router(profile_router)
app.include_router(requests_router)
app.include_router(messages_router)
app.include_router(admin_router)
app.include_router(uploads_router)
app.include_router(public_router)


@app.get("/")
def root():
    return {
        "name": "HomeFix API",
        "version": "1.0.0",
        "status": "running",
        "docs": "/docs",
    }


@app.get("/health")
def health():
    return {"status": "healthy"}
