"""Leave Portal — FastAPI Application Factory."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from leave_portal.admin.router import router as admin_router
from leave_portal.app_settings.router import router as settings_router
from leave_portal.auth.router import router as auth_router
from leave_portal.common.exceptions import register_exception_handlers
from leave_portal.common.rate_limit import limiter
from leave_portal.config import settings
from leave_portal.database import dispose_engine
from leave_portal.hr.router import router as hr_router
from leave_portal.leave.router import router as leave_router
from leave_portal.manager.router import router as manager_router
from leave_portal.profile.router import router as profile_router
from leave_portal.working_saturdays.router import router as working_saturdays_router

APP_VERSION = "1.0.0"

logger = logging.getLogger(__name__)


def configure_logging() -> None:
    logging.basicConfig(
        level=settings.LOG_LEVEL.upper(),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application startup and shutdown events."""
    logger.info("Leave Portal starting (%s)", settings.ENVIRONMENT)
    yield
    # Shutdown: release every pooled connection
    await dispose_engine()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    configure_logging()

    app = FastAPI(
        title="Leave Portal",
        description="HR leave management API — leave workflow, sessions, settings, delegates, working Saturdays",
        version=APP_VERSION,
        docs_url="/api/docs" if settings.ENVIRONMENT != "production" else None,
        redoc_url="/api/redoc" if settings.ENVIRONMENT != "production" else None,
        lifespan=lifespan,
    )

    # Exception handlers ({success: false, error} envelope)
    register_exception_handlers(app)

    # Rate limiting (slowapi)
    app.state.limiter = limiter

    # CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Health check (no auth, no database)
    @app.get("/api/health", tags=["system"])
    async def health_check():
        return {
            "status": "healthy",
            "version": APP_VERSION,
            "environment": settings.ENVIRONMENT,
        }

    # Register routers
    app.include_router(auth_router, prefix="/api/auth", tags=["auth"])
    app.include_router(leave_router, prefix="/api/leave", tags=["leave"])
    app.include_router(hr_router, prefix="/api/hr", tags=["hr"])
    app.include_router(manager_router, prefix="/api/manager", tags=["manager"])
    app.include_router(profile_router, prefix="/api/profile", tags=["profile"])
    app.include_router(admin_router, prefix="/api/admin", tags=["admin"])
    app.include_router(settings_router, prefix="/api/settings", tags=["settings"])
    app.include_router(
        working_saturdays_router, prefix="/api/working-saturdays", tags=["working-saturdays"],
    )

    return app


app = create_app()
