from contextlib import asynccontextmanager
import logging

from fastapi import FastAPI, Depends
from .infrastructure import models
from .infrastructure.database import engine

models.Base.metadata.create_all(bind=engine)

from .api import auth, settings as settings_api, evaluate, admin_home, analytics, view
from .api.deps import get_current_admin
from .infrastructure.storage import create_storage_service, StorageError

from fastapi.middleware.cors import CORSMiddleware
from .core.config import settings

logger = logging.getLogger(__name__)


def validate_config():
    """Validate critical configuration settings on startup."""
    DEFAULT_JWT_SECRET = "cleaning-jwt-secret-change-in-production-min-32-chars"

    if settings.is_production:
        if settings.JWT_SECRET_KEY == DEFAULT_JWT_SECRET:
            raise RuntimeError(
                "SECURITY ERROR: JWT_SECRET_KEY must be changed from default in production! "
                "Set a secure random string via environment variable."
            )

    if len(settings.JWT_SECRET_KEY) < 32:
        raise RuntimeError(
            f"SECURITY ERROR: JWT_SECRET_KEY must be at least 32 characters "
            f"(current: {len(settings.JWT_SECRET_KEY)} chars)"
        )

    if not settings.GOOGLE_CLIENT_ID:
        logger.warning("GOOGLE_CLIENT_ID is not set, administrator sign-in will fail")

    if settings.is_production:
        localhost_origins = [o for o in settings.BACKEND_CORS_ORIGINS if "localhost" in o]
        if localhost_origins:
            logger.warning(
                f"WARNING: CORS origins contain localhost URLs in production: {localhost_origins}. "
                "Consider removing localhost from BACKEND_CORS_ORIGINS env var."
            )

    logger.info(f"Config validation passed. Production mode: {settings.is_production}")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """FastAPI lifespan events for startup and shutdown."""
    logger.info("Starting Cleaning Inspection API...")

    validate_config()

    try:
        app.state.storage = create_storage_service(settings)
        logger.info(f"Object storage ready: {settings.STORAGE_BACKEND} / {settings.STORAGE_BUCKET}")
    except StorageError as e:
        app.state.storage = None
        logger.error(f"Object storage unavailable, evidence endpoints will return 503: {e}")

    yield

    logger.info("Shutting down Cleaning Inspection API...")
    app.state.storage = None


app = FastAPI(title=settings.PROJECT_NAME, lifespan=lifespan)

# Set all CORS enabled origins
if settings.BACKEND_CORS_ORIGINS:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.BACKEND_CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

admin_only = [Depends(get_current_admin)]

app.include_router(auth.router, prefix="/api/auth", tags=["authentication"])
app.include_router(settings_api.router, prefix="/api/admin/settings", tags=["settings"], dependencies=admin_only)
app.include_router(evaluate.router, prefix="/api/admin/evaluate", tags=["evaluate"], dependencies=admin_only)
app.include_router(admin_home.router, prefix="/api/admin/home", tags=["home"], dependencies=admin_only)
app.include_router(analytics.router, prefix="/api/admin/analytics", tags=["analytics"], dependencies=admin_only)
app.include_router(view.router, prefix="/api/view", tags=["view"])

@app.get("/health")
def health_check():
    return {"status": "healthy"}
