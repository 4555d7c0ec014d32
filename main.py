import logging
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager

from dashauth.core.config import get_settings
from dashauth.core.database import init_db
from dashauth.core.logging_config import setup_logging
from dashauth.core.celery_app import celery_app  # noqa: F401  (binds shared tasks to our broker)
from dashauth.api.errors import register_exception_handlers
from dashauth.api.endpoints import account, dashboard, health

settings = get_settings()

setup_logging(log_level=settings.LOG_LEVEL, json_logs=settings.JSON_LOGS)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifespan context manager for startup and shutdown events.
    """
    logger.info("Starting up Dashboard Accounts API...")
    if len(settings.FIELD_ENCRYPTION_KEY.encode("utf-8")) != 32:
        logger.error("FIELD_ENCRYPTION_KEY must be exactly 32 bytes; PII encryption will fail closed")
    if not settings.JWT_SECRET_KEY:
        logger.error("JWT_SECRET_KEY is not set; session tokens cannot be trusted")
    if not settings.MAGIC_LINK_KEY:
        logger.warning("MAGIC_LINK_KEY is not set")
    init_db()

    yield

    logger.info("Shutting down Dashboard Accounts API...")


app = FastAPI(
    title=settings.PROJECT_NAME,
    version="1.0.0",
    description="Account authentication for the customer dashboard",
    lifespan=lifespan
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.BACKEND_CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_exception_handlers(app)

app.include_router(account.router, prefix=settings.API_V1_STR)
app.include_router(dashboard.router, prefix=settings.API_V1_STR)
app.include_router(health.router, prefix=settings.API_V1_STR)


@app.get("/")
async def root():
    """Root endpoint - API health check"""
    return {
        "message": "Dashboard Accounts API",
        "version": "1.0.0",
        "status": "healthy"
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "main:app",
        host="0.0.0.0",
        port=8000,
        reload=True,  # Enable auto-reload during development
        log_level="info"
    )
