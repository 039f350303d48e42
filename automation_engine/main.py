"""FastAPI Application Entry Point"""

from fastapi import FastAPI
from starlette.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager

from automation_engine.api.v1 import automations, health
from automation_engine.api.exception_handlers import register_exception_handlers
from automation_engine.api.middleware import (
    RequestIDMiddleware,
    LoggingMiddleware,
    ErrorHandlingMiddleware,
)
from automation_engine.core.config import settings
from automation_engine.core.database import init_db, close_db
from automation_engine.core.logging_config import get_logger

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager for startup and shutdown events"""
    await init_db()
    logger.info("application_started", app_name=settings.APP_NAME, environment=settings.ENVIRONMENT)
    yield
    await close_db()
    logger.info("application_stopped")


app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    docs_url="/api/docs",
    redoc_url="/api/redoc",
    lifespan=lifespan
)

register_exception_handlers(app)

# Add middleware in correct order (LIFO - last added is executed first)
# Order: Error Handler -> Logging -> Request ID -> CORS

# 1. CORS Middleware (handles browser preflight requests)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=settings.CORS_ALLOW_CREDENTIALS,
    allow_methods=settings.CORS_ALLOW_METHODS,
    allow_headers=settings.CORS_ALLOW_HEADERS,
)

# 2. Request ID Middleware (must be before logging)
app.add_middleware(RequestIDMiddleware)

# 3. Logging Middleware
app.add_middleware(LoggingMiddleware)

# 4. Error Handling Middleware (catches all errors)
app.add_middleware(ErrorHandlingMiddleware)

# Include routers
app.include_router(health.router)
app.include_router(automations.router, prefix="/api/v1")


@app.get("/")
async def root():
    """Root endpoint"""
    return {
        "name": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "docs": "/api/docs"
    }
