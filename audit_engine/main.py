import logging
import sys

import structlog
from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware

from audit_engine.config import settings
from audit_engine.core.exceptions import RepositoryException
from audit_engine.routers.audit_scores import router as audit_scores_router
from audit_engine.routers.audit_scores import (
    repository_exception_handler,
    validation_exception_handler,
)
from audit_engine.routers.health import router as health_router
from audit_engine.routers.settings import router as settings_router
from audit_engine.services.cache import reset_cache
from audit_engine.services.snowflake import SnowflakeConnectionPool

load_dotenv()

logger = structlog.get_logger(__name__)


# LOGGING
def configure_logging() -> None:
    """Route stdlib and structlog output through one handler at LOG_LEVEL."""
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, settings.LOG_LEVEL),
    )

    renderer = (
        structlog.processors.JSONRenderer()
        if settings.LOG_FORMAT == "json"
        else structlog.dev.ConsoleRenderer()
    )
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            renderer,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )


# SWAGGER UI - tag display order
_OPENAPI_TAGS = [
    {"name": "Root"},
    {"name": "Health"},
    {"name": "Audit Scores"},
    {"name": "Settings"},
]

# FASTAPI APPLICATION CONFIGURATION
app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
    openapi_tags=_OPENAPI_TAGS,
)

app.add_middleware(CORSMiddleware, allow_origins=["*"], allow_methods=["*"], allow_headers=["*"])

# REGISTER EXCEPTION HANDLERS
app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(RepositoryException, repository_exception_handler)

# REGISTER ROUTERS (order matches _OPENAPI_TAGS / Swagger UI display order)
app.include_router(health_router)           # Health
app.include_router(audit_scores_router)     # Audit Scores
app.include_router(settings_router)         # Settings


# ROOT ENDPOINT
@app.get("/", tags=["Root"], summary="Root endpoint")
async def root():
    return {
        "service": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "docs": {
            "swagger": "/docs",
            "redoc": "/redoc"
        },
        "status": "running"
    }


# STARTUP EVENT
@app.on_event("startup")
async def startup_event():
    configure_logging()
    pool = SnowflakeConnectionPool(settings)
    pool.open()
    app.state.pool = pool
    logger.info("application_started", app_env=settings.APP_ENV, docs="/docs")


# SHUTDOWN EVENT
@app.on_event("shutdown")
async def shutdown_event():
    pool = getattr(app.state, "pool", None)
    if pool is not None:
        pool.close()
    reset_cache()
    logger.info("application_stopped")


# RUN WITH UVICORN
if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "audit_engine.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.DEBUG,
    )
