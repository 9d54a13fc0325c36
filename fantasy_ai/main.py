"""
FastAPI application for the Fantasy Football AI backend
"""

from contextlib import asynccontextmanager
from datetime import datetime, timezone
import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from fantasy_ai.api.ai import router as ai_router
from fantasy_ai.core.config import settings
from fantasy_ai.core.database import check_db_connection, init_db
from fantasy_ai.core.errors import ErrorCode
from fantasy_ai.core.responses import (
    add_request_context,
    error_response,
    register_exception_handlers,
    success_response,
)
from fantasy_ai.services.cache_service import cache_service

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_app: FastAPI):
    """Application lifespan manager"""
    logger.info(f"🚀 Starting {settings.APP_NAME} - {settings.ENVIRONMENT.upper()} Environment")

    try:
        if check_db_connection():
            logger.info("✅ Database connected successfully")
            if init_db():
                logger.info("✅ Database tables initialized")
        else:
            logger.warning("⚠️  Database not reachable, analyses will not be stored")
    except Exception as e:
        logger.warning(f"⚠️  Database initialization failed: {e}")

    yield

    logger.info("🛑 Shutting down")
    await cache_service.close()


app = FastAPI(
    title=settings.APP_NAME,
    description="AI-powered fantasy football analysis API",
    version=settings.API_VERSION,
    debug=settings.DEBUG,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.get_frontend_urls(),
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["*"],
)
app.middleware("http")(add_request_context)
register_exception_handlers(app)

app.include_router(ai_router)


@app.get("/")
async def root(request: Request):
    """Root endpoint"""
    return success_response(
        {
            "name": settings.APP_NAME,
            "version": settings.API_VERSION,
            "environment": settings.ENVIRONMENT,
            "docs": "/docs",
            "health": "/health",
        },
        request,
    )


@app.get("/health")
async def health_check(request: Request):
    """Database and Redis probes; any failing probe turns the answer into a 503"""
    database_ok = check_db_connection()
    if cache_service.enabled:
        redis_status = "healthy" if await cache_service.is_redis_healthy() else "unhealthy"
    else:
        redis_status = "disabled"

    services = {
        "database": "healthy" if database_ok else "unhealthy",
        "redis": redis_status,
    }

    if not database_ok or redis_status == "unhealthy":
        failed = [name for name, status in services.items() if status == "unhealthy"]
        return error_response(
            ErrorCode.SERVICE_UNAVAILABLE.value,
            f"Service health check failed: {', '.join(failed)}",
            503,
            request,
            details={"services": services},
        )

    return success_response(
        {
            "status": "healthy",
            "environment": settings.ENVIRONMENT,
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "services": services,
        },
        request,
    )


if __name__ == "__main__":
    import uvicorn

    logger.info(f"🚀 Starting server on port {settings.PORT} - {settings.ENVIRONMENT.upper()} mode")
    uvicorn.run(app, host="0.0.0.0", port=settings.PORT)
