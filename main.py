"""
Line Item Sync - Main Application

FastAPI application entry point.
"""

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from contextlib import asynccontextmanager
import structlog
from datetime import datetime

from config import settings, check_connection, configure_logging

# Configure structured logging
configure_logging()

logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan handler.

    Startup: Report whether Salesforce is configured
    Shutdown: Nothing to release
    """
    logger.info(
        "application_starting",
        environment=settings.environment,
        debug=settings.debug,
        salesforce_configured=settings.salesforce_configured
    )

    yield

    logger.info("application_shutting_down")


# Create FastAPI app
app = FastAPI(
    title="Line Item Sync",
    description="Publish workbook line items to Salesforce as revisions",
    version="0.1.0",
    lifespan=lifespan,
    docs_url="/docs" if settings.debug else None,
    redoc_url="/redoc" if settings.debug else None,
)


# ===================
# ROUTES
# ===================

@app.get("/health")
async def health_check():
    """
    Health check endpoint.

    Returns:
        Basic health status and Salesforce token exchange state
    """
    sf_status = check_connection()

    return {
        "status": "degraded" if sf_status["status"] == "unhealthy" else "healthy",
        "timestamp": datetime.utcnow().isoformat(),
        "environment": settings.environment,
        "salesforce": sf_status
    }


@app.get("/")
async def root():
    """
    Root endpoint.

    Returns:
        API information and available endpoints
    """
    return {
        "name": "Line Item Sync API",
        "version": "0.1.0",
        "docs": "/docs" if settings.debug else "Disabled in production",
        "health": "/health",
        "endpoints": {
            "preview": "/api/line-items/preview",
            "sync": "/api/line-items/sync",
        }
    }


# ===================
# ERROR HANDLERS
# ===================

@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """
    Global exception handler.

    Catches unhandled exceptions and returns standard error format.
    """
    logger.error(
        "unhandled_exception",
        path=request.url.path,
        method=request.method,
        error=str(exc),
        error_type=type(exc).__name__
    )

    return JSONResponse(
        status_code=500,
        content={
            "error": {
                "code": "INTERNAL_ERROR",
                "message": "An unexpected error occurred",
                "details": str(exc) if settings.debug else None,
                "timestamp": datetime.utcnow().isoformat()
            }
        }
    )


# ===================
# INCLUDE ROUTERS
# ===================
from routes.line_items import router as line_items_router

app.include_router(line_items_router)  # Prefix already in router


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.debug
    )
