"""MultiAuth Service

Main FastAPI application entry point.
Lets users choose among several configured authentication sources.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, RedirectResponse

from multiauth_service.api.routes import multiauth
from multiauth_service.config.settings import get_settings
from multiauth_service.core.auth import (
    ConfigurationError,
    DelegateFailure,
    InvalidSelection,
    RedirectRequired,
    StateNotFound,
    UnknownSource,
    initialize_source_registry,
)
from multiauth_service.infrastructure.auth.storage import close_storage, initialize_storage

settings = get_settings()

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events"""
    settings = get_settings()

    # Startup
    logger.info(f"Starting {settings.service_name} v{settings.service_version}")
    logger.info(f"Environment: {settings.environment}")

    try:
        storage = await initialize_storage(settings)
        logger.info(f"Storage backend ready: {storage.backend}")
    except Exception as e:
        logger.error(f"Failed to initialize storage: {e}")
        raise

    registry = initialize_source_registry(storage.state_store, settings=settings)
    logger.info(f"Authentication sources: {', '.join(registry.source_ids())}")

    yield

    # Shutdown
    logger.info("Shutting down MultiAuth Service")
    await close_storage()


# Create FastAPI application
app = FastAPI(
    title="MultiAuth Service",
    version=settings.service_version,
    description="Authentication source broker: choose among configured authentication sources",
    lifespan=lifespan
)

# CORS configuration
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=settings.cors_allow_credentials,
    allow_methods=settings.cors_allow_methods,
    allow_headers=settings.cors_allow_headers,
)


# Health check endpoint
@app.get("/health")
async def root_health_check():
    """Root health check endpoint"""
    return {
        "status": "healthy",
        "service": settings.service_name,
        "version": settings.service_version,
        "environment": settings.environment
    }


@app.get("/")
async def root():
    """Root endpoint with service information"""
    return {
        "service": settings.service_name,
        "version": settings.service_version,
        "description": "MultiAuth authentication source broker",
        "docs": "/docs",
        "health": "/health"
    }


app.include_router(multiauth.router, tags=["multiauth"])


# Exception handlers
@app.exception_handler(RedirectRequired)
async def redirect_handler(request: Request, exc: RedirectRequired):
    """Redirects raised outside the routes' own handling"""
    return RedirectResponse(exc.location, status_code=302)


@app.exception_handler(InvalidSelection)
async def invalid_selection_handler(request: Request, exc: InvalidSelection):
    return JSONResponse(
        status_code=400,
        content={"error": "invalid_source", "message": str(exc)}
    )


@app.exception_handler(UnknownSource)
async def unknown_source_handler(request: Request, exc: UnknownSource):
    logger.error(f"Logout failed: {exc}")
    return JSONResponse(
        status_code=400,
        content={"error": "unknown_source", "message": str(exc)}
    )


@app.exception_handler(StateNotFound)
async def state_not_found_handler(request: Request, exc: StateNotFound):
    return JSONResponse(
        status_code=400,
        content={
            "error": "invalid_state",
            "message": "Authentication state is missing or expired. Please restart login."
        }
    )


@app.exception_handler(DelegateFailure)
async def delegate_failure_handler(request: Request, exc: DelegateFailure):
    return JSONResponse(
        status_code=401,
        content={"error": exc.code, "message": exc.message}
    )


@app.exception_handler(ConfigurationError)
async def configuration_error_handler(request: Request, exc: ConfigurationError):
    logger.error(f"Configuration error: {exc}")
    return JSONResponse(
        status_code=500,
        content={
            "error": "configuration_error",
            "message": "Authentication is misconfigured. Contact the administrator."
        }
    )


# Global exception handler
@app.exception_handler(Exception)
async def global_exception_handler(request, exc):
    """Global exception handler for unhandled errors"""
    logger.error(f"Unhandled exception: {exc}", exc_info=True)
    return JSONResponse(
        status_code=500,
        content={
            "error": "internal_server_error",
            "message": "An unexpected error occurred. Please try again later."
        }
    )


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "multiauth_service.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
        log_level=settings.log_level.lower()
    )
