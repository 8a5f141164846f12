"""
Main FastAPI application entry point.
Handles application initialization, middleware setup, and route registration.
"""

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from contextlib import asynccontextmanager
import logging
import sys
import time

from app.api import fields, health, setup
from app.config import settings

# Configure logging
logging.basicConfig(
    level=logging.INFO if not settings.DEBUG else logging.DEBUG,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    handlers=[logging.StreamHandler(sys.stdout)]
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.
    Handles startup and shutdown events.
    """
    # Startup
    logger.info(f"Starting {settings.APP_NAME} v{settings.VERSION}")
    logger.info(f"Max file size: {settings.MAX_FILE_SIZE_MB}MB")
    logger.info(f"Max setup sessions: {settings.MAX_SESSIONS}")
    logger.info(f"Field generation URL: {settings.FIELD_GENERATION_URL}")
    logger.info(f"LLM Model: {settings.LLM_MODEL}")
    logger.info(f"OpenAI key configured: {'Yes' if settings.OPENAI_API_KEY else 'No'}")
    logger.info(f"Firecrawl key configured: {'Yes' if settings.FIRECRAWL_API_KEY else 'No'}")
    logger.info("Application startup complete")

    yield

    # Shutdown
    logger.info("Shutting down application...")


# Create FastAPI app
app = FastAPI(
    title=settings.APP_NAME,
    version=settings.VERSION,
    description="Configure contact list enrichment: email column, fields and hand-off",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["*"],
)


# Add request logging middleware
@app.middleware("http")
async def log_requests(request: Request, call_next):
    """Log all HTTP requests"""
    start_time = time.time()
    client = request.client.host if request.client else "unknown"
    logger.info(f"{request.method} {request.url.path} - Client: {client}")

    response = await call_next(request)

    process_time = time.time() - start_time
    logger.info(f"{request.method} {request.url.path} - {response.status_code} - {process_time:.4f}s")
    return response


# Register routers
app.include_router(health.router, prefix="/api/v1", tags=["health"])
app.include_router(fields.router, prefix="/api/v1", tags=["fields"])
app.include_router(setup.router, prefix="/api/v1/setup", tags=["setup"])


@app.get("/")
async def root():
    """Root endpoint with API information"""
    return {
        "message": f"Welcome to {settings.APP_NAME}",
        "version": settings.VERSION,
        "docs": "/docs",
        "health": "/api/v1/health",
        "api_version": "v1"
    }


@app.get("/api/v1")
async def api_info():
    """API version information"""
    return {
        "api_version": "v1",
        "service": settings.APP_NAME,
        "version": settings.VERSION,
        "endpoints": {
            "setup": "/api/v1/setup/sessions",
            "presets": "/api/v1/setup/presets",
            "generate_fields": "/api/v1/generate-fields",
            "check_env": "/api/v1/check-env",
            "health": "/api/v1/health",
            "docs": "/docs"
        }
    }


@app.exception_handler(404)
async def not_found_handler(request: Request, exc):
    """Custom 404 handler"""
    detail = getattr(exc, "detail", None)
    return JSONResponse(
        status_code=404,
        content={
            "error": "Not Found",
            "message": detail or f"The requested resource '{request.url.path}' was not found"
        }
    )


@app.exception_handler(500)
async def internal_error_handler(request: Request, exc):
    """Custom 500 handler"""
    logger.error(f"Internal server error on {request.method} {request.url.path}: {str(exc)}")
    return JSONResponse(
        status_code=500,
        content={
            "error": "Internal Server Error",
            "message": "An unexpected error occurred. Please try again later."
        }
    )


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "app.main:app",
        host="0.0.0.0",
        port=8001,
        reload=settings.DEBUG,
        log_level="info" if not settings.DEBUG else "debug"
    )
