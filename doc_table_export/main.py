import sys
import time
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles

from .config import settings
from .routes.upload import PROCESSING_FAILED, legacy_router, router as upload_router
from .services.retention_service import retention_sweeper
from .utils.logging import logger


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager"""
    # Startup
    logger.log_step("starting_table_export_service", {
        "host": settings.APP_HOST,
        "port": settings.APP_PORT,
        "debug": settings.DEBUG,
        "python_version": sys.version,
        "gemini_model": settings.GEMINI_MODEL,
        "gemini_api_key_set": bool(settings.GEMINI_API_KEY and settings.GEMINI_API_KEY.strip())
    })

    settings.upload_dir_path.mkdir(parents=True, exist_ok=True)
    settings.public_dir_path.mkdir(parents=True, exist_ok=True)
    logger.log_step("storage_directories_ready", {
        "upload_dir": str(settings.upload_dir_path),
        "public_dir": str(settings.public_dir_path)
    })

    if settings.SWEEPER_ENABLED:
        retention_sweeper.start()

    yield

    # Shutdown
    await retention_sweeper.stop()
    logger.log_step("application_shutdown")


# Create FastAPI app
app = FastAPI(
    title=settings.SERVICE_NAME,
    description="Extracts tables from document images and PDFs with Gemini and exports them as Excel and PDF",
    version=settings.SERVICE_VERSION,
    lifespan=lifespan
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=settings.CORS_ALLOW_CREDENTIALS,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Request logging middleware
@app.middleware("http")
async def log_requests(request: Request, call_next):
    """Log all requests"""
    start_time = time.time()

    response = await call_next(request)

    process_time = time.time() - start_time

    logger.log_step("request_completed", {
        "method": request.method,
        "url": str(request.url),
        "status_code": response.status_code,
        "process_time": process_time
    })

    return response


# Global exception handler
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Global exception handler"""
    logger.log_error("unhandled_exception", {
        "method": request.method,
        "url": str(request.url),
        "error": str(exc)
    })

    return JSONResponse(
        status_code=500,
        content={"detail": PROCESSING_FAILED}
    )


# Include routers
app.include_router(upload_router)
app.include_router(legacy_router)


# Root endpoint
@app.get("/")
async def root():
    """Root endpoint"""
    return {
        "message": settings.SERVICE_NAME,
        "version": settings.SERVICE_VERSION,
        "endpoints": {
            "health": "/api/v1/health",
            "upload": "/api/v1/upload",
            "downloads": f"{settings.public_url_prefix}/{{filename}}",
            "docs": "/docs"
        }
    }


# Generated artifacts are served read-only under the prefix and at the root.
# The root mount must stay last.
settings.public_dir_path.mkdir(parents=True, exist_ok=True)
app.mount(settings.public_url_prefix, StaticFiles(directory=settings.public_dir_path), name="public")
app.mount("/", StaticFiles(directory=settings.public_dir_path), name="public_root")
