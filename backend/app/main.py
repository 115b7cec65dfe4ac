"""
Main FastAPI application entry point.
"""
from app.logging_config import setup_logging

setup_logging()

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from slowapi.errors import RateLimitExceeded

from app.config import settings
from app.api.routes import design_files, design_comments, project_designs
from app.database import Base, engine
from app.rate_limiter import limiter, rate_limit_exceeded_handler
from app.services.design_errors import DesignWorkflowError
from app.services.notification_service import start_notification_service, shutdown_notification_service

logger = logging.getLogger(__name__)

# Create database tables
Base.metadata.create_all(bind=engine)

# Initialize FastAPI application
app = FastAPI(
    title=settings.PROJECT_NAME,
    debug=settings.DEBUG,
    version="1.0.0",
    description="Versioned design file review: uploads, approvals, freeze locks and pinned comments"
)

# Rate limiting
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.BACKEND_CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(design_files.router, prefix=settings.API_V1_PREFIX)
app.include_router(design_comments.router, prefix=settings.API_V1_PREFIX)
app.include_router(project_designs.router, prefix=settings.API_V1_PREFIX)

# Locally stored design files are served directly
if settings.STORAGE_BACKEND == "local":
    app.mount(settings.PUBLIC_FILES_URL, StaticFiles(directory=settings.UPLOAD_DIR, check_dir=False), name="files")


@app.exception_handler(DesignWorkflowError)
async def design_workflow_exception_handler(request: Request, exc: DesignWorkflowError):
    if exc.status_code >= 500:
        logger.error(f"{exc.error_code}: {exc.message}")
    else:
        logger.info(f"{exc.error_code}: {exc.message}")
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.message, "error": exc.error_code}
    )


# Exception handler for validation errors
@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    logger.error(f"Validation error: {exc}")
    # Handle bytes body (e.g., from form data)
    body = exc.body
    if isinstance(body, bytes):
        body = body.decode("utf-8", errors="replace")
    elif body is not None and not isinstance(body, (str, dict, list)):
        body = str(body)

    errors = [
        {"loc": list(e.get("loc", ())), "msg": e.get("msg", ""), "type": e.get("type", "")}
        for e in exc.errors()
    ]
    return JSONResponse(
        status_code=422,
        content={"detail": errors, "body": body}
    )


@app.get("/")
async def root():
    """Root endpoint - API health check."""
    return {
        "message": settings.PROJECT_NAME,
        "version": "1.0.0",
        "status": "healthy",
    }


# Notification service lifecycle
@app.on_event("startup")
async def startup_event():
    """Initialize services on startup."""
    try:
        await start_notification_service()
    except Exception as e:
        logger.warning(f"NotificationService failed to initialize (non-critical): {e}")


@app.on_event("shutdown")
async def shutdown_event():
    """Cleanup services on shutdown."""
    try:
        await shutdown_notification_service()
        logger.info("NotificationService shutdown complete")
    except Exception as e:
        logger.error(f"Error shutting down NotificationService: {e}")


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy"}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "app.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.DEBUG
    )
