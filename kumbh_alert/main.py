"""
Kumbh Alert Hub - FastAPI Application Entry Point

Emergency-response backend for a mass pilgrimage gathering: SOS alerts,
lost & found with person correlation, medical cases, entry-point QR
registration with crowd analytics, and live staff notifications.
"""

import logging

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from kumbh_alert.config.firebase import initialize_firestore
from kumbh_alert.core.errors import AlertHubError, PartialMatchError
from kumbh_alert.core.settings import settings
from kumbh_alert.routes import admin, health, lost_found, medical, notifications, registrations, sos, users, volunteer

logger = logging.getLogger(__name__)


def configure_logging() -> None:
    logging.basicConfig(
        level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )


# Initialize FastAPI app
app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="Emergency response backend for SOS, lost & found, medical care and crowd monitoring",
    debug=settings.DEBUG
)


@app.exception_handler(AlertHubError)
async def alert_hub_error_handler(request: Request, exc: AlertHubError):
    """Map domain errors onto their HTTP status."""
    if isinstance(exc, PartialMatchError):
        logger.error(f"{request.method} {request.url.path}: {exc.message}")
        content = {
            "success": False,
            "detail": exc.message,
            "first_id": exc.first_id,
            "second_id": exc.second_id,
            "rolled_back": exc.rolled_back,
        }
    else:
        if exc.status_code >= 500:
            logger.error(f"{request.method} {request.url.path}: {exc.message}")
        content = {"success": False, "detail": exc.message}
    return JSONResponse(status_code=exc.status_code, content=content)


# Global exception handler to catch ALL exceptions
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Catch all unhandled exceptions and log them with full traceback."""
    logger.error(
        f"Unhandled exception on {request.method} {request.url.path}: {exc}",
        exc_info=(type(exc), exc, exc.__traceback__),
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"success": False, "detail": f"Internal server error: {str(exc)}"}
    )


# Pydantic validation error handler
@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    logger.info(f"Validation failed on {request.method} {request.url.path}: {exc.errors()}")
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={"success": False, "detail": jsonable_encoder(exc.errors())}
    )


app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Application lifecycle events
@app.on_event("startup")
async def startup_event():
    """
    Initialize services on application startup.
    Currently: logging and the Firestore connection
    """
    configure_logging()
    logger.info(f"Starting {settings.APP_NAME} v{settings.APP_VERSION}")

    try:
        initialize_firestore()
    except Exception as e:
        logger.warning(f"Firestore initialization failed: {e}")
        logger.warning("The app will start but database operations will return 503.")


@app.on_event("shutdown")
async def shutdown_event():
    logger.info(f"Shutting down {settings.APP_NAME}")


# Include routers
app.include_router(health.router)
app.include_router(users.router)
app.include_router(sos.router)
app.include_router(lost_found.router)
app.include_router(medical.router)
app.include_router(registrations.router)
app.include_router(volunteer.router)
app.include_router(admin.router)
app.include_router(notifications.router)


# Root endpoint
@app.get("/")
async def root():
    """
    Root endpoint - API information.
    """
    return {
        "service": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "status": "running",
        "docs": "/docs",
        "health": "/health",
        "notifications": "/ws/notifications"
    }
