"""Local Guide FastAPI Application.

Local service exposing the connectivity-aware sync layer to UI clients.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from localguide.api import router
from localguide.api.routes import close_services, get_gate
from localguide.config import get_settings
from localguide.models import ErrorCode, LocationSnapshot
from localguide.services.location import StaticLocationProvider, location_coordinator

settings = get_settings()

# Configure logging
logging.basicConfig(
    level=logging.DEBUG if settings.enable_debug_logging else logging.INFO,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    datefmt="%H:%M:%S",
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler."""
    # Startup
    default = LocationSnapshot(
        latitude=settings.default_latitude, longitude=settings.default_longitude
    )
    location_coordinator.configure(
        StaticLocationProvider(default.latitude, default.longitude),
        default_location=default,
    )
    await get_gate().monitor.start()
    logger.info("Local Guide sync service started")
    yield
    # Shutdown - flush cache writes, close clients
    await close_services()


app = FastAPI(
    title="Local Guide API",
    description="Connectivity-aware sync layer for local business discovery and reviews",
    version="0.1.0",
    lifespan=lifespan,
)

# CORS configuration
app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        "http://localhost:3000",
        "http://localhost:8081",
        "http://localhost:19006",
    ],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def _error_body(code: ErrorCode, message: str, user_message: str) -> dict:
    return {
        "success": False,
        "error": {
            "code": code.value,
            "message": message,
            "user_message": user_message,
        },
    }


# Global exception handlers
@app.exception_handler(RequestValidationError)
@app.exception_handler(ValidationError)
async def validation_exception_handler(request: Request, exc: Exception):
    """Handle request and model validation errors."""
    return JSONResponse(
        status_code=422,
        content=_error_body(
            ErrorCode.VALIDATION_ERROR,
            str(exc),
            "Invalid request format. Please check your input.",
        ),
    )


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    """Handle unexpected errors."""
    logger.exception("Unhandled error")
    return JSONResponse(
        status_code=500,
        content=_error_body(
            ErrorCode.API_ERROR,
            str(exc),
            "Something went wrong. Please try again.",
        ),
    )


# Include API routes
app.include_router(router, prefix="/api")


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy"}
