"""
Video Builder API

Main FastAPI application entry point.
"""

import logging
import sys
from contextlib import asynccontextmanager

import httpx
from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.datastructures import Headers
from starlette.types import ASGIApp, Receive, Scope, Send

from videobuilder.api import api_router
from videobuilder.core.config import get_settings
from videobuilder.core.errors import RenderError
from videobuilder.schemas.render import HealthResponse
from videobuilder.services.ffmpeg_runner import validate_ffmpeg_available

# Load settings
settings = get_settings()

# Configure logging
logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    handlers=[logging.StreamHandler(sys.stdout)],
)
logger = logging.getLogger("videobuilder")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Create the shared HTTP client and check for FFmpeg on startup."""
    if validate_ffmpeg_available(settings.ffmpeg_path):
        logger.info(f"Using FFmpeg at {settings.ffmpeg_path}")
    else:
        logger.warning(f"FFmpeg not found at {settings.ffmpeg_path}; renders will fail")

    app.state.http_client = httpx.AsyncClient(
        timeout=httpx.Timeout(settings.download_timeout),
    )
    try:
        yield
    finally:
        await app.state.http_client.aclose()


app = FastAPI(
    title=settings.app_name,
    description="Renders a clip with a replacement audio track into an MP4",
    version=settings.version,
    lifespan=lifespan,
)


# Request body size limit middleware
class BodySizeLimitMiddleware:
    """
    Reject requests whose declared body exceeds MAX_BODY_SIZE with a 413.

    Plain ASGI middleware: `receive` is passed through unwrapped, so
    request.is_disconnected() in the endpoint sees the client go away.
    """

    def __init__(self, app: ASGIApp, max_body_size: int) -> None:
        self.app = app
        self.max_body_size = max_body_size

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] == "http":
            content_length = Headers(scope=scope).get("content-length")
            if content_length and content_length.isdigit() and int(content_length) > self.max_body_size:
                response = JSONResponse(
                    status_code=413,
                    content={
                        "error": f"Request body too large. Maximum size: {self.max_body_size} bytes ({self.max_body_size // (1024 * 1024)}MB)",
                        "code": "request_entity_too_large",
                    },
                )
                await response(scope, receive, send)
                return

        await self.app(scope, receive, send)


app.add_middleware(BodySizeLimitMiddleware, max_body_size=settings.max_body_size)


# CORS configuration (loaded from environment)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["Content-Length"],
)


@app.exception_handler(RenderError)
async def render_error_handler(request: Request, exc: RenderError) -> JSONResponse:
    """Convert pipeline failures into structured JSON errors."""
    if exc.status_code >= 500:
        logger.error(f"Render error: {exc.message}")
    else:
        logger.info(f"Render rejected ({exc.status_code}): {exc.message}")
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(RequestValidationError)
async def request_validation_error_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Report malformed request bodies as 400 with the standard error shape."""
    errors = exc.errors()
    first = errors[0] if errors else {}
    location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
    message = first.get("msg", "Invalid request body")
    return JSONResponse(
        status_code=400,
        content={
            "error": f"Invalid request body: {location + ': ' if location else ''}{message}",
            "code": "validation_error",
            "details": {"errors": jsonable_encoder(errors)},
        },
    )


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    # Traceback is logged by the server once ServerErrorMiddleware re-raises
    logger.error(f"Unexpected render failure: {exc!r}")
    return JSONResponse(
        status_code=500,
        content={"error": "Render failed", "code": "internal_error"},
    )


# Include API routes
app.include_router(api_router)


@app.get("/health", response_model=HealthResponse)
async def health_check() -> HealthResponse:
    """Health check endpoint for orchestration."""
    return HealthResponse()
