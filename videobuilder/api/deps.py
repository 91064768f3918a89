"""
Common dependencies for Video Builder API endpoints.

Provides reusable FastAPI dependencies for the shared HTTP client and the
composer, so tests can override either one.
"""

import httpx
from fastapi import Depends, Request

from videobuilder.core.config import Settings, get_settings
from videobuilder.services.composer import Composer, FFmpegComposer


def get_http_client(request: Request) -> httpx.AsyncClient:
    """
    Shared HTTP client dependency.

    The client is created in the application lifespan and stored on
    app.state; it is reused across requests for connection pooling.

    Raises:
        RuntimeError: If the application lifespan has not run
    """
    client = getattr(request.app.state, "http_client", None)
    if client is None:
        raise RuntimeError("HTTP client not initialized; is the app lifespan running?")
    return client


def get_composer(settings: Settings = Depends(get_settings)) -> Composer:
    """
    Composer dependency.

    Usage:
        @router.post("/render")
        async def render(composer: Composer = Depends(get_composer)):
            ...
    """
    return FFmpegComposer(settings)


__all__ = [
    "get_composer",
    "get_http_client",
    "get_settings",
]
