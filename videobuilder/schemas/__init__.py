"""
Pydantic schemas for Video Builder API request/response validation.
"""

from .render import (
    ClipRef,
    HealthResponse,
    InlineAudioPayload,
    OutputSpec,
    RenderErrorResponse,
    RenderRequest,
)

__all__ = [
    "ClipRef",
    "HealthResponse",
    "InlineAudioPayload",
    "OutputSpec",
    "RenderErrorResponse",
    "RenderRequest",
]
