"""
Pydantic schemas for the Render API endpoint.

The request models are deliberately permissive: presence and emptiness
checks live in the input normalizer so that every rejection produces the
same 400 error shape.
"""

from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


# --- Request Schemas ---


class ClipRef(BaseModel):
    """Reference to a source video asset."""

    model_config = ConfigDict(extra="ignore")

    url: Optional[str] = Field(None, description="Video URL")
    link: Optional[str] = Field(None, description="Alternate field name for the video URL")


class InlineAudioPayload(BaseModel):
    """Audio bytes embedded in the request as base64 text."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    data: Optional[str] = Field(
        None,
        description="Base64-encoded audio bytes (a data: URI prefix is accepted)",
    )
    mime_type: Optional[str] = Field(
        None,
        alias="mimeType",
        description="Optional MIME type of the audio, e.g. audio/wav",
    )


class OutputSpec(BaseModel):
    """Requested output geometry. Zero or missing values fall back to defaults."""

    model_config = ConfigDict(extra="ignore")

    width: Optional[int] = Field(None, description="Output width in pixels")
    height: Optional[int] = Field(None, description="Output height in pixels")


class RenderRequest(BaseModel):
    """Request body for POST /render."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    clips: List[ClipRef] = Field(
        default_factory=list,
        description="Source clips. Only the first clip is rendered.",
    )
    audio: Optional[InlineAudioPayload] = Field(
        None, description="Inline audio payload"
    )
    audio_url: Optional[str] = Field(
        None, alias="audioUrl", description="Remote audio URL"
    )
    captions: List[Any] = Field(
        default_factory=list,
        description="Caption entries. Accepted but not rendered.",
    )
    output: OutputSpec = Field(default_factory=OutputSpec)


# --- Response Schemas ---


class HealthResponse(BaseModel):
    """Response for GET /health."""

    status: Literal["ok"] = "ok"


class RenderErrorResponse(BaseModel):
    """Error body returned for any failed render."""

    error: str = Field(..., description="Human-readable error message")
    code: str = Field(..., description="Machine-readable error code")
    details: Optional[Dict[str, Any]] = Field(
        None, description="Additional details"
    )
