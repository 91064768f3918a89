"""
Input Normalizer

Turns a RenderRequest into a validated RenderJob. Pure function of the
request payload and settings: no I/O and no side effects.

Audio source selection:
- audio.data present and non-empty -> InlineAudio
- otherwise audioUrl present and non-empty -> RemoteAudio
- otherwise the request is rejected
"""

import logging
from dataclasses import dataclass
from typing import Optional, Union
from urllib.parse import urlparse

from ..core.config import Settings
from ..core.errors import ValidationError
from ..schemas.render import RenderRequest

logger = logging.getLogger(__name__)

ALLOWED_URL_SCHEMES = {"http", "https"}


@dataclass(frozen=True)
class RemoteAudio:
    """Audio fetched from a remote URL."""

    url: str


@dataclass(frozen=True)
class InlineAudio:
    """Audio carried in the request body as base64 text (still encoded)."""

    payload: str
    mime_type: Optional[str] = None


AudioSource = Union[RemoteAudio, InlineAudio]


@dataclass(frozen=True)
class RenderJob:
    """Validated render parameters for one request."""

    clip_url: str
    audio: AudioSource
    width: int
    height: int
    caption_count: int = 0


def _first_non_empty(*values: Optional[str]) -> Optional[str]:
    for value in values:
        if value and value.strip():
            return value.strip()
    return None


def _validate_url(url: str, field_name: str) -> str:
    """
    Check that a URL is absolute and uses http(s).

    Example:
        >>> _validate_url("https://cdn.example.com/a.mp4", "clip url")
        'https://cdn.example.com/a.mp4'
        >>> _validate_url("file:///etc/passwd", "clip url")  # raises ValidationError
    """
    parsed = urlparse(url)
    if parsed.scheme.lower() not in ALLOWED_URL_SCHEMES or not parsed.netloc:
        raise ValidationError(f"{field_name} must be an http(s) URL")
    return url


def _resolve_audio(request: RenderRequest) -> AudioSource:
    inline = request.audio
    if inline is not None and inline.data and inline.data.strip():
        return InlineAudio(payload=inline.data.strip(), mime_type=inline.mime_type)

    audio_url = _first_non_empty(request.audio_url)
    if audio_url:
        return RemoteAudio(url=_validate_url(audio_url, "audioUrl"))

    raise ValidationError(
        "missing audio source: provide audio.data (base64) or audioUrl"
    )


def _resolve_dimension(value: Optional[int], default: int, name: str, limit: int) -> int:
    if not value:
        return default
    if value < 0:
        raise ValidationError(f"output.{name} must be a positive integer")
    if value > limit:
        raise ValidationError(f"output.{name} must not exceed {limit}")
    return value


def normalize_render_request(request: RenderRequest, settings: Settings) -> RenderJob:
    """
    Validate a render request and extract the render parameters.

    Args:
        request: Parsed request body
        settings: Application settings (geometry defaults and limits)

    Returns:
        RenderJob with clip URL, tagged audio source and output geometry

    Raises:
        ValidationError: If clips are empty, the clip URL is missing or
            invalid, no audio source is usable, or the geometry is invalid
    """
    if not request.clips:
        raise ValidationError("No clips provided")

    # Only the first clip is rendered
    main_clip = request.clips[0]
    clip_url = _first_non_empty(main_clip.url, main_clip.link)
    if clip_url is None:
        raise ValidationError("clips[0] must have a url or link")
    _validate_url(clip_url, "clips[0] url")

    audio = _resolve_audio(request)

    width = _resolve_dimension(
        request.output.width, settings.default_width, "width", settings.max_output_dimension
    )
    height = _resolve_dimension(
        request.output.height, settings.default_height, "height", settings.max_output_dimension
    )

    if len(request.clips) > 1:
        logger.info(f"Ignoring {len(request.clips) - 1} extra clip(s); only the first is rendered")

    return RenderJob(
        clip_url=clip_url,
        audio=audio,
        width=width,
        height=height,
        caption_count=len(request.captions),
    )
