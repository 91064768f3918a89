"""
Media Acquirer

Materializes the two local source files needed for composition:
- Video: always downloaded from the clip URL
- Audio: downloaded from audioUrl, or decoded from the inline base64 payload

Downloads are streamed to disk chunk by chunk and bounded by a total
deadline (DOWNLOAD_TIMEOUT) and a size cap (MAX_DOWNLOAD_BYTES).
"""

import asyncio
import base64
import binascii
import logging
import re
from dataclasses import dataclass
from pathlib import PurePosixPath
from typing import Optional
from urllib.parse import urlparse

import aiofiles
import httpx

from ..core.config import Settings
from ..core.errors import DownloadError, EncodingError
from ..core.workspace import MediaHandle, RenderWorkspace
from .normalizer import InlineAudio, RemoteAudio, RenderJob

logger = logging.getLogger(__name__)

# data:audio/mpeg;base64,<payload>
DATA_URI_PATTERN = re.compile(
    r"^data:(?P<mime>[\w.+-]+/[\w.+-]+)?(?:;[\w=.+-]+)*;base64,",
    re.IGNORECASE,
)

MIME_EXTENSIONS: dict[str, str] = {
    "audio/mpeg": ".mp3",
    "audio/mp3": ".mp3",
    "audio/wav": ".wav",
    "audio/wave": ".wav",
    "audio/x-wav": ".wav",
    "audio/aac": ".aac",
    "audio/mp4": ".m4a",
    "audio/x-m4a": ".m4a",
    "audio/ogg": ".ogg",
    "audio/flac": ".flac",
    "audio/webm": ".webm",
}


@dataclass
class AcquiredMedia:
    """Local source files for one render."""

    video: MediaHandle
    audio: MediaHandle


def extension_for_mime(mime_type: Optional[str]) -> Optional[str]:
    if not mime_type:
        return None
    return MIME_EXTENSIONS.get(mime_type.split(";")[0].strip().lower())


def extension_for_url(url: str) -> Optional[str]:
    return PurePosixPath(urlparse(url).path).suffix or None


async def _stream_to_file(
    client: httpx.AsyncClient,
    url: str,
    handle: MediaHandle,
    settings: Settings,
) -> int:
    total = 0
    async with client.stream("GET", url, follow_redirects=True) as response:
        if not response.is_success:
            raise DownloadError(
                url,
                f"{response.status_code} {response.reason_phrase}",
                http_status=response.status_code,
            )

        async with aiofiles.open(handle.path, "wb") as f:
            async for chunk in response.aiter_bytes(settings.stream_chunk_size):
                total += len(chunk)
                if total > settings.max_download_bytes:
                    raise DownloadError(
                        url,
                        f"file exceeds maximum size of {settings.max_download_bytes} bytes",
                    )
                await f.write(chunk)

    return total


async def download_file(
    client: httpx.AsyncClient,
    url: str,
    handle: MediaHandle,
    settings: Settings,
) -> MediaHandle:
    """
    Download a remote file into the given handle's path.

    Args:
        client: Shared HTTP client
        url: Remote URL to fetch
        handle: Destination file handle (already registered in the workspace)
        settings: Application settings (timeout, size cap, chunk size)

    Returns:
        The same handle, now backed by a file on disk

    Raises:
        DownloadError: On non-2xx status, transport failure, timeout,
            oversize body or empty body
    """
    logger.info(f"Downloading {handle.kind} from {url}")

    try:
        total = await asyncio.wait_for(
            _stream_to_file(client, url, handle, settings),
            timeout=settings.download_timeout,
        )
    except asyncio.TimeoutError as e:
        raise DownloadError(
            url, f"timed out after {settings.download_timeout:g}s", timed_out=True
        ) from e
    except httpx.TimeoutException as e:
        raise DownloadError(url, f"timed out ({e})", timed_out=True) from e
    except httpx.HTTPError as e:
        raise DownloadError(url, f"transfer interrupted: {e}") from e

    if total == 0:
        raise DownloadError(url, "response body is empty")

    logger.info(f"Downloaded {handle.kind}: {total} bytes")
    return handle


def decode_inline_audio(audio: InlineAudio) -> tuple[bytes, Optional[str]]:
    """
    Decode an inline base64 audio payload.

    Accepts plain base64, URL-safe base64, missing padding, embedded
    whitespace and a leading data: URI prefix.

    Returns:
        (decoded bytes, MIME type if known)

    Raises:
        EncodingError: If the payload is not valid base64 or decodes to nothing

    Example:
        >>> decode_inline_audio(InlineAudio(payload="data:audio/wav;base64,UklGRg=="))
        (b'RIFF', 'audio/wav')
    """
    payload = audio.payload
    mime_type = audio.mime_type

    match = DATA_URI_PATTERN.match(payload)
    if match:
        mime_type = mime_type or match.group("mime")
        payload = payload[match.end():]

    payload = "".join(payload.split())
    payload = payload.replace("-", "+").replace("_", "/")
    payload += "=" * (-len(payload) % 4)

    try:
        data = base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError) as e:
        raise EncodingError(f"audio.data is not valid base64: {e}") from e

    if not data:
        raise EncodingError("audio.data decoded to an empty payload")

    return data, mime_type


async def write_inline_audio(audio: InlineAudio, workspace: RenderWorkspace) -> MediaHandle:
    """Decode the inline payload and write it to the workspace in one operation."""
    data, mime_type = decode_inline_audio(audio)
    handle = workspace.audio_file(extension_for_mime(mime_type))

    async with aiofiles.open(handle.path, "wb") as f:
        await f.write(data)

    logger.info(f"Wrote inline audio: {len(data)} bytes")
    return handle


async def acquire_media(
    job: RenderJob,
    workspace: RenderWorkspace,
    client: httpx.AsyncClient,
    settings: Settings,
) -> AcquiredMedia:
    """
    Materialize the video and audio sources for a render.

    The video is always fetched first; if audio acquisition then fails, the
    video file is already registered in the workspace and is removed by the
    workspace cleanup.
    """
    video = await download_file(client, job.clip_url, workspace.video_file(), settings)

    if isinstance(job.audio, InlineAudio):
        audio = await write_inline_audio(job.audio, workspace)
    elif isinstance(job.audio, RemoteAudio):
        audio_handle = workspace.audio_file(extension_for_url(job.audio.url))
        audio = await download_file(client, job.audio.url, audio_handle, settings)
    else:
        raise TypeError(f"Unsupported audio source: {job.audio!r}")

    return AcquiredMedia(video=video, audio=audio)
