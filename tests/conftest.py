"""
Shared test fixtures for Video Builder tests.

Provides:
- Isolated temp root for render workspaces
- Test settings
- Fake remote media server (httpx.MockTransport)
- Fake composer (no FFmpeg needed)
- Async test client (FastAPI app over ASGITransport)
"""

import base64
import io
import os
import struct
import tempfile
import wave
from pathlib import Path
from typing import AsyncGenerator, Callable, Dict, List, Optional, Tuple

import httpx
import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

# Set test environment variables before importing app modules
_test_temp_root = tempfile.mkdtemp(prefix="videobuilder_test_")
os.environ["TEMP_ROOT"] = _test_temp_root
os.environ["LOG_LEVEL"] = "DEBUG"

from videobuilder.api.deps import get_composer, get_http_client
from videobuilder.core.config import Settings, get_settings
from videobuilder.main import app


VIDEO_URL = "https://media.example.com/clips/clip1.mp4"
AUDIO_URL = "https://media.example.com/audio/track.mp3"
FAKE_MP4_BYTES = b"\x00\x00\x00\x18ftypmp42" + b"\x00" * 4096


# =============================================================================
# Sample Media
# =============================================================================


def make_wav_bytes(duration_sec: float = 0.5, sample_rate: int = 8000) -> bytes:
    """Build a small silent mono WAV file in memory."""
    buffer = io.BytesIO()
    with wave.open(buffer, "wb") as wav:
        wav.setnchannels(1)
        wav.setsampwidth(2)
        wav.setframerate(sample_rate)
        frames = int(duration_sec * sample_rate)
        wav.writeframes(struct.pack("<h", 0) * frames)
    return buffer.getvalue()


@pytest.fixture
def sample_audio() -> bytes:
    """Provide a small WAV file."""
    return make_wav_bytes()


@pytest.fixture
def sample_audio_b64(sample_audio: bytes) -> str:
    """Provide the sample WAV as base64 text."""
    return base64.b64encode(sample_audio).decode("ascii")


# =============================================================================
# Settings
# =============================================================================


@pytest.fixture
def temp_root(tmp_path: Path) -> Path:
    """Isolated parent directory for render workspaces."""
    root = tmp_path / "renders"
    root.mkdir()
    return root


@pytest.fixture
def test_settings(temp_root: Path) -> Settings:
    """Settings pointing at the isolated temp root, with short timeouts."""
    return Settings(
        temp_root=str(temp_root),
        download_timeout=5.0,
        ffmpeg_timeout=120.0,
        stream_chunk_size=1024,
        disconnect_poll_interval=0.05,
    )


def list_temp_files(temp_root: Path) -> List[Path]:
    """Every file or directory left under the temp root."""
    return sorted(temp_root.rglob("*"))


# =============================================================================
# Fake Remote Media
# =============================================================================


class FakeMediaServer:
    """
    In-memory HTTP origin for source media.

    Routes map a URL to (status_code, body). Unknown URLs return 404.
    Every request is recorded in `requests`.
    """

    def __init__(self) -> None:
        self.routes: Dict[str, Tuple[int, bytes]] = {}
        self.errors: Dict[str, Exception] = {}
        self.requests: List[httpx.Request] = []

    def add(self, url: str, body: bytes, status_code: int = 200) -> None:
        self.routes[url] = (status_code, body)

    def fail(self, url: str, error: Exception) -> None:
        self.errors[url] = error

    @property
    def requested_urls(self) -> List[str]:
        return [str(request.url) for request in self.requests]

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        url = str(request.url)
        if url in self.errors:
            raise self.errors[url]
        status_code, body = self.routes.get(url, (404, b"not found"))
        return httpx.Response(status_code, content=body)

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self.handler))


@pytest.fixture
def media_server() -> FakeMediaServer:
    """Fake origin serving a video clip at VIDEO_URL."""
    server = FakeMediaServer()
    server.add(VIDEO_URL, b"fake-video-bytes" * 64)
    return server


@pytest_asyncio.fixture
async def http_client(media_server: FakeMediaServer) -> AsyncGenerator[httpx.AsyncClient, None]:
    async with media_server.client() as client:
        yield client


# =============================================================================
# Fake Composer
# =============================================================================


class FakeComposer:
    """
    Composer double that records calls and writes a fixed output file.

    Set `error` to make compose() raise instead.
    """

    def __init__(self, output: bytes = FAKE_MP4_BYTES) -> None:
        self.output = output
        self.error: Optional[Exception] = None
        self.calls: List[dict] = []
        self.on_compose: Optional[Callable[[dict], None]] = None

    async def compose(
        self,
        video_path: Path,
        audio_path: Path,
        width: int,
        height: int,
        output_path: Path,
    ) -> Path:
        call = {
            "video_path": video_path,
            "audio_path": audio_path,
            "width": width,
            "height": height,
            "output_path": output_path,
            "video_bytes": video_path.read_bytes(),
            "audio_bytes": audio_path.read_bytes(),
        }
        self.calls.append(call)
        if self.on_compose is not None:
            self.on_compose(call)
        if self.error is not None:
            raise self.error
        output_path.write_bytes(self.output)
        return output_path


@pytest.fixture
def fake_composer() -> FakeComposer:
    return FakeComposer()


# =============================================================================
# Test Client Fixtures
# =============================================================================


@pytest_asyncio.fixture
async def async_client(
    test_settings: Settings,
    http_client: httpx.AsyncClient,
    fake_composer: FakeComposer,
) -> AsyncGenerator[AsyncClient, None]:
    """
    Provide an async HTTP client for testing the FastAPI application.

    Overrides settings, the shared HTTP client and the composer.
    """
    app.dependency_overrides[get_settings] = lambda: test_settings
    app.dependency_overrides[get_http_client] = lambda: http_client
    app.dependency_overrides[get_composer] = lambda: fake_composer

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client

    # Clean up
    app.dependency_overrides.clear()


@pytest.fixture
def render_payload(sample_audio_b64: str) -> dict:
    """Valid render request using inline audio."""
    return {
        "clips": [{"url": VIDEO_URL}],
        "audio": {"data": sample_audio_b64},
        "captions": [],
        "output": {"width": 720, "height": 1280},
    }
