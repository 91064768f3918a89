"""
Per-request Render Workspace

Provides request-scoped temporary file handling with:
- One private subdirectory per render under TEMP_ROOT
- A unique token embedded in every file name
- Ownership tracking for each temporary file (MediaHandle)
- Idempotent, best-effort cleanup that never raises
"""

import logging
import os
import re
import tempfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional
from uuid import uuid4

logger = logging.getLogger(__name__)

WORKSPACE_PREFIX = "render-"

# Extensions accepted for the audio source file
AUDIO_EXTENSIONS: set[str] = {".mp3", ".wav", ".aac", ".m4a", ".ogg", ".flac", ".webm"}
DEFAULT_AUDIO_EXTENSION = ".mp3"


@dataclass
class MediaHandle:
    """Ownership record for a single temporary file."""

    path: Path
    kind: str
    released: bool = False

    @property
    def exists(self) -> bool:
        return not self.released and self.path.exists()

    @property
    def size(self) -> int:
        return self.path.stat().st_size

    def release(self) -> None:
        """
        Remove the file if it is still on disk.

        Raises:
            OSError: If the file exists but cannot be removed
        """
        if self.released:
            return
        self.path.unlink(missing_ok=True)
        self.released = True


@dataclass
class RenderArtifact:
    """The rendered output file, transient until streaming finishes."""

    handle: MediaHandle
    size: int
    media_type: str = "video/mp4"

    @property
    def path(self) -> Path:
        return self.handle.path


def normalize_extension(extension: Optional[str]) -> str:
    """
    Normalize an audio file extension to a known, safe value.

    Example:
        >>> normalize_extension("WAV")
        '.wav'
        >>> normalize_extension("../../x")
        '.mp3'
    """
    if not extension:
        return DEFAULT_AUDIO_EXTENSION
    ext = extension.lower().strip()
    if not ext.startswith("."):
        ext = f".{ext}"
    # Strip anything that is not a plain alphanumeric suffix
    if not re.fullmatch(r"\.[a-z0-9]{1,5}", ext) or ext not in AUDIO_EXTENSIONS:
        return DEFAULT_AUDIO_EXTENSION
    return ext


@dataclass
class RenderWorkspace:
    """
    Private temp directory owned by exactly one render.

    The directory is laid out as:
        {TEMP_ROOT}/render-{random}/
            video-{token}.mp4
            audio-{token}.{ext}
            out-{token}.mp4

    cleanup() removes every registered file and then the directory itself.
    It is safe to call any number of times.
    """

    root: Path
    token: str
    handles: list[MediaHandle] = field(default_factory=list)
    closed: bool = False

    @classmethod
    def create(cls, temp_root: str) -> "RenderWorkspace":
        """
        Create a new workspace directory under temp_root.

        Args:
            temp_root: Parent directory (created if missing)

        Returns:
            RenderWorkspace: Fresh workspace with a unique token
        """
        parent = Path(temp_root)
        parent.mkdir(parents=True, exist_ok=True)
        root = Path(tempfile.mkdtemp(prefix=WORKSPACE_PREFIX, dir=parent))
        workspace = cls(root=root, token=uuid4().hex)
        logger.debug(f"Created render workspace {root}")
        return workspace

    def _register(self, filename: str, kind: str) -> MediaHandle:
        if self.closed:
            raise RuntimeError("Render workspace already cleaned up")
        handle = MediaHandle(path=self.root / filename, kind=kind)
        self.handles.append(handle)
        return handle

    def video_file(self) -> MediaHandle:
        return self._register(f"video-{self.token}.mp4", "video")

    def audio_file(self, extension: Optional[str] = None) -> MediaHandle:
        ext = normalize_extension(extension)
        return self._register(f"audio-{self.token}{ext}", "audio")

    def output_file(self) -> MediaHandle:
        return self._register(f"out-{self.token}.mp4", "output")

    @property
    def paths(self) -> list[Path]:
        return [handle.path for handle in self.handles]

    def cleanup(self) -> None:
        """
        Release all temporary files and remove the workspace directory.

        Failures are logged as warnings and never raised, so cleanup cannot
        mask the outcome of the render.
        """
        if self.closed:
            return
        self.closed = True

        for handle in self.handles:
            try:
                handle.release()
            except OSError as e:
                logger.warning(
                    f"Failed to remove temporary {handle.kind} file: {e}",
                    extra={
                        "workspace_token": self.token,
                        "path": str(handle.path),
                        "kind": handle.kind,
                    },
                )

        try:
            # Anything left behind (e.g. partial files) goes with the directory
            for leftover in self.root.iterdir():
                leftover.unlink(missing_ok=True)
            os.rmdir(self.root)
        except FileNotFoundError:
            pass
        except OSError as e:
            logger.warning(
                f"Failed to remove render workspace: {e}",
                extra={"workspace_token": self.token, "path": str(self.root)},
            )
        else:
            logger.debug(f"Removed render workspace {self.root}")
