"""
Composer

Narrow capability interface over the transcoding engine, plus the FFmpeg
adapter used in production.

Fixed composition policy:
- Video track from input 0, audio track from input 1 (input 0 audio dropped)
- Re-encode video (libx264) and audio (aac)
- Hard resize to width x height, aspect ratio not preserved
- Stop at the end of the shorter input (-shortest)
"""

import logging
from pathlib import Path
from typing import List, Protocol

from ..core.config import Settings
from ..core.errors import CompositionError
from .ffmpeg_runner import FFmpegError, FFmpegTimeout, run_ffmpeg

logger = logging.getLogger(__name__)


class Composer(Protocol):
    """Anything that can mux a video track with an audio track."""

    async def compose(
        self,
        video_path: Path,
        audio_path: Path,
        width: int,
        height: int,
        output_path: Path,
    ) -> Path:
        ...


class FFmpegComposer:
    """
    Composer that shells out to FFmpeg.

    Key design:
    - One FFmpeg invocation per render, no retries
    - Engine failures and timeouts surface as CompositionError
    """

    def __init__(self, settings: Settings):
        self.ffmpeg_path = settings.ffmpeg_path
        self.video_codec = settings.video_codec
        self.audio_codec = settings.audio_codec
        self.timeout_seconds = settings.ffmpeg_timeout

    def build_command(
        self,
        video_path: Path,
        audio_path: Path,
        width: int,
        height: int,
        output_path: Path,
    ) -> List[str]:
        return [
            self.ffmpeg_path,
            "-y",
            "-hide_banner",
            "-loglevel", "error",
            "-i", str(video_path),
            "-i", str(audio_path),
            "-map", "0:v:0",
            "-map", "1:a:0",
            "-c:v", self.video_codec,
            "-c:a", self.audio_codec,
            "-vf", f"scale={width}:{height}",
            "-pix_fmt", "yuv420p",
            "-shortest",
            "-movflags", "+faststart",
            str(output_path),
        ]

    async def compose(
        self,
        video_path: Path,
        audio_path: Path,
        width: int,
        height: int,
        output_path: Path,
    ) -> Path:
        """
        Render video_path + audio_path into output_path.

        Raises:
            CompositionError: If FFmpeg fails, times out, or produces no output
        """
        cmd = self.build_command(video_path, audio_path, width, height, output_path)
        logger.info(f"Composing {width}x{height} render into {output_path.name}")

        try:
            await run_ffmpeg(cmd, timeout_seconds=self.timeout_seconds)
        except FFmpegTimeout as e:
            raise CompositionError(str(e), timed_out=True) from e
        except FFmpegError as e:
            raise CompositionError(str(e)) from e

        if not output_path.exists() or output_path.stat().st_size == 0:
            raise CompositionError("FFmpeg finished but produced no output")

        return output_path
