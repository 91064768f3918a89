"""
FFmpeg Runner with Timeout Enforcement

Runs FFmpeg commands with:
- Strict timeout enforcement
- Process group management for clean termination
- Termination on cancellation (e.g. the client disconnected)
- Detailed error reporting

This is the primary protection against runaway FFmpeg processes.
"""

import asyncio
import logging
import os
import signal
import subprocess
import time
from typing import List

logger = logging.getLogger(__name__)

# Keep this much of stderr in error messages
STDERR_TAIL_CHARS = 2000


class FFmpegTimeout(Exception):
    """Raised when FFmpeg exceeds the allowed timeout."""

    pass


class FFmpegError(Exception):
    """Raised when FFmpeg fails with a non-zero exit code."""

    pass


async def run_ffmpeg(cmd: List[str], timeout_seconds: float = 600) -> None:
    """
    Run an FFmpeg command with timeout enforcement.

    This function:
    1. Runs FFmpeg in its own process group for clean termination
    2. Waits for completion, collecting stderr for diagnostics
    3. Kills the whole process group on timeout or cancellation

    Args:
        cmd: FFmpeg command as list of arguments
        timeout_seconds: Maximum allowed runtime in seconds

    Raises:
        FFmpegTimeout: If FFmpeg exceeds the timeout
        FFmpegError: If FFmpeg cannot be started or exits non-zero
        asyncio.CancelledError: If the awaiting task is cancelled (the
            process group is killed first)
    """
    logger.info(f"Starting FFmpeg with timeout={timeout_seconds:g}s")
    logger.debug(f"FFmpeg command: {' '.join(cmd)}")

    try:
        # start_new_session=True puts FFmpeg in its own process group
        process = await asyncio.create_subprocess_exec(
            *cmd,
            stdin=asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.DEVNULL,
            stderr=asyncio.subprocess.PIPE,
            start_new_session=True,
        )
    except OSError as e:
        raise FFmpegError(f"Failed to start FFmpeg ({cmd[0]}): {e}") from e

    start_time = time.monotonic()

    try:
        _, stderr = await asyncio.wait_for(process.communicate(), timeout=timeout_seconds)
    except asyncio.TimeoutError:
        elapsed = time.monotonic() - start_time
        logger.warning(f"FFmpeg timeout after {elapsed:.1f}s (limit: {timeout_seconds:g}s)")
        await _kill_process_group(process)
        raise FFmpegTimeout(f"FFmpeg exceeded timeout of {timeout_seconds:g} seconds")
    except asyncio.CancelledError:
        logger.warning("FFmpeg run cancelled, terminating process")
        await _kill_process_group(process)
        raise

    if process.returncode != 0:
        stderr_output = stderr.decode("utf-8", errors="replace").strip() if stderr else ""
        error_msg = f"FFmpeg failed with code {process.returncode}"
        if stderr_output:
            error_msg += f": {stderr_output[-STDERR_TAIL_CHARS:]}"
        logger.error(error_msg)
        raise FFmpegError(error_msg)

    elapsed = time.monotonic() - start_time
    logger.info(f"FFmpeg completed successfully in {elapsed:.1f}s")


async def _kill_process_group(process: asyncio.subprocess.Process) -> None:
    """
    Kill FFmpeg process and its entire process group.

    Uses SIGKILL to ensure immediate termination, then reaps the process.
    Catches and logs any errors during termination.
    """
    try:
        pgid = os.getpgid(process.pid)
        logger.info(f"Killing FFmpeg process group {pgid}")
        os.killpg(pgid, signal.SIGKILL)
    except ProcessLookupError:
        logger.debug("Process already terminated")
    except OSError as e:
        logger.warning(f"Error killing process group: {e}")
        # Fallback: try to kill just the process
        try:
            process.kill()
        except ProcessLookupError:
            pass

    try:
        await asyncio.wait_for(process.wait(), timeout=5)
    except asyncio.TimeoutError:
        logger.warning(f"FFmpeg process {process.pid} did not exit after SIGKILL")


def validate_ffmpeg_available(ffmpeg_path: str = "ffmpeg") -> bool:
    """
    Check if FFmpeg is available and working.

    Returns:
        True if FFmpeg is available, False otherwise
    """
    try:
        result = subprocess.run(
            [ffmpeg_path, "-version"],
            capture_output=True,
            timeout=5,
        )
        return result.returncode == 0
    except (OSError, subprocess.SubprocessError) as e:
        logger.warning(f"FFmpeg not available: {e}")
        return False
