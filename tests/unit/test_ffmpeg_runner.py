"""
Unit tests for the FFmpeg runner.

Uses small shell commands in place of FFmpeg to exercise exit-code
handling, timeouts and cancellation without media files.
"""

import asyncio
import shutil
from pathlib import Path

import pytest

from videobuilder.services.ffmpeg_runner import (
    FFmpegError,
    FFmpegTimeout,
    run_ffmpeg,
    validate_ffmpeg_available,
)

pytestmark = pytest.mark.skipif(shutil.which("sh") is None, reason="requires a POSIX shell")

requires_proc = pytest.mark.skipif(not Path("/proc/self").exists(), reason="requires /proc")


def process_alive(pid: int) -> bool:
    """True while pid exists and is not a zombie."""
    try:
        stat = Path(f"/proc/{pid}/stat").read_text()
    except FileNotFoundError:
        return False
    return stat.rsplit(")", 1)[1].split()[0] != "Z"


async def wait_until_gone(pid: int, timeout: float = 5.0) -> bool:
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while loop.time() < deadline:
        if not process_alive(pid):
            return True
        await asyncio.sleep(0.05)
    return not process_alive(pid)


@pytest.mark.asyncio
async def test_success_returns_none():
    await run_ffmpeg(["sh", "-c", "exit 0"], timeout_seconds=5)


@pytest.mark.asyncio
async def test_non_zero_exit_includes_stderr():
    with pytest.raises(FFmpegError) as exc_info:
        await run_ffmpeg(["sh", "-c", "echo 'Invalid data found' >&2; exit 3"], timeout_seconds=5)

    message = str(exc_info.value)
    assert "code 3" in message
    assert "Invalid data found" in message


@pytest.mark.asyncio
async def test_stderr_is_truncated():
    script = "i=0; while [ $i -lt 600 ]; do printf 'xxxxxxxxxx' >&2; i=$((i+1)); done; exit 1"
    with pytest.raises(FFmpegError) as exc_info:
        await run_ffmpeg(["sh", "-c", script], timeout_seconds=10)

    assert len(str(exc_info.value)) < 2100


@pytest.mark.asyncio
async def test_missing_binary_raises_ffmpeg_error():
    with pytest.raises(FFmpegError, match="Failed to start"):
        await run_ffmpeg(["/nonexistent/ffmpeg", "-version"], timeout_seconds=5)


@pytest.mark.asyncio
async def test_timeout_kills_process():
    loop = asyncio.get_running_loop()
    started = loop.time()

    with pytest.raises(FFmpegTimeout, match="timeout"):
        await run_ffmpeg(["sh", "-c", "sleep 30"], timeout_seconds=0.3)

    assert loop.time() - started < 10


@requires_proc
@pytest.mark.asyncio
async def test_cancellation_kills_process(tmp_path: Path):
    pid_file = tmp_path / "pids"
    script = f"sleep 30 & echo $$ $! > {pid_file}; wait"
    task = asyncio.ensure_future(run_ffmpeg(["sh", "-c", script], timeout_seconds=60))
    for _ in range(50):
        if pid_file.exists() and pid_file.read_text().strip():
            break
        await asyncio.sleep(0.1)
    pids = [int(pid) for pid in pid_file.read_text().split()]

    task.cancel()
    with pytest.raises(asyncio.CancelledError):
        await asyncio.wait_for(task, timeout=10)

    # The shell and its background sleep share the killed process group
    for pid in pids:
        assert await wait_until_gone(pid), f"process {pid} survived cancellation"


@requires_proc
@pytest.mark.asyncio
async def test_stdin_is_not_inherited():
    await run_ffmpeg(
        ["sh", "-c", '[ "$(readlink /proc/$$/fd/0)" = /dev/null ]'],
        timeout_seconds=5,
    )


def test_validate_ffmpeg_available_missing_binary():
    assert validate_ffmpeg_available("/nonexistent/ffmpeg") is False
