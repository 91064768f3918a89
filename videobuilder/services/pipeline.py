"""
Render Pipeline

Runs the acquisition and composition stages for one request and hands back
the rendered artifact, plus the helpers used to deliver it:
- stream_artifact: chunked read of the output that releases the workspace
  once the stream closes
- run_until_disconnected: cancels the pipeline if the client goes away
"""

import asyncio
import logging
from typing import AsyncIterator, Awaitable, TypeVar

import aiofiles
import httpx
from starlette.requests import Request

from ..core.config import Settings
from ..core.errors import ClientDisconnected
from ..core.workspace import RenderArtifact, RenderWorkspace
from .acquirer import acquire_media
from .composer import Composer
from .normalizer import InlineAudio, RenderJob

logger = logging.getLogger(__name__)

T = TypeVar("T")


class RenderPipeline:
    """Acquire -> compose for a single validated RenderJob."""

    def __init__(self, composer: Composer, client: httpx.AsyncClient, settings: Settings):
        self.composer = composer
        self.client = client
        self.settings = settings

    async def run(self, job: RenderJob, workspace: RenderWorkspace) -> RenderArtifact:
        """
        Produce the rendered artifact inside the workspace.

        The caller owns the workspace and must clean it up on both success
        (after streaming) and failure.

        Raises:
            DownloadError, EncodingError, CompositionError
        """
        audio_mode = "inline" if isinstance(job.audio, InlineAudio) else "remote"
        logger.info(
            f"Render {workspace.token[:8]}: {job.width}x{job.height}, audio={audio_mode}"
        )

        media = await acquire_media(job, workspace, self.client, self.settings)

        output = workspace.output_file()
        await self.composer.compose(
            media.video.path,
            media.audio.path,
            job.width,
            job.height,
            output.path,
        )

        artifact = RenderArtifact(handle=output, size=output.size)
        logger.info(f"Render {workspace.token[:8]} complete: {artifact.size} bytes")
        return artifact


async def stream_artifact(
    artifact: RenderArtifact,
    workspace: RenderWorkspace,
    chunk_size: int,
) -> AsyncIterator[bytes]:
    """
    Yield the artifact's bytes, then release the workspace.

    The workspace is cleaned up when the generator finishes, fails, or is
    closed early because the client disconnected.
    """
    try:
        async with aiofiles.open(artifact.path, "rb") as f:
            while True:
                chunk = await f.read(chunk_size)
                if not chunk:
                    break
                yield chunk
    finally:
        workspace.cleanup()


async def run_until_disconnected(
    request: Request,
    work: Awaitable[T],
    poll_interval: float,
) -> T:
    """
    Await work, cancelling it if the client disconnects first.

    Raises:
        ClientDisconnected: If the client went away; work has been cancelled
            (in-flight downloads aborted, FFmpeg killed)
    """
    task = asyncio.ensure_future(work)
    try:
        while True:
            done, _ = await asyncio.wait({task}, timeout=poll_interval)
            if done:
                return task.result()
            if await request.is_disconnected():
                logger.warning("Client disconnected, cancelling render")
                raise ClientDisconnected()
    finally:
        if not task.done():
            task.cancel()
            # Wait for the cancelled work to unwind (kills FFmpeg, closes streams)
            await asyncio.wait({task})
            if not task.cancelled() and task.exception() is not None:
                logger.debug(f"Cancelled render raised: {task.exception()!r}")
