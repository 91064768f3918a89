"""
Render API endpoint for Video Builder.

POST /render combines the first clip's video track with the supplied audio,
scales it to the requested size, and streams the MP4 back in the response.
Temporary files live in a per-request workspace that is always removed.
"""

import logging

import httpx
from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import StreamingResponse
from starlette.background import BackgroundTask

from videobuilder.api.deps import get_composer, get_http_client
from videobuilder.core.config import Settings, get_settings
from videobuilder.core.workspace import RenderWorkspace
from videobuilder.schemas.render import RenderErrorResponse, RenderRequest
from videobuilder.services.composer import Composer
from videobuilder.services.normalizer import normalize_render_request
from videobuilder.services.pipeline import (
    RenderPipeline,
    run_until_disconnected,
    stream_artifact,
)

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post(
    "/render",
    status_code=status.HTTP_200_OK,
    response_class=StreamingResponse,
    name="render_video",
    summary="Render video",
    description="Mux the first clip with the supplied audio, scale it, and return the MP4.",
    responses={
        200: {"content": {"video/mp4": {}}, "description": "Rendered MP4 bytes"},
        400: {"model": RenderErrorResponse, "description": "Invalid render request"},
        500: {"model": RenderErrorResponse, "description": "Invalid audio payload or FFmpeg failure"},
        502: {"model": RenderErrorResponse, "description": "Source media download failed"},
        504: {"model": RenderErrorResponse, "description": "Download or FFmpeg timed out"},
    },
)
async def render_video(
    body: RenderRequest,
    request: Request,
    settings: Settings = Depends(get_settings),
    client: httpx.AsyncClient = Depends(get_http_client),
    composer: Composer = Depends(get_composer),
) -> StreamingResponse:
    """
    Render a single clip with a replacement audio track.

    - Validates the request (400 on failure, nothing downloaded)
    - Downloads the clip and acquires the audio (URL or inline base64)
    - Runs FFmpeg with the fixed composition policy
    - Streams the result; temp files are removed once the stream closes
    """
    job = normalize_render_request(body, settings)

    workspace = RenderWorkspace.create(settings.temp_root)
    pipeline = RenderPipeline(composer, client, settings)

    try:
        artifact = await run_until_disconnected(
            request,
            pipeline.run(job, workspace),
            settings.disconnect_poll_interval,
        )
    except BaseException:
        workspace.cleanup()
        raise

    return StreamingResponse(
        stream_artifact(artifact, workspace, settings.stream_chunk_size),
        media_type=artifact.media_type,
        headers={"Content-Length": str(artifact.size)},
        # Runs after the stream; a no-op if the generator already cleaned up
        background=BackgroundTask(workspace.cleanup),
    )
