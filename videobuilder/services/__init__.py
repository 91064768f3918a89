"""
Video Builder Services

Render pipeline stages:
- normalizer: request validation and audio source selection
- acquirer: remote download / inline decode of source media
- composer: FFmpeg composition behind a narrow interface
- pipeline: stage orchestration, streaming delivery and cancellation
"""

from .composer import Composer, FFmpegComposer
from .normalizer import InlineAudio, RemoteAudio, RenderJob, normalize_render_request
from .pipeline import RenderPipeline, run_until_disconnected, stream_artifact

__all__ = [
    "Composer",
    "FFmpegComposer",
    "InlineAudio",
    "RemoteAudio",
    "RenderJob",
    "RenderPipeline",
    "normalize_render_request",
    "run_until_disconnected",
    "stream_artifact",
]
