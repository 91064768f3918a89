"""
Render error taxonomy.

Every pipeline stage raises a subclass of RenderError. The API layer turns
these into JSON error responses using the status code and error code carried
by the exception.
"""

from typing import Optional


class RenderError(Exception):
    """Base class for failures that abort a render."""

    status_code: int = 500
    code: str = "render_failed"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict:
        return {"error": self.message, "code": self.code}


class ValidationError(RenderError):
    """Raised when the caller-supplied request is malformed."""

    status_code = 400
    code = "validation_error"


class DownloadError(RenderError):
    """Raised when a remote media fetch fails."""

    status_code = 502
    code = "download_failed"

    def __init__(
        self,
        url: str,
        reason: str,
        http_status: Optional[int] = None,
        timed_out: bool = False,
    ):
        self.url = url
        self.http_status = http_status
        self.timed_out = timed_out
        if timed_out:
            self.status_code = 504
            self.code = "download_timeout"

        message = f"Failed to download {url}: {reason}"
        super().__init__(message)


class EncodingError(RenderError):
    """Raised when an inline base64 payload cannot be decoded."""

    status_code = 500
    code = "invalid_audio_payload"


class CompositionError(RenderError):
    """Raised when the transcoding engine fails or times out."""

    status_code = 500
    code = "composition_failed"

    def __init__(self, message: str, timed_out: bool = False):
        self.timed_out = timed_out
        if timed_out:
            self.status_code = 504
            self.code = "composition_timeout"
        super().__init__(message)


class ClientDisconnected(RenderError):
    """Raised when the caller goes away before the render finished."""

    status_code = 499
    code = "client_closed_request"

    def __init__(self, message: str = "Client disconnected before render completed"):
        super().__init__(message)
