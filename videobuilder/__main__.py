"""
Video Builder Server Entry Point

Usage:
    python -m videobuilder

Environment Variables:
    PORT: Listening port (default: 3000)
    HOST: Bind address (default: 0.0.0.0)
"""

import uvicorn

from videobuilder.core.config import get_settings


def main() -> None:
    """Start the API server. Blocks until the server is terminated."""
    settings = get_settings()
    uvicorn.run(
        "videobuilder.main:app",
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    main()
