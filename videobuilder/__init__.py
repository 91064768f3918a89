"""
Video Builder

HTTP service that renders a video clip with a replacement audio track.
"""

__version__ = "0.1.0"
