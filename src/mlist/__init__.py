"""Password-gated directory browsing and streaming server."""

__version__ = "0.1.0"
