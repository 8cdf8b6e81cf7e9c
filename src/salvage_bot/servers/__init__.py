"""HTTP surface: the OAuth callback server."""

from .main import build_server, create_app

__all__ = ["create_app", "build_server"]
