"""Development server for generated documentation."""

from .app import DevServer, create_app

__all__ = ["DevServer", "create_app"]
