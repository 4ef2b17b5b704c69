"""HTTP surface of the router."""

from .server import app

__all__ = ["app"]
