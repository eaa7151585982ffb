"""HTTP binding for Gitty."""

from .app import create_app

__all__ = ["create_app"]
