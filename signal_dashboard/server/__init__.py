"""HTTP server exposing metrics to Grafana."""

from .app import create_app

__all__ = ["create_app"]
