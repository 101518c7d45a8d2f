"""HTTP API for live updates, manual monitoring runs, and alert management."""

from portsense.web.app import create_web_app, default_viewer_resolver, start_web_server

__all__ = ["create_web_app", "default_viewer_resolver", "start_web_server"]
