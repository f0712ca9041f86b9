"""HTTP API package."""

from costdata.api.app import create_app
from costdata.api.routes import router

__all__ = ["create_app", "router"]
