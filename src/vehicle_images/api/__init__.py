"""HTTP layer for the vehicle image pipeline."""

from .app import AttachImageRequest, create_app

__all__ = ["AttachImageRequest", "create_app"]
