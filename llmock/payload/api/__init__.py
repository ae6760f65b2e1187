"""High-level API facades."""

from .payload_api import PayloadAPI

__all__ = ["PayloadAPI"]
