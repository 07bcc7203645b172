"""Processing collaborators for claimed files."""

from .base import BaseProcessor, LoggingProcessor

__all__ = ["BaseProcessor", "LoggingProcessor"]
