"""
Error taxonomy.

Exceptions raised by the compositor components. The pipeline converts them
into stage-tagged EncodeResult outcomes at its boundary; nothing is retried.
"""

from typing import Optional


class SlideshowError(Exception):
    """Base exception for all slideshow compositor errors."""
    pass


class ConfigError(SlideshowError):
    """Invalid or missing configuration."""
    pass


class ValidationError(SlideshowError):
    """Input failed validation."""
    pass


class InvalidInputError(ValidationError):
    """Empty photo list, non-positive duration policy, negative elapsed time."""
    pass


class UnsupportedLocatorError(ValidationError):
    """A photo or audio locator cannot be embedded safely in an edit script or command."""

    def __init__(self, message: str, locator: Optional[str] = None):
        super().__init__(message)
        self.locator = locator


class PreparationError(SlideshowError):
    """Directory creation, script write, or write verification failed."""
    pass


class EngineError(SlideshowError):
    """The encoding engine reported a non-success result for a stage."""

    def __init__(self, stage: str, diagnostic: str):
        super().__init__(f"{stage} failed: {diagnostic}")
        self.stage = stage
        self.diagnostic = diagnostic


class ExportCancelled(SlideshowError):
    """An in-flight engine invocation was aborted."""

    def __init__(self, stage: Optional[str] = None):
        super().__init__(f"Export cancelled during {stage}" if stage else "Export cancelled")
        self.stage = stage


class PermissionDenied(SlideshowError):
    """Storage access grant is absent."""
    pass


class PersistenceError(SlideshowError):
    """Committing the output to durable storage failed."""
    pass
