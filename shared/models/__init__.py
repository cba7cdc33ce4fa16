"""
Data models for the slideshow compositor.

This module exports all Pydantic models used across compositor modules.
"""

from .photo import PhotoRef, PhotoSelection, SlideDurationPolicy, MAX_PHOTOS
from .export import (
    PipelineStage,
    PipelineState,
    EditEntry,
    EditScript,
    EncodeJob,
    EngineOutcome,
    PersistedVideo,
    EncodeResult,
    format_seconds,
)

__all__ = [
    # Photo models
    "PhotoRef",
    "PhotoSelection",
    "SlideDurationPolicy",
    "MAX_PHOTOS",
    # Export models
    "PipelineStage",
    "PipelineState",
    "EditEntry",
    "EditScript",
    "EncodeJob",
    "EngineOutcome",
    "PersistedVideo",
    "EncodeResult",
    "format_seconds",
]
