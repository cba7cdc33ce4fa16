"""
Export data models.

Defines the edit script, encode job and the tagged outcomes of the
compositor pipeline and of individual engine invocations.
"""

from enum import Enum
from pathlib import Path
from typing import Dict, List, Literal, Optional, Tuple
from pydantic import BaseModel, Field, field_serializer

from shared.errors import (
    EngineError,
    ExportCancelled,
    InvalidInputError,
    PermissionDenied,
    PersistenceError,
    PreparationError,
    SlideshowError,
    UnsupportedLocatorError,
)


class PipelineStage(str, Enum):
    """Stages of an export, in execution order."""

    PREPARING = "preparing"
    RENDERING_VIDEO = "rendering_video"
    SYNTHESIZING_AUDIO = "synthesizing_audio"
    MUXING = "muxing"
    PERSISTING = "persisting"


class PipelineState(str, Enum):
    """Observable state of a pipeline run."""

    IDLE = "idle"
    PREPARING = "preparing"
    RENDERING_VIDEO = "rendering_video"
    SYNTHESIZING_AUDIO = "synthesizing_audio"
    MUXING = "muxing"
    PERSISTING = "persisting"
    SUCCESS = "success"
    CANCELLED = "cancelled"
    FAILED = "failed"


class EditEntry(BaseModel):
    """One (locator, duration) pair of a concatenation script."""

    source: str
    duration: float = Field(gt=0, description="Display duration in seconds")


class EditScript(BaseModel):
    """
    Concatenation script for the encoding engine.

    The last entry is the sentinel: it repeats the last photo's locator with
    the final-frame duration so the concat demuxer does not drop the last
    real frame.
    """

    entries: List[EditEntry]
    exact_duration: float = Field(description="Authoritative output length in seconds")

    @property
    def body(self) -> List[EditEntry]:
        """Entries without the trailing sentinel."""
        return self.entries[:-1]

    @property
    def sentinel(self) -> EditEntry:
        return self.entries[-1]

    def render(self) -> str:
        """Serialize to the concat demuxer text format."""
        lines = []
        for entry in self.entries:
            lines.append(f"file '{entry.source}'")
            lines.append(f"duration {format_seconds(entry.duration)}")
        return "\n".join(lines) + "\n"


def format_seconds(value: float) -> str:
    """Format seconds with up to 6 decimals, trailing zeros dropped (3.0 -> "3", 0.1 -> "0.1")."""
    text = f"{value:.6f}".rstrip("0").rstrip(".")
    return text or "0"


class EncodeJob(BaseModel):
    """Per-export set of engine inputs, outputs and uniquely named intermediates."""

    export_id: str
    edit_script_path: Path
    audio_source_path: Path
    width: int
    height: int
    frame_rate: int
    output_path: Path
    temp_video_path: Path
    temp_audio_path: Path

    @property
    def temp_paths(self) -> Tuple[Path, Path, Path]:
        """Intermediates owned by this job, deleted before and after the run."""
        return (self.edit_script_path, self.temp_video_path, self.temp_audio_path)


class EngineOutcome(BaseModel):
    """Result of one engine invocation."""

    status: Literal["success", "failure", "cancelled"]
    return_code: Optional[int] = None
    diagnostic: str = ""

    @property
    def ok(self) -> bool:
        return self.status == "success"


class PersistedVideo(BaseModel):
    """Where the media library put a committed export."""

    path: str
    collection: str
    location: str = Field(description="Collection-relative location or storage URL")


class EncodeResult(BaseModel):
    """Tagged outcome of an export: success, cancelled or failed at a stage."""

    export_id: str
    status: Literal["success", "cancelled", "failed"]
    final_path: Optional[str] = None
    location: Optional[str] = None
    stage: Optional[PipelineStage] = None
    diagnostic: Optional[str] = None
    error_type: Optional[str] = None
    exact_duration: Optional[float] = None
    photo_count: int = 0
    timings: Dict[str, float] = Field(default_factory=dict)

    @field_serializer("stage")
    def serialize_stage(self, value: Optional[PipelineStage]) -> Optional[str]:
        """Serialize stage enum to its value."""
        return value.value if value else None

    @classmethod
    def succeeded(cls, export_id: str, persisted: PersistedVideo, **kwargs) -> "EncodeResult":
        return cls(
            export_id=export_id,
            status="success",
            final_path=persisted.path,
            location=persisted.location,
            **kwargs
        )

    @classmethod
    def cancelled(cls, export_id: str, stage: Optional[PipelineStage] = None, **kwargs) -> "EncodeResult":
        return cls(export_id=export_id, status="cancelled", stage=stage, **kwargs)

    @classmethod
    def failed(
        cls,
        export_id: str,
        stage: PipelineStage,
        error: Exception,
        **kwargs
    ) -> "EncodeResult":
        diagnostic = error.diagnostic if isinstance(error, EngineError) else str(error)
        return cls(
            export_id=export_id,
            status="failed",
            stage=stage,
            diagnostic=diagnostic,
            error_type=type(error).__name__,
            **kwargs
        )

    @property
    def ok(self) -> bool:
        return self.status == "success"

    def raise_for_status(self) -> "EncodeResult":
        """
        Raise the matching exception for a cancelled or failed outcome.

        Returns:
            self, when the export succeeded

        Raises:
            ExportCancelled: If the export was cancelled
            EngineError: If an engine stage failed
            SlideshowError: For any other failed stage
        """
        if self.status == "cancelled":
            raise ExportCancelled(self.stage.value if self.stage else None)
        if self.status == "failed":
            stage = self.stage.value if self.stage else "unknown"
            if self.error_type == "EngineError":
                raise EngineError(stage, self.diagnostic or "")
            error_cls = ERROR_TYPES.get(self.error_type or "", SlideshowError)
            raise error_cls(f"{stage} failed: {self.diagnostic}")
        return self


ERROR_TYPES = {
    cls.__name__: cls
    for cls in (
        InvalidInputError,
        UnsupportedLocatorError,
        PreparationError,
        PermissionDenied,
        PersistenceError,
    )
}
