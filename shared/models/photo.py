"""
Photo data models.

Defines PhotoRef, PhotoSelection and SlideDurationPolicy.
"""

import math
from typing import List, Sequence, Tuple
from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator

from shared.errors import InvalidInputError, ValidationError

MAX_PHOTOS = 12


class PhotoRef(BaseModel):
    """A user-selected photo: stable identifier plus locator (local path or content URI)."""

    model_config = ConfigDict(frozen=True)

    id: str
    source: str = Field(description="Local path or content URI")

    @field_validator("source")
    @classmethod
    def validate_source(cls, v: str) -> str:
        if not v:
            raise ValueError("Photo source must not be empty")
        return v


class PhotoSelection(BaseModel):
    """Ordered photo selection, in the order the user picked them."""

    photos: List[PhotoRef] = Field(default_factory=list)
    max_photos: int = Field(default=MAX_PHOTOS, ge=1)

    def add(self, photos: Sequence[PhotoRef]) -> None:
        """
        Append photos in order.

        The batch is rejected as a whole if it would push the selection past
        max_photos; the selection is left unchanged in that case.

        Raises:
            ValidationError: If the limit would be exceeded
        """
        if len(self.photos) + len(photos) > self.max_photos:
            raise ValidationError(f"You can only select up to {self.max_photos} photos!")
        self.photos = [*self.photos, *photos]

    def remove(self, key: str) -> None:
        """Remove every photo whose id or source equals key."""
        self.photos = [p for p in self.photos if p.id != key and p.source != key]

    def snapshot(self) -> Tuple[PhotoRef, ...]:
        """Immutable copy of the current selection, handed to an export."""
        return tuple(self.photos)

    def __len__(self) -> int:
        return len(self.photos)


class SlideDurationPolicy(BaseModel):
    """Per-photo dwell time plus the trailing final-frame duration."""

    model_config = ConfigDict(frozen=True)

    seconds_per_photo: float = Field(description="Seconds each photo stays on screen")
    final_frame_seconds: float = Field(default=0.1, description="Sentinel entry duration")

    @field_validator("seconds_per_photo", "final_frame_seconds")
    @classmethod
    def validate_positive(cls, v: float, info: ValidationInfo) -> float:
        """Validate durations are positive finite numbers."""
        if not math.isfinite(v) or v <= 0:
            raise InvalidInputError(f"{info.field_name} must be a positive number, got {v!r}")
        return v
