"""
Slide sequence reconstruction for compositor module.

Rebuilds, from elapsed preview time, the ordered photos a round-robin
slideshow with a fixed dwell time displayed.
"""
import math
from typing import List, Sequence

from shared.errors import InvalidInputError
from shared.models.photo import PhotoRef

RATIO_PRECISION = 9


def sequence_length(photo_count: int, seconds_per_photo: float, elapsed_ms: int) -> int:
    """
    Number of slides shown after elapsed_ms of playback.

    Full cycles contribute photo_count slides each; a partially elapsed
    slide in the current cycle counts as shown. Never less than 1, since a
    just-started preview is already showing the first photo.
    """
    if photo_count <= 0:
        raise InvalidInputError("At least one photo is required")
    if not math.isfinite(seconds_per_photo) or seconds_per_photo <= 0:
        raise InvalidInputError(f"seconds_per_photo must be positive, got {seconds_per_photo}")
    if elapsed_ms < 0:
        raise InvalidInputError(f"elapsed_ms must be non-negative, got {elapsed_ms}")

    secs_elapsed = elapsed_ms / 1000
    cycle_length = seconds_per_photo * photo_count
    # Ratios are rounded before floor/ceil so binary float noise on exact
    # boundaries (e.g. 0.9 / (0.3 * 3)) cannot add a phantom slide
    full_cycles = math.floor(round(secs_elapsed / cycle_length, RATIO_PRECISION))
    remainder = secs_elapsed - full_cycles * cycle_length
    extra_photos = math.ceil(round(remainder / seconds_per_photo, RATIO_PRECISION))
    return max(full_cycles * photo_count + max(extra_photos, 0), 1)


def reconstruct_sequence(
    photos: Sequence[PhotoRef],
    seconds_per_photo: float,
    elapsed_ms: int
) -> List[PhotoRef]:
    """
    Reconstruct the photos displayed during preview.

    Args:
        photos: Selected photos in selection order (non-empty)
        seconds_per_photo: Dwell time per photo
        elapsed_ms: Preview playback time in milliseconds

    Returns:
        Photos in display order, cycling through the selection

    Raises:
        InvalidInputError: If photos is empty, or durations are out of range
    """
    total = sequence_length(len(photos), seconds_per_photo, elapsed_ms)
    return [photos[i % len(photos)] for i in range(total)]
