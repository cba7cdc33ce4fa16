"""
Edit script construction for compositor module.

Turns a slide sequence into a concat-demuxer script with per-photo
durations and a trailing final-frame sentinel.
"""
from pathlib import Path
from typing import Sequence, Union
from urllib.parse import unquote

from shared.errors import InvalidInputError, PreparationError, UnsupportedLocatorError
from shared.logging import get_logger
from shared.models.export import EditEntry, EditScript
from shared.models.photo import PhotoRef, SlideDurationPolicy

logger = get_logger("compositor.edit_script")

FILE_SCHEME = "file://"

# Characters that would break the line-oriented `file '<locator>'` syntax
FORBIDDEN_LOCATOR_CHARS = ("'", "\n", "\r", "\x00")


def strip_scheme(locator: Union[str, Path]) -> str:
    """
    Convert a locator into a plain filesystem path for the engine.

    A leading file:// scheme is removed and the remainder percent-decoded,
    since picker URIs arrive URL-encoded. Plain paths pass through.

    Raises:
        UnsupportedLocatorError: If the locator is empty or contains characters
            that cannot be embedded in an edit script line
    """
    text = str(locator)
    if text.startswith(FILE_SCHEME):
        text = unquote(text[len(FILE_SCHEME):])
    if not text:
        raise UnsupportedLocatorError("Empty locator", locator=str(locator))
    for char in FORBIDDEN_LOCATOR_CHARS:
        if char in text:
            raise UnsupportedLocatorError(
                f"Locator contains unsupported character {char!r}: {text!r}",
                locator=str(locator)
            )
    return text


def _absolute_locator(locator: str) -> str:
    return str(Path(strip_scheme(locator)).expanduser().resolve())


def build_edit_script(sequence: Sequence[PhotoRef], policy: SlideDurationPolicy) -> EditScript:
    """
    Build the edit script for a slide sequence.

    Local locators are resolved to absolute paths, since the engine reads
    relative entries against the directory the script is written to.

    Args:
        sequence: Photos in display order (non-empty)
        policy: Duration policy the preview used

    Returns:
        EditScript with one entry per slide plus the sentinel entry, and
        exact_duration = len(sequence) * seconds_per_photo + final_frame_seconds

    Raises:
        InvalidInputError: If sequence is empty
        UnsupportedLocatorError: If any locator cannot be embedded safely
    """
    if not sequence:
        raise InvalidInputError("Cannot build an edit script from an empty sequence")

    entries = [
        EditEntry(source=_absolute_locator(photo.source), duration=policy.seconds_per_photo)
        for photo in sequence
    ]
    entries.append(EditEntry(source=entries[-1].source, duration=policy.final_frame_seconds))

    exact_duration = len(sequence) * policy.seconds_per_photo + policy.final_frame_seconds
    return EditScript(entries=entries, exact_duration=exact_duration)


def write_edit_script(script: EditScript, path: Path) -> Path:
    """
    Write the edit script and verify it landed on disk.

    Raises:
        PreparationError: If writing fails or the file is missing/empty afterwards
    """
    content = script.render()
    try:
        path.write_text(content, encoding="utf-8")
    except OSError as e:
        raise PreparationError(f"Failed to write edit script {path}: {e}") from e

    if not path.exists():
        raise PreparationError(f"Edit script not created: {path}")
    size = path.stat().st_size
    if size == 0:
        raise PreparationError(f"Edit script is empty: {path}")

    logger.info(
        f"Wrote edit script with {len(script.entries)} entries ({size} bytes)",
        extra={"path": str(path), "entries": len(script.entries), "exact_duration": script.exact_duration}
    )
    return path
