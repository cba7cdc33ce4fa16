"""
Background audio for compositor module.

Resolves the bundled soundtrack to a concrete file for the engine, and owns
the preview playback handle so it is always released.
"""
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncIterator, Optional, Protocol, Union, runtime_checkable

from shared.config import settings
from shared.errors import PreparationError
from shared.logging import get_logger
from .edit_script import strip_scheme
from .timing import PlaybackClock

logger = get_logger("compositor.audio")


@runtime_checkable
class AssetMaterializer(Protocol):
    """Turns an asset reference into a concrete filesystem locator."""

    async def materialize(self, asset: str) -> Path:
        ...


class BundledAssetMaterializer:
    """Resolves asset names against the bundled assets directory."""

    def __init__(self, assets_dir: Optional[Path] = None):
        self.assets_dir = Path(assets_dir or settings.assets_dir)

    async def materialize(self, asset: str) -> Path:
        candidate = Path(strip_scheme(asset))
        if not candidate.is_absolute():
            candidate = self.assets_dir / candidate
        if not candidate.is_file():
            raise PreparationError(f"Audio asset not found: {candidate}")
        return candidate.resolve()


async def resolve_audio_asset(
    asset: Optional[Union[str, Path]] = None,
    materializer: Optional[AssetMaterializer] = None
) -> Path:
    """
    Resolve the soundtrack for an export.

    Args:
        asset: Asset reference, defaults to settings.background_audio
        materializer: Collaborator doing the lookup, defaults to the bundled assets

    Raises:
        PreparationError: If the asset cannot be materialized
    """
    asset = str(asset or settings.background_audio)
    materializer = materializer or BundledAssetMaterializer()
    path = await materializer.materialize(asset)
    logger.info(f"Resolved audio asset {asset}", extra={"asset": asset, "path": str(path)})
    return path


class PlaybackHandle(Protocol):
    """Capability surface of a preview audio player."""

    async def start(self) -> None:
        ...

    async def pause(self) -> None:
        ...

    async def resume(self) -> None:
        ...

    async def stop_and_release(self) -> None:
        ...


@asynccontextmanager
async def preview_audio(handle: PlaybackHandle) -> AsyncIterator[PlaybackHandle]:
    """Start the handle and guarantee stop_and_release on every exit path."""
    await handle.start()
    try:
        yield handle
    finally:
        try:
            await handle.stop_and_release()
        except Exception as e:
            logger.warning(f"Failed to release preview audio: {e}")


class PreviewSession:
    """
    A running preview: audio handle plus playback clock.

    Play/pause only affects the music. Slides keep advancing while the
    audio is paused, so the clock keeps counting; pause the clock itself
    (clock.pause()) only when the slides stop too, e.g. the host goes to
    the background.
    """

    def __init__(self, handle: PlaybackHandle, clock: Optional[PlaybackClock] = None):
        self.handle = handle
        self.clock = clock or PlaybackClock()
        self.is_playing = False

    async def __aenter__(self) -> "PreviewSession":
        await self.handle.start()
        self.clock.start()
        self.is_playing = True
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        self.clock.stop()
        self.is_playing = False
        try:
            await self.handle.stop_and_release()
        except Exception as e:
            logger.warning(f"Failed to release preview audio: {e}")

    async def toggle(self) -> bool:
        """Play/pause button for the music. Returns the new playing state."""
        if self.is_playing:
            await self.handle.pause()
        else:
            await self.handle.resume()
        self.is_playing = not self.is_playing
        return self.is_playing
