"""
Pytest fixtures for compositor tests.
"""
import pytest
from pathlib import Path
from unittest.mock import AsyncMock

from shared.models.export import EngineOutcome
from shared.models.photo import PhotoRef, SlideDurationPolicy
from modules.compositor.audio import BundledAssetMaterializer
from modules.compositor.engine import FFmpegEngine
from modules.compositor.persistence import LocalMediaLibrary


@pytest.fixture
def sample_photo():
    """Create a sample photo for testing."""
    def _create_photo(name: str, directory: str = "/photos") -> PhotoRef:
        return PhotoRef(id=f"asset-{name}", source=f"file://{directory}/{name}.jpg")
    return _create_photo


@pytest.fixture
def sample_photos(sample_photo):
    """Create a list of sample photos A, B, C, ..."""
    def _create_photos(count: int = 3):
        return [sample_photo(chr(ord("A") + i)) for i in range(count)]
    return _create_photos


@pytest.fixture
def policy():
    """Default 3s-per-photo policy."""
    return SlideDurationPolicy(seconds_per_photo=3.0, final_frame_seconds=0.1)


@pytest.fixture
def audio_asset(tmp_path):
    """Bundled background audio in a temporary assets directory."""
    assets_dir = tmp_path / "assets"
    assets_dir.mkdir()
    audio = assets_dir / "background-music.mp3"
    audio.write_bytes(b"ID3" + b"\x00" * 2048)
    return audio


@pytest.fixture
def materializer(audio_asset):
    return BundledAssetMaterializer(assets_dir=audio_asset.parent)


@pytest.fixture
def library(tmp_path):
    return LocalMediaLibrary(root=tmp_path / "library", collection="Downloads")


def make_fake_execute(fail_stage: str = None, cancel_stage: str = None, diagnostic: str = "boom"):
    """
    Fake FFmpegEngine.execute.

    Writes the command's output file (last argv element) on success, so the
    pipeline's output verification passes without an ffmpeg binary.
    """
    async def _execute(cmd, stage):
        if stage == cancel_stage:
            return EngineOutcome(status="cancelled", diagnostic="Cancelled")
        if stage == fail_stage:
            return EngineOutcome(status="failure", return_code=1, diagnostic=diagnostic)
        Path(cmd[-1]).write_bytes(b"\x00" * 4096)
        return EngineOutcome(status="success", return_code=0)
    return _execute


@pytest.fixture
def fake_engine():
    """Factory for an FFmpegEngine whose execute is faked."""
    def _create_engine(**kwargs) -> FFmpegEngine:
        engine = FFmpegEngine()
        engine.execute = AsyncMock(side_effect=make_fake_execute(**kwargs))
        return engine
    return _create_engine
