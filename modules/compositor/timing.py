"""
Preview playback timing.

Tracks how long the preview slideshow has actually been playing so an
export can reproduce what the user watched.
"""
import time
from typing import Callable, List, Optional

from pydantic import BaseModel, ConfigDict


class ClockSample(BaseModel):
    """Frozen reading of a PlaybackClock, captured once at export start."""

    model_config = ConfigDict(frozen=True)

    elapsed_ms: int
    is_running: bool
    untracked_ms: int = 0


class PlaybackClock:
    """
    Monotonic playback clock.

    Elapsed time accumulates only while running. pause()/resume() cover the
    host going to the background: the paused interval is not counted and is
    recorded in untracked_gaps instead of being silently dropped.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        self._started_at: Optional[float] = None
        self._accumulated = 0.0
        self._paused_at: Optional[float] = None
        self.untracked_gaps: List[float] = []

    @property
    def is_running(self) -> bool:
        return self._started_at is not None

    @property
    def is_paused(self) -> bool:
        return self._paused_at is not None

    def start(self) -> None:
        """Reset the clock and begin accumulating."""
        self._accumulated = 0.0
        self._paused_at = None
        self.untracked_gaps = []
        self._started_at = self._clock()

    def stop(self) -> None:
        """Freeze the elapsed value."""
        if self._started_at is not None:
            self._accumulated += self._clock() - self._started_at
            self._started_at = None
        self._paused_at = None

    def pause(self) -> None:
        if self._started_at is None:
            return
        now = self._clock()
        self._accumulated += now - self._started_at
        self._started_at = None
        self._paused_at = now

    def resume(self) -> None:
        if self._paused_at is None:
            return
        now = self._clock()
        self.untracked_gaps.append(now - self._paused_at)
        self._paused_at = None
        self._started_at = now

    def elapsed(self) -> float:
        """Seconds accumulated since start() while running."""
        if self._started_at is None:
            return self._accumulated
        return self._accumulated + (self._clock() - self._started_at)

    def elapsed_ms(self) -> int:
        return int(self.elapsed() * 1000)

    def sample(self) -> ClockSample:
        return ClockSample(
            elapsed_ms=self.elapsed_ms(),
            is_running=self.is_running,
            untracked_ms=int(sum(self.untracked_gaps) * 1000)
        )
