"""
Encoding engine for compositor module.

Runs FFmpeg invocations and reports success, failure or cancellation.
"""
import asyncio
import shutil
from typing import List, Optional

from shared.config import settings
from shared.logging import get_logger
from shared.models.export import EngineOutcome
from .config import DIAGNOSTIC_TAIL_CHARS, KILL_WAIT_SECONDS

logger = get_logger("compositor.engine")


def check_ffmpeg_available(binary: Optional[str] = None) -> bool:
    """
    Check if FFmpeg is installed and available in PATH.

    Returns:
        True if FFmpeg is available, False otherwise
    """
    return shutil.which(binary or settings.ffmpeg_binary) is not None


def _diagnostic_tail(stderr: bytes) -> str:
    text = stderr.decode(errors="replace").strip() if stderr else ""
    return text[-DIAGNOSTIC_TAIL_CHARS:] or "Unknown FFmpeg error"


class FFmpegEngine:
    """
    Executes one FFmpeg command at a time.

    cancel() terminates the running process; the in-flight execute() then
    returns a cancelled outcome. Cancelling the awaiting task has the same
    effect on the child process and propagates CancelledError.
    """

    def __init__(self):
        self._process: Optional[asyncio.subprocess.Process] = None
        self._cancel_requested = False

    @property
    def is_running(self) -> bool:
        return self._process is not None and self._process.returncode is None

    async def execute(self, cmd: List[str], stage: str) -> EngineOutcome:
        """
        Run an FFmpeg command to completion.

        Args:
            cmd: FFmpeg command as list of strings
            stage: Pipeline stage, for logging

        Returns:
            EngineOutcome with status success, failure or cancelled
        """
        if self._cancel_requested:
            return EngineOutcome(status="cancelled", diagnostic="Cancelled before start")

        logger.info(
            f"Running FFmpeg command: {' '.join(cmd)}",
            extra={"stage": stage, "command": cmd}
        )

        try:
            self._process = await asyncio.create_subprocess_exec(
                *cmd,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE
            )
        except (FileNotFoundError, PermissionError) as e:
            logger.error(f"FFmpeg could not be started: {e}", extra={"stage": stage})
            return EngineOutcome(status="failure", diagnostic=f"FFmpeg could not be started: {e}")

        process = self._process
        try:
            _, stderr = await process.communicate()
        except asyncio.CancelledError:
            self._kill(process)
            await self._reap(process)
            raise
        finally:
            self._process = None

        if self._cancel_requested:
            logger.warning("FFmpeg command cancelled", extra={"stage": stage})
            return EngineOutcome(status="cancelled", return_code=process.returncode, diagnostic="Cancelled")

        if process.returncode != 0:
            error_msg = _diagnostic_tail(stderr)
            logger.error(
                f"FFmpeg command failed: {error_msg}",
                extra={"stage": stage, "return_code": process.returncode, "error": error_msg}
            )
            return EngineOutcome(status="failure", return_code=process.returncode, diagnostic=error_msg)

        return EngineOutcome(status="success", return_code=0)

    def cancel(self) -> None:
        """Abort the running invocation and any that follow."""
        self._cancel_requested = True
        if self._process is not None:
            self._kill(self._process)

    def reset(self) -> None:
        """Clear a previous cancel request so the engine can run a new export."""
        self._cancel_requested = False

    @staticmethod
    async def _reap(process: asyncio.subprocess.Process) -> None:
        """Wait briefly for a killed process so it does not linger as a zombie."""
        try:
            await asyncio.wait_for(asyncio.shield(process.wait()), timeout=KILL_WAIT_SECONDS)
        except (asyncio.TimeoutError, asyncio.CancelledError):
            logger.warning("Killed FFmpeg process did not exit in time", extra={"pid": process.pid})

    @staticmethod
    def _kill(process: asyncio.subprocess.Process) -> None:
        if process.returncode is None:
            try:
                process.kill()
            except ProcessLookupError:
                pass
