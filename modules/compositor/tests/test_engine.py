"""
Unit tests for the FFmpeg engine.
"""
import asyncio
import pytest
from unittest.mock import patch, MagicMock, AsyncMock

from modules.compositor.engine import FFmpegEngine, check_ffmpeg_available


def mock_process(returncode=0, stderr=b""):
    process = MagicMock()
    process.communicate = AsyncMock(return_value=(b"", stderr))
    process.returncode = returncode
    return process


class TestCheckFFmpegAvailable:
    """Tests for check_ffmpeg_available function."""

    @patch('modules.compositor.engine.shutil.which')
    def test_ffmpeg_available(self, mock_which):
        """Test when FFmpeg is available."""
        mock_which.return_value = "/usr/bin/ffmpeg"
        assert check_ffmpeg_available() is True

    @patch('modules.compositor.engine.shutil.which')
    def test_ffmpeg_not_available(self, mock_which):
        """Test when FFmpeg is not available."""
        mock_which.return_value = None
        assert check_ffmpeg_available() is False


class TestFFmpegEngine:
    """Tests for FFmpegEngine.execute."""

    @pytest.mark.asyncio
    @patch('modules.compositor.engine.asyncio.create_subprocess_exec')
    async def test_execute_success(self, mock_subprocess):
        """Test successful FFmpeg command execution."""
        mock_subprocess.return_value = mock_process(returncode=0)

        outcome = await FFmpegEngine().execute(["ffmpeg", "-i", "in.mp4", "out.mp4"], stage="muxing")

        assert outcome.ok
        assert outcome.return_code == 0
        mock_subprocess.assert_called_once()
        assert mock_subprocess.call_args[0] == ("ffmpeg", "-i", "in.mp4", "out.mp4")

    @pytest.mark.asyncio
    @patch('modules.compositor.engine.asyncio.create_subprocess_exec')
    async def test_execute_failure_reports_stderr(self, mock_subprocess):
        """Test non-zero exit becomes a failure outcome carrying the engine trace."""
        mock_subprocess.return_value = mock_process(returncode=1, stderr=b"Invalid data found when processing input")

        outcome = await FFmpegEngine().execute(["ffmpeg"], stage="rendering_video")

        assert outcome.status == "failure"
        assert outcome.return_code == 1
        assert "Invalid data found" in outcome.diagnostic

    @pytest.mark.asyncio
    @patch('modules.compositor.engine.asyncio.create_subprocess_exec')
    async def test_execute_failure_without_stderr(self, mock_subprocess):
        mock_subprocess.return_value = mock_process(returncode=1, stderr=b"")

        outcome = await FFmpegEngine().execute(["ffmpeg"], stage="muxing")

        assert outcome.diagnostic == "Unknown FFmpeg error"

    @pytest.mark.asyncio
    @patch('modules.compositor.engine.asyncio.create_subprocess_exec')
    async def test_missing_binary(self, mock_subprocess):
        """Test a missing ffmpeg binary is a failure, not an exception."""
        mock_subprocess.side_effect = FileNotFoundError("ffmpeg")

        outcome = await FFmpegEngine().execute(["ffmpeg"], stage="rendering_video")

        assert outcome.status == "failure"
        assert "could not be started" in outcome.diagnostic

    @pytest.mark.asyncio
    @patch('modules.compositor.engine.asyncio.create_subprocess_exec')
    async def test_cancel_during_execution(self, mock_subprocess):
        """Test cancel() kills the running process and reports cancelled."""
        engine = FFmpegEngine()
        process = MagicMock()
        process.returncode = None

        async def _communicate():
            engine.cancel()
            process.returncode = -9
            return b"", b""

        process.communicate = _communicate
        mock_subprocess.return_value = process

        outcome = await engine.execute(["ffmpeg"], stage="synthesizing_audio")

        assert outcome.status == "cancelled"
        process.kill.assert_called_once()

    @pytest.mark.asyncio
    @patch('modules.compositor.engine.asyncio.create_subprocess_exec')
    async def test_cancel_before_start(self, mock_subprocess):
        engine = FFmpegEngine()
        engine.cancel()

        outcome = await engine.execute(["ffmpeg"], stage="muxing")

        assert outcome.status == "cancelled"
        mock_subprocess.assert_not_called()

    @pytest.mark.asyncio
    @patch('modules.compositor.engine.asyncio.create_subprocess_exec')
    async def test_reset_clears_cancel(self, mock_subprocess):
        mock_subprocess.return_value = mock_process(returncode=0)
        engine = FFmpegEngine()
        engine.cancel()
        engine.reset()

        outcome = await engine.execute(["ffmpeg"], stage="muxing")

        assert outcome.ok

    @pytest.mark.asyncio
    @patch('modules.compositor.engine.asyncio.create_subprocess_exec')
    async def test_task_cancellation_kills_process(self, mock_subprocess):
        """Test cancelling the awaiting task kills and reaps the child process."""
        process = MagicMock()
        process.returncode = None
        process.wait = AsyncMock(return_value=-9)
        started = asyncio.Event()

        async def _communicate():
            started.set()
            await asyncio.sleep(3600)

        process.communicate = _communicate
        mock_subprocess.return_value = process

        engine = FFmpegEngine()
        task = asyncio.create_task(engine.execute(["ffmpeg"], stage="rendering_video"))
        await started.wait()
        task.cancel()

        with pytest.raises(asyncio.CancelledError):
            await task
        process.kill.assert_called_once()
        process.wait.assert_awaited_once()
        assert engine.is_running is False
