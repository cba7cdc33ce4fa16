"""
Main entry point for compositor module.

Orchestrates a slideshow export: reconstructs the previewed slide sequence,
renders a silent video from it, synthesizes matching background audio,
muxes both and commits the result to the media library.
"""
import asyncio
import math
import shutil
import time
from pathlib import Path
from typing import Callable, Iterable, List, Optional, Sequence, Union
from uuid import uuid4

from shared.config import settings
from shared.errors import (
    EngineError,
    ExportCancelled,
    InvalidInputError,
    PreparationError,
    SlideshowError,
)
from shared.logging import get_logger, set_export_id
from shared.models.export import (
    EncodeJob,
    EncodeResult,
    EngineOutcome,
    PipelineStage,
    PipelineState,
)
from shared.models.photo import PhotoRef, SlideDurationPolicy

from .audio import AssetMaterializer, resolve_audio_asset
from .commands import mux_command, render_video_command, synthesize_audio_command
from .config import (
    EDIT_SCRIPT_NAME,
    MIN_AUDIO_PADDING_SECONDS,
    OUTPUT_FPS,
    OUTPUT_HEIGHT,
    OUTPUT_NAME,
    OUTPUT_WIDTH,
    TEMP_AUDIO_NAME,
    TEMP_VIDEO_NAME,
)
from .edit_script import build_edit_script, write_edit_script
from .engine import FFmpegEngine, check_ffmpeg_available
from .persistence import MediaLibrary, default_library
from .sequence import reconstruct_sequence
from .timing import ClockSample

logger = get_logger("compositor.process")

ProgressCallback = Callable[[PipelineStage, str], None]


def new_export_token() -> str:
    """Uniqueness token for intermediate names: millisecond timestamp plus random suffix."""
    return f"{int(time.time() * 1000)}_{uuid4().hex[:8]}"


def cleanup_paths(paths: Iterable[Path]) -> List[Path]:
    """
    Delete files idempotently.

    Missing files are not an error. Failures are logged, never raised.

    Returns:
        Paths that could not be deleted
    """
    failed = []
    for path in paths:
        try:
            Path(path).unlink(missing_ok=True)
        except OSError as e:
            failed.append(Path(path))
            logger.warning(
                f"Failed to delete temp artifact {path}: {e}",
                extra={"path": str(path), "error": str(e)}
            )
    return failed


class CompositorPipeline:
    """
    Sequential export pipeline.

    One export runs at a time per instance. Each export owns a uniquely named
    set of intermediates, so separate instances can export concurrently
    into the same directories.
    """

    def __init__(
        self,
        engine: Optional[FFmpegEngine] = None,
        library: Optional[MediaLibrary] = None,
        materializer: Optional[AssetMaterializer] = None,
        output_dir: Optional[Path] = None,
        temp_dir: Optional[Path] = None,
        audio_padding_seconds: Optional[float] = None,
        width: int = OUTPUT_WIDTH,
        height: int = OUTPUT_HEIGHT,
        frame_rate: int = OUTPUT_FPS,
        on_progress: Optional[ProgressCallback] = None
    ):
        self.engine = engine or FFmpegEngine()
        self.library = library or default_library()
        self.materializer = materializer
        self.output_dir = Path(output_dir or settings.output_dir)
        self.temp_dir = Path(temp_dir or settings.temp_dir)
        if audio_padding_seconds is None:
            audio_padding_seconds = settings.audio_padding_seconds
        if not math.isfinite(audio_padding_seconds) or audio_padding_seconds < MIN_AUDIO_PADDING_SECONDS:
            raise InvalidInputError(
                f"audio_padding_seconds must be at least {MIN_AUDIO_PADDING_SECONDS}, got {audio_padding_seconds}"
            )
        self.audio_padding_seconds = audio_padding_seconds
        self.width = width
        self.height = height
        self.frame_rate = frame_rate
        self.on_progress = on_progress
        self.binary = settings.ffmpeg_binary
        self.state = PipelineState.IDLE
        self._lock = asyncio.Lock()

    def cancel(self) -> None:
        """Abort the running export at whatever stage it is in."""
        logger.info("Cancellation requested", extra={"state": self.state.value})
        self.engine.cancel()

    def _enter(self, stage: PipelineStage, message: str) -> None:
        self.state = PipelineState(stage.value)
        logger.info(message, extra={"stage": stage.value})
        if self.on_progress is not None:
            try:
                self.on_progress(stage, message)
            except Exception as e:
                logger.warning(f"Progress callback failed: {e}", extra={"stage": stage.value})

    def _new_job(self, token: str, audio_source: Path) -> EncodeJob:
        return EncodeJob(
            export_id=token,
            edit_script_path=self.temp_dir / EDIT_SCRIPT_NAME.format(token=token),
            audio_source_path=audio_source,
            width=self.width,
            height=self.height,
            frame_rate=self.frame_rate,
            output_path=self.output_dir / OUTPUT_NAME.format(token=token),
            temp_video_path=self.temp_dir / TEMP_VIDEO_NAME.format(token=token),
            temp_audio_path=self.temp_dir / TEMP_AUDIO_NAME.format(token=token),
        )

    async def _run_engine(self, stage: PipelineStage, cmd: List[str], produced: Path) -> None:
        outcome: EngineOutcome = await self.engine.execute(cmd, stage=stage.value)
        if outcome.status == "cancelled":
            raise ExportCancelled(stage.value)
        if outcome.status != "success":
            raise EngineError(stage.value, outcome.diagnostic)
        if not produced.exists() or produced.stat().st_size == 0:
            raise EngineError(stage.value, f"Engine reported success but {produced.name} is missing or empty")

    def _prepare_dirs(self) -> None:
        try:
            self.output_dir.mkdir(parents=True, exist_ok=True)
            self.temp_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise PreparationError(f"Failed to create export directories: {e}") from e

        # Non-blocking: log warning but continue
        try:
            available_gb = shutil.disk_usage(self.temp_dir).free / (1024 ** 3)
            if available_gb < 0.5:
                logger.warning(
                    f"Low disk space: {available_gb:.2f} GB available (recommended: >0.5 GB)",
                    extra={"available_gb": available_gb}
                )
        except OSError as e:
            logger.warning(f"Could not check disk space: {e}")

    async def export(
        self,
        photos: Sequence[PhotoRef],
        elapsed: Union[int, ClockSample],
        policy: Optional[SlideDurationPolicy] = None,
        audio_asset: Optional[str] = None
    ) -> EncodeResult:
        """
        Export the previewed slideshow as a video.

        Args:
            photos: Selected photos in selection order, never mutated
            elapsed: Preview playback time, as milliseconds or a ClockSample
            policy: Duration policy the preview used (defaults from settings)
            audio_asset: Soundtrack asset reference (defaults from settings)

        Returns:
            EncodeResult: success with the persisted path, cancelled, or
            failed with the stage and a human-readable diagnostic
        """
        async with self._lock:
            self.engine.reset()
            try:
                return await self._export(photos, elapsed, policy, audio_asset)
            finally:
                set_export_id(None)

    async def _export(
        self,
        photos: Sequence[PhotoRef],
        elapsed: Union[int, ClockSample],
        policy: Optional[SlideDurationPolicy],
        audio_asset: Optional[str]
    ) -> EncodeResult:
        start_time = time.time()
        export_id = new_export_token()
        set_export_id(export_id)
        elapsed_ms = elapsed.elapsed_ms if isinstance(elapsed, ClockSample) else int(elapsed)
        policy = policy or SlideDurationPolicy(
            seconds_per_photo=settings.seconds_per_photo,
            final_frame_seconds=settings.final_frame_seconds
        )

        timings = {
            "preparing": 0.0,
            "rendering_video": 0.0,
            "synthesizing_audio": 0.0,
            "muxing": 0.0,
            "persisting": 0.0,
            "total": 0.0
        }
        stage = PipelineStage.PREPARING
        job: Optional[EncodeJob] = None
        exact_duration: Optional[float] = None
        photo_count = 0

        try:
            # Preparing: sequence, edit script, directories
            self._enter(stage, f"Preparing export of {len(photos)} photos ({elapsed_ms} ms previewed)")
            step_start = time.time()
            sequence = reconstruct_sequence(photos, policy.seconds_per_photo, elapsed_ms)
            script = build_edit_script(sequence, policy)
            exact_duration = script.exact_duration
            photo_count = len(sequence)

            self._prepare_dirs()
            # Audio path is resolved in its own stage; placeholder keeps the job complete
            job = self._new_job(export_id, Path(audio_asset or settings.background_audio))
            cleanup_paths([*job.temp_paths, job.output_path])
            write_edit_script(script, job.edit_script_path)
            timings["preparing"] = time.time() - step_start

            logger.info(
                f"Reconstructed {photo_count} slides, exact duration {exact_duration:.3f}s",
                extra={"slides": photo_count, "exact_duration": exact_duration, "elapsed_ms": elapsed_ms}
            )

            # Rendering silent video
            stage = PipelineStage.RENDERING_VIDEO
            self._enter(stage, f"Rendering {self.width}x{self.height} video at {self.frame_rate}fps...")
            step_start = time.time()
            await self._run_engine(
                stage,
                render_video_command(job, exact_duration, binary=self.binary),
                job.temp_video_path
            )
            timings["rendering_video"] = time.time() - step_start

            # Synthesizing looped/trimmed audio
            stage = PipelineStage.SYNTHESIZING_AUDIO
            self._enter(stage, "Synthesizing background audio...")
            step_start = time.time()
            audio_source = await resolve_audio_asset(audio_asset, self.materializer)
            job = job.model_copy(update={"audio_source_path": audio_source})
            await self._run_engine(
                stage,
                synthesize_audio_command(job, exact_duration, self.audio_padding_seconds, binary=self.binary),
                job.temp_audio_path
            )
            timings["synthesizing_audio"] = time.time() - step_start

            # Muxing
            stage = PipelineStage.MUXING
            self._enter(stage, "Muxing video and audio...")
            step_start = time.time()
            await self._run_engine(stage, mux_command(job, binary=self.binary), job.output_path)
            timings["muxing"] = time.time() - step_start

            # Persisting
            stage = PipelineStage.PERSISTING
            self._enter(stage, "Saving video to library...")
            step_start = time.time()
            persisted = await self.library.commit(job.output_path)
            timings["persisting"] = time.time() - step_start

        except ExportCancelled:
            self.state = PipelineState.CANCELLED
            self._cleanup_after(job, keep_output=False)
            logger.warning(f"Export cancelled during {stage.value}", extra={"stage": stage.value})
            timings["total"] = time.time() - start_time
            return EncodeResult.cancelled(
                export_id,
                stage=stage,
                exact_duration=exact_duration,
                photo_count=photo_count,
                timings=timings
            )
        except asyncio.CancelledError:
            self.state = PipelineState.CANCELLED
            self._cleanup_after(job, keep_output=False)
            logger.warning(f"Export task cancelled during {stage.value}", extra={"stage": stage.value})
            raise
        except Exception as e:
            self.state = PipelineState.FAILED
            self._cleanup_after(job, keep_output=False)
            logger.error(
                f"Export failed during {stage.value}: {e}",
                exc_info=not isinstance(e, SlideshowError),
                extra={"stage": stage.value, "error_type": type(e).__name__}
            )
            timings["total"] = time.time() - start_time
            return EncodeResult.failed(
                export_id,
                stage=stage,
                error=e,
                exact_duration=exact_duration,
                photo_count=photo_count,
                timings=timings
            )

        self.state = PipelineState.SUCCESS
        self._cleanup_after(job, keep_output=True)
        timings["total"] = time.time() - start_time

        logger.info(
            f"Export complete: {persisted.location} ({exact_duration:.2f}s, {photo_count} slides) "
            f"in {timings['total']:.2f}s",
            extra={
                "final_path": persisted.path,
                "collection": persisted.collection,
                "exact_duration": exact_duration,
                "timings": timings
            }
        )
        return EncodeResult.succeeded(
            job.export_id,
            persisted,
            exact_duration=exact_duration,
            photo_count=photo_count,
            timings=timings
        )

    def _cleanup_after(self, job: Optional[EncodeJob], keep_output: bool) -> None:
        if job is None:
            return
        paths: List[Path] = list(job.temp_paths)
        if not keep_output:
            paths.append(job.output_path)
        cleanup_paths(paths)


async def export_slideshow(
    photos: Sequence[PhotoRef],
    elapsed: Union[int, ClockSample],
    policy: Optional[SlideDurationPolicy] = None,
    audio_asset: Optional[str] = None,
    library: Optional[MediaLibrary] = None,
    on_progress: Optional[ProgressCallback] = None
) -> EncodeResult:
    """
    Export with a fresh pipeline using the configured FFmpeg binary.

    Fails at the preparing stage if FFmpeg is not installed.
    """
    if not check_ffmpeg_available():
        return EncodeResult.failed(
            "unassigned",
            stage=PipelineStage.PREPARING,
            error=PreparationError(
                "FFmpeg not found. Please install FFmpeg:\n"
                "  macOS: brew install ffmpeg\n"
                "  Linux: apt-get install ffmpeg or yum install ffmpeg\n"
                "  Windows: Download from https://ffmpeg.org/"
            )
        )
    pipeline = CompositorPipeline(library=library, on_progress=on_progress)
    return await pipeline.export(photos, elapsed, policy=policy, audio_asset=audio_asset)
