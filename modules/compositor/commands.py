"""
FFmpeg command construction for compositor module.

Commands are assembled as argv lists through a builder that validates each
path and numeric parameter, so nothing is interpolated into a shell string.
"""
import math
from pathlib import Path
from typing import List, Optional, Union

from shared.errors import UnsupportedLocatorError, ValidationError
from shared.models.export import EncodeJob, format_seconds
from .config import (
    FFMPEG_CRF,
    FFMPEG_PRESET,
    OUTPUT_AUDIO_BITRATE,
    OUTPUT_AUDIO_CODEC,
    OUTPUT_PIXEL_FORMAT,
    OUTPUT_VIDEO_CODEC,
)
from .edit_script import strip_scheme


def validate_seconds(value: float, name: str) -> str:
    """Validate a positive finite duration and format it for the command line."""
    if not isinstance(value, (int, float)) or not math.isfinite(value) or value <= 0:
        raise ValidationError(f"{name} must be a positive finite number, got {value!r}")
    return format_seconds(value)


def validate_path(path: Union[str, Path]) -> str:
    """Validate a path argument; scheme prefixes are stripped."""
    text = strip_scheme(path)
    if text.startswith("-"):
        # Would be parsed as an option
        raise UnsupportedLocatorError(f"Path may not start with '-': {text!r}", locator=text)
    return text


class FFmpegCommand:
    """Builder for a single FFmpeg invocation."""

    def __init__(self, binary: str = "ffmpeg"):
        self.binary = binary
        self._global: List[str] = ["-hide_banner", "-nostdin", "-y"]
        self._inputs: List[str] = []
        self._options: List[str] = []
        self._output: Optional[str] = None

    def input(self, path: Union[str, Path], *pre_options: str) -> "FFmpegCommand":
        self._inputs.extend([*pre_options, "-i", validate_path(path)])
        return self

    def option(self, flag: str, value: Optional[str] = None) -> "FFmpegCommand":
        if not flag.startswith("-"):
            raise ValidationError(f"Option flag must start with '-': {flag!r}")
        self._options.append(flag)
        if value is not None:
            if "\n" in value or "\x00" in value:
                raise ValidationError(f"Invalid value for {flag}: {value!r}")
            self._options.append(value)
        return self

    def duration(self, seconds: float) -> "FFmpegCommand":
        return self.option("-t", validate_seconds(seconds, "duration"))

    def output(self, path: Union[str, Path]) -> "FFmpegCommand":
        self._output = validate_path(path)
        return self

    def build(self) -> List[str]:
        if not self._inputs:
            raise ValidationError("FFmpeg command has no inputs")
        if self._output is None:
            raise ValidationError("FFmpeg command has no output")
        return [self.binary, *self._global, *self._inputs, *self._options, self._output]


def scale_filter(width: int, height: int) -> str:
    """Fit inside width x height, pad the rest black, normalize pixel format."""
    if width <= 0 or height <= 0 or width % 2 or height % 2:
        raise ValidationError(f"Output dimensions must be positive and even, got {width}x{height}")
    return (
        f"scale={width}:{height}:force_original_aspect_ratio=decrease,"
        f"pad={width}:{height}:(ow-iw)/2:(oh-ih)/2,"
        f"setsar=1,format={OUTPUT_PIXEL_FORMAT}"
    )


def render_video_command(job: EncodeJob, exact_duration: float, binary: str = "ffmpeg") -> List[str]:
    """Edit script -> silent video at the target resolution and frame rate."""
    return (
        FFmpegCommand(binary)
        .input(job.edit_script_path, "-f", "concat", "-safe", "0")
        .option("-vf", scale_filter(job.width, job.height))
        .option("-r", str(job.frame_rate))
        .option("-c:v", OUTPUT_VIDEO_CODEC)
        .option("-preset", FFMPEG_PRESET)
        .option("-crf", str(FFMPEG_CRF))
        .option("-pix_fmt", OUTPUT_PIXEL_FORMAT)
        .duration(exact_duration)
        .option("-an")
        .output(job.temp_video_path)
        .build()
    )


def synthesize_audio_command(
    job: EncodeJob,
    exact_duration: float,
    padding_seconds: float,
    binary: str = "ffmpeg"
) -> List[str]:
    """Loop the background audio indefinitely, trimmed to exact_duration + padding."""
    return (
        FFmpegCommand(binary)
        .input(job.audio_source_path, "-stream_loop", "-1")
        .option("-vn")
        .option("-c:a", OUTPUT_AUDIO_CODEC)
        .option("-b:a", OUTPUT_AUDIO_BITRATE)
        .duration(exact_duration + padding_seconds)
        .output(job.temp_audio_path)
        .build()
    )


def mux_command(job: EncodeJob, binary: str = "ffmpeg") -> List[str]:
    """Silent video + padded audio, video copied, cut at the shorter (video) stream."""
    return (
        FFmpegCommand(binary)
        .input(job.temp_video_path)
        .input(job.temp_audio_path)
        .option("-map", "0:v:0")
        .option("-map", "1:a:0")
        .option("-c:v", "copy")
        .option("-c:a", OUTPUT_AUDIO_CODEC)
        .option("-b:a", OUTPUT_AUDIO_BITRATE)
        .option("-shortest")
        .option("-movflags", "+faststart")
        .output(job.output_path)
        .build()
    )
