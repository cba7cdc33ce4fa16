"""
Compositor configuration.

Output format and FFmpeg settings for slideshow exports.
"""
import os

# Video output settings (portrait)
OUTPUT_WIDTH = 720
OUTPUT_HEIGHT = 1280
OUTPUT_FPS = 30
OUTPUT_PIXEL_FORMAT = "yuv420p"
OUTPUT_VIDEO_CODEC = "libx264"
OUTPUT_AUDIO_CODEC = "aac"
OUTPUT_AUDIO_BITRATE = "192k"
OUTPUT_CONTAINER = "mp4"

# FFmpeg settings
FFMPEG_PRESET = os.getenv("FFMPEG_PRESET", "medium")  # Balance speed/quality
FFMPEG_CRF = 23

# Audio is synthesized at least this much longer than the video
MIN_AUDIO_PADDING_SECONDS = 1.0

# Number of stderr characters kept as an engine diagnostic
DIAGNOSTIC_TAIL_CHARS = 4000

# Seconds to wait for a killed FFmpeg process to exit
KILL_WAIT_SECONDS = 5.0

# Intermediate and output file names, {token} is unique per export
EDIT_SCRIPT_NAME = "slideshow_{token}.txt"
TEMP_VIDEO_NAME = "slideshow_{token}_video.mp4"
TEMP_AUDIO_NAME = "slideshow_{token}_audio.m4a"
OUTPUT_NAME = "slideshow_{token}.mp4"
