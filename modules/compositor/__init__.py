"""
Compositor module.

Turns a previewed photo slideshow into a video: reconstructs the slide
sequence from preview time, renders it with FFmpeg, adds looped background
audio and commits the result to the media library.
"""

from modules.compositor.process import CompositorPipeline, export_slideshow

__all__ = ["CompositorPipeline", "export_slideshow"]
