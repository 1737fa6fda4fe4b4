"""Input/output utilities for images and video."""

from img2pcm.io.image import load_image, to_grayscale, compress, quantize_levels, image_to_matrix
from img2pcm.io.video import VideoInfo, extract_frames, get_video_info

__all__ = [
    "load_image",
    "to_grayscale",
    "compress",
    "quantize_levels",
    "image_to_matrix",
    "VideoInfo",
    "extract_frames",
    "get_video_info",
]
