"""Common utilities, exceptions and constants."""

import logging
import sys
from pathlib import Path


# Supported file extensions
IMAGE_EXTENSIONS = {".png", ".jpg", ".jpeg", ".tiff", ".tif", ".bmp", ".webp"}
VIDEO_EXTENSIONS = {".mp4", ".mov", ".avi", ".mkv", ".webm", ".gif"}

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


class Img2PcmError(Exception):
    """Base exception for img2pcm."""

    pass


class InvalidConfigurationError(Img2PcmError):
    """Raised when session parameters cannot produce valid tables."""

    pass


class InvalidMatrixError(Img2PcmError):
    """Raised when a pixel matrix is missing, empty, ragged or mis-sized."""

    pass


class DeviceUnavailableError(Img2PcmError):
    """Raised when the audio output device cannot be opened or written."""

    pass


class UnsupportedFormatError(Img2PcmError):
    """Raised when input format is not supported."""

    pass


class ProcessingError(Img2PcmError):
    """Raised when processing fails."""

    pass


def configure_logging(verbose: bool = False) -> None:
    """
    Install a single stderr handler on the root logger.

    Args:
        verbose: Log at DEBUG instead of INFO
    """
    root = logging.getLogger()
    for handler in list(root.handlers):
        root.removeHandler(handler)

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    root.addHandler(handler)
    root.setLevel(logging.DEBUG if verbose else logging.INFO)


def get_input_type(path: str) -> str:
    """
    Determine input type from file extension.

    Args:
        path: Path to input file or directory

    Returns:
        'directory', 'image' or 'video'

    Raises:
        UnsupportedFormatError: If extension not recognized
    """
    path = Path(path)
    if path.is_dir():
        return "directory"

    ext = path.suffix.lower()

    if ext in IMAGE_EXTENSIONS:
        return "image"
    elif ext in VIDEO_EXTENSIONS:
        return "video"
    else:
        raise UnsupportedFormatError(
            f"Unsupported file type: {ext}. "
            f"Supported images: {', '.join(sorted(IMAGE_EXTENSIONS))}. "
            f"Supported videos: {', '.join(sorted(VIDEO_EXTENSIONS))}."
        )


def list_images(directory: str) -> list:
    """Return the image files of a directory, sorted by name."""
    return sorted(
        p for p in Path(directory).iterdir()
        if p.is_file() and p.suffix.lower() in IMAGE_EXTENSIONS
    )


def format_duration(seconds: float) -> str:
    """
    Format duration in seconds to human-readable string.

    Args:
        seconds: Duration in seconds

    Returns:
        Formatted string (e.g., "1:23.45" or "0:05.12")
    """
    minutes = int(seconds // 60)
    secs = seconds % 60
    return f"{minutes}:{secs:05.2f}"
