"""Utility functions."""

from img2pcm.utils.helpers import (
    configure_logging,
    get_input_type,
    list_images,
    format_duration,
    IMAGE_EXTENSIONS,
    VIDEO_EXTENSIONS,
    Img2PcmError,
    InvalidConfigurationError,
    InvalidMatrixError,
    DeviceUnavailableError,
    UnsupportedFormatError,
    ProcessingError,
)

__all__ = [
    "configure_logging",
    "get_input_type",
    "list_images",
    "format_duration",
    "IMAGE_EXTENSIONS",
    "VIDEO_EXTENSIONS",
    "Img2PcmError",
    "InvalidConfigurationError",
    "InvalidMatrixError",
    "DeviceUnavailableError",
    "UnsupportedFormatError",
    "ProcessingError",
]
