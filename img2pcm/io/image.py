"""Image loading and conversion to quantized pixel matrices."""

import cv2
import numpy as np
from PIL import Image
from pathlib import Path

from img2pcm.utils.helpers import IMAGE_EXTENSIONS, UnsupportedFormatError, ProcessingError


def load_image(path: str) -> np.ndarray:
    """
    Load an image from disk as RGB numpy array.

    Args:
        path: Path to image file

    Returns:
        Image as numpy array (H, W, 3) in RGB format

    Raises:
        UnsupportedFormatError: If file extension not supported
        ProcessingError: If image cannot be loaded
    """
    path = Path(path)

    if not path.exists():
        raise FileNotFoundError(f"Image not found: {path}")

    ext = path.suffix.lower()
    if ext not in IMAGE_EXTENSIONS:
        raise UnsupportedFormatError(f"Unsupported image format: {ext}")

    try:
        with Image.open(path) as img:
            # Composite transparency over white
            if img.mode == "RGBA":
                background = Image.new("RGB", img.size, (255, 255, 255))
                background.paste(img, mask=img.split()[3])
                img = background
            elif img.mode != "RGB":
                img = img.convert("RGB")

            return np.array(img, dtype=np.uint8)
    except OSError as e:
        raise ProcessingError(f"Failed to load image: {e}")


def to_grayscale(image: np.ndarray) -> np.ndarray:
    """
    Convert image to grayscale using luminosity method.

    Args:
        image: RGB image array (H, W, 3) or already grayscale (H, W)

    Returns:
        Grayscale image as numpy array (H, W)
    """
    if image.ndim == 2:
        return image

    if image.ndim == 3 and image.shape[2] == 1:
        return image[:, :, 0]

    if image.ndim == 3 and image.shape[2] >= 3:
        # Y = 0.299*R + 0.587*G + 0.114*B
        return (
            0.299 * image[:, :, 0] + 0.587 * image[:, :, 1] + 0.114 * image[:, :, 2]
        ).astype(image.dtype)

    raise ValueError(f"Unexpected image shape: {image.shape}")


def validate_image(image: np.ndarray) -> None:
    """
    Validate image array for processing.

    Raises:
        ProcessingError: If image is invalid
    """
    if image is None:
        raise ProcessingError("Image is None")

    if image.size == 0:
        raise ProcessingError("Image is empty")

    if image.ndim < 2 or image.ndim > 3:
        raise ProcessingError(f"Invalid image dimensions: {image.ndim}")


def compress(gray: np.ndarray, num_rows: int, num_cols: int) -> np.ndarray:
    """
    Resize a grayscale image to num_rows x num_cols with area averaging.

    Args:
        gray: Grayscale image (H, W), uint8
        num_rows: Target height
        num_cols: Target width

    Returns:
        uint8 array of shape (num_rows, num_cols)
    """
    gray = np.ascontiguousarray(gray, dtype=np.uint8)
    # cv2 takes (width, height)
    return cv2.resize(gray, (num_cols, num_rows), interpolation=cv2.INTER_AREA)


def quantize_levels(gray: np.ndarray, levels: int) -> np.ndarray:
    """
    Map 8-bit intensities 0..255 onto levels steps 0..levels-1.

    levels=256 leaves the values unchanged.
    """
    if levels < 2 or levels > 256:
        raise ValueError(f"levels must be between 2 and 256, got {levels}")
    return gray.astype(np.int64) * levels // 256


def image_to_matrix(image: np.ndarray, config) -> np.ndarray:
    """
    Turn an RGB or grayscale image into a session pixel matrix.

    Grayscale, resize to the session's rows and columns, then quantize
    to the session's declared number of levels.

    Args:
        image: Image array (H, W, 3) or (H, W)
        config: SessionConfig providing num_rows, num_cols and levels

    Returns:
        int64 matrix of shape (config.num_rows, config.num_cols)
    """
    validate_image(image)
    gray = to_grayscale(image)
    small = compress(gray, config.num_rows, config.num_cols)
    return quantize_levels(small, config.levels)
