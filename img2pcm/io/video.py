"""Video frame extraction utilities."""

import cv2
import numpy as np
from pathlib import Path
from typing import Generator, NamedTuple

from img2pcm.utils.helpers import VIDEO_EXTENSIONS, UnsupportedFormatError, ProcessingError


def _open_capture(video_path: str) -> "cv2.VideoCapture":
    path = Path(video_path)

    if not path.exists():
        raise FileNotFoundError(f"Video not found: {path}")

    ext = path.suffix.lower()
    if ext not in VIDEO_EXTENSIONS:
        raise UnsupportedFormatError(f"Unsupported video format: {ext}")

    cap = cv2.VideoCapture(str(video_path))

    if not cap.isOpened():
        raise ProcessingError(f"Failed to open video: {video_path}")

    return cap


def extract_frames(video_path: str, interval_ms: float = 1000.0) -> Generator[np.ndarray, None, None]:
    """
    Yield one frame per interval from a video as RGB numpy arrays.

    Seeks to 0, interval_ms, 2 * interval_ms, ... until a read fails.

    Args:
        video_path: Path to video file
        interval_ms: Time between extracted frames in milliseconds

    Yields:
        Frames as numpy arrays (H, W, 3) in RGB format

    Raises:
        UnsupportedFormatError: If file extension not supported
        ProcessingError: If video cannot be opened
    """
    if interval_ms <= 0:
        raise ValueError(f"interval_ms must be positive, got {interval_ms}")

    cap = _open_capture(video_path)

    try:
        position_ms = 0.0
        while True:
            cap.set(cv2.CAP_PROP_POS_MSEC, position_ms)
            ret, frame = cap.read()
            if not ret or frame is None or frame.size == 0:
                break
            # Convert BGR to RGB
            yield cv2.cvtColor(frame, cv2.COLOR_BGR2RGB)
            position_ms += interval_ms
    finally:
        cap.release()


class VideoInfo(NamedTuple):
    fps: float
    frame_count: int
    width: int
    height: int

    @property
    def duration(self) -> float:
        """Length in seconds, 0 when the container reports no frame rate."""
        return self.frame_count / self.fps if self.fps > 0 else 0.0


def get_video_info(video_path: str) -> VideoInfo:
    """Read frame rate, frame count and frame size from a video container."""
    cap = _open_capture(video_path)
    try:
        return VideoInfo(
            fps=cap.get(cv2.CAP_PROP_FPS),
            frame_count=int(cap.get(cv2.CAP_PROP_FRAME_COUNT)),
            width=int(cap.get(cv2.CAP_PROP_FRAME_WIDTH)),
            height=int(cap.get(cv2.CAP_PROP_FRAME_HEIGHT)),
        )
    finally:
        cap.release()
