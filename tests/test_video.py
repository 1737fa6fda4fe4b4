import cv2
import numpy as np
import pytest

from img2pcm.io.video import extract_frames, get_video_info
from img2pcm.utils.helpers import UnsupportedFormatError


@pytest.fixture
def video_path(tmp_path):
    path = tmp_path / "clip.avi"
    writer = cv2.VideoWriter(str(path), cv2.VideoWriter_fourcc(*"MJPG"), 10.0, (32, 24))
    if not writer.isOpened():
        pytest.skip("OpenCV build cannot write MJPG video")
    try:
        for i in range(25):
            frame = np.full((24, 32, 3), i * 10, dtype=np.uint8)
            writer.write(frame)
    finally:
        writer.release()
    return path


def test_video_info(video_path):
    info = get_video_info(str(video_path))
    assert info.width == 32
    assert info.height == 24
    assert info.fps == pytest.approx(10.0)
    assert info.frame_count == 25
    assert info.duration == pytest.approx(2.5)


def test_extract_one_frame_per_second(video_path):
    frames = list(extract_frames(str(video_path), interval_ms=1000))
    assert 2 <= len(frames) <= 3
    assert all(f.shape == (24, 32, 3) for f in frames)
    # Later frames are brighter
    assert frames[1].mean() > frames[0].mean()


def test_extract_rejects_bad_interval(video_path):
    with pytest.raises(ValueError):
        next(extract_frames(str(video_path), interval_ms=0))


def test_extract_unsupported_extension(tmp_path):
    path = tmp_path / "clip.txt"
    path.write_text("x")
    with pytest.raises(UnsupportedFormatError):
        next(extract_frames(str(path)))


def test_missing_video(tmp_path):
    with pytest.raises(FileNotFoundError):
        get_video_info(str(tmp_path / "none.avi"))
