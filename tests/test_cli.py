import threading

import numpy as np
import pytest
from click.testing import CliRunner
from PIL import Image
from scipy.io import wavfile

from img2pcm import cli as cli_module
from img2pcm.cli import cli, run_cancellable
from img2pcm.core.playback import PcmFormat, PlaybackOutcome, play_buffer
from img2pcm.core.audio import write_wav


SMALL = ["--rows", "8", "--cols", "4", "--sample-rate", "800"]


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def image_path(tmp_path, gradient_image):
    path = tmp_path / "gradient.png"
    Image.fromarray(gradient_image).save(path)
    return path


@pytest.fixture
def sinks(monkeypatch, make_sink):
    created = []

    def factory(device=None):
        sink = make_sink()
        sink.device = device
        created.append(sink)
        return sink

    monkeypatch.setattr(cli_module, "SoundDeviceSink", factory)
    return created


def test_version(runner):
    result = runner.invoke(cli, ["--version"])
    assert result.exit_code == 0
    assert "0.1.0" in result.output


def test_export_writes_8bit_wav(runner, image_path, tmp_path):
    out = tmp_path / "out" / "gradient.wav"
    result = runner.invoke(cli, ["export", str(image_path), "-o", str(out), *SMALL,
                                 "--level-scale", "0.01"])

    assert result.exit_code == 0, result.output
    assert "Written" in result.output
    rate, data = wavfile.read(out)
    assert rate == 800
    assert data.dtype == np.uint8
    assert len(data) == 4 * 100


def test_export_default_output_path(runner, image_path):
    result = runner.invoke(cli, ["export", str(image_path), *SMALL])
    assert result.exit_code == 0, result.output
    assert image_path.with_suffix(".wav").exists()


def test_export_rejects_bad_configuration(runner, image_path, tmp_path):
    result = runner.invoke(cli, ["export", str(image_path), "-o", str(tmp_path / "x.wav"),
                                 "--rows", "1"])
    assert result.exit_code == 1
    assert "num_rows" in result.output


def test_export_reads_options_from_environment(runner, image_path, tmp_path):
    out = tmp_path / "env.wav"
    result = runner.invoke(
        cli,
        ["export", str(image_path), "-o", str(out), "--cols", "4", "--sample-rate", "800"],
        env={"IMG2PCM_EXPORT_ROWS": "4"},
        auto_envvar_prefix="IMG2PCM",
    )
    assert result.exit_code == 0, result.output
    _, data = wavfile.read(out)
    # 4 rows at 800 Hz gives 200 samples per column
    assert len(data) == 4 * 200


def test_info(runner, image_path):
    result = runner.invoke(cli, ["info", str(image_path), *SMALL])
    assert result.exit_code == 0, result.output
    assert "Image size: 40x30" in result.output
    assert "Samples per frame: 100" in result.output
    assert "Duration: 0:00.50" in result.output


def test_info_rejects_unsupported_file(runner, tmp_path):
    path = tmp_path / "notes.txt"
    path.write_text("x")
    result = runner.invoke(cli, ["info", str(path)])
    assert result.exit_code == 1
    assert "Unsupported file type" in result.output


def test_play_repeats_each_image(runner, image_path, sinks):
    result = runner.invoke(cli, ["play", str(image_path), *SMALL, "--repeat", "2"])

    assert result.exit_code == 0, result.output
    assert result.output.count("Playing gradient.png") == 2
    sink = sinks[0]
    assert sink.calls.count("open") == 2
    assert sink.calls.count("close") == 2
    assert len(sink.data) == 2 * 400
    assert sink.formats[0].sample_rate == 800


def test_play_directory_with_chime(runner, tmp_path, gradient_image, sinks):
    folder = tmp_path / "images"
    folder.mkdir()
    Image.fromarray(gradient_image).save(folder / "a.png")
    Image.fromarray(gradient_image[:, ::-1]).save(folder / "b.png")
    (folder / "readme.txt").write_text("skip me")

    chime = tmp_path / "bip.wav"
    write_wav(str(chime), np.array([10, -10, 10], dtype=np.int8), 8000)

    result = runner.invoke(cli, ["play", str(folder), *SMALL, "--repeat", "1",
                                 "--chime", str(chime), "--device", "3"])

    assert result.exit_code == 0, result.output
    assert "Playing a.png" in result.output
    assert "Playing b.png" in result.output
    sink = sinks[0]
    assert sink.device == 3
    # Two images, each followed by the chime
    assert [f.sample_rate for f in sink.formats] == [800, 8000, 800, 8000]


def test_play_rejects_video_input(runner, tmp_path, sinks):
    path = tmp_path / "clip.mp4"
    path.write_bytes(b"")
    result = runner.invoke(cli, ["play", str(path)])
    assert result.exit_code == 1
    assert "video" in result.output


def test_play_empty_directory(runner, tmp_path, sinks):
    result = runner.invoke(cli, ["play", str(tmp_path)])
    assert result.exit_code == 1
    assert "No images found" in result.output


def test_play_device_unavailable(runner, image_path, monkeypatch, make_sink):
    monkeypatch.setattr(cli_module, "SoundDeviceSink", lambda device=None: make_sink(fail_open=True))
    result = runner.invoke(cli, ["play", str(image_path), *SMALL])
    assert result.exit_code == 1
    assert "no device" in result.output


def test_video_plays_one_frame_per_interval(runner, tmp_path, sinks):
    cv2 = pytest.importorskip("cv2")
    path = tmp_path / "clip.avi"
    writer = cv2.VideoWriter(str(path), cv2.VideoWriter_fourcc(*"MJPG"), 10.0, (32, 24))
    if not writer.isOpened():
        pytest.skip("OpenCV build cannot write MJPG video")
    for i in range(20):
        writer.write(np.full((24, 32, 3), 100 + i, dtype=np.uint8))
    writer.release()

    result = runner.invoke(cli, ["video", str(path), *SMALL, "--interval-ms", "500",
                                 "--level-scale", "0.001"])

    assert result.exit_code == 0, result.output
    assert "frame(s)" in result.output
    sink = sinks[0]
    assert sink.calls.count("open") >= 3
    assert sink.calls.count("open") == sink.calls.count("close")


def test_ctrl_c_cancels_playback_between_chunks(monkeypatch, make_sink):
    cancel = threading.Event()
    # First chunk blocks until Ctrl+C sets the cancel event
    sink = make_sink(on_write=lambda s: cancel.wait(5))
    fmt = PcmFormat(sample_rate=8000)

    real_join = threading.Thread.join
    interrupts = []

    def join_interrupted_once(self, timeout=None):
        if not interrupts:
            interrupts.append(timeout)
            raise KeyboardInterrupt
        return real_join(self, timeout)

    monkeypatch.setattr(threading.Thread, "join", join_interrupted_once)

    outcome = run_cancellable(
        lambda: play_buffer(np.zeros(4096, dtype=np.int8), fmt, sink, cancel=cancel),
        cancel,
    )

    assert interrupts
    assert cancel.is_set()
    assert outcome is PlaybackOutcome.CANCELLED
    assert sink.writes == 1
    assert sink.calls[-2:] == ["drain", "close"]


def test_run_cancellable_reraises_worker_error():
    def broken():
        raise ValueError("boom")

    with pytest.raises(ValueError, match="boom"):
        run_cancellable(broken, threading.Event())
