"""Command-line interface for img2pcm."""

import logging
import math
import threading
import click
from pathlib import Path

from img2pcm import __version__
from img2pcm.core.session import (
    SessionConfig,
    SonificationSession,
    DEFAULT_NUM_ROWS,
    DEFAULT_NUM_COLS,
    DEFAULT_MIN_FREQUENCY,
    DEFAULT_MAX_FREQUENCY,
    DEFAULT_SAMPLE_RATE,
    DEFAULT_LEVELS,
)
from img2pcm.core.playback import PcmFormat, PlaybackOutcome, Player, SoundDeviceSink
from img2pcm.core.audio import write_wav, read_wav_pcm8
from img2pcm.io.image import load_image, image_to_matrix
from img2pcm.io.video import extract_frames, get_video_info
from img2pcm.utils.helpers import (
    configure_logging,
    get_input_type,
    list_images,
    format_duration,
    Img2PcmError,
    UnsupportedFormatError,
)

logger = logging.getLogger(__name__)


def session_options(func):
    """Attach the session parameters shared by every command."""
    options = [
        click.option("--rows", default=DEFAULT_NUM_ROWS, type=int, show_default=True,
                     help="Matrix rows (one oscillator per row)"),
        click.option("--cols", default=DEFAULT_NUM_COLS, type=int, show_default=True,
                     help="Matrix columns (one frame per column)"),
        click.option("--freq-min", default=DEFAULT_MIN_FREQUENCY, type=float, show_default=True,
                     help="Frequency of the bottom row in Hz"),
        click.option("--freq-max", default=DEFAULT_MAX_FREQUENCY, type=float, show_default=True,
                     help="Frequency of the top row in Hz"),
        click.option("--sample-rate", default=DEFAULT_SAMPLE_RATE, type=int, show_default=True,
                     help="Sample rate in Hz"),
        click.option("--levels", default=DEFAULT_LEVELS, type=click.IntRange(2, 256), show_default=True,
                     help="Gray levels after quantization (256 = raw 8-bit)"),
        click.option("--level-scale", default=1.0, type=float, show_default=True,
                     help="Multiplier applied to each level before synthesis"),
    ]
    for option in reversed(options):
        func = option(func)
    return func


def build_config(rows, cols, freq_min, freq_max, sample_rate, levels, level_scale) -> SessionConfig:
    return SessionConfig(
        num_rows=rows,
        num_cols=cols,
        min_frequency=freq_min,
        max_frequency=freq_max,
        sample_rate=sample_rate,
        levels=levels,
        level_scale=level_scale,
    )


def run_cancellable(target, cancel: threading.Event):
    """
    Run a blocking playback call on a worker thread.

    Ctrl+C sets the cancel event; the worker stops between chunks and
    still drains and closes the line before we return.
    """
    result = {}

    def _worker():
        try:
            result["value"] = target()
        except Exception as e:
            result["error"] = e

    worker = threading.Thread(target=_worker, name="img2pcm-playback", daemon=True)
    worker.start()
    try:
        while worker.is_alive():
            worker.join(0.1)
    except KeyboardInterrupt:
        cancel.set()
        worker.join()

    if "error" in result:
        raise result["error"]
    return result.get("value", PlaybackOutcome.CANCELLED)


def load_chime(chime):
    if chime is None:
        return None
    rate, samples = read_wav_pcm8(chime)
    return PcmFormat(sample_rate=rate), samples


def play_chime(player: Player, chime, cancel: threading.Event):
    if chime is None or cancel.is_set():
        return
    fmt, samples = chime
    run_cancellable(lambda: player.play(samples, fmt, cancel=cancel), cancel)


@click.group()
@click.version_option(version=__version__)
def cli():
    """img2pcm - Play images as sound.

    Each image is reduced to a small grayscale matrix. Every row becomes
    a sine oscillator (top = high, bottom = low), every column a slice of
    time, and each pixel's level sets how loud its row sounds during its
    column.

    \b
    play    - Sonify images (or a folder of images) on the sound card
    video   - Sonify one frame per interval of a video
    export  - Write the sound of an image to an 8-bit WAV file
    info    - Show the matrix and timing an image would produce

    Every option can also be set through IMG2PCM_<COMMAND>_<OPTION>
    environment variables.
    """
    pass


@cli.command()
@click.argument("inputs", nargs=-1, required=True, type=click.Path(exists=True))
@session_options
@click.option("--repeat", default=3, type=click.IntRange(min=1), show_default=True,
              help="Times each image is played")
@click.option("--chime", default=None, type=click.Path(exists=True, dir_okay=False),
              help="WAV file played after each sound")
@click.option("--device", default=None, help="Output device name or index (default: system default)")
@click.option("-v", "--verbose", is_flag=True, help="Print processing info")
def play(inputs, rows, cols, freq_min, freq_max, sample_rate, levels, level_scale, repeat, chime, device, verbose):
    """Play images as sound.

    INPUTS may be image files or directories; directories are played in
    file name order.

    \b
    Examples:
      img2pcm play lines.png
      img2pcm play images/ --repeat 1
      img2pcm play photo.jpg --levels 256 --level-scale 0.0001
      img2pcm play photo.jpg --freq-min 55 --freq-max 880 --chime bip.wav
    """
    configure_logging(verbose)
    try:
        paths = []
        for item in inputs:
            input_type = get_input_type(item)
            if input_type == "directory":
                paths.extend(list_images(item))
            elif input_type == "image":
                paths.append(Path(item))
            else:
                raise UnsupportedFormatError(f"{item} is a video, use the 'video' command")

        if not paths:
            raise click.ClickException("No images found")

        config = build_config(rows, cols, freq_min, freq_max, sample_rate, levels, level_scale)
        player = Player(SoundDeviceSink(device=_parse_device(device)))
        session = SonificationSession(config, player)
        chime_sound = load_chime(chime)
        cancel = threading.Event()

        for path in paths:
            matrix = image_to_matrix(load_image(str(path)), config)
            session.synthesize(matrix)
            logger.debug("Matrix for %s: min=%d max=%d", path, matrix.min(), matrix.max())

            for i in range(repeat):
                click.echo(f"Playing {path.name} ({i + 1}/{repeat}, {format_duration(config.duration)})")
                outcome = run_cancellable(lambda: session.play(cancel=cancel), cancel)
                if outcome is PlaybackOutcome.CANCELLED:
                    click.echo("Playback cancelled")
                    return
                play_chime(player, chime_sound, cancel)

    except Img2PcmError as e:
        raise click.ClickException(str(e))
    except click.ClickException:
        raise
    except Exception as e:
        raise click.ClickException(f"Processing failed: {e}")


@cli.command()
@click.argument("input", type=click.Path(exists=True, dir_okay=False))
@session_options
@click.option("--interval-ms", default=1000.0, type=float, show_default=True,
              help="Time between sampled frames in milliseconds")
@click.option("--chime", default=None, type=click.Path(exists=True, dir_okay=False),
              help="WAV file played after each sound")
@click.option("--device", default=None, help="Output device name or index (default: system default)")
@click.option("-v", "--verbose", is_flag=True, help="Print processing info")
def video(input, rows, cols, freq_min, freq_max, sample_rate, levels, level_scale, interval_ms, chime, device, verbose):
    """Play one frame per interval of a video as sound.

    \b
    Examples:
      img2pcm video clip.mp4
      img2pcm video clip.mp4 --interval-ms 500 --rows 32 --cols 32
    """
    configure_logging(verbose)
    try:
        if get_input_type(input) != "video":
            raise UnsupportedFormatError(f"{input} is not a video")

        info = get_video_info(input)
        if verbose:
            click.echo(f"Video: {info.width}x{info.height} @ {info.fps:.2f} fps")
            click.echo(f"Duration: {format_duration(info.duration)}")

        config = build_config(rows, cols, freq_min, freq_max, sample_rate, levels, level_scale)
        player = Player(SoundDeviceSink(device=_parse_device(device)))
        session = SonificationSession(config, player)
        chime_sound = load_chime(chime)
        cancel = threading.Event()

        total = max(1, math.ceil(info.duration * 1000.0 / interval_ms))

        played = 0
        with click.progressbar(length=total, label="Playing frames") as bar:
            for frame in extract_frames(input, interval_ms=interval_ms):
                session.synthesize(image_to_matrix(frame, config))
                outcome = run_cancellable(lambda: session.play(cancel=cancel), cancel)
                if outcome is PlaybackOutcome.CANCELLED:
                    break
                played += 1
                bar.update(1)
                play_chime(player, chime_sound, cancel)

        if cancel.is_set():
            click.echo("Playback cancelled")
            return
        click.echo(f"Played {played} frame(s)")

    except Img2PcmError as e:
        raise click.ClickException(str(e))
    except click.ClickException:
        raise
    except Exception as e:
        raise click.ClickException(f"Processing failed: {e}")


@cli.command()
@click.argument("input", type=click.Path(exists=True, dir_okay=False))
@click.option("-o", "--output", default=None, help="Output WAV file path (default: <input>.wav)")
@session_options
@click.option("-v", "--verbose", is_flag=True, help="Print processing info")
def export(input, output, rows, cols, freq_min, freq_max, sample_rate, levels, level_scale, verbose):
    """Write the sound of an image to an 8-bit mono WAV file.

    \b
    Examples:
      img2pcm export lines.png
      img2pcm export photo.jpg -o photo.wav --levels 256 --level-scale 0.0001
    """
    configure_logging(verbose)
    try:
        if get_input_type(input) != "image":
            raise UnsupportedFormatError(f"{input} is not an image")

        if output is None:
            output = str(Path(input).with_suffix(".wav"))

        config = build_config(rows, cols, freq_min, freq_max, sample_rate, levels, level_scale)
        session = SonificationSession(config)
        buffer = session.synthesize(image_to_matrix(load_image(input), config))

        output_path = Path(output)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        write_wav(str(output_path), buffer, config.sample_rate)

        click.echo(f"Written {output_path} ({format_duration(config.duration)})")

    except Img2PcmError as e:
        raise click.ClickException(str(e))
    except Exception as e:
        raise click.ClickException(f"Processing failed: {e}")


@cli.command()
@click.argument("input", type=click.Path(exists=True, dir_okay=False))
@session_options
def info(input, rows, cols, freq_min, freq_max, sample_rate, levels, level_scale):
    """Show the matrix and timing an image would produce."""
    try:
        if get_input_type(input) != "image":
            raise UnsupportedFormatError(f"{input} is not an image")

        config = build_config(rows, cols, freq_min, freq_max, sample_rate, levels, level_scale)
        config.validate()
        image = load_image(input)
        matrix = image_to_matrix(image, config)

        h, w = image.shape[:2]
        click.echo(f"Image size: {w}x{h}")
        click.echo(f"Matrix: {config.num_rows}x{config.num_cols}, levels 0-{config.levels - 1}")
        click.echo(f"Matrix values: {matrix.min()}-{matrix.max()}")
        click.echo(f"Frequency range: {config.min_frequency:g}-{config.max_frequency:g} Hz")
        click.echo(f"Samples per frame: {config.samples_per_frame}")
        click.echo(f"Samples: {config.n_samples}")
        click.echo(f"Duration: {format_duration(config.duration)}")

    except Img2PcmError as e:
        raise click.ClickException(str(e))
    except Exception as e:
        raise click.ClickException(f"Processing failed: {e}")


def _parse_device(device):
    if device is not None and device.isdigit():
        return int(device)
    return device


def main():
    cli(auto_envvar_prefix="IMG2PCM")


if __name__ == "__main__":
    main()
