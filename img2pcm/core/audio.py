"""Audio utilities for 8-bit PCM WAV export and loading."""

import numpy as np
from scipy.io import wavfile

from img2pcm.utils.helpers import ProcessingError


def write_wav(path: str, audio: np.ndarray, sample_rate: int) -> None:
    """
    Write signed 8-bit samples to an 8-bit WAV file.

    WAV stores 8-bit audio unsigned, so samples are offset by 128.

    Args:
        path: Output file path
        audio: int8 samples as produced by synthesize()
        sample_rate: Sample rate in Hz
    """
    audio = np.asarray(audio)
    if audio.dtype != np.int8:
        raise ValueError(f"Expected int8 samples, got {audio.dtype}")

    audio_uint = (audio.astype(np.int16) + 128).astype(np.uint8)
    wavfile.write(path, sample_rate, audio_uint)


def read_wav_pcm8(path: str):
    """
    Load a WAV file as mono signed 8-bit samples.

    Any PCM or float WAV is accepted: channels are averaged, integer
    formats are shifted down to 8 bits and float samples are scaled by 127.

    Args:
        path: Path to WAV file

    Returns:
        Tuple (sample_rate, int8 samples)

    Raises:
        ProcessingError: If the file cannot be read
    """
    try:
        sample_rate, data = wavfile.read(path)
    except (OSError, ValueError) as e:
        raise ProcessingError(f"Failed to read WAV file {path}: {e}")

    if data.dtype == np.uint8:
        audio = data.astype(np.float64) - 128.0
    elif data.dtype == np.int16:
        audio = data.astype(np.float64) / 256.0
    elif data.dtype == np.int32:
        audio = data.astype(np.float64) / 16777216.0
    elif np.issubdtype(data.dtype, np.floating):
        audio = np.clip(data.astype(np.float64), -1.0, 1.0) * 127.0
    else:
        raise ProcessingError(f"Unsupported WAV sample type: {data.dtype}")

    # Mix down to mono
    if audio.ndim > 1:
        audio = audio.mean(axis=1)

    audio = np.clip(np.rint(audio), -128, 127).astype(np.int8)
    return sample_rate, audio
