"""Precomputed sinusoid tables for additive synthesis."""

import logging
from dataclasses import dataclass

import numpy as np

from img2pcm.utils.helpers import InvalidConfigurationError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SineTable:
    """
    Sinusoid values for every (row, absolute sample) pair.

    values[r, i] = sin(2*pi*frequency[r] * i / sample_rate), with
    i = col * samples_per_frame + sample.
    """

    values: np.ndarray
    num_cols: int
    samples_per_frame: int
    sample_rate: int

    @property
    def num_rows(self) -> int:
        return self.values.shape[0]

    @property
    def n_samples(self) -> int:
        return self.num_cols * self.samples_per_frame


def samples_per_frame(sample_rate: int, num_rows: int) -> int:
    """
    Number of audio samples generated for each matrix column.

    Integer division: when sample_rate is not a multiple of num_rows the
    remainder is dropped and one column lasts slightly less than
    1 / num_rows seconds.
    """
    if num_rows < 1:
        raise InvalidConfigurationError(f"num_rows must be positive, got {num_rows}")
    if sample_rate <= 0:
        raise InvalidConfigurationError(f"sample_rate must be positive, got {sample_rate}")
    return sample_rate // num_rows


def build_sine_table(
    frequency_table: np.ndarray,
    num_cols: int,
    samples_per_frame: int,
    sample_rate: int,
) -> SineTable:
    """
    Precompute sin(2*pi*f*t) for every row frequency and output sample.

    Time is taken from the absolute sample index, so phase runs on
    continuously from one column to the next.

    Args:
        frequency_table: Row frequencies in Hz, shape (num_rows,)
        num_cols: Number of matrix columns
        samples_per_frame: Samples generated per column
        sample_rate: Audio sample rate in Hz

    Returns:
        SineTable whose values array has shape (num_rows, num_cols * samples_per_frame)
        and is read-only
    """
    if num_cols < 1:
        raise InvalidConfigurationError(f"num_cols must be positive, got {num_cols}")
    if samples_per_frame < 1:
        raise InvalidConfigurationError(f"samples_per_frame must be positive, got {samples_per_frame}")
    if sample_rate <= 0:
        raise InvalidConfigurationError(f"sample_rate must be positive, got {sample_rate}")

    frequencies = np.asarray(frequency_table, dtype=np.float64)
    if frequencies.ndim != 1 or len(frequencies) == 0:
        raise InvalidConfigurationError("frequency_table must be a non-empty 1-D sequence")

    n_samples = num_cols * samples_per_frame

    logger.debug(
        "Building sine table: %d rows x %d samples (%d cols x %d samples/frame)",
        len(frequencies), n_samples, num_cols, samples_per_frame,
    )

    t = np.arange(n_samples, dtype=np.float64) / sample_rate
    values = np.sin(2.0 * np.pi * frequencies[:, np.newaxis] * t[np.newaxis, :])
    values.flags.writeable = False

    return SineTable(
        values=values,
        num_cols=num_cols,
        samples_per_frame=samples_per_frame,
        sample_rate=sample_rate,
    )
