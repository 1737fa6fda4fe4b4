"""Row-to-frequency mapping."""

import numpy as np

from img2pcm.utils.helpers import InvalidConfigurationError


def compute_frequency_table(num_rows: int, min_frequency: float, max_frequency: float) -> np.ndarray:
    """
    Assign one frequency per matrix row by linear interpolation.

    Row 0 gets max_frequency, the last row gets min_frequency, so the top
    of an image sounds high and the bottom low.

    Args:
        num_rows: Number of matrix rows (at least 2)
        min_frequency: Frequency of the last row in Hz
        max_frequency: Frequency of the first row in Hz

    Returns:
        Read-only float64 array of shape (num_rows,)

    Raises:
        InvalidConfigurationError: If num_rows < 2 or the bounds are inverted/negative
    """
    if num_rows < 2:
        raise InvalidConfigurationError(f"num_rows must be at least 2, got {num_rows}")
    if min_frequency < 0:
        raise InvalidConfigurationError(f"min_frequency must be >= 0, got {min_frequency}")
    if max_frequency < min_frequency:
        raise InvalidConfigurationError(
            f"max_frequency ({max_frequency}) is below min_frequency ({min_frequency})"
        )

    rows = np.arange(num_rows, dtype=np.float64)
    span = float(max_frequency) - float(min_frequency)
    frequencies = float(max_frequency) - rows * span / (num_rows - 1)
    # Pin the endpoints; rows * span / (num_rows - 1) can drift by an ulp
    frequencies[0] = max_frequency
    frequencies[-1] = min_frequency

    frequencies.flags.writeable = False
    return frequencies
