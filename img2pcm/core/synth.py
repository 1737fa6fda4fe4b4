"""Additive synthesis of a pixel matrix into signed 8-bit PCM."""

import numpy as np

from img2pcm.core.sine_table import SineTable
from img2pcm.utils.helpers import InvalidMatrixError

PCM8_PEAK = 127


def validate_matrix(matrix, num_rows: int, num_cols: int) -> np.ndarray:
    """
    Check a pixel matrix against the session dimensions.

    Args:
        matrix: 2-D numpy array or list of rows
        num_rows: Expected number of rows
        num_cols: Expected number of columns

    Returns:
        The matrix as a float64 array of shape (num_rows, num_cols)

    Raises:
        InvalidMatrixError: If matrix is None, empty, ragged or mis-sized
    """
    if matrix is None:
        raise InvalidMatrixError("Pixel matrix is None")

    if not isinstance(matrix, np.ndarray):
        rows = list(matrix)
        if not rows:
            raise InvalidMatrixError("Pixel matrix is empty")
        try:
            lengths = {len(row) for row in rows}
        except TypeError:
            raise InvalidMatrixError("Pixel matrix rows must be sequences")
        if len(lengths) != 1:
            raise InvalidMatrixError(f"Pixel matrix is ragged: row lengths {sorted(lengths)}")
        matrix = np.asarray(rows)

    if matrix.size == 0:
        raise InvalidMatrixError("Pixel matrix is empty")

    if matrix.ndim != 2:
        raise InvalidMatrixError(f"Pixel matrix must be 2-D, got {matrix.ndim} dimensions")

    if matrix.shape != (num_rows, num_cols):
        raise InvalidMatrixError(
            f"Pixel matrix is {matrix.shape[0]}x{matrix.shape[1]}, "
            f"expected {num_rows}x{num_cols}"
        )

    try:
        weights = matrix.astype(np.float64)
    except (TypeError, ValueError) as e:
        raise InvalidMatrixError(f"Pixel matrix is not numeric: {e}")

    if not np.all(np.isfinite(weights)):
        raise InvalidMatrixError("Pixel matrix contains NaN or infinite values")

    return weights


def synthesize(matrix, sine_table: SineTable, level_scale: float = 1.0) -> np.ndarray:
    """
    Convert a pixel matrix to audio using additive synthesis.

    Each row is a sine oscillator at its own frequency, each column a
    frame of samples_per_frame samples. A pixel weights its row's
    sinusoid for the duration of its column:

        value = sum over rows of matrix[row, col] * level_scale * sine[row, i]

    The sum is hard-clipped to [-1, 1], scaled by 127 and rounded.
    Matrix values are not normalized here: with level_scale=1.0 raw
    intensities are the weights and most non-trivial images saturate.

    Args:
        matrix: Pixel matrix (num_rows x num_cols), numpy array or list of rows
        sine_table: Table built for the same num_rows and num_cols
        level_scale: Multiplier applied to every matrix value

    Returns:
        int8 array of num_cols * samples_per_frame samples

    Raises:
        InvalidMatrixError: If the matrix does not match the table dimensions
    """
    weights = validate_matrix(matrix, sine_table.num_rows, sine_table.num_cols)

    if level_scale != 1.0:
        weights = weights * level_scale

    # (rows, cols, samples) view so each column's frame uses its own weights
    sines = sine_table.values.reshape(
        sine_table.num_rows, sine_table.num_cols, sine_table.samples_per_frame
    )
    audio = np.sum(weights[:, :, np.newaxis] * sines, axis=0).reshape(-1)

    # Clip, saturation is silent
    audio = np.clip(audio, -1.0, 1.0)

    return np.rint(audio * PCM8_PEAK).astype(np.int8)
