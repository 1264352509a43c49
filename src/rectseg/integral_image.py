"""Summed-area tables (integral images) and O(1) rectangle sums.

The table has one more row and one more column than the image. Row 0 and
column 0 are zero, and ``table[y, x]`` holds the sum of all pixels with row
``< y`` and column ``< x``. The sum over the half-open rectangle
``[y0, y1) x [x0, x1)`` is then obtained from four lookups::

    table[y1, x1] - table[y0, x1] - table[y1, x0] + table[y0, x0]

Only channel 0 of the image contributes to the table; the other channels are
carried by the input format but are not used for scoring.
"""

import numba
import numpy as np


def build_integral_image(pixels):
    """Build the summed-area table of channel 0 of an image.

    Args:
        pixels: Image array of shape (H, W, C) or (H, W). For a 3D array only
            channel 0 is summed.

    Returns:
        A tuple ``(table, total_sum)`` where ``table`` is a float64 array of
        shape (H + 1, W + 1) and ``total_sum == table[H, W]``.
    """
    pixels = np.asarray(pixels)
    if pixels.ndim == 3:
        channel = pixels[:, :, 0]
    elif pixels.ndim == 2:
        channel = pixels
    else:
        raise ValueError(f'Expected a 2D or 3D image, got shape {pixels.shape}')

    table = _build_table(np.ascontiguousarray(channel, dtype=np.float64))
    return table, table[-1, -1]


@numba.njit(error_model='numpy', cache=True)
def _build_table(channel):
    num_rows, num_cols = channel.shape
    table = np.zeros((num_rows + 1, num_cols + 1), dtype=np.float64)
    for y in range(1, num_rows + 1):
        for x in range(1, num_cols + 1):
            table[y, x] = (
                channel[y - 1, x - 1] + table[y - 1, x] + table[y, x - 1] - table[y - 1, x - 1]
            )
    return table


@numba.njit(error_model='numpy', cache=True)
def rectangle_sum(table, x0, y0, x1, y1):
    """Sum of the pixels in ``[y0, y1) x [x0, x1)`` by inclusion-exclusion."""
    return table[y1, x1] - table[y0, x1] - table[y1, x0] + table[y0, x0]


def region_sums(table, x0, y0, x1, y1):
    """Return ``(inner_sum, outer_sum)`` for the rectangle and its complement."""
    inner_sum = rectangle_sum(table, x0, y0, x1, y1)
    return inner_sum, table[-1, -1] - inner_sum
