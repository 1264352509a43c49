"""
Best Rectangle per Size
=======================

Given the summed-area table of an image, find for every rectangle size
(width, height) the top-left position at which the rectangle best separates
the image into an inner and an outer region.

The score
---------

Approximating the image by one constant inside the rectangle and another
constant outside, the optimal constants are the region means and the squared
error is

    sum(p²) - inner_sum² / inner_area - outer_sum² / outer_area

The first term does not depend on the rectangle, so minimising the error is the
same as maximising

    score = inner_sum² / inner_area + outer_sum² / outer_area

which needs only the two region sums. With the summed-area table, inner_sum is
four lookups and outer_sum = total_sum - inner_sum, so each position costs O(1).

The search
----------

A W×H image has W·H rectangle sizes and, for size (w, h), (W-w+1)·(H-h+1)
positions, for O((W·H)²) work overall. The sizes are independent of each
other, so they are distributed over a parallel loop; each iteration scans its
positions row by row (y0 outer, x0 inner) and writes only to its own slot of
the output arrays, so no synchronisation is needed.

Within a size, a position replaces the current best only if its score is
strictly greater, so ties go to the first position in scan order.

The full-image size leaves an empty outer region (0 / 0). It gets the score
-inf and position (0, 0), so it never wins against a size with a finite score.
"""

import collections

import numba
import numpy as np

from .integral_image import rectangle_sum

SizeResult = collections.namedtuple('SizeResult', ['x0', 'y0', 'width', 'height', 'score'])


class SizeGrid:
    """Best position and score for every rectangle size of a W×H image.

    The arrays ``x0``, ``y0`` and ``score`` have shape (W, H) and are indexed by
    ``[width - 1, height - 1]``. Indexing the grid itself with ``(width, height)``
    returns a :class:`SizeResult`.
    """

    def __init__(self, x0, y0, score):
        if not (x0.shape == y0.shape == score.shape) or x0.ndim != 2:
            raise ValueError('x0, y0 and score must be 2D arrays of the same shape')
        self.x0 = x0
        self.y0 = y0
        self.score = score

    @classmethod
    def empty(cls, image_width, image_height):
        shape = (image_width, image_height)
        return cls(
            np.zeros(shape, dtype=np.int32),
            np.zeros(shape, dtype=np.int32),
            np.full(shape, -np.inf, dtype=np.float64),
        )

    @property
    def image_width(self):
        return self.score.shape[0]

    @property
    def image_height(self):
        return self.score.shape[1]

    def __len__(self):
        return self.score.size

    def __getitem__(self, size):
        width, height = size
        if not (1 <= width <= self.image_width and 1 <= height <= self.image_height):
            raise IndexError(
                f'Size {width}x{height} outside of '
                f'{self.image_width}x{self.image_height} image')
        i, j = width - 1, height - 1
        return SizeResult(
            int(self.x0[i, j]), int(self.y0[i, j]), width, height, float(self.score[i, j]))

    def __iter__(self):
        """Yield all sizes in reduction order: height outer, width inner."""
        for height in range(1, self.image_height + 1):
            for width in range(1, self.image_width + 1):
                yield self[width, height]


def search_sizes(table, total_sum):
    """Run the per-size search on the host and return a :class:`SizeGrid`.

    Args:
        table: Summed-area table of shape (H + 1, W + 1), float64.
        total_sum: Sum of the whole image, i.e. ``table[H, W]``.
    """
    table = np.ascontiguousarray(table, dtype=np.float64)
    grid = SizeGrid.empty(table.shape[1] - 1, table.shape[0] - 1)
    _search_sizes(table, np.float64(total_sum), grid.x0, grid.y0, grid.score)
    return grid


@numba.njit(parallel=True, error_model='numpy', cache=True)
def _search_sizes(table, total_sum, best_x0, best_y0, best_score):
    num_rows = table.shape[0] - 1
    num_cols = table.shape[1] - 1
    num_pixels = num_rows * num_cols

    for k in numba.prange(num_pixels):
        width = k % num_cols + 1
        height = k // num_cols + 1
        x0, y0, score = _best_position(table, total_sum, width, height)
        best_x0[width - 1, height - 1] = x0
        best_y0[width - 1, height - 1] = y0
        best_score[width - 1, height - 1] = score


@numba.njit(error_model='numpy', cache=True)
def _best_position(table, total_sum, width, height):
    num_rows = table.shape[0] - 1
    num_cols = table.shape[1] - 1
    inner_area = width * height
    outer_area = num_rows * num_cols - inner_area
    if outer_area == 0:
        return 0, 0, -np.inf

    scale_in = 1.0 / inner_area
    scale_out = 1.0 / outer_area
    max_value = -np.inf
    max_x0 = 0
    max_y0 = 0

    for y0 in range(num_rows - height + 1):
        for x0 in range(num_cols - width + 1):
            inner_sum = rectangle_sum(table, x0, y0, x0 + width, y0 + height)
            outer_sum = total_sum - inner_sum
            value = scale_in * inner_sum * inner_sum + scale_out * outer_sum * outer_sum
            if value > max_value:
                max_value = value
                max_x0 = x0
                max_y0 = y0

    return max_x0, max_y0, max_value
