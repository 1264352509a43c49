"""Reduction of the per-size results and the statistics of the winner."""

import dataclasses
import logging

import numpy as np

from .errors import DegenerateRectangleValue
from .integral_image import region_sums
from .search import SizeResult

logger = logging.getLogger(__name__)


@dataclasses.dataclass(frozen=True)
class Result:
    """The selected rectangle ``[y0, y1) x [x0, x1)`` and the mean of each region.

    ``outer`` and ``inner`` are RGB triples. Only channel 0 is measured, so all
    three entries of each triple are equal.
    """

    y0: int
    x0: int
    y1: int
    x1: int
    outer: tuple
    inner: tuple

    @property
    def width(self):
        return self.x1 - self.x0

    @property
    def height(self):
        return self.y1 - self.y0

    def as_dict(self):
        return dataclasses.asdict(self)


def select_best(grid):
    """Return the :class:`SizeResult` with the highest score in the grid.

    Sizes are visited with height in the outer loop and width in the inner loop.
    Only a strictly greater score replaces the current best, so the first maximum
    wins. Sizes scored -inf or NaN are never selected. If no size has a finite
    score (e.g. a 1x1 image), the full-image rectangle is returned.
    """
    best = None
    best_score = -np.inf
    for candidate in grid:
        if candidate.score > best_score:
            best = candidate
            best_score = candidate.score

    if best is None:
        logger.debug('No size has a finite score, falling back to the full image')
        return SizeResult(0, 0, grid.image_width, grid.image_height, -np.inf)
    return best


def compute_result(table, best):
    """Compute the region means of the selected rectangle from the summed-area table.

    The sums are recomputed from the table rather than derived from the stored
    score. An empty outer region has mean 0.

    Raises:
        DegenerateRectangleValue: if either mean is not finite.
    """
    image_height, image_width = table.shape[0] - 1, table.shape[1] - 1
    x1 = best.x0 + best.width
    y1 = best.y0 + best.height
    inner_area = best.width * best.height
    outer_area = image_width * image_height - inner_area
    # Non-finite pixels propagate as inf/NaN and are rejected below.
    with np.errstate(invalid='ignore', over='ignore'):
        inner_sum, outer_sum = region_sums(table, best.x0, best.y0, x1, y1)
        inner_mean = float(inner_sum / inner_area)
        outer_mean = float(outer_sum / outer_area) if outer_area > 0 else 0.0

    if not (np.isfinite(inner_mean) and np.isfinite(outer_mean)):
        raise DegenerateRectangleValue(
            f'Non-finite region mean for rectangle x=[{best.x0}, {x1}) y=[{best.y0}, {y1}): '
            f'inner={inner_mean}, outer={outer_mean}')

    return Result(
        y0=best.y0,
        x0=best.x0,
        y1=y1,
        x1=x1,
        outer=(outer_mean,) * 3,
        inner=(inner_mean,) * 3,
    )
