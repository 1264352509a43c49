"""Entry points: segment an image into the best rectangle and its complement."""

import logging
import operator
import time

import numpy as np

from . import backends, integral_image, selection

logger = logging.getLogger(__name__)


def segment(height, width, data, backend='cpu'):
    """Find the axis-aligned rectangle that best separates an image in two regions.

    The image is approximated by one constant inside the rectangle and another
    outside; the rectangle minimising the squared error of that approximation is
    returned, together with the two constants.

    Args:
        height: Number of pixel rows.
        width: Number of pixel columns.
        data: Flat sequence of ``3 * width * height`` floats. The value of
            channel ``c`` of the pixel at column ``x`` and row ``y`` is at index
            ``c + 3 * x + 3 * width * y``. Only channel 0 is used.
        backend: 'cpu', 'cuda' or a :class:`~rectseg.backends.ComputeBackend`.

    Returns:
        A :class:`~rectseg.selection.Result`.

    Raises:
        TypeError: if a dimension is not an integer.
        ValueError: if the dimensions or the data length are invalid.
        SegmentationError: if the backend fails or the selected rectangle has a
            non-finite mean. No partial result is returned.
    """
    height = operator.index(height)
    width = operator.index(width)
    if height <= 0 or width <= 0:
        raise ValueError(f'Image dimensions must be positive, got {width}x{height}')

    pixels = np.asarray(data, dtype=np.float32)
    if pixels.size != 3 * width * height:
        raise ValueError(
            f'Expected {3 * width * height} values for a {width}x{height} image, '
            f'got {pixels.size}')
    return _segment_pixels(pixels.reshape(height, width, 3), backend)


def segment_image(image, backend='cpu'):
    """Like :func:`segment`, but takes an image array of shape (H, W, 3) or (H, W)."""
    image = np.asarray(image, dtype=np.float32)
    if image.ndim == 2:
        image = np.repeat(image[:, :, np.newaxis], 3, axis=2)
    elif image.ndim != 3 or image.shape[2] != 3:
        raise ValueError(f'Expected an image of shape (H, W, 3) or (H, W), got {image.shape}')
    if image.shape[0] == 0 or image.shape[1] == 0:
        raise ValueError(f'Image must not be empty, got shape {image.shape}')
    return _segment_pixels(image, backend)


def _segment_pixels(pixels, backend):
    backend = backends.get_backend(backend)
    logger.debug('Segmenting %dx%d image', pixels.shape[1], pixels.shape[0])

    start = time.perf_counter()
    table, total_sum = integral_image.build_integral_image(pixels)
    logger.debug('Integral image built in %.3f s', time.perf_counter() - start)

    grid = backend.search(table, total_sum)
    best = selection.select_best(grid)
    result = selection.compute_result(table, best)
    logger.debug(
        'Selected rectangle x=[%d, %d) y=[%d, %d) with score %g',
        result.x0, result.x1, result.y0, result.y1, best.score)
    return result
