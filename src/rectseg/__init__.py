"""Rectseg: best rectangle segmentation of images with summed-area tables.

For an image, finds the axis-aligned rectangle that best separates it into an
inner and an outer region, approximating each region by its mean intensity.
The search evaluates every rectangle size and position in parallel.

Example:
    >>> import numpy as np
    >>> from rectseg import segment_image
    >>> image = np.zeros((8, 8, 3), np.float32)
    >>> image[3:5, 2:5] = 1
    >>> result = segment_image(image)
    >>> result.y0, result.x0, result.y1, result.x1
    (3, 2, 5, 5)
"""

__version__ = "0.1.0"

__all__ = [
    # Core
    "segment",
    "segment_image",
    "Result",
    # Stages
    "build_integral_image",
    "rectangle_sum",
    "search_sizes",
    "SizeGrid",
    "SizeResult",
    "select_best",
    "compute_result",
    # Backends
    "ComputeBackend",
    "CpuBackend",
    "Direction",
    "get_backend",
    # Errors
    "SegmentationError",
    "AllocationFailure",
    "TransferFailure",
    "LaunchFailure",
    "DegenerateRectangleValue",
]

from rectseg.segmentation import (
    segment,
    segment_image,
)

from rectseg.integral_image import (
    build_integral_image,
    rectangle_sum,
)

from rectseg.search import (
    SizeGrid,
    SizeResult,
    search_sizes,
)

from rectseg.selection import (
    Result,
    compute_result,
    select_best,
)

from rectseg.backends import (
    ComputeBackend,
    CpuBackend,
    Direction,
    get_backend,
)

from rectseg.errors import (
    AllocationFailure,
    DegenerateRectangleValue,
    LaunchFailure,
    SegmentationError,
    TransferFailure,
)
