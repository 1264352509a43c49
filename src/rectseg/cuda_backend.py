"""CUDA backend: one GPU thread per rectangle size.

Threads are arranged in a 2D grid of ``block_size`` blocks; thread (i, j) handles
the size ``width = i + 1``, ``height = j + 1`` and threads outside the image are
idle. The kernel applies the same scan order, tie-break and full-image sentinel
as the CPU kernel in :mod:`rectseg.search`.
"""

import logging
import math

import numpy as np
from numba import cuda
from numba.core.errors import NumbaError
from numba.cuda.cudadrv.error import CudaDriverError, CudaSupportError

from .backends import ComputeBackend, Direction, byte_view
from .errors import AllocationFailure, LaunchFailure, TransferFailure

logger = logging.getLogger(__name__)

_CUDA_ERRORS = (CudaDriverError, CudaSupportError)


def divup(a, b):
    return (a + b - 1) // b


class CudaBackend(ComputeBackend):
    name = 'cuda'

    def __init__(self, block_size=(16, 16)):
        if not cuda.is_available():
            raise LaunchFailure('CUDA is not available on this system')
        self.block_size = tuple(block_size)

    def allocate(self, nbytes):
        try:
            return cuda.device_array(nbytes, dtype=np.uint8)
        except _CUDA_ERRORS as e:
            raise AllocationFailure(nbytes, str(e)) from e

    def copy(self, dst, src, nbytes, direction):
        try:
            if direction is Direction.HOST_TO_DEVICE:
                dst[:nbytes].copy_to_device(byte_view(src)[:nbytes])
            elif direction is Direction.DEVICE_TO_HOST:
                src[:nbytes].copy_to_host(byte_view(dst)[:nbytes])
            else:
                raise TransferFailure(f'Unknown copy direction {direction!r}')
        except (_CUDA_ERRORS + (ValueError,)) as e:
            raise TransferFailure(f'CUDA copy ({direction}) failed: {e}') from e

    def launch(self, image_width, image_height, table, total_sum, x0, y0, score):
        shape = (image_width, image_height)
        blocks = (divup(image_width, self.block_size[0]), divup(image_height, self.block_size[1]))
        logger.debug('Launching %s blocks of %s threads', blocks, self.block_size)
        try:
            _search_sizes_kernel[blocks, self.block_size](
                table.view(np.float64).reshape(image_height + 1, image_width + 1),
                total_sum,
                x0.view(np.int32).reshape(shape),
                y0.view(np.int32).reshape(shape),
                score.view(np.float64).reshape(shape),
            )
            cuda.synchronize()
        except (_CUDA_ERRORS + (NumbaError,)) as e:
            raise LaunchFailure(f'CUDA search kernel failed: {e}') from e

    def release(self, handle):
        # Device memory is freed once the last reference to the array is gone.
        pass


@cuda.jit
def _search_sizes_kernel(table, total_sum, best_x0, best_y0, best_score):
    i, j = cuda.grid(2)
    num_rows = table.shape[0] - 1
    num_cols = table.shape[1] - 1
    if i >= num_cols or j >= num_rows:
        return

    width = i + 1
    height = j + 1
    inner_area = width * height
    outer_area = num_rows * num_cols - inner_area

    max_value = -math.inf
    max_x0 = 0
    max_y0 = 0
    if outer_area > 0:
        scale_in = 1.0 / inner_area
        scale_out = 1.0 / outer_area
        for y0 in range(num_rows - height + 1):
            for x0 in range(num_cols - width + 1):
                inner_sum = (
                    table[y0 + height, x0 + width] - table[y0, x0 + width]
                    - table[y0 + height, x0] + table[y0, x0])
                outer_sum = total_sum - inner_sum
                value = scale_in * inner_sum * inner_sum + scale_out * outer_sum * outer_sum
                if value > max_value:
                    max_value = value
                    max_x0 = x0
                    max_y0 = y0

    best_x0[i, j] = max_x0
    best_y0[i, j] = max_y0
    best_score[i, j] = max_value
