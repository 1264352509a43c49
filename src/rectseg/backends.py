"""Compute backends that run the per-size rectangle search.

A backend owns the memory the search runs in and the parallel launch itself.
It provides four primitives:

- ``allocate(nbytes)`` returns a raw byte buffer handle,
- ``copy(dst, src, nbytes, direction)`` moves bytes between host arrays and
  backend buffers,
- ``launch(image_width, image_height, table, total_sum, x0, y0, score)`` runs one
  unit of work per rectangle size and blocks until all of them are done,
- ``release(handle)`` frees a buffer.

:meth:`ComputeBackend.search` combines them into a full round trip. The buffers
exist only for the duration of that call, and are released on every exit path.
"""

import contextlib
import enum
import logging
import time

import numpy as np
from numba.core.errors import NumbaError

from . import search
from .errors import AllocationFailure, LaunchFailure, TransferFailure

logger = logging.getLogger(__name__)


class Direction(enum.Enum):
    HOST_TO_DEVICE = 'host_to_device'
    DEVICE_TO_HOST = 'device_to_host'


def byte_view(arr):
    """Flat uint8 view of a C-contiguous host array, sharing its memory."""
    arr = np.asarray(arr)
    if not arr.flags.c_contiguous:
        raise TransferFailure('Host array must be C-contiguous')
    return arr.reshape(-1).view(np.uint8)


class ComputeBackend:
    """Interface for the memory, transfer and launch primitives of a backend."""

    name = 'base'

    def allocate(self, nbytes):
        raise NotImplementedError

    def copy(self, dst, src, nbytes, direction):
        raise NotImplementedError

    def launch(self, image_width, image_height, table, total_sum, x0, y0, score):
        raise NotImplementedError

    def release(self, handle):
        raise NotImplementedError

    @contextlib.contextmanager
    def scoped_buffers(self, *sizes):
        """Allocate one buffer per size and release all of them on exit.

        If an allocation fails, the buffers allocated before it are released
        before the error propagates.
        """
        handles = []
        try:
            for nbytes in sizes:
                handles.append(self.allocate(nbytes))
            yield handles
        finally:
            for handle in reversed(handles):
                self.release(handle)

    def search(self, table, total_sum):
        """Find the best position for every rectangle size on this backend.

        Args:
            table: Host summed-area table of shape (H + 1, W + 1), float64.
            total_sum: Sum of the whole image.

        Returns:
            A :class:`~rectseg.search.SizeGrid` on the host.
        """
        table = np.ascontiguousarray(table, dtype=np.float64)
        image_height, image_width = table.shape[0] - 1, table.shape[1] - 1
        grid = search.SizeGrid.empty(image_width, image_height)

        logger.debug(
            'Searching %d rectangle sizes of a %dx%d image on the %s backend',
            len(grid), image_width, image_height, self.name)
        start = time.perf_counter()

        sizes = (table.nbytes, grid.x0.nbytes, grid.y0.nbytes, grid.score.nbytes)
        with self.scoped_buffers(*sizes) as (d_table, d_x0, d_y0, d_score):
            self.copy(d_table, table, table.nbytes, Direction.HOST_TO_DEVICE)
            self.launch(
                image_width, image_height, d_table, np.float64(total_sum), d_x0, d_y0, d_score)
            self.copy(grid.x0, d_x0, grid.x0.nbytes, Direction.DEVICE_TO_HOST)
            self.copy(grid.y0, d_y0, grid.y0.nbytes, Direction.DEVICE_TO_HOST)
            self.copy(grid.score, d_score, grid.score.nbytes, Direction.DEVICE_TO_HOST)

        logger.debug('Search finished in %.3f s', time.perf_counter() - start)
        return grid


class CpuBackend(ComputeBackend):
    """Runs the search with the parallel numba kernel in host memory."""

    name = 'cpu'

    def allocate(self, nbytes):
        try:
            return np.empty(nbytes, dtype=np.uint8)
        except (MemoryError, ValueError) as e:
            raise AllocationFailure(nbytes, str(e)) from e

    def copy(self, dst, src, nbytes, direction):
        if not isinstance(direction, Direction):
            raise TransferFailure(f'Unknown copy direction {direction!r}')
        dst_bytes = byte_view(dst)
        src_bytes = byte_view(src)
        if nbytes > dst_bytes.size or nbytes > src_bytes.size:
            raise TransferFailure(
                f'Cannot copy {nbytes} bytes from a {src_bytes.size}-byte buffer '
                f'to a {dst_bytes.size}-byte buffer')
        np.copyto(dst_bytes[:nbytes], src_bytes[:nbytes])

    def launch(self, image_width, image_height, table, total_sum, x0, y0, score):
        shape = (image_width, image_height)
        try:
            search._search_sizes(
                table.view(np.float64).reshape(image_height + 1, image_width + 1),
                total_sum,
                x0.view(np.int32).reshape(shape),
                y0.view(np.int32).reshape(shape),
                score.view(np.float64).reshape(shape),
            )
        except (NumbaError, ValueError) as e:
            raise LaunchFailure(f'CPU search kernel failed: {e}') from e

    def release(self, handle):
        pass


def get_backend(backend='cpu'):
    """Return a backend instance given a name ('cpu' or 'cuda') or an instance."""
    if isinstance(backend, ComputeBackend):
        return backend
    if backend == 'cpu':
        return CpuBackend()
    if backend == 'cuda':
        from .cuda_backend import CudaBackend
        return CudaBackend()
    raise ValueError(f'Unknown backend {backend!r}, expected "cpu", "cuda" or a ComputeBackend')
