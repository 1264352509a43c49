"""Shared fixtures and helpers for rectseg tests."""

import numpy as np
import pytest

import rectseg
from rectseg.backends import CpuBackend
from rectseg.errors import AllocationFailure, LaunchFailure, TransferFailure


# =============================================================================
# Sample image shapes (height, width)
# =============================================================================

SMALL_SHAPES = [
    (1, 2),
    (2, 1),
    (3, 3),
    (4, 7),
    (6, 5),
    (9, 4),
]


# =============================================================================
# Helper functions
# =============================================================================

def make_image(channel0, rng=None):
    """Build an (H, W, 3) float32 image whose channel 0 is the given array.

    Channels 1 and 2 are filled with random values (or zeros if no rng is
    given), since only channel 0 should influence the result.
    """
    channel0 = np.asarray(channel0, np.float32)
    image = np.zeros(channel0.shape + (3,), np.float32)
    image[:, :, 0] = channel0
    if rng is not None:
        image[:, :, 1:] = rng.uniform(0, 1, size=channel0.shape + (2,))
    return image


def flatten_image(image):
    """Flatten an (H, W, 3) image into the data[c + 3 * x + 3 * W * y] layout."""
    height, width, _ = image.shape
    data = np.empty(3 * width * height, np.float32)
    for y in range(height):
        for x in range(width):
            for c in range(3):
                data[c + 3 * x + 3 * width * y] = image[y, x, c]
    return data


def golden_image():
    """8x8 zero image with a 3 wide, 2 tall block of ones at x0=2, y0=3."""
    channel0 = np.zeros((8, 8), np.float32)
    channel0[3:5, 2:5] = 1
    return make_image(channel0)


def naive_rect_sum(channel0, x0, y0, x1, y1):
    return np.sum(channel0[y0:y1, x0:x1], dtype=np.float64)


def naive_score(channel0, x0, y0, x1, y1):
    """Separation score computed with direct sums; -inf for the full image."""
    height, width = channel0.shape
    inner_area = (x1 - x0) * (y1 - y0)
    outer_area = width * height - inner_area
    if outer_area == 0:
        return -np.inf
    inner_sum = naive_rect_sum(channel0, x0, y0, x1, y1)
    outer_sum = np.sum(channel0, dtype=np.float64) - inner_sum
    return inner_sum ** 2 / inner_area + outer_sum ** 2 / outer_area


def brute_force_best_per_size(channel0):
    """Reference for the search: best (x0, y0, score) per size via direct sums."""
    height, width = channel0.shape
    best = {}
    for h in range(1, height + 1):
        for w in range(1, width + 1):
            best_score = -np.inf
            best_pos = (0, 0)
            for y0 in range(height - h + 1):
                for x0 in range(width - w + 1):
                    score = naive_score(channel0, x0, y0, x0 + w, y0 + h)
                    if score > best_score:
                        best_score = score
                        best_pos = (x0, y0)
            best[w, h] = best_pos + (best_score,)
    return best


def brute_force_best_score(channel0):
    return max(score for _, _, score in brute_force_best_per_size(channel0).values())


class FaultyBackend(CpuBackend):
    """CPU backend that records buffer lifetimes and can fail on demand.

    Args:
        fail_allocation_at: index of the allocation that should fail.
        fail_copy: direction of the copy that should fail.
        fail_launch: whether the launch should fail.
    """

    name = 'faulty'

    def __init__(self, fail_allocation_at=None, fail_copy=None, fail_launch=False):
        self.fail_allocation_at = fail_allocation_at
        self.fail_copy = fail_copy
        self.fail_launch = fail_launch
        self.allocated = []
        self.released = []

    def allocate(self, nbytes):
        if len(self.allocated) == self.fail_allocation_at:
            raise AllocationFailure(nbytes, 'injected')
        handle = super().allocate(nbytes)
        self.allocated.append(handle)
        return handle

    def copy(self, dst, src, nbytes, direction):
        if direction is self.fail_copy:
            raise TransferFailure('injected')
        super().copy(dst, src, nbytes, direction)

    def launch(self, *args):
        if self.fail_launch:
            raise LaunchFailure('injected')
        super().launch(*args)

    def release(self, handle):
        self.released.append(handle)

    def all_released(self):
        released_ids = {id(h) for h in self.released}
        return all(id(h) in released_ids for h in self.allocated)


# =============================================================================
# Fixtures
# =============================================================================

@pytest.fixture
def rng():
    return np.random.default_rng(12345)


@pytest.fixture
def golden():
    return golden_image()


@pytest.fixture
def cpu_backend():
    return rectseg.CpuBackend()
