"""Error types raised by rectseg.

Every failure of a segmentation call surfaces as a subclass of
:class:`SegmentationError`. Backend implementations translate their native
errors into the compute-boundary types below, so callers can decide whether a
failure is worth retrying (e.g. transient allocation pressure) without knowing
which backend ran the search. A call that raises never returns a partial result.
"""


class SegmentationError(RuntimeError):
    """Base class for all errors raised while segmenting an image."""


class AllocationFailure(SegmentationError):
    """The compute backend could not allocate a buffer."""

    def __init__(self, nbytes, reason=''):
        self.nbytes = nbytes
        message = f'Could not allocate {nbytes} bytes'
        if reason:
            message += f': {reason}'
        super().__init__(message)


class TransferFailure(SegmentationError):
    """A copy between host and backend memory failed."""


class LaunchFailure(SegmentationError):
    """The backend rejected or aborted the parallel search."""


class DegenerateRectangleValue(SegmentationError):
    """A region statistic of the selected rectangle is not finite."""
