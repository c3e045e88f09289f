"""Exception types raised by the docscan core."""

from typing import Optional


class DocscanError(Exception):
    """Base class for every error raised by this package."""


class OutOfBounds(DocscanError, IndexError):
    """A buffer access falls outside the backing buffer or the view.

    Always a defect in the stride metadata supplied by the capture layer,
    never recovered by the pixel routines that raise it.
    """

    def __init__(self, offset: int, capacity: int, message: Optional[str] = None) -> None:
        super().__init__(
            message or f"Buffer offset {offset} out of bounds for capacity {capacity}"
        )
        self.offset = offset
        self.capacity = capacity


class EngineError(DocscanError):
    """Wraps any failure reported by a recognition engine."""


class RecognitionCancelled(DocscanError):
    """Raised at a suspension point once cancellation has been requested."""
