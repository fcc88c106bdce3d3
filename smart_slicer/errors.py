"""Exception hierarchy shared by the slicing pipeline."""

from __future__ import annotations


class SlicerError(Exception):
    """Base class for all Smart Slicer failures."""


class DecodeError(SlicerError):
    """The source image could not be loaded or decoded."""


class RenderContextError(SlicerError):
    """A drawing surface of the requested size could not be created."""


class SliceProcessingError(SlicerError):
    """Matting, filtering or stroking failed for a single slice.

    The queue recovers from this locally: the slice returns to ``idle`` and
    the remaining slices keep processing.
    """

    def __init__(self, message: str, *, slice_id: str | None = None) -> None:
        super().__init__(message)
        self.slice_id = slice_id


__all__ = [
    "SlicerError",
    "DecodeError",
    "RenderContextError",
    "SliceProcessingError",
]
