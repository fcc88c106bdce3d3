"""Core data models for the slicing pipeline.

Classes:
    SliceStatus: Lifecycle state of a slice inside the processing queue
    ProcessConfig: Immutable snapshot of the post-processing options
    Slice: One rectangular cut of the source image and its processed result

Image buffers are Pillow ``Image`` objects in ``RGBA`` mode.  A buffer is
owned by whichever stage produced it; stages that mutate pixels work on a
private copy.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field, replace
from typing import Optional, Tuple

from PIL import Image

from . import config
from .geometry import PixelRect

RgbColor = Tuple[int, int, int]


class SliceStatus(str, enum.Enum):
    IDLE = "idle"
    PENDING = "pending"
    PROCESSING = "processing"
    DONE = "done"


@dataclass(frozen=True)
class ProcessConfig:
    """Options applied to every slice in one processing epoch."""

    remove_white: bool = False
    add_stroke: bool = False
    stroke_width: int = config.DEFAULT_STROKE_WIDTH
    stroke_color: RgbColor = config.DEFAULT_STROKE_COLOR
    filter: Optional[str] = None

    def __post_init__(self) -> None:
        if isinstance(self.stroke_width, bool) or not isinstance(self.stroke_width, int):
            raise ValueError(f"stroke_width must be an integer, got {self.stroke_width!r}")
        if self.stroke_width < config.STROKE_WIDTH_MIN:
            raise ValueError(
                f"stroke_width must be >= {config.STROKE_WIDTH_MIN}, got {self.stroke_width}"
            )
        if len(self.stroke_color) != 3 or not all(0 <= c <= 255 for c in self.stroke_color):
            raise ValueError(f"stroke_color must be an RGB triple, got {self.stroke_color!r}")
        if self.filter is not None and self.filter not in config.FILTER_NAMES:
            raise ValueError(f"Unknown filter: {self.filter}")

    @property
    def is_active(self) -> bool:
        """Return ``True`` when the queue has any work to do for this config.

        A filter on its own does not trigger processing; it only rides along
        with matting or stroking.
        """
        return self.remove_white or self.add_stroke

    def cache_token(self) -> str:
        return (
            f"{int(self.remove_white)}:{int(self.add_stroke)}:{self.stroke_width}:"
            f"{self.stroke_color}:{self.filter or ''}"
        )


@dataclass(frozen=True, eq=False)
class Slice:
    """A single grid cell cut from the source image.

    Instances are never mutated; the queue and the editor replace them with
    :meth:`evolve` and publish a whole new ordered sequence.
    """

    id: str
    rect: PixelRect
    original: Image.Image
    processed: Optional[Image.Image] = None
    status: SliceStatus = SliceStatus.IDLE
    error: Optional[str] = field(default=None, repr=False)

    @property
    def output(self) -> Image.Image:
        """The buffer an exporter should use: processed if present, else original."""
        return self.processed if self.processed is not None else self.original

    def evolve(self, **changes) -> "Slice":
        return replace(self, **changes)


__all__ = ["SliceStatus", "ProcessConfig", "Slice", "RgbColor"]
