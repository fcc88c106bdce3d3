"""Slice geometry resolution.

This module converts the editor's resolution independent description of a
slicing job (a crop rectangle and interior grid lines, all in percent) into
absolute pixel rectangles over the source image.  It is pure Python and has
no imaging dependencies so it can be unit tested in isolation.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Iterable, List, Tuple

from . import config


@dataclass(frozen=True)
class PercentRect:
    """Rectangle expressed as percentages (0-100) of a containing box."""

    x: float = 0.0
    y: float = 0.0
    w: float = 100.0
    h: float = 100.0

    def to_pixels(self, width: float, height: float) -> Tuple[float, float, float, float]:
        """Return ``(x, y, w, h)`` scaled to a ``width`` x ``height`` box."""
        return (
            self.x / 100.0 * width,
            self.y / 100.0 * height,
            self.w / 100.0 * width,
            self.h / 100.0 * height,
        )

    def normalized(self) -> "PercentRect":
        """Clamp into ``[0, 100]`` so ``x + w`` and ``y + h`` never exceed 100."""
        x = min(max(self.x, 0.0), 100.0)
        y = min(max(self.y, 0.0), 100.0)
        w = min(max(self.w, 0.0), 100.0 - x)
        h = min(max(self.h, 0.0), 100.0 - y)
        return PercentRect(x, y, w, h)


@dataclass(frozen=True)
class GridLines:
    """Interior cut positions in percent of the crop box.

    ``v`` holds vertical lines (x positions), ``h`` horizontal ones.  Values
    may arrive unsorted or duplicated; :func:`resolve_geometry` cleans them.
    """

    v: Tuple[float, ...] = ()
    h: Tuple[float, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "v", tuple(float(p) for p in self.v))
        object.__setattr__(self, "h", tuple(float(p) for p in self.h))


@dataclass(frozen=True)
class PixelRect:
    """Absolute source-image rectangle for one slice.

    ``x`` and ``y`` keep the exact (possibly fractional) source origin.
    ``w`` and ``h`` are the rounded output size of the slice, while
    ``source_w``/``source_h`` record the exact source extent that gets
    sampled into it.
    """

    x: float
    y: float
    w: int
    h: int
    source_w: float = field(default=-1.0)
    source_h: float = field(default=-1.0)

    def __post_init__(self) -> None:
        if self.source_w < 0:
            object.__setattr__(self, "source_w", float(self.w))
        if self.source_h < 0:
            object.__setattr__(self, "source_h", float(self.h))

    @property
    def box(self) -> Tuple[float, float, float, float]:
        """Source box in Pillow convention ``(left, upper, right, lower)``."""
        return (self.x, self.y, self.x + self.source_w, self.y + self.source_h)

    @property
    def size(self) -> Tuple[int, int]:
        return (self.w, self.h)


def round_half_up(value: float) -> int:
    """Round to the nearest integer with halves going up (not banker's rounding)."""
    return int(math.floor(value + 0.5))


def _cut_positions(lines: Iterable[float], extent: float) -> List[float]:
    positions = {0.0, float(extent)}
    for percent in lines:
        if not math.isfinite(percent):
            continue
        position = percent / 100.0 * extent
        positions.add(min(max(position, 0.0), float(extent)))
    return sorted(positions)


def resolve_geometry(
    image_size: Tuple[int, int],
    crop: PercentRect,
    grid_lines: GridLines,
) -> List[PixelRect]:
    """Resolve ``crop`` and ``grid_lines`` into row-major pixel rectangles.

    Each cell's width and height are rounded independently; no remainder is
    carried between neighbours, so the summed widths may differ from the
    rounded crop width by up to one pixel per interior seam.  Cells whose
    rounded size is not positive are dropped.
    """
    width, height = image_size
    if width <= 0 or height <= 0:
        raise ValueError(f"Image size must be positive, got {image_size}")

    cx, cy, cw, ch = crop.normalized().to_pixels(width, height)
    x_positions = _cut_positions(grid_lines.v, cw)
    y_positions = _cut_positions(grid_lines.h, ch)

    rects: List[PixelRect] = []
    for top, bottom in zip(y_positions, y_positions[1:]):
        source_h = bottom - top
        out_h = round_half_up(source_h)
        for left, right in zip(x_positions, x_positions[1:]):
            source_w = right - left
            out_w = round_half_up(source_w)
            if out_w <= 0 or out_h <= 0:
                continue
            rects.append(
                PixelRect(
                    x=cx + left,
                    y=cy + top,
                    w=out_w,
                    h=out_h,
                    source_w=source_w,
                    source_h=source_h,
                )
            )
    return rects


def uniform_grid_lines(rows: int, columns: int) -> GridLines:
    """Return evenly spaced interior lines for a ``rows`` x ``columns`` grid."""
    if rows <= 0 or columns <= 0:
        raise ValueError("Grid must have positive dimensions")
    v = tuple((i + 1) / columns * 100.0 for i in range(columns - 1))
    h = tuple((i + 1) / rows * 100.0 for i in range(rows - 1))
    return GridLines(v=v, h=h)


def clamp_crop(
    crop: PercentRect,
    box_size: Tuple[float, float],
    *,
    min_size: float = config.MIN_CROP_SIZE_PX,
) -> PercentRect:
    """Keep ``crop`` inside its box and at least ``min_size`` pixels on each edge.

    ``box_size`` is the pixel size of the reference box the percentages are
    measured against (the displayed image in an editor, or the source).
    """
    box_w, box_h = box_size
    if box_w <= 0 or box_h <= 0:
        raise ValueError(f"Box size must be positive, got {box_size}")

    def _axis(start: float, length: float, extent: float) -> Tuple[float, float]:
        if start < 0:
            length += start
            start = 0.0
        length = max(length, min(min_size, extent))
        if start + length > extent:
            start = max(extent - length, 0.0)
            length = min(length, extent)
        return start, length

    x, y, w, h = crop.to_pixels(box_w, box_h)
    x, w = _axis(x, w, box_w)
    y, h = _axis(y, h, box_h)
    return PercentRect(
        x=x / box_w * 100.0,
        y=y / box_h * 100.0,
        w=w / box_w * 100.0,
        h=h / box_h * 100.0,
    )


__all__ = [
    "PercentRect",
    "GridLines",
    "PixelRect",
    "round_half_up",
    "resolve_geometry",
    "uniform_grid_lines",
    "clamp_crop",
]
