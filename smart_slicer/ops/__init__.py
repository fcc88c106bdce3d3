"""Per-slice pixel transforms: matting, colour filters and outline strokes."""

from .filters import apply_filter, available_filters
from .matting import remove_background
from .stroke import add_stroke, stroke_padding, stroked_size

__all__ = [
    "apply_filter",
    "available_filters",
    "remove_background",
    "add_stroke",
    "stroke_padding",
    "stroked_size",
]
