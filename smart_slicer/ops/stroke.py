"""Outline synthesis by shadow stacking.

The outline is built from a flat-colour silhouette of the opaque pixels.
The silhouette is composited with a blurred copy of itself
``config.SHADOW_PASSES`` times; a single blurred pass is only partially
opaque at its edge, and stacking saturates it to a hard outline.  The
original content is then drawn on top so the colour only shows where it
extends past the subject.
"""

from __future__ import annotations

import logging
from typing import Tuple

from PIL import Image, ImageFilter

from .. import config
from ..extractor import new_canvas

logger = logging.getLogger(__name__)


def effective_stroke_width(stroke_width: int) -> int:
    """Visual width in pixels for a configured ``stroke_width``."""
    if stroke_width < config.STROKE_WIDTH_MIN:
        raise ValueError(f"stroke_width must be >= {config.STROKE_WIDTH_MIN}, got {stroke_width}")
    return stroke_width * config.STROKE_WIDTH_MULTIPLIER


def stroke_padding(stroke_width: int) -> int:
    """Transparent margin added on every side so the outline is never clipped."""
    return effective_stroke_width(stroke_width) + config.STROKE_PADDING_EXTRA


def stroked_size(size: Tuple[int, int], stroke_width: int) -> Tuple[int, int]:
    padding = stroke_padding(stroke_width)
    return size[0] + 2 * padding, size[1] + 2 * padding


def silhouette(image: Image.Image, color: Tuple[int, int, int]) -> Image.Image:
    """Recolour every pixel of ``image`` to ``color`` while keeping its alpha."""
    flat = Image.new("RGBA", image.size, (*color, 255))
    flat.putalpha(image.getchannel("A"))
    return flat


def add_stroke(
    image: Image.Image,
    stroke_width: int = config.DEFAULT_STROKE_WIDTH,
    stroke_color: Tuple[int, int, int] = config.DEFAULT_STROKE_COLOR,
) -> Image.Image:
    """Return ``image`` on a padded canvas with a solid outline behind it.

    Args:
        image: Matted buffer; its alpha channel defines the silhouette
        stroke_width: Configured width (>= 1), doubled internally
        stroke_color: RGB outline colour

    Returns:
        A new RGBA image of :func:`stroked_size`
    """
    width_px = effective_stroke_width(stroke_width)
    padding = width_px + config.STROKE_PADDING_EXTRA

    content = new_canvas(stroked_size(image.size, stroke_width))
    content.paste(image.convert("RGBA"), (padding, padding))

    stencil = silhouette(content, stroke_color)
    # Canvas-style shadow blur: sigma is half the blur length
    shadow = Image.new("RGBA", content.size, (*stroke_color, 255))
    shadow.putalpha(stencil.getchannel("A").filter(ImageFilter.GaussianBlur(radius=width_px / 2)))

    output = new_canvas(content.size)
    for _ in range(config.SHADOW_PASSES):
        output = Image.alpha_composite(output, shadow)
        output = Image.alpha_composite(output, stencil)

    output = Image.alpha_composite(output, content)
    logger.debug("Stroked %dx%d slice (width %d, padding %d)", *image.size, width_px, padding)
    return output


__all__ = [
    "effective_stroke_width",
    "stroke_padding",
    "stroked_size",
    "silhouette",
    "add_stroke",
]
