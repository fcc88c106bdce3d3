"""Background matting by border-seeded flood fill.

Only background that is connected to the image border is removed.  White
regions enclosed by the subject (eyes, highlights) are kept.  Edges are
binary: a pixel is either left untouched or made fully transparent.
"""

from __future__ import annotations

import logging
from collections import deque
from typing import List

import numpy as np
from PIL import Image

from .. import config

logger = logging.getLogger(__name__)


def background_traversable(
    pixels: np.ndarray,
    *,
    alpha_threshold: int = config.MATTE_ALPHA_THRESHOLD,
    white_threshold: int = config.MATTE_WHITE_THRESHOLD,
) -> np.ndarray:
    """Return a boolean ``H x W`` mask of pixels the fill may pass through.

    A pixel qualifies when it is nearly transparent, or when it is solid and
    all of R, G and B are above ``white_threshold``.
    """
    rgb = pixels[..., :3]
    alpha = pixels[..., 3]
    return (alpha < alpha_threshold) | np.all(rgb > white_threshold, axis=-1)


def flood_background(traversable: np.ndarray) -> List[int]:
    """Breadth-first fill from every traversable border pixel.

    Args:
        traversable: Boolean ``H x W`` mask from :func:`background_traversable`

    Returns:
        Flat indices (``y * width + x``) of every reached pixel, in visit order
    """
    height, width = traversable.shape
    if height == 0 or width == 0:
        return []

    passable = traversable.ravel().tolist()
    visited = bytearray(width * height)
    queue: deque[int] = deque()

    def _seed(idx: int) -> None:
        if not visited[idx] and passable[idx]:
            visited[idx] = 1
            queue.append(idx)

    last_row = (height - 1) * width
    for x in range(width):
        _seed(x)
        _seed(last_row + x)
    for y in range(height):
        _seed(y * width)
        _seed(y * width + width - 1)

    reached: List[int] = []
    while queue:
        idx = queue.popleft()
        reached.append(idx)
        cx = idx % width
        # Left/right steps never wrap onto the neighbouring row
        for neighbour in (
            idx - width if idx >= width else -1,
            idx + width if idx < last_row else -1,
            idx - 1 if cx > 0 else -1,
            idx + 1 if cx < width - 1 else -1,
        ):
            if neighbour >= 0 and not visited[neighbour] and passable[neighbour]:
                visited[neighbour] = 1
                queue.append(neighbour)
    return reached


def remove_background(image: Image.Image) -> Image.Image:
    """Return a copy of ``image`` with border-connected background made transparent.

    Args:
        image: Source buffer; converted to RGBA if needed and never modified

    Returns:
        A new RGBA image of the same size
    """
    pixels = np.array(image.convert("RGBA"), dtype=np.uint8)
    reached = flood_background(background_traversable(pixels))
    if reached:
        alpha = pixels[..., 3].reshape(-1)
        alpha[np.asarray(reached, dtype=np.intp)] = 0
        pixels[..., 3] = alpha.reshape(pixels.shape[:2])
    logger.debug("Matting removed %d of %d pixels", len(reached), pixels.shape[0] * pixels.shape[1])
    return Image.fromarray(pixels)


__all__ = ["background_traversable", "flood_background", "remove_background"]
