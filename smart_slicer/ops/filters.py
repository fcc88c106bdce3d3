"""Named colour filters.

Every filter works on the RGB channels of opaque pixels only.  Pixels with
alpha == 0 are never read or written, so colour cannot leak outside a matted
silhouette.  Alpha is always preserved.

Filters are not idempotent: running one twice compounds its colour shift.
"""

from __future__ import annotations

import logging
from typing import Callable, Dict, Optional, Tuple

import numpy as np
from PIL import Image

from .. import config

logger = logging.getLogger(__name__)

# (N, 3) float RGB, (N, 2) integer (y, x) coords, (height, width) -> (N, 3)
FilterFunc = Callable[[np.ndarray, np.ndarray, Tuple[int, int]], np.ndarray]

_LUMA = np.array([0.299, 0.587, 0.114])
_SEPIA = np.array(
    [
        [0.393, 0.769, 0.189],
        [0.349, 0.686, 0.168],
        [0.272, 0.534, 0.131],
    ]
)


def _quantize(rgb: np.ndarray) -> np.ndarray:
    """Round and clamp to byte range the way a clamped 8-bit buffer stores values."""
    return np.clip(np.rint(rgb), 0, 255)


def _luminance(rgb: np.ndarray) -> np.ndarray:
    return (rgb @ _LUMA)[:, None]


def _shift(rgb: np.ndarray, delta: Tuple[float, float, float]) -> np.ndarray:
    return rgb + np.asarray(delta, dtype=np.float64)


def grayscale(rgb: np.ndarray, coords: np.ndarray, size: Tuple[int, int]) -> np.ndarray:
    return np.repeat(_luminance(rgb), 3, axis=1)


def sepia(rgb: np.ndarray, coords: np.ndarray, size: Tuple[int, int]) -> np.ndarray:
    return rgb @ _SEPIA.T


def brightness(rgb: np.ndarray, coords: np.ndarray, size: Tuple[int, int]) -> np.ndarray:
    return rgb + config.BRIGHTNESS_DELTA


def vibrant(rgb: np.ndarray, coords: np.ndarray, size: Tuple[int, int]) -> np.ndarray:
    """Push each channel away from the pixel's RGB mean; pure grays are left alone."""
    average = rgb.mean(axis=1, keepdims=True)
    boosted = average + (rgb - average) * config.VIBRANT_SATURATION_BOOST
    gray = (rgb.max(axis=1) == rgb.min(axis=1))[:, None]
    return np.where(gray, rgb, boosted)


def cinematic(rgb: np.ndarray, coords: np.ndarray, size: Tuple[int, int]) -> np.ndarray:
    """Desaturate, split-tone by luminance, then darken toward the corners.

    Each pass is stored (rounded and clamped) before the next one reads it.
    """
    lum = _luminance(rgb)
    rgb = _quantize(lum + (rgb - lum) * config.CINEMATIC_SATURATION)

    shadows = _luminance(rgb) < 128
    rgb = _quantize(
        np.where(
            shadows,
            _shift(rgb, config.CINEMATIC_SHADOW_TINT),
            _shift(rgb, config.CINEMATIC_HIGHLIGHT_TINT),
        )
    )

    height, width = size
    centre_y, centre_x = height / 2.0, width / 2.0
    max_dist = float(np.hypot(centre_x, centre_y)) or 1.0
    dist = np.hypot(coords[:, 1] - centre_x, coords[:, 0] - centre_y)
    factor = 1.0 - config.CINEMATIC_VIGNETTE_STRENGTH * (dist / max_dist)
    return rgb * factor[:, None]


def japanese(rgb: np.ndarray, coords: np.ndarray, size: Tuple[int, int]) -> np.ndarray:
    """Bright, low-contrast and slightly cool."""
    rgb = np.clip(rgb + config.JAPANESE_BRIGHTNESS_DELTA, 0, 255)
    average = rgb.mean(axis=1, keepdims=True)
    rgb = average + (rgb - average) * config.JAPANESE_CONTRAST
    return _shift(rgb, config.JAPANESE_TINT)


def warm(rgb: np.ndarray, coords: np.ndarray, size: Tuple[int, int]) -> np.ndarray:
    return _shift(rgb, config.WARM_TINT)


_FILTER_DISPATCH: Dict[str, FilterFunc] = {
    "grayscale": grayscale,
    "sepia": sepia,
    "brightness": brightness,
    "vibrant": vibrant,
    "cinematic": cinematic,
    "japanese": japanese,
    "warm": warm,
}


def available_filters() -> Tuple[str, ...]:
    return tuple(_FILTER_DISPATCH)


def apply_filter(image: Image.Image, filter_name: Optional[str]) -> Image.Image:
    """Return a copy of ``image`` with ``filter_name`` applied.

    ``None`` is a no-op.  Unknown names are ignored with a warning so a stale
    option never breaks a processing pass.
    """
    result = image.convert("RGBA") if image.mode != "RGBA" else image.copy()
    if filter_name is None:
        return result

    func = _FILTER_DISPATCH.get(filter_name)
    if func is None:
        logger.warning("Unknown filter: %s", filter_name)
        return result

    pixels = np.array(result, dtype=np.uint8)
    opaque = pixels[..., 3] > 0
    if not opaque.any():
        return result

    coords = np.argwhere(opaque)
    rgb = pixels[..., :3][opaque].astype(np.float64)
    filtered = _quantize(func(rgb, coords, opaque.shape))
    pixels[..., :3][opaque] = filtered.astype(np.uint8)
    return Image.fromarray(pixels)


__all__ = [
    "FilterFunc",
    "available_filters",
    "apply_filter",
    "grayscale",
    "sepia",
    "brightness",
    "vibrant",
    "cinematic",
    "japanese",
    "warm",
]
