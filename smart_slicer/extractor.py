"""Source decoding and slice extraction.

Functions:
    new_canvas: Allocate a transparent RGBA drawing surface
    load_source_image: Decode a source file into an RGBA buffer
    decode_source_bytes: Decode in-memory image data into an RGBA buffer
    extract_slices: Cut pixel rectangles out of a source buffer
    render_fine_tune: Re-crop one slice with a pan offset and zoom factor
"""

from __future__ import annotations

import io
import logging
import uuid
from pathlib import Path
from typing import List, Sequence, Tuple, Union

from PIL import Image, ImageOps, UnidentifiedImageError

from . import config
from .errors import DecodeError, RenderContextError
from .geometry import PixelRect
from .models import Slice
from .validation import validate_image_path

logger = logging.getLogger(__name__)

VALID_EXTENSIONS = {f".{fmt}" for fmt in config.SUPPORTED_IMAGE_FORMATS}

FINE_TUNE_MIN_SCALE = 0.1
FINE_TUNE_MAX_SCALE = 5.0

TRANSPARENT = (0, 0, 0, 0)


def _check_canvas_size(size: Tuple[int, int]) -> None:
    width, height = size
    if width <= 0 or height <= 0:
        raise RenderContextError(f"Canvas size must be positive, got {size}")
    if width > config.MAX_CANVAS_DIMENSION or height > config.MAX_CANVAS_DIMENSION:
        raise RenderContextError(
            f"Canvas {width}x{height} exceeds the {config.MAX_CANVAS_DIMENSION}px limit"
        )


def new_canvas(size: Tuple[int, int]) -> Image.Image:
    """Return a fully transparent RGBA canvas of ``size``.

    Raises:
        RenderContextError: If the surface cannot be allocated
    """
    _check_canvas_size(size)
    width, height = size
    try:
        return Image.new("RGBA", (width, height), TRANSPARENT)
    except (MemoryError, ValueError) as exc:
        raise RenderContextError(f"Unable to allocate {width}x{height} canvas: {exc}") from exc


def _normalize_source(img: Image.Image) -> Image.Image:
    img = ImageOps.exif_transpose(img)
    width, height = img.size
    if width > config.MAX_IMAGE_DIMENSION or height > config.MAX_IMAGE_DIMENSION:
        raise DecodeError(
            f"Image {width}x{height} exceeds the {config.MAX_IMAGE_DIMENSION}px limit"
        )
    return img.convert("RGBA")


def load_source_image(path: Union[str, Path]) -> Image.Image:
    """Load ``path`` as an RGBA buffer with EXIF orientation applied.

    Raises:
        DecodeError: If the path is rejected or the file cannot be decoded
    """
    try:
        safe_path = validate_image_path(path, VALID_EXTENSIONS)
    except ValueError as exc:
        raise DecodeError(str(exc)) from exc

    try:
        with Image.open(safe_path) as img:
            img.load()
            result = _normalize_source(img)
    except (UnidentifiedImageError, Image.DecompressionBombError, OSError) as exc:
        logger.error("Failed to decode source image %s: %s", safe_path, exc)
        raise DecodeError(f"Failed to decode {safe_path.name}: {exc}") from exc

    logger.info("Loaded source %s (%dx%d)", safe_path.name, *result.size)
    return result


def decode_source_bytes(data: bytes) -> Image.Image:
    """Decode ``data`` (any Pillow-readable format) into an RGBA buffer."""
    if not data:
        raise DecodeError("No image data supplied")
    try:
        with Image.open(io.BytesIO(data)) as img:
            img.load()
            return _normalize_source(img)
    except (UnidentifiedImageError, Image.DecompressionBombError, OSError) as exc:
        raise DecodeError(f"Failed to decode image data: {exc}") from exc


def _clamped_box(rect: PixelRect, size: Tuple[int, int]) -> Tuple[float, float, float, float]:
    width, height = size
    left, upper, right, lower = rect.box
    return (
        min(max(left, 0.0), width),
        min(max(upper, 0.0), height),
        min(max(right, 0.0), width),
        min(max(lower, 0.0), height),
    )


def _is_whole(*values: float) -> bool:
    return all(float(v).is_integer() for v in values)


def extract_region(source: Image.Image, rect: PixelRect) -> Image.Image:
    """Copy ``rect`` out of ``source`` into a new buffer of ``rect.size``.

    Out-of-bounds coordinates are clamped to the source.  When the clamped
    region already has the target size on whole pixels it is copied
    directly; otherwise it is resampled to the target size.
    """
    box = _clamped_box(rect, source.size)
    left, upper, right, lower = box
    if right <= left or lower <= upper:
        logger.warning("Slice rect %s lies outside the source; emitting blank slice", rect)
        return new_canvas(rect.size)

    _check_canvas_size(rect.size)
    if _is_whole(*box) and (int(right - left), int(lower - upper)) == rect.size:
        return source.crop(tuple(int(v) for v in box))
    return source.resize(rect.size, Image.Resampling.BILINEAR, box=box)


def extract_slices(source: Image.Image, rects: Sequence[PixelRect]) -> List[Slice]:
    """Rasterize each rectangle into an independent ``idle`` slice."""
    if source.mode != "RGBA":
        source = source.convert("RGBA")

    batch = uuid.uuid4().hex[:8]
    slices = [
        Slice(id=f"slice-{index}-{batch}", rect=rect, original=extract_region(source, rect))
        for index, rect in enumerate(rects)
    ]
    logger.info("Extracted %d slices from %dx%d source", len(slices), *source.size)
    return slices


def render_fine_tune(
    source: Image.Image,
    rect: PixelRect,
    offset: Tuple[float, float] = (0.0, 0.0),
    scale: float = 1.0,
) -> Image.Image:
    """Re-render the slice at ``rect`` with a pan ``offset`` and zoom ``scale``.

    The output keeps the slice size.  The source is moved so ``rect``'s origin
    lands at ``offset`` and is then zoomed about the centre of the output.
    Areas not covered by the source stay transparent.
    """
    scale = min(max(float(scale), FINE_TUNE_MIN_SCALE), FINE_TUNE_MAX_SCALE)
    if source.mode != "RGBA":
        source = source.convert("RGBA")
    _check_canvas_size(rect.size)

    centre_x, centre_y = rect.w / 2.0, rect.h / 2.0
    offset_x, offset_y = offset
    inverse = 1.0 / scale
    # Output -> input mapping for Image.transform
    coefficients = (
        inverse, 0.0, centre_x - centre_x * inverse + rect.x - offset_x,
        0.0, inverse, centre_y - centre_y * inverse + rect.y - offset_y,
    )
    return source.transform(
        rect.size,
        Image.Transform.AFFINE,
        coefficients,
        resample=Image.Resampling.BILINEAR,
        fillcolor=TRANSPARENT,
    )


__all__ = [
    "new_canvas",
    "load_source_image",
    "decode_source_bytes",
    "extract_region",
    "extract_slices",
    "render_fine_tune",
]
