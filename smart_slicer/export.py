"""Encoding and bundling of slice results for download."""

from __future__ import annotations

import io
import logging
import zipfile
from pathlib import Path
from typing import List, Sequence, Union

from PIL import Image

from . import config
from .models import Slice, SliceStatus
from .validation import validate_output_path

logger = logging.getLogger(__name__)

_BUSY = (SliceStatus.PENDING, SliceStatus.PROCESSING)


def encode_png(image: Image.Image) -> bytes:
    """Return ``image`` as self-contained PNG bytes."""
    buffer = io.BytesIO()
    image.save(buffer, format="PNG", optimize=True, compress_level=config.PNG_COMPRESS_LEVEL)
    return buffer.getvalue()


def slice_filename(position: int) -> str:
    """File name for the slice at zero-based ``position``."""
    return config.SLICE_FILENAME_TEMPLATE.format(index=position + 1)


def _ensure_settled(slices: Sequence[Slice]) -> None:
    busy = sum(1 for s in slices if s.status in _BUSY)
    if busy:
        raise RuntimeError(f"{busy} slice(s) are still processing; export later")


def export_archive(slices: Sequence[Slice], path: Union[str, Path]) -> Path:
    """Write every slice into a zip archive at ``path`` and return its resolved path.

    Each entry is the processed buffer when present, otherwise the original.

    Raises:
        RuntimeError: If any slice is still pending or processing
        ValueError: If ``path`` is not a writable ``.zip`` location
    """
    _ensure_settled(slices)
    target = validate_output_path(path, {".zip"})
    with zipfile.ZipFile(target, "w", compression=zipfile.ZIP_STORED) as archive:
        for position, item in enumerate(slices):
            try:
                payload = encode_png(item.output)
            except (OSError, ValueError) as exc:
                logger.warning("Skipping %s in archive: %s", item.id, exc)
                continue
            archive.writestr(slice_filename(position), payload)
    logger.info("Exported %d slices to %s", len(slices), target)
    return target


def save_slices(slices: Sequence[Slice], output_dir: Union[str, Path]) -> List[Path]:
    """Write every slice as ``slice_<n>.png`` into an existing ``output_dir``."""
    _ensure_settled(slices)
    directory = Path(output_dir)
    if not directory.is_dir():
        raise OSError(f"Output directory does not exist: {directory}")

    written: List[Path] = []
    for position, item in enumerate(slices):
        target = directory / slice_filename(position)
        target.write_bytes(encode_png(item.output))
        written.append(target)
    return written


__all__ = ["encode_png", "slice_filename", "export_archive", "save_slices"]
