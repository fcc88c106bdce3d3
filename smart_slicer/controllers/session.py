"""Session controller for a single slicing job.

:class:`SlicingSession` mediates between an editor front end and the core
pipeline.  It owns the source image, the crop and grid description and the
:class:`SliceProcessingQueue`.  Any change to the source, crop or grid
regenerates every slice in one step and hands the new list to the queue;
option changes and per-slice edits are forwarded as queue events.  It has
no Qt dependency so CLI tools and tests can drive it directly.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from pathlib import Path
from typing import Any, Optional, Tuple, Union

from PIL import Image

from ..export import export_archive
from ..extractor import extract_slices, load_source_image, render_fine_tune
from ..geometry import GridLines, PercentRect, resolve_geometry, uniform_grid_lines
from ..models import ProcessConfig, Slice
from ..processing_queue import Dispatcher, Processor, SliceProcessingQueue
from .. import config as app_config

logger = logging.getLogger(__name__)


class NoSourceImageError(RuntimeError):
    """Raised when an operation needs a source image and none is loaded."""


class SlicingSession:
    """Manage one source image, its slicing geometry and its processing queue."""

    def __init__(
        self,
        source: Optional[Image.Image] = None,
        *,
        crop: Optional[PercentRect] = None,
        grid_lines: Optional[GridLines] = None,
        config: Optional[ProcessConfig] = None,
        processor: Optional[Processor] = None,
        dispatcher: Optional[Dispatcher] = None,
    ) -> None:
        self._source: Optional[Image.Image] = None
        self._crop = crop or PercentRect(*app_config.DEFAULT_CROP)
        self._grid_lines = grid_lines or uniform_grid_lines(
            app_config.DEFAULT_ROWS, app_config.DEFAULT_COLUMNS
        )
        self.queue = SliceProcessingQueue(config=config, processor=processor, dispatcher=dispatcher)
        if source is not None:
            self.set_source(source)

    @classmethod
    def from_path(cls, path: Union[str, Path], **kwargs: Any) -> "SlicingSession":
        return cls(load_source_image(path), **kwargs)

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------
    @property
    def source(self) -> Optional[Image.Image]:
        return self._source

    @property
    def crop(self) -> PercentRect:
        return self._crop

    @property
    def grid_lines(self) -> GridLines:
        return self._grid_lines

    @property
    def config(self) -> ProcessConfig:
        return self.queue.config

    @property
    def slices(self) -> Tuple[Slice, ...]:
        return self.queue.slices

    # ------------------------------------------------------------------
    # Geometry and source changes (full regeneration)
    # ------------------------------------------------------------------
    def load(self, path: Union[str, Path]) -> None:
        """Decode ``path`` and make it the new source.

        Raises:
            DecodeError: If the file cannot be loaded; the previous source is kept
        """
        self.set_source(load_source_image(path))

    def set_source(self, image: Image.Image) -> None:
        self._source = image.convert("RGBA") if image.mode != "RGBA" else image
        self._regenerate()

    def set_crop(self, crop: PercentRect) -> None:
        if crop == self._crop:
            return
        self._crop = crop
        self._regenerate()

    def set_grid_lines(self, grid_lines: GridLines) -> None:
        if grid_lines == self._grid_lines:
            return
        self._grid_lines = grid_lines
        self._regenerate()

    def set_grid(self, rows: int, columns: int) -> None:
        """Reset to an evenly spaced ``rows`` x ``columns`` grid."""
        self.set_grid_lines(uniform_grid_lines(rows, columns))

    def _regenerate(self) -> None:
        if self._source is None:
            return
        rects = resolve_geometry(self._source.size, self._crop, self._grid_lines)
        slices = extract_slices(self._source, rects)
        self.queue.replace_slices(slices)
        logger.info("Regenerated %d slices for crop %s", len(slices), self._crop)

    # ------------------------------------------------------------------
    # Processing options and per-slice edits
    # ------------------------------------------------------------------
    def set_config(self, config: ProcessConfig) -> None:
        self.queue.enqueue_config_change(config)

    def update_config(self, **changes: Any) -> ProcessConfig:
        """Apply field ``changes`` to the active config and return the new snapshot."""
        updated = replace(self.queue.config, **changes)
        self.set_config(updated)
        return updated

    def replace_slice_original(self, index: int, buffer: Image.Image) -> None:
        self.queue.replace_slice_original(index, buffer)

    def fine_tune(
        self,
        index: int,
        offset: Tuple[float, float] = (0.0, 0.0),
        scale: float = 1.0,
    ) -> Image.Image:
        """Re-crop slice ``index`` from the source and make it the slice's original."""
        if self._source is None:
            raise NoSourceImageError("No source image loaded")
        slices = self.queue.slices
        if not 0 <= index < len(slices):
            raise IndexError(f"Slice index out of range: {index}")
        buffer = render_fine_tune(self._source, slices[index].rect, offset, scale)
        self.queue.replace_slice_original(index, buffer)
        return buffer

    def process_all(self, timeout: Optional[float] = None) -> bool:
        """Finish all outstanding work; return ``True`` once nothing is pending."""
        self.queue.run_until_idle()
        return self.queue.wait_until_idle(timeout)

    def export(self, path: Union[str, Path]) -> Path:
        if self._source is None:
            raise NoSourceImageError("No source image loaded")
        return export_archive(self.queue.slices, path)


__all__ = ["SlicingSession", "NoSourceImageError"]
