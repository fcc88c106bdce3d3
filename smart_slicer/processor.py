"""Per-slice processing pipeline: matting -> filter -> stroke."""

from __future__ import annotations

import logging
from typing import Optional

from PIL import Image

from .cache import ResultCache, buffer_digest, get_cache
from .errors import RenderContextError, SliceProcessingError
from .models import ProcessConfig
from .ops import add_stroke, apply_filter, remove_background

logger = logging.getLogger(__name__)


def process_slice(buffer: Image.Image, config: ProcessConfig) -> Image.Image:
    """Apply ``config`` to ``buffer`` in the fixed order matting, filter, stroke.

    The input is never modified.  Without a stroke the output keeps the
    input size; with one it grows by the stroke padding on every side.
    """
    result = buffer.convert("RGBA") if buffer.mode != "RGBA" else buffer.copy()
    if config.remove_white:
        result = remove_background(result)
    if config.filter:
        result = apply_filter(result, config.filter)
    if config.add_stroke:
        result = add_stroke(result, config.stroke_width, config.stroke_color)
    return result


class SliceProcessor:
    """Runs :func:`process_slice` with result caching and error wrapping."""

    def __init__(self, cache: Optional[ResultCache] = None, *, use_cache: bool = True):
        self._cache = cache
        self.use_cache = use_cache

    @property
    def cache(self) -> ResultCache:
        return self._cache if self._cache is not None else get_cache()

    def _cache_key(self, buffer: Image.Image, config: ProcessConfig) -> str:
        return f"{buffer_digest(buffer)}:{config.cache_token()}"

    def process(
        self,
        buffer: Image.Image,
        config: ProcessConfig,
        *,
        slice_id: Optional[str] = None,
    ) -> Image.Image:
        """Return the processed copy of ``buffer``.

        Raises:
            SliceProcessingError: If any transform fails for this slice
            RenderContextError: If a drawing surface cannot be allocated
        """
        key = self._cache_key(buffer, config) if self.use_cache else None
        if key is not None:
            cached = self.cache.get(key)
            if cached is not None:
                logger.debug("Cache hit for %s", slice_id or key)
                return cached

        try:
            result = process_slice(buffer, config)
        except RenderContextError:
            raise
        except Exception as exc:
            logger.error("Error processing %s: %s", slice_id or "slice", exc)
            raise SliceProcessingError(
                f"Failed to process {slice_id or 'slice'}: {exc}", slice_id=slice_id
            ) from exc

        if key is not None:
            self.cache.put(key, result)
        return result

    __call__ = process


__all__ = ["process_slice", "SliceProcessor"]
