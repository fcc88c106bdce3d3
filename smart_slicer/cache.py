"""Thread-safe LRU cache for processed slice buffers.

Processing is a pure function of a slice's original pixels and the active
``ProcessConfig``.  Memoising it means that toggling an option off and back
on does not redo the matting and stroke work for every slice.  Entries are
never handed out directly: callers get private copies so no buffer is shared
between two owners.

The module exposes factory and context-manager helpers so tests can swap in
a fresh cache without relying on import order.
"""

from __future__ import annotations

import hashlib
from collections import OrderedDict
from contextlib import contextmanager
from threading import RLock
from typing import Callable, Iterator, Optional

from PIL import Image

from . import config


def buffer_digest(image: Image.Image) -> str:
    """Return a content hash of ``image``'s size, mode and pixels."""
    digest = hashlib.md5()
    digest.update(f"{image.mode}:{image.size}".encode())
    digest.update(image.tobytes())
    return digest.hexdigest()


class ResultCache:
    """A simple thread-safe LRU cache of RGBA buffers."""

    def __init__(
        self,
        max_size: int = config.MAX_CACHE_SIZE,
        cleanup_threshold: float = config.CACHE_CLEANUP_THRESHOLD,
    ) -> None:
        if max_size <= 0:
            raise ValueError("max_size must be greater than zero")
        self.max_size = max_size
        self.cleanup_threshold = cleanup_threshold
        self._cache: "OrderedDict[str, Image.Image]" = OrderedDict()
        self._lock = RLock()
        self.hits = 0
        self.misses = 0

    def __len__(self) -> int:
        with self._lock:
            return len(self._cache)

    def get(self, key: str) -> Optional[Image.Image]:
        """Return a copy of the buffer stored under *key*, or ``None``.

        A hit marks the entry as most recently used.
        """
        with self._lock:
            try:
                value = self._cache.pop(key)
            except KeyError:
                self.misses += 1
                return None
            self._cache[key] = value
            self.hits += 1
            return value.copy()

    def put(self, key: str, image: Image.Image) -> None:
        """Store a copy of *image* under *key*.

        When the cache grows beyond ``max_size * cleanup_threshold`` a cleanup
        pass removes the least recently used entries first.
        """
        with self._lock:
            if key in self._cache:
                self._cache.pop(key)
            elif len(self._cache) >= self.max_size * self.cleanup_threshold:
                self._cleanup()
            self._cache[key] = image.copy()

    def _cleanup(self) -> None:
        target = max(self.max_size // 2, 1)
        while len(self._cache) > target:
            self._cache.popitem(last=False)

    def clear(self) -> None:
        with self._lock:
            self._cache.clear()


_cache_factory: Callable[[], ResultCache] = ResultCache
_cache_instance: Optional[ResultCache] = None
_cache_factory_lock = RLock()


def configure_cache(factory: Callable[[], ResultCache], *, reset: bool = True) -> None:
    """Set the factory used to lazily build the shared :class:`ResultCache`.

    With ``reset`` (default) the current instance is dropped so the next
    :func:`get_cache` call uses ``factory``.
    """
    if not callable(factory):
        raise TypeError("factory must be callable")

    global _cache_factory, _cache_instance
    with _cache_factory_lock:
        _cache_factory = factory
        if reset:
            _cache_instance = None


def get_cache() -> ResultCache:
    """Return the lazily constructed shared cache."""
    global _cache_instance
    with _cache_factory_lock:
        if _cache_instance is None:
            _cache_instance = _cache_factory()
        return _cache_instance


@contextmanager
def override_cache(cache: ResultCache) -> Iterator[ResultCache]:
    """Temporarily make *cache* the shared instance within a ``with`` block."""
    global _cache_factory, _cache_instance
    with _cache_factory_lock:
        previous_factory = _cache_factory
        previous_instance = _cache_instance
        _cache_factory = lambda: cache  # noqa: E731
        _cache_instance = cache
    try:
        yield cache
    finally:
        with _cache_factory_lock:
            _cache_factory = previous_factory
            _cache_instance = previous_instance


__all__ = [
    "ResultCache",
    "buffer_digest",
    "configure_cache",
    "get_cache",
    "override_cache",
]
