"""Tests for the processed-buffer cache and its factory helpers."""
from __future__ import annotations

import threading

import pytest
from PIL import Image

from smart_slicer.cache import (
    ResultCache,
    buffer_digest,
    configure_cache,
    get_cache,
    override_cache,
)


def _img(value: int) -> Image.Image:
    return Image.new("RGBA", (2, 2), (value, value, value, 255))


def test_configure_cache_allows_custom_factory() -> None:
    """A custom factory should be invoked lazily and configure cache limits."""

    configure_cache(lambda: ResultCache(max_size=1))
    cache = get_cache()
    assert isinstance(cache, ResultCache)
    assert cache.max_size == 1


def test_configure_cache_rejects_non_callable() -> None:
    with pytest.raises(TypeError):
        configure_cache("not a factory")  # type: ignore[arg-type]


def test_override_cache_temporarily_swaps_instance() -> None:
    """The override context should swap caches and restore the prior instance."""

    original = get_cache()
    replacement = ResultCache(max_size=2)
    with override_cache(replacement) as cache:
        assert cache is replacement
        assert get_cache() is replacement
    assert get_cache() is original


def test_max_size_must_be_positive() -> None:
    with pytest.raises(ValueError):
        ResultCache(max_size=0)


def test_lru_eviction_order() -> None:
    """The least recently used entry is evicted first."""

    cache = ResultCache(max_size=2, cleanup_threshold=1.0)
    cache.put("a", _img(1))
    cache.put("b", _img(2))
    cache.get("a")
    cache.put("c", _img(3))

    assert cache.get("b") is None
    assert cache.get("a").getpixel((0, 0))[0] == 1
    assert cache.get("c").getpixel((0, 0))[0] == 3


def test_entries_are_copied_in_and_out() -> None:
    cache = ResultCache()
    source = _img(5)
    cache.put("k", source)
    source.putpixel((0, 0), (9, 9, 9, 255))

    first = cache.get("k")
    first.putpixel((1, 1), (7, 7, 7, 255))
    second = cache.get("k")

    assert second is not first
    assert second.getpixel((0, 0)) == (5, 5, 5, 255)
    assert second.getpixel((1, 1)) == (5, 5, 5, 255)


def test_hit_and_miss_counters() -> None:
    cache = ResultCache()
    assert cache.get("missing") is None
    cache.put("k", _img(1))
    cache.get("k")
    assert (cache.hits, cache.misses) == (1, 1)
    cache.clear()
    assert len(cache) == 0


def test_buffer_digest_tracks_pixels_size_and_mode() -> None:
    base = _img(10)
    assert buffer_digest(base) == buffer_digest(_img(10))
    assert buffer_digest(base) != buffer_digest(_img(11))
    assert buffer_digest(base) != buffer_digest(Image.new("RGBA", (4, 1), (10, 10, 10, 255)))
    assert buffer_digest(base) != buffer_digest(base.convert("RGB"))


def test_thread_safety() -> None:
    """Cache operations across threads should remain bounded by ``max_size``."""

    cache = ResultCache(max_size=10)

    def worker(start: int) -> None:
        for i in range(start, start + 5):
            cache.put(str(i), _img(i))
            cache.get(str(i))

    threads = [threading.Thread(target=worker, args=(n * 5,)) for n in range(2)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert len(cache) <= cache.max_size
