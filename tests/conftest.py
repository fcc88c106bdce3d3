"""Shared fixtures for the Smart Slicer test-suite."""

from __future__ import annotations

from typing import Callable, List, Tuple

import pytest
from PIL import Image, ImageDraw

from smart_slicer.cache import ResultCache, configure_cache
from smart_slicer.geometry import PixelRect
from smart_slicer.models import Slice

WHITE = (255, 255, 255, 255)
RED = (255, 0, 0, 255)
BLACK = (0, 0, 0, 255)


@pytest.fixture(autouse=True)
def fresh_result_cache():
    """Give every test an empty shared result cache."""
    configure_cache(ResultCache)
    yield
    configure_cache(ResultCache)


@pytest.fixture
def solid_image() -> Callable[..., Image.Image]:
    def _make(size: Tuple[int, int] = (8, 8), color=RED) -> Image.Image:
        return Image.new("RGBA", size, color)

    return _make


@pytest.fixture
def framed_image() -> Callable[..., Image.Image]:
    """White canvas with an opaque rectangle inset by ``border`` pixels."""

    def _make(size: Tuple[int, int] = (10, 10), border: int = 1, fill=RED) -> Image.Image:
        img = Image.new("RGBA", size, WHITE)
        draw = ImageDraw.Draw(img)
        draw.rectangle((border, border, size[0] - 1 - border, size[1] - 1 - border), fill=fill)
        return img

    return _make


@pytest.fixture
def make_slices(framed_image) -> Callable[[int], List[Slice]]:
    def _make(count: int = 5) -> List[Slice]:
        return [
            Slice(
                id=f"slice-{i}",
                rect=PixelRect(x=i * 10, y=0, w=10, h=10),
                original=framed_image(),
            )
            for i in range(count)
        ]

    return _make
