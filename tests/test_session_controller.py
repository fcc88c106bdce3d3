"""Unit tests for the slicing session controller."""

from __future__ import annotations

import zipfile

import pytest
from PIL import Image

from smart_slicer.controllers import NoSourceImageError, SlicingSession
from smart_slicer.errors import DecodeError
from smart_slicer.geometry import GridLines, PercentRect
from smart_slicer.models import ProcessConfig, SliceStatus

from conftest import RED, WHITE

BLUE = (0, 0, 255, 255)


def _quadrants() -> Image.Image:
    """40x40 source: red top-left quadrant, blue elsewhere."""
    img = Image.new("RGBA", (40, 40), BLUE)
    img.paste(Image.new("RGBA", (20, 20), RED), (0, 0))
    return img


@pytest.fixture
def session() -> SlicingSession:
    return SlicingSession(_quadrants(), grid_lines=GridLines(v=[50], h=[50]))


def test_session_slices_source_on_creation(session):
    assert len(session.slices) == 4
    assert [s.rect.size for s in session.slices] == [(20, 20)] * 4
    assert session.slices[0].original.getpixel((10, 10)) == RED
    assert session.slices[3].original.getpixel((10, 10)) == BLUE
    assert all(s.status is SliceStatus.IDLE for s in session.slices)


def test_session_without_source_has_no_slices():
    session = SlicingSession()
    assert session.slices == ()
    with pytest.raises(NoSourceImageError):
        session.fine_tune(0)


def test_default_grid_is_four_by_four():
    session = SlicingSession(Image.new("RGB", (80, 40), (1, 2, 3)))
    assert len(session.slices) == 16
    assert session.source.mode == "RGBA"


def test_grid_change_regenerates_slices(session):
    old_ids = [s.id for s in session.slices]
    session.set_grid(1, 4)
    assert len(session.slices) == 4
    assert [s.rect.size for s in session.slices] == [(10, 40)] * 4
    assert not set(old_ids) & {s.id for s in session.slices}


def test_unchanged_crop_keeps_slices(session):
    ids = [s.id for s in session.slices]
    session.set_crop(PercentRect(0, 0, 100, 100))
    assert [s.id for s in session.slices] == ids


def test_crop_change_regenerates_slices(session):
    session.set_crop(PercentRect(0, 0, 50, 50))
    assert [s.rect.size for s in session.slices] == [(10, 10)] * 4
    assert all(s.original.getpixel((5, 5)) == RED for s in session.slices)


def test_update_config_requeues_and_processes(session):
    updated = session.update_config(remove_white=True)
    assert updated == ProcessConfig(remove_white=True)
    assert session.config is updated
    assert all(s.status is SliceStatus.PENDING for s in session.slices)

    assert session.process_all(timeout=5)
    assert all(s.status is SliceStatus.DONE for s in session.slices)


def test_regeneration_keeps_active_config(session):
    session.update_config(add_stroke=True, stroke_width=1)
    session.set_grid(2, 1)
    assert [s.status for s in session.slices] == [SliceStatus.PENDING] * 2


def test_fine_tune_replaces_original(session):
    buffer = session.fine_tune(0, offset=(5, 0))
    assert session.slices[0].original is not None
    assert buffer.getpixel((2, 10))[3] == 0
    assert buffer.getpixel((10, 10)) == RED
    assert session.slices[0].original.tobytes() == buffer.tobytes()


def test_fine_tune_rejects_bad_index(session):
    with pytest.raises(IndexError):
        session.fine_tune(9)


def test_failed_load_keeps_previous_source(session, tmp_path):
    broken = tmp_path / "broken.png"
    broken.write_bytes(b"not really a png")
    ids = [s.id for s in session.slices]

    with pytest.raises(DecodeError):
        session.load(broken)
    assert [s.id for s in session.slices] == ids


def test_from_path_loads_file(tmp_path):
    path = tmp_path / "source.png"
    Image.new("RGB", (8, 8), (255, 255, 255)).save(path)
    session = SlicingSession.from_path(path, grid_lines=GridLines())
    assert len(session.slices) == 1
    assert session.slices[0].original.getpixel((0, 0)) == WHITE


def test_export_writes_archive(session, tmp_path):
    session.update_config(remove_white=True)
    session.process_all()
    target = session.export(tmp_path / "slices.zip")
    with zipfile.ZipFile(target) as archive:
        assert archive.namelist() == [f"slice_{n}.png" for n in range(1, 5)]


def test_export_requires_source(tmp_path):
    with pytest.raises(NoSourceImageError):
        SlicingSession().export(tmp_path / "slices.zip")
