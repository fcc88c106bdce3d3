import io
import zipfile

import pytest
from PIL import Image

from smart_slicer.export import encode_png, export_archive, save_slices, slice_filename
from smart_slicer.models import SliceStatus

from conftest import RED


def test_encode_png_roundtrips_pixels(solid_image):
    data = encode_png(solid_image(color=(1, 2, 3, 4)))
    assert data.startswith(b"\x89PNG")
    with Image.open(io.BytesIO(data)) as decoded:
        assert decoded.mode == "RGBA"
        assert decoded.getpixel((0, 0)) == (1, 2, 3, 4)


def test_slice_filenames_are_one_based():
    assert slice_filename(0) == "slice_1.png"
    assert slice_filename(11) == "slice_12.png"


def test_archive_prefers_processed_buffers(make_slices, tmp_path):
    slices = make_slices(3)
    processed = Image.new("RGBA", (14, 14), (0, 0, 0, 0))
    slices[1] = slices[1].evolve(processed=processed, status=SliceStatus.DONE)

    target = export_archive(slices, tmp_path / "out.zip")
    with zipfile.ZipFile(target) as archive:
        assert archive.namelist() == ["slice_1.png", "slice_2.png", "slice_3.png"]
        with Image.open(io.BytesIO(archive.read("slice_2.png"))) as second:
            assert second.size == (14, 14)
        with Image.open(io.BytesIO(archive.read("slice_1.png"))) as first:
            assert first.size == (10, 10)
            assert first.getpixel((5, 5)) == RED


def test_export_refuses_while_processing(make_slices, tmp_path):
    slices = make_slices(2)
    slices[0] = slices[0].evolve(status=SliceStatus.PENDING)
    with pytest.raises(RuntimeError):
        export_archive(slices, tmp_path / "out.zip")
    with pytest.raises(RuntimeError):
        save_slices(slices, tmp_path)


def test_export_archive_validates_target(make_slices, tmp_path):
    with pytest.raises(ValueError):
        export_archive(make_slices(1), tmp_path / "out.tar")
    with pytest.raises(ValueError):
        export_archive(make_slices(1), tmp_path / "missing" / "out.zip")


def test_save_slices_writes_numbered_files(make_slices, tmp_path):
    written = save_slices(make_slices(2), tmp_path)
    assert [p.name for p in written] == ["slice_1.png", "slice_2.png"]
    assert all(p.is_file() for p in written)


def test_save_slices_requires_existing_directory(make_slices, tmp_path):
    with pytest.raises(OSError):
        save_slices(make_slices(1), tmp_path / "nowhere")
