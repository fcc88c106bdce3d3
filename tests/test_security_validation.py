import pytest

from smart_slicer import config
from smart_slicer.extractor import VALID_EXTENSIONS
from smart_slicer.validation import parse_hex_color, validate_image_path, validate_output_path


def test_validate_image_path_rejects_urls(tmp_path):
    with pytest.raises(ValueError):
        validate_image_path("http://example.com/a.png", VALID_EXTENSIONS)


def test_validate_image_path_rejects_bad_extension(tmp_path):
    f = tmp_path / "evil.txt"
    f.write_text("not an image")
    with pytest.raises(ValueError):
        validate_image_path(f, VALID_EXTENSIONS)


def test_validate_image_path_rejects_missing_and_directories(tmp_path):
    with pytest.raises(ValueError):
        validate_image_path(tmp_path / "nope.png", VALID_EXTENSIONS)
    folder = tmp_path / "dir.png"
    folder.mkdir()
    with pytest.raises(ValueError):
        validate_image_path(folder, VALID_EXTENSIONS)


def test_validate_image_path_is_case_insensitive(tmp_path):
    f = tmp_path / "photo.PNG"
    f.write_bytes(b"")
    assert validate_image_path(f, VALID_EXTENSIONS) == f.resolve()


def test_validate_output_path_checks_directory(tmp_path):
    bad_dir = tmp_path / "missing" / "out.zip"
    with pytest.raises(ValueError):
        validate_output_path(bad_dir, {".zip"})


def test_validate_output_path_checks_extension(tmp_path):
    with pytest.raises(ValueError):
        validate_output_path(tmp_path / "out.png", {".zip"})
    assert validate_output_path(tmp_path / "out.zip", {".zip"}).name == "out.zip"


def test_valid_extensions_follow_supported_formats():
    assert {f".{fmt}" for fmt in config.SUPPORTED_IMAGE_FORMATS} == VALID_EXTENSIONS
    assert ".png" in VALID_EXTENSIONS


@pytest.mark.parametrize(
    "value, expected",
    [
        ("#ffffff", (255, 255, 255)),
        ("#FF8000", (255, 128, 0)),
        ("0a0b0c", (10, 11, 12)),
        ("#f80", (255, 136, 0)),
        ("  #000  ", (0, 0, 0)),
    ],
)
def test_parse_hex_color(value, expected):
    assert parse_hex_color(value) == expected


@pytest.mark.parametrize("value", ["", "#12", "#12345", "red", "#gggggg", "#1234567"])
def test_parse_hex_color_rejects_garbage(value):
    with pytest.raises(ValueError):
        parse_hex_color(value)
