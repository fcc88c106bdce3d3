import logging
import zipfile

import pytest
from PIL import Image

from smart_slicer import main as cli


@pytest.fixture(autouse=True)
def reset_app_logger():
    """Drop handlers ``configure_logging`` attaches so later tests see clean logging."""
    yield
    logger = logging.getLogger(cli.LOGGER_NAME)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()
    logger.propagate = True
    logger.setLevel(logging.NOTSET)


@pytest.fixture
def source(tmp_path):
    path = tmp_path / "sheet.png"
    img = Image.new("RGB", (40, 20), (255, 255, 255))
    img.paste(Image.new("RGB", (10, 10), (200, 0, 0)), (5, 5))
    img.save(path)
    return path


def test_configure_logging_is_idempotent(tmp_path):
    log_file = tmp_path / "logs" / "app.log"
    first = cli.configure_logging(log_file)
    second = cli.configure_logging(log_file)
    assert first is second
    assert len(first.handlers) == 2
    assert log_file.parent.is_dir()


def test_cli_writes_archive(source, tmp_path):
    output = tmp_path / "out.zip"
    code = cli.main(
        [
            str(source), "-o", str(output), "--rows", "1", "--cols", "2",
            "--remove-white", "--stroke", "--stroke-width", "2",
            "--stroke-color", "#000", "--filter", "warm",
            "--log-file", str(tmp_path / "run.log"),
        ]
    )
    assert code == 0
    with zipfile.ZipFile(output) as archive:
        assert archive.namelist() == ["slice_1.png", "slice_2.png"]


def test_cli_reports_missing_source(tmp_path):
    code = cli.main([str(tmp_path / "absent.png"), "--log-file", str(tmp_path / "run.log")])
    assert code == 1


def test_cli_rejects_bad_output(source, tmp_path):
    code = cli.main(
        [str(source), "-o", str(tmp_path / "out.rar"), "--log-file", str(tmp_path / "run.log")]
    )
    assert code == 2


def test_parser_rejects_unknown_filter():
    with pytest.raises(SystemExit):
        cli.build_parser().parse_args(["image.png", "--filter", "posterize"])


def test_parser_defaults():
    args = cli.build_parser().parse_args(["image.png"])
    assert (args.rows, args.cols) == (4, 4)
    assert args.stroke_color == (255, 255, 255)
    assert args.filter is None
