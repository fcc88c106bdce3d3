# main.py
"""
Command line entry point for Smart Slicer.

Slices an image into a grid, optionally removes the white background,
applies a colour filter and adds an outline, then writes a zip archive.
"""
import argparse
import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional, Sequence

from . import config
from .controllers import SlicingSession
from .errors import DecodeError, RenderContextError
from .geometry import PercentRect, uniform_grid_lines
from .models import ProcessConfig
from .validation import parse_hex_color

LOGGER_NAME = "smart_slicer"


def configure_logging(log_path: Optional[Path] = None) -> logging.Logger:
    """Configure and return the application logger.

    Handler setup is idempotent so importing or calling this repeatedly (e.g.
    in tests) does not duplicate output.  A rotating file handler limits
    on-disk log growth while mirroring output to stdout.
    """

    logger = logging.getLogger(LOGGER_NAME)
    if logger.handlers:
        return logger

    logger.setLevel(logging.INFO)

    formatter = logging.Formatter(
        "%(asctime)s - %(levelname)s - %(name)s - %(message)s"
    )

    if log_path is None:
        log_path = Path.cwd() / "smart_slicer.log"
    log_path.parent.mkdir(parents=True, exist_ok=True)

    file_handler = RotatingFileHandler(
        log_path,
        maxBytes=1_048_576,
        backupCount=5,
        encoding="utf-8",
    )
    file_handler.setFormatter(formatter)

    stream_handler = logging.StreamHandler(sys.stdout)
    stream_handler.setFormatter(formatter)

    logger.addHandler(file_handler)
    logger.addHandler(stream_handler)
    logger.propagate = False

    return logger


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="smart-slicer",
        description="Slice an image into a grid and post-process each slice.",
    )
    parser.add_argument("image", type=Path, help="source image")
    parser.add_argument(
        "-o", "--output", type=Path, default=Path(config.EXPORT_ARCHIVE_NAME),
        help=f"zip archive to write (default: {config.EXPORT_ARCHIVE_NAME})",
    )
    parser.add_argument("--rows", type=int, default=config.DEFAULT_ROWS)
    parser.add_argument("--cols", type=int, default=config.DEFAULT_COLUMNS)
    parser.add_argument(
        "--crop", type=float, nargs=4, metavar=("X", "Y", "W", "H"),
        default=list(config.DEFAULT_CROP), help="crop rectangle in percent",
    )
    parser.add_argument("--remove-white", action="store_true", help="remove white background")
    parser.add_argument("--stroke", action="store_true", help="outline each slice")
    parser.add_argument(
        "--stroke-width", type=int, default=config.DEFAULT_STROKE_WIDTH,
        choices=range(config.STROKE_WIDTH_MIN, config.STROKE_WIDTH_MAX + 1), metavar="N",
    )
    parser.add_argument("--stroke-color", type=parse_hex_color, default=config.DEFAULT_STROKE_COLOR)
    parser.add_argument("--filter", choices=config.FILTER_NAMES, default=None)
    parser.add_argument("--log-file", type=Path, default=None)
    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    logger = configure_logging(args.log_file)

    process_config = ProcessConfig(
        remove_white=args.remove_white,
        add_stroke=args.stroke,
        stroke_width=args.stroke_width,
        stroke_color=args.stroke_color,
        filter=args.filter,
    )
    try:
        session = SlicingSession.from_path(
            args.image,
            crop=PercentRect(*args.crop),
            grid_lines=uniform_grid_lines(args.rows, args.cols),
            config=process_config,
        )
        session.process_all()
        failed = [s.id for s in session.slices if s.error]
        if failed:
            logger.warning("%d slice(s) failed and were exported unprocessed", len(failed))
        target = session.export(args.output)
    except DecodeError as exc:
        logger.error("Could not load %s: %s", args.image, exc)
        return 1
    except RenderContextError as exc:
        logger.error("Rendering failed: %s", exc)
        return 1
    except ValueError as exc:
        logger.error("Invalid arguments: %s", exc)
        return 2

    logger.info("Wrote %d slices to %s", len(session.slices), target)
    return 0


if __name__ == "__main__":
    sys.exit(main())
