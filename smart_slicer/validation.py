"""Input validation helpers for file handling and user supplied options."""
from __future__ import annotations

import re
from pathlib import Path
from typing import Iterable, Tuple, Union
from urllib.parse import urlparse

_HEX_COLOR = re.compile(r"^#?([0-9a-fA-F]{3}|[0-9a-fA-F]{6})$")


def _has_url_scheme(path_str: str) -> bool:
    """Return True if *path_str* looks like a URL with a scheme.

    Single-letter schemes such as ``"C"`` are Windows drive letters and are
    ignored.
    """
    parsed = urlparse(path_str)
    return bool(parsed.scheme and len(parsed.scheme) > 1)


def _check_extension(p: Path, allowed_exts: Iterable[str]) -> None:
    if p.suffix.lower() not in {ext.lower() for ext in allowed_exts}:
        raise ValueError(f"Unsupported file extension: {p.suffix}")


def validate_image_path(path: Union[str, Path], allowed_exts: Iterable[str]) -> Path:
    """Validate a source image *path* and return it resolved.

    The path must name an existing file with an allowed extension and must not
    be a URL.
    """
    path_str = str(path)
    if _has_url_scheme(path_str):
        raise ValueError("URLs are not allowed")

    p = Path(path_str).expanduser()
    try:
        p = p.resolve(strict=True)
    except FileNotFoundError as exc:
        raise ValueError(f"File does not exist: {path_str}") from exc

    if not p.is_file():
        raise ValueError(f"Not a file: {path_str}")
    _check_extension(p, allowed_exts)
    return p


def validate_output_path(path: Union[str, Path], allowed_exts: Iterable[str]) -> Path:
    """Validate an export *path* whose parent directory must already exist."""
    path_str = str(path)
    if _has_url_scheme(path_str):
        raise ValueError("URLs are not allowed")

    p = Path(path_str).expanduser().resolve()
    if not p.parent.exists():
        raise ValueError(f"Directory does not exist: {p.parent}")
    _check_extension(p, allowed_exts)
    return p


def parse_hex_color(value: str) -> Tuple[int, int, int]:
    """Parse ``#RGB`` or ``#RRGGBB`` (leading ``#`` optional) into an RGB tuple."""
    match = _HEX_COLOR.match(value.strip())
    if not match:
        raise ValueError(f"Invalid colour: {value!r}")
    digits = match.group(1)
    if len(digits) == 3:
        digits = "".join(ch * 2 for ch in digits)
    return tuple(int(digits[i:i + 2], 16) for i in (0, 2, 4))  # type: ignore[return-value]
