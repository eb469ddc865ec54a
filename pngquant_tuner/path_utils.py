"""Path normalization utilities.

- Use absolute paths when interacting with the filesystem/UI.
- Accept ``file://`` URLs (drag & drop payloads) as well as plain paths.

Keep this module free of Qt dependencies.
"""

from __future__ import annotations

from pathlib import Path
from urllib.parse import unquote, urlparse

_DRIVE_PREFIX_LEN = 2


def _normalize_drive_letter(path_str: str) -> str:
    # Normalize drive letter casing on Windows ("c:\\" -> "C:\\").
    if len(path_str) >= _DRIVE_PREFIX_LEN and path_str[1] == ":":
        return path_str[0].upper() + path_str[1:]
    return path_str


def abs_path(path: str | Path) -> Path:
    """Return an absolute path without requiring that it exists."""
    p = Path(path).expanduser()
    try:
        # strict=False avoids exceptions for non-existent paths.
        return p.resolve(strict=False)
    except OSError:
        return p.absolute()


def abs_path_str(path: str | Path) -> str:
    """Absolute, OS-native path string (Windows uses backslashes)."""
    return _normalize_drive_letter(str(abs_path(path)))


def path_from_drop(value: str) -> Path:
    """Turn a dropped/pasted value (plain path or file:// URL) into an absolute path."""
    text = str(value).strip()
    if text.startswith("file://"):
        parsed = urlparse(text)
        text = unquote(parsed.path)
        # file:///C:/x.png -> /C:/x.png
        if len(text) > _DRIVE_PREFIX_LEN and text[0] == "/" and text[2] == ":":
            text = text[1:]
    return abs_path(text)


def format_kb(size_bytes: int) -> str:
    """Size in KB with two decimals, the way the status line shows it."""
    if size_bytes < 0:
        raise ValueError("size_bytes must be non-negative")
    return f"{size_bytes / 1024.0:.2f}"
