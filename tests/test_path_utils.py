from pathlib import Path

import pytest

from pngquant_tuner.path_utils import abs_path, abs_path_str, format_kb, path_from_drop


def test_abs_path_for_missing_file(tmp_path: Path) -> None:
    p = abs_path(tmp_path / "a" / ".." / "missing.png")
    assert p.is_absolute()
    assert p == (tmp_path / "missing.png").resolve()
    assert abs_path_str(p) == str(p)


def test_path_from_drop_accepts_file_url(tmp_path: Path) -> None:
    target = tmp_path / "with space.png"
    assert path_from_drop(target.resolve().as_uri()) == target.resolve()
    assert path_from_drop(f"  {target}  ") == target.resolve()


def test_format_kb() -> None:
    assert format_kb(0) == "0.00"
    assert format_kb(1024) == "1.00"
    assert format_kb(204800) == "200.00"
    assert format_kb(1536) == "1.50"
    with pytest.raises(ValueError):
        format_kb(-1)
