from __future__ import annotations

import json
from pathlib import Path

import pytest

from pngquant_tuner.conversion import (
    ConversionFailure,
    ConversionParameters,
    ConversionRequest,
    ConversionSuccess,
    ExternalCompressor,
    FailureKind,
    SourceImage,
    TempArtifactStore,
    build_arguments,
    resolve_pngquant,
)


def _request(path: Path, generation: int = 1, **params) -> ConversionRequest:
    return ConversionRequest(SourceImage.from_path(path), ConversionParameters(**params), generation)


def _logged_calls(tmp_path: Path) -> list[list[str]]:
    log = tmp_path / "calls.log"
    if not log.exists():
        return []
    return [json.loads(line) for line in log.read_text(encoding="utf-8").splitlines()]


def test_build_arguments_maps_parameters_in_order() -> None:
    args = build_arguments(ConversionParameters(), Path("/tmp/out.png"), Path("/src/in.png"))
    assert args == [
        "--quality=50-55",
        "--colors=128",
        "--floyd=0.5",
        "--speed=7",
        "--output",
        str(Path("/tmp/out.png")),
        str(Path("/src/in.png")),
    ]


def test_quality_range_spans_five_points() -> None:
    args = build_arguments(ConversionParameters(quality=90), Path("o.png"), Path("s.png"))
    assert args[0] == "--quality=90-95"


def test_resolve_pngquant_prefers_setting_then_env(monkeypatch) -> None:
    monkeypatch.setenv("PNGQUANT_TUNER_PNGQUANT", "/opt/env/pngquant")
    assert resolve_pngquant("/opt/setting/pngquant") == "/opt/setting/pngquant"
    assert resolve_pngquant(None) == "/opt/env/pngquant"


def test_compress_success_passes_expected_arguments(tmp_path, png_file, scratch_dir, fake_pngquant) -> None:
    store = TempArtifactStore(scratch_dir)
    compressor = ExternalCompressor(store, fake_pngquant)

    result = compressor.compress(_request(png_file))

    assert isinstance(result, ConversionSuccess)
    assert result.artifact_path == scratch_dir / "photo_preview.png"
    assert result.artifact_path.is_file()
    assert result.artifact_size == result.artifact_path.stat().st_size
    assert result.source_size == png_file.stat().st_size

    (call,) = _logged_calls(tmp_path)
    assert call[:4] == ["--quality=50-55", "--colors=128", "--floyd=0.5", "--speed=7"]
    assert call[-1] == str(png_file.resolve())
    assert call[call.index("--output") + 1] == str(scratch_dir / "photo_preview.png")


def test_sizes_are_stable_for_identical_requests(png_file, scratch_dir, fake_pngquant) -> None:
    compressor = ExternalCompressor(TempArtifactStore(scratch_dir), fake_pngquant)
    first = compressor.compress(_request(png_file, 1))
    second = compressor.compress(_request(png_file, 2))
    assert isinstance(first, ConversionSuccess) and isinstance(second, ConversionSuccess)
    assert (first.artifact_size, first.source_size) == (second.artifact_size, second.source_size)


def test_nonzero_exit_is_exit_failure_and_stale_preview_is_gone(
    png_file, scratch_dir, fake_pngquant, monkeypatch
) -> None:
    store = TempArtifactStore(scratch_dir)
    stale = store.artifact_path(SourceImage.from_path(png_file))
    stale.parent.mkdir(parents=True)
    stale.write_bytes(b"old preview")
    monkeypatch.setenv("FAKE_PNGQUANT_EXIT", "99")

    result = ExternalCompressor(store, fake_pngquant).compress(_request(png_file))

    assert isinstance(result, ConversionFailure)
    assert result.kind is FailureKind.EXIT
    assert "99" in result.reason
    assert not stale.exists()


def test_missing_tool_is_launch_failure_and_keeps_previous_preview(png_file, scratch_dir, tmp_path) -> None:
    store = TempArtifactStore(scratch_dir)
    previous = store.artifact_path(SourceImage.from_path(png_file))
    previous.parent.mkdir(parents=True)
    previous.write_bytes(b"previous preview")

    missing = tmp_path / "no" / "such" / "pngquant"
    result = ExternalCompressor(store, missing).compress(_request(png_file))

    assert isinstance(result, ConversionFailure)
    assert result.kind is FailureKind.LAUNCH
    assert previous.read_bytes() == b"previous preview"


def test_missing_tool_creates_no_artifact(png_file, scratch_dir, tmp_path) -> None:
    store = TempArtifactStore(scratch_dir)
    result = ExternalCompressor(store, tmp_path / "pngquant-missing").compress(_request(png_file))
    assert result.kind is FailureKind.LAUNCH  # type: ignore[union-attr]
    assert store.list_artifacts() == []


@pytest.mark.parametrize("switch", ["FAKE_PNGQUANT_EMPTY", "FAKE_PNGQUANT_SKIP"])
def test_unusable_output_is_output_missing(png_file, scratch_dir, fake_pngquant, monkeypatch, switch) -> None:
    monkeypatch.setenv(switch, "1")
    result = ExternalCompressor(TempArtifactStore(scratch_dir), fake_pngquant).compress(_request(png_file))
    assert isinstance(result, ConversionFailure)
    assert result.kind is FailureKind.OUTPUT_MISSING


def test_deleted_source_is_source_missing(png_file, scratch_dir, fake_pngquant, tmp_path) -> None:
    request = _request(png_file)
    png_file.unlink()
    result = ExternalCompressor(TempArtifactStore(scratch_dir), fake_pngquant).compress(request)
    assert isinstance(result, ConversionFailure)
    assert result.kind is FailureKind.SOURCE_MISSING
    assert _logged_calls(tmp_path) == []


def test_timeout_is_exit_failure(png_file, scratch_dir, fake_pngquant, monkeypatch) -> None:
    monkeypatch.setenv("FAKE_PNGQUANT_SLEEP", "3")
    compressor = ExternalCompressor(TempArtifactStore(scratch_dir), fake_pngquant, timeout=0.5)
    result = compressor.compress(_request(png_file))
    assert isinstance(result, ConversionFailure)
    assert result.kind is FailureKind.EXIT
    assert "did not finish" in result.reason
