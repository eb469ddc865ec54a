from __future__ import annotations

from pathlib import Path

import pytest

from pngquant_tuner.conversion import ArtifactAccessError, SourceImage, TempArtifactStore
from pngquant_tuner.conversion.artifact_store import DEFAULT_DIR_NAME


def test_default_scratch_dir_is_dedicated_subdirectory(monkeypatch, tmp_path: Path) -> None:
    monkeypatch.setattr("tempfile.gettempdir", lambda: str(tmp_path))
    store = TempArtifactStore()
    assert store.scratch_dir == tmp_path / DEFAULT_DIR_NAME
    assert store.scratch_dir.is_dir()


def test_artifact_path_is_stable_per_source(png_file: Path, scratch_dir: Path) -> None:
    store = TempArtifactStore(scratch_dir)
    source = SourceImage.from_path(png_file)
    assert store.artifact_path(source) == scratch_dir / "photo_preview.png"
    assert store.artifact_path(source) == store.artifact_path(SourceImage.from_path(png_file))


def test_size_of_missing_file_raises(scratch_dir: Path) -> None:
    store = TempArtifactStore(scratch_dir)
    with pytest.raises(ArtifactAccessError):
        store.size_of(scratch_dir / "missing_preview.png")


def test_prepare_for_write_removes_stale_artifact(scratch_dir: Path) -> None:
    store = TempArtifactStore(scratch_dir)
    target = store.scratch_dir / "a_preview.png"
    target.write_bytes(b"stale")
    with store.lock_for(target):
        store.prepare_for_write(target)
    assert not target.exists()
    # Nothing to remove is fine too.
    with store.lock_for(target):
        store.prepare_for_write(target)


def test_lock_for_returns_same_lock_per_path(scratch_dir: Path) -> None:
    store = TempArtifactStore(scratch_dir)
    a = scratch_dir / "a_preview.png"
    assert store.lock_for(a) is store.lock_for(Path(str(a)))
    assert store.lock_for(a) is not store.lock_for(scratch_dir / "b_preview.png")


def test_discard_removes_only_that_sources_artifact(make_png, scratch_dir: Path) -> None:
    store = TempArtifactStore(scratch_dir)
    first = SourceImage.from_path(make_png("first.png"))
    second = SourceImage.from_path(make_png("second.png"))
    for source in (first, second):
        store.scratch_dir.joinpath(store.artifact_path(source).name).write_bytes(b"x")

    assert store.discard(first) is True
    assert store.discard(first) is False
    assert store.list_artifacts() == [store.artifact_path(second)]


def test_purge_all_empties_scratch_and_reports(scratch_dir: Path) -> None:
    store = TempArtifactStore(scratch_dir)
    for name in ("a_preview.png", "b_preview.png", "leftover.tmp"):
        (store.scratch_dir / name).write_bytes(b"x")

    report = store.purge_all()

    assert report.ok
    assert sorted(p.name for p in report.removed) == ["a_preview.png", "b_preview.png", "leftover.tmp"]
    assert store.list_artifacts() == []
    # The directory itself stays for the next conversion.
    assert scratch_dir.is_dir()


def test_purge_all_on_missing_directory_is_noop(tmp_path: Path) -> None:
    store = TempArtifactStore(tmp_path / "never_created")
    report = store.purge_all()
    assert report.ok
    assert report.removed == []


def test_purge_all_does_not_touch_sibling_temp_files(tmp_path: Path) -> None:
    outside = tmp_path / "someone_elses.png"
    outside.write_bytes(b"keep")
    store = TempArtifactStore(tmp_path / DEFAULT_DIR_NAME)
    (store.scratch_dir / "x_preview.png").write_bytes(b"x")

    store.purge_all()

    assert outside.read_bytes() == b"keep"


def test_purge_all_reports_failures_and_continues(scratch_dir: Path, monkeypatch) -> None:
    store = TempArtifactStore(scratch_dir)
    locked = store.scratch_dir / "locked_preview.png"
    free = store.scratch_dir / "free_preview.png"
    locked.write_bytes(b"x")
    free.write_bytes(b"x")

    original_unlink = Path.unlink

    def _unlink(self, *args, **kwargs):
        if self.name == "locked_preview.png":
            raise PermissionError("in use")
        return original_unlink(self, *args, **kwargs)

    monkeypatch.setattr(Path, "unlink", _unlink)

    report = store.purge_all()

    assert not report.ok
    assert [p.name for p, _ in report.failed] == ["locked_preview.png"]
    assert [p.name for p in report.removed] == ["free_preview.png"]
    assert not free.exists()
