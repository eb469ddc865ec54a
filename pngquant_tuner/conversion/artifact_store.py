"""Scratch-directory ownership for preview artifacts.

One live artifact per source: ``<stem>_preview.png``. The directory is a
dedicated subdirectory of the system temp dir, so ``purge_all`` never touches
files that belong to other programs.
"""

from __future__ import annotations

import os
import tempfile
import threading
from dataclasses import dataclass, field
from pathlib import Path

from ..logger import get_logger
from .errors import ArtifactAccessError
from .models import SourceImage

_logger = get_logger("artifacts")

ARTIFACT_SUFFIX = "_preview.png"
DEFAULT_DIR_NAME = "pngquant_tuner"


@dataclass
class PurgeReport:
    removed: list[Path] = field(default_factory=list)
    failed: list[tuple[Path, str]] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failed


class TempArtifactStore:
    def __init__(self, scratch_dir: str | Path | None = None) -> None:
        if scratch_dir is None:
            scratch_dir = Path(tempfile.gettempdir()) / DEFAULT_DIR_NAME
        self._dir = Path(scratch_dir)
        self._locks: dict[Path, threading.Lock] = {}
        self._locks_guard = threading.Lock()

    @property
    def scratch_dir(self) -> Path:
        """The scratch directory, created on first use."""
        self._dir.mkdir(parents=True, exist_ok=True)
        return self._dir

    def artifact_path(self, source: SourceImage) -> Path:
        return self._dir / f"{source.path.stem}{ARTIFACT_SUFFIX}"

    def lock_for(self, path: Path) -> threading.Lock:
        """Per-path lock serializing delete → write → read on one artifact."""
        key = Path(path)
        with self._locks_guard:
            lock = self._locks.get(key)
            if lock is None:
                lock = threading.Lock()
                self._locks[key] = lock
            return lock

    def prepare_for_write(self, path: Path) -> None:
        """Remove a stale artifact so a silent tool failure cannot look like success.

        Callers hold ``lock_for(path)``.
        """
        self._dir.mkdir(parents=True, exist_ok=True)
        try:
            path.unlink()
            _logger.debug("stale artifact removed: %s", path)
        except FileNotFoundError:
            pass

    def size_of(self, path: str | Path) -> int:
        try:
            return os.stat(path).st_size
        except OSError as e:
            raise ArtifactAccessError(f"not accessible: {path} ({e})") from e

    def list_artifacts(self) -> list[Path]:
        if not self._dir.is_dir():
            return []
        return sorted(p for p in self._dir.iterdir() if p.is_file())

    def discard(self, source: SourceImage) -> bool:
        """Remove the artifact for ``source``. Returns True if a file was removed."""
        path = self.artifact_path(source)
        return self.remove(path)

    def remove(self, path: Path) -> bool:
        with self.lock_for(path):
            try:
                path.unlink()
            except FileNotFoundError:
                return False
            except OSError as e:
                _logger.warning("artifact remove failed: %s (%s)", path, e)
                return False
        _logger.debug("artifact removed: %s", path)
        return True

    def purge_all(self) -> PurgeReport:
        """Remove every file in the scratch directory; failures are reported, not raised."""
        report = PurgeReport()
        for path in self.list_artifacts():
            with self.lock_for(path):
                try:
                    path.unlink()
                    report.removed.append(path)
                except FileNotFoundError:
                    # Already gone (another purge or a discard won the race).
                    continue
                except OSError as e:
                    _logger.warning("purge skipped %s: %s", path, e)
                    report.failed.append((path, str(e)))
        _logger.info("scratch purged: removed=%d failed=%d", len(report.removed), len(report.failed))
        return report
