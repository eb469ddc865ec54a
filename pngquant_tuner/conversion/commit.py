"""Replace the original PNG with the current preview."""

from __future__ import annotations

import contextlib
import os
import shutil
import tempfile
from pathlib import Path

from ..logger import get_logger
from .artifact_store import PurgeReport, TempArtifactStore
from .errors import CommitError
from .models import ConversionResult, ConversionSuccess, SourceImage

_logger = get_logger("commit")


def replace_file_atomically(target: Path, replacement: Path) -> None:
    """Copy ``replacement`` next to ``target`` and rename it over ``target``.

    The copy lands in the target's directory so the final ``os.replace`` stays on
    one filesystem; the target is never missing, even if the process dies midway.
    Permission bits of the target are carried over.

    Raises:
        OSError: if the copy or the rename fails; the temporary copy is removed.
    """
    fd, tmp_name = tempfile.mkstemp(prefix=f".{target.stem}.", suffix=".tmp", dir=target.parent)
    os.close(fd)
    tmp = Path(tmp_name)
    try:
        shutil.copyfile(replacement, tmp)
        with contextlib.suppress(OSError):
            shutil.copymode(target, tmp)
        os.replace(tmp, target)
    except OSError:
        with contextlib.suppress(OSError):
            tmp.unlink()
        raise


class CommitController:
    def __init__(self, store: TempArtifactStore) -> None:
        self._store = store

    def commit(self, source: SourceImage, result: ConversionResult | None) -> PurgeReport:
        """Write the previewed artifact over ``source`` and purge the scratch directory.

        Raises:
            CommitError: the result is not a usable preview for ``source``, either
                file is missing, or the replacement failed. Scratch is left untouched.
        """
        if not isinstance(result, ConversionSuccess):
            raise CommitError("There is no converted preview to save.")
        if result.request.source != source:
            raise CommitError(f"The preview belongs to {result.request.source.name}, not {source.name}.")

        original = source.path
        artifact = result.artifact_path
        with self._store.lock_for(artifact):
            if not original.is_file():
                raise CommitError(f"The original file no longer exists: {original}")
            if not artifact.is_file():
                raise CommitError(f"The preview file no longer exists: {artifact}")
            _logger.debug("commit: %s -> %s", artifact, original)
            try:
                replace_file_atomically(original, artifact)
            except OSError as e:
                _logger.error("commit failed: %s -> %s: %s", artifact, original, e)
                raise CommitError(f"Saving over {original} failed: {e}") from e

        _logger.info("committed preview over %s (%d bytes)", original, result.artifact_size)
        return self._store.purge_all()
