"""pngquant invocation.

One ``compress()`` call spawns exactly one pngquant process and waits for it.
Every outcome is returned as a ConversionResult; nothing here raises for a
failed conversion.
"""

from __future__ import annotations

import os
import shutil
import subprocess
import sys
from collections.abc import Sequence
from pathlib import Path

from ..logger import get_logger
from .artifact_store import TempArtifactStore
from .errors import ArtifactAccessError
from .models import (
    ConversionFailure,
    ConversionParameters,
    ConversionRequest,
    ConversionResult,
    ConversionSuccess,
    FailureKind,
)

_logger = get_logger("compressor")
_BASE_DIR = Path(getattr(sys, "_MEIPASS", Path(__file__).resolve().parents[1]))

PNGQUANT_MAX_QUALITY = 100
QUALITY_WINDOW = 5

# pngquant exit codes with a documented meaning
_EXIT_REASONS = {
    98: "result would be larger than the original",
    99: "quality too low for the requested range",
}


def build_arguments(parameters: ConversionParameters, output: Path, source: Path) -> list[str]:
    """Map parameters to pngquant flags; the source path is always last."""
    upper = min(parameters.quality + QUALITY_WINDOW, PNGQUANT_MAX_QUALITY)
    return [
        f"--quality={parameters.quality}-{upper}",
        f"--colors={parameters.colors}",
        f"--floyd={parameters.dither}",
        f"--speed={parameters.speed}",
        "--output",
        str(output),
        str(source),
    ]


def resolve_pngquant(configured: str | None = None) -> str:
    """Locate the pngquant executable.

    Order: explicit setting, PNGQUANT_TUNER_PNGQUANT, a copy bundled under
    ``bin/`` next to the package, then PATH. Falls back to the bare name so a
    missing tool surfaces as a launch failure on first use.
    """
    if configured:
        return configured
    env = (os.getenv("PNGQUANT_TUNER_PNGQUANT") or "").strip()
    if env:
        return env
    exe = "pngquant.exe" if sys.platform == "win32" else "pngquant"
    bundled = _BASE_DIR / "bin" / exe
    if bundled.is_file():
        return str(bundled)
    found = shutil.which("pngquant")
    return found or "pngquant"


def _decode(output: bytes | None) -> str:
    if not output:
        return ""
    return output.decode("utf-8", errors="replace").strip()


class ExternalCompressor:
    """Run pngquant for a ConversionRequest, writing into a TempArtifactStore.

    ``command`` is the executable, or a launcher prefix such as
    ``[sys.executable, "fake_pngquant.py"]``.
    """

    def __init__(
        self,
        store: TempArtifactStore,
        command: str | Path | Sequence[str],
        *,
        timeout: float | None = None,
    ) -> None:
        self.store = store
        if isinstance(command, (str, Path)):
            self._command = [str(command)]
        else:
            self._command = [str(c) for c in command]
        self.timeout = timeout

    @property
    def command(self) -> list[str]:
        return list(self._command)

    def compress(self, request: ConversionRequest) -> ConversionResult:
        source = request.source.path
        artifact = self.store.artifact_path(request.source)
        try:
            source_size = self.store.size_of(source)
        except ArtifactAccessError as e:
            _logger.warning("gen=%d source unavailable: %s", request.generation, e)
            return ConversionFailure(request, FailureKind.SOURCE_MISSING, str(e))

        # Checked before touching the store so the previous preview survives a missing tool.
        if shutil.which(self._command[0]) is None:
            _logger.error("gen=%d pngquant not found or not executable: %s", request.generation, self._command[0])
            return ConversionFailure(
                request, FailureKind.LAUNCH, f"pngquant could not start: {self._command[0]} not found"
            )

        args = [*self._command, *build_arguments(request.parameters, artifact, source)]
        with self.store.lock_for(artifact):
            try:
                self.store.prepare_for_write(artifact)
            except OSError as e:
                _logger.error("gen=%d cannot prepare %s: %s", request.generation, artifact, e)
                return ConversionFailure(request, FailureKind.OUTPUT_MISSING, f"cannot write preview: {e}")

            _logger.debug("gen=%d run: %s", request.generation, args)
            try:
                proc = subprocess.run(args, check=False, capture_output=True, timeout=self.timeout)
            except OSError as e:
                _logger.error("gen=%d pngquant could not start: %s", request.generation, e)
                return ConversionFailure(request, FailureKind.LAUNCH, f"pngquant could not start: {e}")
            except subprocess.TimeoutExpired:
                _logger.error("gen=%d pngquant timed out after %ss", request.generation, self.timeout)
                return ConversionFailure(request, FailureKind.EXIT, f"pngquant did not finish within {self.timeout}s")

            stderr = _decode(proc.stderr)
            if proc.returncode != 0:
                detail = _EXIT_REASONS.get(proc.returncode) or stderr or "no output from tool"
                _logger.warning("gen=%d pngquant exit=%d: %s", request.generation, proc.returncode, stderr)
                return ConversionFailure(
                    request, FailureKind.EXIT, f"pngquant exited with code {proc.returncode}: {detail}"
                )
            if stderr:
                _logger.debug("gen=%d pngquant stderr: %s", request.generation, stderr)

            try:
                artifact_size = self.store.size_of(artifact)
            except ArtifactAccessError as e:
                _logger.warning("gen=%d no output: %s", request.generation, e)
                return ConversionFailure(request, FailureKind.OUTPUT_MISSING, f"no preview was written: {artifact}")
            if artifact_size <= 0:
                _logger.warning("gen=%d empty output: %s", request.generation, artifact)
                return ConversionFailure(request, FailureKind.OUTPUT_MISSING, f"preview is empty: {artifact}")

        _logger.info(
            "gen=%d converted %s: %d -> %d bytes", request.generation, request.source.name, source_size, artifact_size
        )
        return ConversionSuccess(request, artifact, artifact_size, source_size)
