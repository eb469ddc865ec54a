"""Conversion core: pngquant runs, preview artifacts, debouncing and commit.

Usage:
    from pngquant_tuner.conversion import (
        DebouncedConversionPipeline, ExternalCompressor, TempArtifactStore,
    )

    store = TempArtifactStore()
    pipeline = DebouncedConversionPipeline(ExternalCompressor(store, "pngquant"), store)
    pipeline.result_ready.connect(on_result)
    pipeline.set_source(SourceImage.from_path("/path/to/image.png"))
"""

from .artifact_store import PurgeReport, TempArtifactStore
from .commit import CommitController
from .compressor import ExternalCompressor, build_arguments, resolve_pngquant
from .errors import ArtifactAccessError, CommitError, ConversionError, UnsupportedFileError
from .models import (
    ConversionFailure,
    ConversionParameters,
    ConversionRequest,
    ConversionResult,
    ConversionSuccess,
    FailureKind,
    SourceImage,
)
from .pipeline import DebouncedConversionPipeline, PipelinePhase, PipelineSnapshot

__all__ = [
    "ArtifactAccessError",
    "CommitController",
    "CommitError",
    "ConversionError",
    "ConversionFailure",
    "ConversionParameters",
    "ConversionRequest",
    "ConversionResult",
    "ConversionSuccess",
    "DebouncedConversionPipeline",
    "ExternalCompressor",
    "FailureKind",
    "PipelinePhase",
    "PipelineSnapshot",
    "PurgeReport",
    "SourceImage",
    "TempArtifactStore",
    "UnsupportedFileError",
    "build_arguments",
    "resolve_pngquant",
]
