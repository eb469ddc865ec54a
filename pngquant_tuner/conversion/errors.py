"""Exceptions raised by the conversion layer.

Process failures are not exceptions: ExternalCompressor reports them as
ConversionFailure values.
"""

from __future__ import annotations


class ConversionError(Exception):
    """Base class for conversion-layer errors."""


class UnsupportedFileError(ConversionError):
    """The selected file is not a PNG image."""


class ArtifactAccessError(ConversionError):
    """An artifact (or source) is missing or its attributes cannot be read."""


class CommitError(ConversionError):
    """Replacing the original with the preview failed."""
