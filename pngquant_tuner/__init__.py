"""Live-preview GUI for tuning pngquant parameters on a single PNG."""

__version__ = "0.2.0"
