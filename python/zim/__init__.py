"""ZIM: image pull statistics for CRI-O nodes."""

__version__ = "1.0.0"
