"""Clipstitch - assemble vertical videos from clips with text overlays."""

__version__ = "1.1.0"
