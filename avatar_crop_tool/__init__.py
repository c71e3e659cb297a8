"""Circular avatar cropper: pan, zoom, export a PNG, upload it."""

__version__ = "1.0.0"
