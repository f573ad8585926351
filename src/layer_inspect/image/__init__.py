"""Image access: tarball, daemon and registry sources behind one interface."""

from .base import Image, Layer

__all__ = ["Image", "Layer"]
