"""layer-inspect - list container image layers and the files inside them."""

__version__ = "0.1.0"

from .commands import CommandConfig, inspect, ls
from .core.auth import Credentials, Keychain
from .core.reference import Reference, parse_reference
from .core.types import ImageOptions, Platform
from .exceptions import (
    ArchiveDecodeError,
    AuthenticationError,
    DaemonError,
    ImageNotFoundError,
    InvalidLayerIdError,
    InvalidReferenceError,
    LayerInspectError,
    LayerNotFoundError,
    LayerOutOfRangeError,
    LayerReadError,
    LayerSelectionError,
    ManifestError,
    RegistryConnectionError,
    RegistryError,
    TarReadError,
)
from .image.base import Image, Layer
from .image.resolve import open_image
from .listing import FileEntry, LayerListing, list_layer_files, read_file_entries, sort_entries
from .report import LayerRow, build_layer_report
from .selector import select_layers

__all__ = [
    "ArchiveDecodeError",
    "AuthenticationError",
    "CommandConfig",
    "Credentials",
    "DaemonError",
    "FileEntry",
    "Image",
    "ImageNotFoundError",
    "ImageOptions",
    "InvalidLayerIdError",
    "InvalidReferenceError",
    "Keychain",
    "Layer",
    "LayerInspectError",
    "LayerListing",
    "LayerNotFoundError",
    "LayerOutOfRangeError",
    "LayerReadError",
    "LayerRow",
    "LayerSelectionError",
    "ManifestError",
    "Platform",
    "Reference",
    "RegistryConnectionError",
    "RegistryError",
    "TarReadError",
    "build_layer_report",
    "inspect",
    "list_layer_files",
    "ls",
    "open_image",
    "parse_reference",
    "read_file_entries",
    "select_layers",
    "sort_entries",
]
