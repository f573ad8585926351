"""Custom exceptions for layer-inspect."""


class LayerInspectError(Exception):
    """Base exception for all layer-inspect errors."""

    pass


class ImageNotFoundError(LayerInspectError):
    """Raised when no resolver can produce an image for a reference."""

    pass


class InvalidReferenceError(LayerInspectError):
    """Raised when an image reference cannot be parsed."""

    pass


class TarReadError(LayerInspectError):
    """Raised when unable to read or parse a docker save tar file."""

    pass


class DaemonError(LayerInspectError):
    """Raised when the Docker daemon is unreachable or lacks the image."""

    pass


class RegistryError(LayerInspectError):
    """Base exception for registry-related errors."""

    pass


class RegistryConnectionError(RegistryError):
    """Raised when unable to connect to the registry."""

    pass


class AuthenticationError(RegistryError):
    """Raised when the registry rejects our credentials."""

    pass


class ManifestError(RegistryError):
    """Raised when manifest operations fail."""

    pass


class LayerSelectionError(LayerInspectError):
    """Base exception for layer selector failures."""

    pass


class LayerOutOfRangeError(LayerSelectionError):
    """Raised when an ordinal selector is outside 1..N."""

    pass


class InvalidLayerIdError(LayerSelectionError):
    """Raised when a hash selector is not a valid digest."""

    pass


class LayerNotFoundError(LayerSelectionError):
    """Raised when a hash selector matches no layer."""

    pass


class LayerReadError(LayerInspectError):
    """Raised when layer metadata or content cannot be read."""

    pass


class ArchiveDecodeError(LayerReadError):
    """Raised when a layer's tar stream is corrupt or truncated."""

    pass
