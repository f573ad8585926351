"""Image and layer handles shared by every image source."""

import abc
from contextlib import AbstractAsyncContextManager
from typing import BinaryIO, List, Optional


class Layer(abc.ABC):
    """One layer of an image.

    ``digest`` identifies the compressed blob and ``diff_id`` the
    uncompressed tar; ``size`` is the compressed size in bytes.
    """

    media_type: str = ""

    @abc.abstractmethod
    def digest(self) -> str:
        """Digest of the compressed blob."""

    @abc.abstractmethod
    def diff_id(self) -> str:
        """Digest of the uncompressed layer tar."""

    @abc.abstractmethod
    def size(self) -> int:
        """Compressed size in bytes."""

    @abc.abstractmethod
    def uncompressed(self) -> AbstractAsyncContextManager[BinaryIO]:
        """Open the layer's uncompressed tar bytes.

        Usage:
            async with layer.uncompressed() as stream:
                data = stream.read()
        """


class Image(abc.ABC):
    """Read-only handle over an ordered sequence of layers.

    Images own resources (files, sessions) and must be closed, preferably
    with ``async with``.
    """

    @abc.abstractmethod
    def layers(self) -> List[Layer]:
        """Layers in manifest order, base layer first."""

    def layer_by_digest(self, digest: str) -> Optional[Layer]:
        """Find a layer by compressed blob digest."""
        for layer in self.layers():
            if layer.digest() == digest:
                return layer
        return None

    def layer_by_diff_id(self, diff_id: str) -> Optional[Layer]:
        """Find a layer by uncompressed content digest."""
        for layer in self.layers():
            if layer.diff_id() == diff_id:
                return layer
        return None

    async def close(self) -> None:
        """Release resources held by the image."""

    async def __aenter__(self) -> "Image":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()
