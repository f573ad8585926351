"""Images pulled from a registry over the Registry HTTP API v2."""

import logging
import os
import tempfile
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any, AsyncIterator, BinaryIO, Dict, List

from ..core.reference import Reference
from ..core.session import RegistrySession
from ..core.types import ImageOptions
from ..exceptions import LayerReadError, ManifestError
from ..operations.blobs import download_blob, get_config_blob
from ..operations.manifests import resolve_image_manifest
from .base import Image, Layer
from .compression import open_uncompressed

logger = logging.getLogger(__name__)


class RemoteLayer(Layer):
    """A layer described by a registry manifest descriptor."""

    def __init__(self, image: "RemoteImage", descriptor: Dict[str, Any], diff_id: str) -> None:
        self._image = image
        self._descriptor = descriptor
        self._diff_id = diff_id
        self.media_type = descriptor.get("mediaType", "")

    def digest(self) -> str:
        try:
            return self._descriptor["digest"]
        except KeyError:
            raise LayerReadError("layer descriptor has no digest") from None

    def diff_id(self) -> str:
        return self._diff_id

    def size(self) -> int:
        try:
            return int(self._descriptor["size"])
        except (KeyError, TypeError, ValueError):
            raise LayerReadError(f"layer {self._descriptor.get('digest')} has no valid size") from None

    @asynccontextmanager
    async def uncompressed(self) -> AsyncIterator[BinaryIO]:
        fd, name = tempfile.mkstemp(prefix="layer-", suffix=".blob")
        os.close(fd)
        path = Path(name)
        try:
            await download_blob(
                self._image.session, self.digest(), path, self._image.options.chunk_size
            )
            with open(path, "rb") as raw:
                stream = open_uncompressed(raw)
                try:
                    yield stream
                finally:
                    if stream is not raw:
                        stream.close()
        finally:
            path.unlink(missing_ok=True)

    def __repr__(self) -> str:
        return f"RemoteLayer(digest={self._descriptor.get('digest')!r})"


class RemoteImage(Image):
    """Image whose manifest and blobs live in a remote registry."""

    def __init__(
        self,
        reference: Reference,
        session: RegistrySession,
        options: ImageOptions,
        manifest: Dict[str, Any],
        config: Dict[str, Any],
    ) -> None:
        self.reference = reference
        self.session = session
        self.options = options
        self.manifest = manifest
        self.config = config

        descriptors = manifest.get("layers") or []
        diff_ids = (config.get("rootfs") or {}).get("diff_ids") or []
        if len(descriptors) != len(diff_ids):
            raise ManifestError(
                f"manifest lists {len(descriptors)} layers but config has {len(diff_ids)} diff_ids"
            )
        self._layers: List[Layer] = [
            RemoteLayer(self, descriptor, diff_id)
            for descriptor, diff_id in zip(descriptors, diff_ids)
        ]

    @classmethod
    async def fetch(cls, reference: Reference, options: ImageOptions) -> "RemoteImage":
        """Fetch manifest and config for a reference.

        Args:
            reference: Parsed image reference
            options: Image options (keychain, platform, timeouts)

        Returns:
            Open RemoteImage; close it to release the HTTP session

        Raises:
            RegistryError: If the registry cannot serve the image
        """
        session = RegistrySession(reference, options)
        await session.__aenter__()
        try:
            manifest = await resolve_image_manifest(
                session, reference.identifier, options.platform
            )
            config_digest = (manifest.get("config") or {}).get("digest")
            if not config_digest:
                raise ManifestError(f"manifest for {reference} has no config descriptor")
            config = await get_config_blob(session, config_digest)
            image = cls(reference, session, options, manifest, config)
        except BaseException:
            await session.close()
            raise

        logger.debug("Fetched %s with %d layers", reference, len(image._layers))
        return image

    def layers(self) -> List[Layer]:
        return list(self._layers)

    async def close(self) -> None:
        await self.session.close()
