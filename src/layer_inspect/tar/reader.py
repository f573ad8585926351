"""Docker save tar file reader."""

import asyncio
import functools
import json
import logging
import re
import tarfile
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any, AsyncIterator, BinaryIO, List, Optional

from ..exceptions import LayerReadError, TarReadError
from ..image.base import Image, Layer
from ..image.compression import open_uncompressed
from ..utils.digest import calculate_stream_digest
from .models import ManifestEntry
from .tags import find_manifest_entry

logger = logging.getLogger(__name__)

DEFAULT_LAYER_MEDIA_TYPE = "application/vnd.docker.image.rootfs.diff.tar"

# OCI-style saves name layer blobs by their digest
BLOB_PATH_PATTERN = re.compile(r"(?:^|/)blobs/sha256/([a-f0-9]{64})$")


class TarballLayer(Layer):
    """A layer stored as a member of a docker save tarball."""

    def __init__(
        self,
        image: "TarballImage",
        path: str,
        diff_id: str,
        media_type: str = DEFAULT_LAYER_MEDIA_TYPE,
    ) -> None:
        self._image = image
        self.path = path
        self._diff_id = diff_id
        self.media_type = media_type
        self._digest: Optional[str] = None

        match = BLOB_PATH_PATTERN.search(path)
        if match:
            self._digest = f"sha256:{match.group(1)}"

    def digest(self) -> str:
        # Legacy <id>/layer.tar saves do not name blobs by digest
        if self._digest is None:
            self._digest = self._image._hash_member(self.path)
        return self._digest

    def diff_id(self) -> str:
        return self._diff_id

    def size(self) -> int:
        return self._image._get_member(self.path).size

    @asynccontextmanager
    async def uncompressed(self) -> AsyncIterator[BinaryIO]:
        raw = self._image._open_member(self.path)
        try:
            stream = open_uncompressed(raw)
            try:
                yield stream
            finally:
                if stream is not raw:
                    stream.close()
        finally:
            raw.close()

    def __repr__(self) -> str:
        return f"TarballLayer(path={self.path!r}, diff_id={self._diff_id!r})"


class TarballImage(Image):
    """Image read from a docker save tarball on local disk."""

    def __init__(
        self,
        tar_path: Path,
        tar_file: tarfile.TarFile,
        entry: ManifestEntry,
        diff_ids: List[str],
        delete_on_close: bool = False,
    ) -> None:
        self.tar_path = tar_path
        self.entry = entry
        self._tar_file: Optional[tarfile.TarFile] = tar_file
        self._delete_on_close = delete_on_close

        sources_by_diff_id = entry.layer_sources
        self._layers: List[Layer] = []
        for layer_path, diff_id in zip(entry.layers, diff_ids):
            source = sources_by_diff_id.get(diff_id, {})
            self._layers.append(
                TarballLayer(
                    self,
                    layer_path,
                    diff_id,
                    media_type=source.get("mediaType", DEFAULT_LAYER_MEDIA_TYPE),
                )
            )

    @classmethod
    def open(
        cls, tar_path: str, tag: Optional[str] = None, delete_on_close: bool = False
    ) -> "TarballImage":
        """Open a docker save tarball.

        Args:
            tar_path: Path to the tar file
            tag: Image tag to select when the tarball holds several images
            delete_on_close: Remove the file when the image is closed

        Returns:
            TarballImage

        Raises:
            TarReadError: If the tarball cannot be read or is not an image
        """
        path = Path(tar_path)
        if not path.is_file():
            raise TarReadError(f"Tar file not found: {tar_path}")

        try:
            tar_file = tarfile.open(path, "r")
        except (tarfile.TarError, OSError) as e:
            raise TarReadError(f"Cannot read tar file: {e}") from e

        try:
            manifest_data = _extract_json(tar_file, "manifest.json")
            if not isinstance(manifest_data, list) or not manifest_data:
                raise TarReadError("manifest.json must be a non-empty array")

            entries = [ManifestEntry.from_dict(item) for item in manifest_data]
            entry = find_manifest_entry(entries, tag)

            config = _extract_json(tar_file, entry.config)
            if not isinstance(config, dict):
                raise TarReadError(f"Invalid config file: {entry.config}")
            diff_ids = (config.get("rootfs") or {}).get("diff_ids") or []
            if len(diff_ids) != len(entry.layers):
                raise TarReadError(
                    f"config has {len(diff_ids)} diff_ids but manifest lists "
                    f"{len(entry.layers)} layers"
                )
        except BaseException:
            tar_file.close()
            raise

        logger.debug("Opened tarball %s with %d layers", path, len(entry.layers))
        return cls(path, tar_file, entry, diff_ids, delete_on_close=delete_on_close)

    def layers(self) -> List[Layer]:
        return list(self._layers)

    async def close(self) -> None:
        """Close the tar file, deleting it if this image owns it."""
        if self._tar_file is not None:
            self._tar_file.close()
            self._tar_file = None
        if self._delete_on_close:
            self.tar_path.unlink(missing_ok=True)
            self._delete_on_close = False

    def _require_open(self) -> tarfile.TarFile:
        if self._tar_file is None:
            raise TarReadError("Tar file not opened")
        return self._tar_file

    def _get_member(self, name: str) -> tarfile.TarInfo:
        try:
            return self._require_open().getmember(name)
        except KeyError:
            raise TarReadError(f"File {name} not found in tar") from None

    def _open_member(self, name: str) -> BinaryIO:
        member = self._get_member(name)
        try:
            file_obj = self._require_open().extractfile(member)
        except (tarfile.TarError, OSError) as e:
            raise TarReadError(f"Failed to extract {name}: {e}") from e
        if file_obj is None:
            raise TarReadError(f"Could not extract {name}")
        return file_obj  # type: ignore[return-value]

    def _hash_member(self, name: str) -> str:
        with self._open_member(name) as file_obj:
            try:
                return calculate_stream_digest(file_obj)
            except (tarfile.TarError, OSError) as e:
                raise LayerReadError(f"Failed to hash {name}: {e}") from e


def _extract_json(tar: tarfile.TarFile, file_path: str) -> Any:
    """Extract and parse a JSON file from the tar."""
    try:
        member = tar.extractfile(file_path)
    except KeyError:
        raise TarReadError(f"File {file_path} not found in tar") from None
    if member is None:
        raise TarReadError(f"Could not extract {file_path}")

    try:
        with member:
            return json.loads(member.read().decode("utf-8"))
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise TarReadError(f"Invalid JSON in {file_path}: {e}") from e


async def open_tarball_image(
    tar_path: str, tag: Optional[str] = None, delete_on_close: bool = False
) -> TarballImage:
    """Open a docker save tarball without blocking the event loop.

    See TarballImage.open for arguments and errors.
    """
    loop = asyncio.get_running_loop()
    return await loop.run_in_executor(
        None, functools.partial(TarballImage.open, tar_path, tag, delete_on_close)
    )
