"""Test helpers: synthetic layers, docker save tarballs and fake images."""

import gzip
import hashlib
import io
import json
import tarfile
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

from layer_inspect.image.base import Image, Layer


def sha256(data: bytes) -> str:
    return f"sha256:{hashlib.sha256(data).hexdigest()}"


@dataclass
class Member:
    """One tar record to put into a synthetic layer."""

    name: str
    data: bytes = b""
    kind: str = "file"
    mode: int = 0o644
    linkname: str = ""


def make_layer(members: List[Member], compress: bool = False) -> bytes:
    """Build a layer tar (optionally gzipped) holding the members in order."""
    buf = io.BytesIO()
    with tarfile.open(fileobj=buf, mode="w") as tar:
        for member in members:
            info = tarfile.TarInfo(member.name)
            info.mode = member.mode
            if member.kind == "dir":
                info.type = tarfile.DIRTYPE
                tar.addfile(info)
            elif member.kind == "symlink":
                info.type = tarfile.SYMTYPE
                info.linkname = member.linkname
                tar.addfile(info)
            else:
                info.size = len(member.data)
                tar.addfile(info, fileobj=io.BytesIO(member.data))
    data = buf.getvalue()
    if compress:
        return gzip.compress(data, mtime=0)
    return data


def uncompressed_bytes(blob: bytes) -> bytes:
    if blob[:2] == b"\x1f\x8b":
        return gzip.decompress(blob)
    return blob


@dataclass
class SavedImage:
    """What went into a synthetic docker save tarball."""

    path: Path
    blobs: List[bytes] = field(default_factory=list)
    digests: List[str] = field(default_factory=list)
    diff_ids: List[str] = field(default_factory=list)


def _add_bytes(tar: tarfile.TarFile, name: str, data: bytes) -> None:
    info = tarfile.TarInfo(name)
    info.size = len(data)
    tar.addfile(info, fileobj=io.BytesIO(data))


def _image_entry(tar: tarfile.TarFile, blobs: List[bytes], repo_tags: List[str], legacy: bool):
    diff_ids = [sha256(uncompressed_bytes(blob)) for blob in blobs]
    config = json.dumps(
        {
            "architecture": "amd64",
            "os": "linux",
            "rootfs": {"type": "layers", "diff_ids": diff_ids},
        }
    ).encode("utf-8")
    config_hex = hashlib.sha256(config).hexdigest()

    layer_paths = []
    for index, blob in enumerate(blobs):
        if legacy:
            layer_path = f"{index:064x}/layer.tar"
        else:
            layer_path = f"blobs/sha256/{hashlib.sha256(blob).hexdigest()}"
        if layer_path not in tar.getnames():
            _add_bytes(tar, layer_path, blob)
        layer_paths.append(layer_path)

    config_path = f"{config_hex}.json" if legacy else f"blobs/sha256/{config_hex}"
    if config_path not in tar.getnames():
        _add_bytes(tar, config_path, config)

    entry = {"Config": config_path, "RepoTags": repo_tags, "Layers": layer_paths}
    return entry, diff_ids


def build_docker_save(
    path: Path,
    blobs: List[bytes],
    repo_tags: Optional[List[str]] = None,
    legacy: bool = False,
    extra_images: Optional[List[tuple]] = None,
) -> SavedImage:
    """Write a docker save style tarball.

    Args:
        path: Output tar path
        blobs: Layer blobs, base layer first
        repo_tags: RepoTags of the image
        legacy: Use <id>/layer.tar paths instead of blobs/sha256/<hex>
        extra_images: Further (blobs, repo_tags) pairs stored in the same tar
    """
    entries = []
    with tarfile.open(path, "w") as tar:
        entry, diff_ids = _image_entry(tar, blobs, repo_tags or ["test/app:latest"], legacy)
        entries.append(entry)
        for extra_blobs, extra_tags in extra_images or []:
            extra_entry, _ = _image_entry(tar, extra_blobs, extra_tags, legacy)
            entries.append(extra_entry)
        _add_bytes(tar, "manifest.json", json.dumps(entries).encode("utf-8"))

    return SavedImage(
        path=path,
        blobs=list(blobs),
        digests=[sha256(blob) for blob in blobs],
        diff_ids=diff_ids,
    )


class FakeLayer(Layer):
    """In-memory layer whose failures can be scripted."""

    def __init__(
        self,
        digest: str,
        diff_id: str,
        size: int = 0,
        content: bytes = b"",
        diff_id_error: Optional[Exception] = None,
        size_error: Optional[Exception] = None,
        open_error: Optional[Exception] = None,
    ) -> None:
        self._digest = digest
        self._diff_id = diff_id
        self._size = size
        self.content = content
        self.diff_id_error = diff_id_error
        self.size_error = size_error
        self.open_error = open_error
        self.streams: List[io.BytesIO] = []

    def digest(self) -> str:
        return self._digest

    def diff_id(self) -> str:
        if self.diff_id_error:
            raise self.diff_id_error
        return self._diff_id

    def size(self) -> int:
        if self.size_error:
            raise self.size_error
        return self._size

    @asynccontextmanager
    async def uncompressed(self):
        if self.open_error:
            raise self.open_error
        stream = io.BytesIO(self.content)
        self.streams.append(stream)
        try:
            yield stream
        finally:
            stream.close()


class FakeImage(Image):
    def __init__(self, layers: List[Layer]) -> None:
        self._layers = layers
        self.closed = False

    def layers(self) -> List[Layer]:
        return list(self._layers)

    async def close(self) -> None:
        self.closed = True


def hex_hash(char: str) -> str:
    """A well-formed sha256 hash made of one repeated hex digit."""
    return "sha256:" + char * 64
