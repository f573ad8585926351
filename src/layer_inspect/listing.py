"""File listings of layer contents."""

import logging
import tarfile
import zlib
from dataclasses import dataclass, field
from typing import BinaryIO, Iterable, List, Optional

from .exceptions import ArchiveDecodeError, LayerInspectError, LayerReadError
from .formatters import file_mode_string, format_table, human_bytes
from .image.base import Layer
from .image.compression import peekable

logger = logging.getLogger(__name__)

# tarfile reads ahead by at most one record; keep a few so the block that
# ended the archive is still available once iteration stops
TAIL_SIZE = 4 * tarfile.RECORDSIZE

LISTING_HEADER = ("Mode", "Size", "Name")


@dataclass(frozen=True)
class FileEntry:
    """One record of a layer's tar archive."""

    name: str
    size: int
    mode: int
    kind: str
    linkname: str = ""

    @classmethod
    def from_tarinfo(cls, info: tarfile.TarInfo) -> "FileEntry":
        if info.isdir():
            kind = "dir"
        elif info.issym():
            kind = "symlink"
        elif info.islnk():
            kind = "hardlink"
        elif info.isreg():
            kind = "file"
        elif info.ischr():
            kind = "char"
        elif info.isblk():
            kind = "block"
        elif info.isfifo():
            kind = "fifo"
        else:
            kind = "other"
        return cls(
            name=info.name,
            size=info.size,
            mode=info.mode,
            kind=kind,
            linkname=info.linkname,
        )

    @property
    def is_dir(self) -> bool:
        return self.kind == "dir"

    def cells(self) -> tuple[str, str, str]:
        return (file_mode_string(self.mode, self.kind), human_bytes(self.size), self.name)


class _TrackingReader:
    """Counts the bytes read from a stream and keeps the most recent ones."""

    def __init__(self, stream: BinaryIO, keep: int = TAIL_SIZE) -> None:
        self._stream = stream
        self._keep = keep
        self._tail = bytearray()
        self.consumed = 0

    def read(self, size: int = -1) -> bytes:
        data = self._stream.read(size)
        self.consumed += len(data)
        self._tail += data
        if len(self._tail) > self._keep:
            del self._tail[: len(self._tail) - self._keep]
        return data

    def block_at(self, offset: int) -> Optional[bytes]:
        """Bytes of the header block at an absolute offset, if still held."""
        start = self.consumed - len(self._tail)
        if offset < start:
            return None
        return bytes(self._tail[offset - start : offset - start + tarfile.BLOCKSIZE])


def _check_archive_end(reader: _TrackingReader, end: int) -> None:
    """Tell a clean end of archive apart from a header tarfile gave up on.

    tarfile stops quietly at a truncated or corrupt header past the first
    member, which would silently shorten the listing.
    """
    if reader.consumed <= end:
        return
    block = reader.block_at(end)
    if block is None:
        return
    if len(block) < tarfile.BLOCKSIZE:
        raise ArchiveDecodeError(f"unexpected end of archive at offset {end}")
    if block.strip(b"\0"):
        raise ArchiveDecodeError(f"invalid tar header at offset {end}")


def read_file_entries(stream: BinaryIO) -> List[FileEntry]:
    """Decode an uncompressed tar stream into file entries, in archive order.

    A zero-length stream is an empty archive.

    Raises:
        ArchiveDecodeError: If the stream is not a well-formed tar archive
    """
    stream = peekable(stream)
    entries: List[FileEntry] = []
    try:
        if not stream.peek(1):
            return entries

        reader = _TrackingReader(stream)
        with tarfile.open(fileobj=reader, mode="r|") as archive:  # type: ignore[call-overload]
            for info in archive:
                entries.append(FileEntry.from_tarinfo(info))
            _check_archive_end(reader, archive.offset)
    except (tarfile.TarError, EOFError, zlib.error, OSError) as e:
        raise ArchiveDecodeError(f"reading archive: {e}") from e
    return entries


def sort_entries(entries: Iterable[FileEntry]) -> List[FileEntry]:
    """Largest first; equal sizes ordered by name."""
    return sorted(entries, key=lambda entry: (-entry.size, entry.name))


@dataclass
class LayerListing:
    """Files of one layer, labelled by the layer's diff ID."""

    diff_id: str
    entries: List[FileEntry] = field(default_factory=list)

    def visible_entries(self) -> List[FileEntry]:
        """Entries shown in listings; directories are left out."""
        return [entry for entry in self.entries if not entry.is_dir]

    def render(self) -> str:
        rows = [LISTING_HEADER] + [entry.cells() for entry in self.visible_entries()]
        return f"\n--- {self.diff_id} ---\n" + format_table(rows)


async def list_layer_files(layer: Layer, sort: bool = False) -> LayerListing:
    """Read the file entries of a layer.

    Args:
        layer: Layer to list
        sort: Order by size descending, then name

    Returns:
        LayerListing with every entry, directories included

    Raises:
        LayerReadError: If the diff ID or the layer content cannot be read
        ArchiveDecodeError: If the layer is not a well-formed tar archive
    """
    try:
        diff_id = layer.diff_id()
    except (LayerInspectError, OSError) as e:
        raise LayerReadError(f"getting layer diffid: {e}") from e

    try:
        async with layer.uncompressed() as stream:
            entries = read_file_entries(stream)
    except ArchiveDecodeError:
        raise
    except (LayerInspectError, OSError) as e:
        raise LayerReadError(f"getting layer: {e}") from e

    logger.debug("Layer %s has %d entries", diff_id, len(entries))
    if sort:
        entries = sort_entries(entries)
    return LayerListing(diff_id=diff_id, entries=entries)
