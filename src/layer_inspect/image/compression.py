"""Transparent decompression of layer blobs."""

import gzip
import io
from typing import BinaryIO

from ..exceptions import LayerReadError

GZIP_MAGIC = b"\x1f\x8b"
ZSTD_MAGIC = b"\x28\xb5\x2f\xfd"


def peekable(stream: BinaryIO) -> BinaryIO:
    """Return a stream supporting peek(), wrapping it if needed."""
    if hasattr(stream, "peek"):
        return stream
    return io.BufferedReader(stream)  # type: ignore[arg-type]


def open_uncompressed(stream: BinaryIO) -> BinaryIO:
    """Wrap a layer blob so reads return the uncompressed tar bytes.

    gzip blobs are detected by their magic bytes; anything else is assumed
    to be a plain tar and returned as is. Closing the returned object does
    not close ``stream``.

    Raises:
        LayerReadError: If the blob uses an unsupported compression
    """
    stream = peekable(stream)
    magic = stream.peek(len(ZSTD_MAGIC))[: len(ZSTD_MAGIC)]
    if magic.startswith(GZIP_MAGIC):
        return gzip.GzipFile(fileobj=stream, mode="rb")  # type: ignore[return-value]
    if magic.startswith(ZSTD_MAGIC):
        raise LayerReadError("zstd-compressed layers are not supported")
    return stream
