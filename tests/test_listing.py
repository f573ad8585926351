"""Tests for decoding, sorting and rendering layer file listings."""

import gzip
import io

import pytest

from layer_inspect.exceptions import ArchiveDecodeError, LayerReadError, TarReadError
from layer_inspect.image.compression import open_uncompressed
from layer_inspect.listing import (
    FileEntry,
    LayerListing,
    list_layer_files,
    read_file_entries,
    sort_entries,
)
from tests.helpers import FakeLayer, Member, hex_hash, make_layer


def test_read_file_entries_keeps_archive_order():
    data = make_layer(
        [
            Member("usr", kind="dir", mode=0o755),
            Member("usr/bin/tool", b"binary", mode=0o755),
            Member("usr/bin/alias", kind="symlink", linkname="tool", mode=0o777),
            Member("README", b"hello"),
        ]
    )

    entries = read_file_entries(io.BytesIO(data))

    assert [e.name for e in entries] == ["usr", "usr/bin/tool", "usr/bin/alias", "README"]
    assert [e.kind for e in entries] == ["dir", "file", "symlink", "file"]
    assert entries[1].size == 6
    assert entries[2].linkname == "tool"


def test_empty_stream_is_empty_archive():
    assert read_file_entries(io.BytesIO(b"")) == []


def test_end_of_archive_marker_only():
    assert read_file_entries(io.BytesIO(b"\0" * 1024)) == []


def test_stream_ending_on_member_boundary_is_accepted():
    data = make_layer([Member("a", b"x" * 512)])
    # Drop the end-of-archive blocks but keep both complete records
    assert [e.name for e in read_file_entries(io.BytesIO(data[:1024]))] == ["a"]


def test_corrupt_header_after_first_member_is_an_error():
    data = bytearray(make_layer([Member("a", b"x" * 10), Member("b", b"y" * 10)]))
    # Second header starts after one header block and one data block
    data[1024 + 148 : 1024 + 156] = b"garbage!"

    with pytest.raises(ArchiveDecodeError, match="invalid tar header"):
        read_file_entries(io.BytesIO(bytes(data)))


def test_truncated_member_data_is_an_error():
    data = make_layer([Member("a", b"x" * 5000), Member("b", b"y")])

    with pytest.raises(ArchiveDecodeError):
        read_file_entries(io.BytesIO(data[:2048]))


def test_truncated_header_is_an_error():
    data = make_layer([Member("a", b"x" * 10), Member("b", b"y" * 10)])

    with pytest.raises(ArchiveDecodeError, match="unexpected end of archive"):
        read_file_entries(io.BytesIO(data[: 1024 + 100]))


def test_not_a_tar_is_an_error():
    with pytest.raises(ArchiveDecodeError):
        read_file_entries(io.BytesIO(b"this is not a tar archive at all" * 20))


def test_gzip_layer_is_decompressed():
    data = make_layer([Member("etc/os-release", b"ID=test\n")], compress=True)

    stream = open_uncompressed(io.BytesIO(data))
    entries = read_file_entries(stream)

    assert [e.name for e in entries] == ["etc/os-release"]


def test_truncated_gzip_is_an_error():
    data = make_layer([Member("big", bytes(range(256)) * 200)], compress=True)

    stream = open_uncompressed(io.BytesIO(data[: len(data) // 2]))
    with pytest.raises(ArchiveDecodeError):
        read_file_entries(stream)


def test_zstd_layer_is_rejected():
    with pytest.raises(LayerReadError, match="zstd"):
        open_uncompressed(io.BytesIO(b"\x28\xb5\x2f\xfd" + b"\0" * 20))


def _entry(name, size, kind="file"):
    return FileEntry(name=name, size=size, mode=0o644, kind=kind)


def test_sort_by_size_then_name():
    entries = [_entry("a", 10), _entry("c", 100), _entry("b", 100)]

    assert [e.name for e in sort_entries(entries)] == ["b", "c", "a"]


def test_sort_is_case_sensitive_and_idempotent():
    entries = [_entry("b", 1), _entry("B", 1), _entry("a", 1), _entry("z", 2)]

    once = sort_entries(entries)
    assert [e.name for e in once] == ["z", "B", "a", "b"]
    assert sort_entries(once) == once


def test_render_skips_directories():
    listing = LayerListing(
        diff_id=hex_hash("a"),
        entries=[_entry("etc", 0, kind="dir"), _entry("etc/hostname", 10)],
    )

    assert listing.render() == (
        f"\n--- {hex_hash('a')} ---\n"
        "Mode        Size  Name\n"
        "-rw-r--r--  10 B  etc/hostname\n"
    )


@pytest.mark.asyncio
async def test_list_layer_files_sorted():
    content = make_layer([Member("a", b"x" * 10), Member("b", b"x" * 100), Member("c", b"x" * 100)])
    layer = FakeLayer(digest=hex_hash("1"), diff_id=hex_hash("a"), content=content)

    listing = await list_layer_files(layer, sort=True)

    assert listing.diff_id == hex_hash("a")
    assert [e.name for e in listing.visible_entries()] == ["b", "c", "a"]
    assert layer.streams[0].closed


@pytest.mark.asyncio
async def test_list_layer_files_unsorted_keeps_archive_order():
    content = make_layer([Member("a", b"x" * 10), Member("b", b"x" * 100)])
    layer = FakeLayer(digest=hex_hash("1"), diff_id=hex_hash("a"), content=content)

    listing = await list_layer_files(layer)

    assert [e.name for e in listing.entries] == ["a", "b"]


@pytest.mark.asyncio
async def test_list_layer_files_diff_id_failure():
    layer = FakeLayer(
        digest=hex_hash("1"), diff_id=hex_hash("a"), diff_id_error=TarReadError("boom")
    )

    with pytest.raises(LayerReadError, match="^getting layer diffid: boom$"):
        await list_layer_files(layer)


@pytest.mark.asyncio
async def test_list_layer_files_open_failure():
    layer = FakeLayer(
        digest=hex_hash("1"), diff_id=hex_hash("a"), open_error=OSError("no such blob")
    )

    with pytest.raises(LayerReadError, match="^getting layer: no such blob$"):
        await list_layer_files(layer)


@pytest.mark.asyncio
async def test_list_layer_files_closes_stream_on_decode_error():
    layer = FakeLayer(digest=hex_hash("1"), diff_id=hex_hash("a"), content=b"not a tar" * 100)

    with pytest.raises(ArchiveDecodeError):
        await list_layer_files(layer)
    assert layer.streams[0].closed
