"""Tests for the per-layer report."""

import pytest

from layer_inspect.exceptions import LayerReadError
from layer_inspect.report import LayerRow, build_layer_report, render_layer_report
from tests.helpers import FakeLayer, hex_hash


def test_single_layer_report():
    layers = [FakeLayer(digest=hex_hash("1"), diff_id="sha256:aaa", size=1000)]

    rows = build_layer_report(layers)

    assert rows == [LayerRow(position=1, diff_id="sha256:aaa", size=1000)]
    lines = render_layer_report(rows).splitlines()
    assert lines[0].split() == ["N", "Layer", "Size"]
    assert lines[1] == "1  sha256:aaa  1.0 kB"


def test_rows_numbered_from_one_in_image_order():
    layers = [
        FakeLayer(digest=hex_hash(c), diff_id=hex_hash(d), size=size)
        for c, d, size in [("1", "a", 5), ("2", "b", 2_500_000), ("3", "c", 0)]
    ]

    rows = build_layer_report(layers)

    assert [(r.position, r.diff_id, r.cells()[2]) for r in rows] == [
        (1, hex_hash("a"), "5 B"),
        (2, hex_hash("b"), "2.5 MB"),
        (3, hex_hash("c"), "0 B"),
    ]


def test_empty_image_report_is_header_only():
    assert render_layer_report(build_layer_report([])) == "N  Layer  Size\n"


@pytest.mark.parametrize("field", ["diff_id_error", "size_error"])
def test_report_aborts_on_first_failure(field):
    good = FakeLayer(digest=hex_hash("1"), diff_id=hex_hash("a"), size=1)
    bad = FakeLayer(digest=hex_hash("2"), diff_id=hex_hash("b"), **{field: LayerReadError("unreadable")})

    with pytest.raises(LayerReadError, match="unreadable"):
        build_layer_report([good, bad])
