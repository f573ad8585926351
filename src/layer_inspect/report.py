"""Per-layer size and hash report."""

from dataclasses import dataclass
from typing import List, Sequence

from .formatters import format_table, human_bytes
from .image.base import Layer

REPORT_HEADER = ("N", "Layer", "Size")


@dataclass(frozen=True)
class LayerRow:
    """One line of the layer report."""

    position: int
    diff_id: str
    size: int

    def cells(self) -> tuple[str, str, str]:
        return (str(self.position), self.diff_id, human_bytes(self.size))


def build_layer_report(layers: Sequence[Layer]) -> List[LayerRow]:
    """Build report rows for every layer, numbered from 1.

    The first layer whose hash or size cannot be read aborts the report;
    its error propagates unchanged.
    """
    rows = []
    for position, layer in enumerate(layers, start=1):
        rows.append(LayerRow(position=position, diff_id=layer.diff_id(), size=layer.size()))
    return rows


def render_layer_report(rows: Sequence[LayerRow]) -> str:
    return format_table([REPORT_HEADER] + [row.cells() for row in rows])
