"""The inspect and ls commands."""

import logging
import sys
from dataclasses import dataclass, field
from typing import List, Optional, TextIO

from .core.types import ImageOptions
from .image.resolve import open_image
from .listing import list_layer_files
from .report import build_layer_report, render_layer_report
from .selector import iter_selected_layers

logger = logging.getLogger(__name__)


@dataclass
class CommandConfig:
    """Arguments shared by the layer commands."""

    # Image ref to inspect, or a path to a tarball
    ref: str
    # Layer ids (1-based positions or hashes) to list
    layer_ids: List[str] = field(default_factory=list)
    # Sort listings by size before name
    sort: bool = False


async def inspect(
    cfg: CommandConfig, options: Optional[ImageOptions] = None, out: Optional[TextIO] = None
) -> None:
    """Print position, diff ID and size of every layer.

    Raises:
        LayerInspectError: If the image cannot be opened or a layer read fails
    """
    out = out or sys.stdout
    async with await open_image(cfg.ref, options) as image:
        rows = build_layer_report(image.layers())
    out.write(render_layer_report(rows))


async def ls(
    cfg: CommandConfig, options: Optional[ImageOptions] = None, out: Optional[TextIO] = None
) -> None:
    """Print the files of the selected layers, one section per layer.

    Sections are written as each layer is read, so layers selected before a
    failing token are still printed.

    Raises:
        LayerInspectError: On the first image, selector or layer error
    """
    out = out or sys.stdout
    async with await open_image(cfg.ref, options) as image:
        for layer in iter_selected_layers(image, cfg.layer_ids):
            listing = await list_layer_files(layer, sort=cfg.sort)
            out.write(listing.render())
            out.flush()
