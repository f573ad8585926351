"""Example usage of the layer inspection API."""

import asyncio
import logging
import sys

# Add parent directory to path
sys.path.insert(0, "src")

from layer_inspect import (
    ImageOptions,
    LayerInspectError,
    build_layer_report,
    list_layer_files,
    open_image,
    select_layers,
)

# Set up logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


async def main(ref: str):
    """Print the layer report and the largest files of the top layer."""
    options = ImageOptions.from_env()

    try:
        async with await open_image(ref, options) as image:
            logger.info(f"Opened {ref} with {len(image.layers())} layers")

            for row in build_layer_report(image.layers()):
                logger.info(f"  {row.position}: {row.diff_id} ({row.size} bytes)")

            # Positions are 1-based
            top = select_layers(image, [str(len(image.layers()))])[0]
            listing = await list_layer_files(top, sort=True)
            for entry in listing.visible_entries()[:10]:
                logger.info(f"  {entry.size:>10}  {entry.name}")

    except LayerInspectError as e:
        logger.error(f"Inspection failed: {e}")


if __name__ == "__main__":
    asyncio.run(main(sys.argv[1] if len(sys.argv) > 1 else "alpine:latest"))
