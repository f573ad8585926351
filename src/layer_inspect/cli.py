"""Command-line interface for layer-inspect."""

import argparse
import asyncio
import logging
import sys
from pathlib import Path
from typing import List, Optional

from . import __version__
from .commands import CommandConfig, inspect, ls
from .core.types import ImageOptions, Platform
from .exceptions import LayerInspectError

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="layer", description="inspect layers of an image")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Log image resolution and downloads to stderr",
    )
    parser.add_argument(
        "--platform",
        default=None,
        help="Platform to pick from multi-arch images, as os/arch[/variant] "
             "(default: $LAYER_PLATFORM or linux/amd64)",
    )
    parser.add_argument(
        "--insecure-registry",
        dest="insecure_registries",
        action="append",
        default=None,
        metavar="HOST",
        help="Registry to reach over plain HTTP; may be repeated",
    )
    parser.add_argument(
        "--docker-config",
        type=Path,
        default=None,
        help="Docker client config file holding registry credentials",
    )

    subparsers = parser.add_subparsers(dest="command", metavar="COMMAND")

    inspect_parser = subparsers.add_parser(
        "inspect",
        aliases=["info"],
        help="print info about the layers of an image",
    )
    inspect_parser.add_argument("ref", nargs="?", default="", help="Image ref or tarball path")
    inspect_parser.set_defaults(handler=inspect, command_name="inspect")

    ls_parser = subparsers.add_parser("ls", help="ls prints the files of a layer")
    ls_parser.add_argument("ref", nargs="?", default="", help="Image ref or tarball path")
    ls_parser.add_argument(
        "layer_ids",
        nargs="*",
        metavar="layerID",
        help="1-based layer position or layer digest; default is every layer",
    )
    ls_parser.add_argument(
        "--sort", "-S",
        action="store_true",
        help="Sort by size (largest file first) before sorting the operands "
             "in lexicographical order.",
    )
    ls_parser.set_defaults(handler=ls, command_name="ls")

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Run the CLI and return the process exit code."""
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    if not args.command:
        parser.print_help()
        return 0

    cfg = CommandConfig(
        ref=args.ref,
        layer_ids=list(getattr(args, "layer_ids", [])),
        sort=getattr(args, "sort", False),
    )

    try:
        options = ImageOptions.from_env(
            docker_config=args.docker_config,
            platform=Platform.parse(args.platform) if args.platform else None,
            insecure_registries=args.insecure_registries,
        )
        asyncio.run(args.handler(cfg, options))
    except (LayerInspectError, ValueError) as e:
        logger.debug("%s failed", args.command_name, exc_info=True)
        print(f"{args.command_name}: {e}", file=sys.stderr)
        return 1
    return 0


def run() -> None:
    sys.exit(main())


if __name__ == "__main__":
    run()
