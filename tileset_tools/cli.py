# =============================================================================
# Command Line Interface
# =============================================================================
# tileset-tools combine | merge | upgrade
# =============================================================================

import argparse
import logging
import sys

from pydantic import ValidationError

from .errors import TilesetError
from .models.config import TilesetToolsSettings
from .models.version import SUPPORTED_VERSIONS
from .tilesets import Tilesets

__all__ = ["build_parser", "main"]

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="tileset-tools",
        description="Combine, merge and upgrade 3D Tiles tileset packages.",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    subparsers = parser.add_subparsers(dest="command", required=True)

    combine = subparsers.add_parser("combine", help="Inline all external tilesets into one tileset JSON")
    combine.add_argument("-i", "--input", required=True, help="Source package")
    combine.add_argument("-o", "--output", required=True, help="Target package")
    combine.add_argument("-f", "--force", action="store_true", help="Overwrite an existing target")

    merge = subparsers.add_parser("merge", help="Merge several tilesets under a synthetic root")
    merge.add_argument("-i", "--input", required=True, action="append", help="Source package (repeatable)")
    merge.add_argument("-o", "--output", required=True, help="Target package")
    merge.add_argument("-f", "--force", action="store_true", help="Overwrite an existing target")

    upgrade = subparsers.add_parser("upgrade", help="Upgrade a tileset package to another 3D Tiles version")
    upgrade.add_argument("-i", "--input", required=True, help="Source package")
    upgrade.add_argument("-o", "--output", required=True, help="Target package")
    upgrade.add_argument("-f", "--force", action="store_true", help="Overwrite an existing target")
    upgrade.add_argument(
        "--targetVersion",
        dest="target_version",
        default="1.1",
        choices=SUPPORTED_VERSIONS,
        help="Target 3D Tiles version (default: 1.1)",
    )
    upgrade.add_argument(
        "--keep-legacy-headers",
        action="store_true",
        help="Do not rewrite legacy B3DM headers",
    )
    return parser


def run(args: argparse.Namespace, settings: TilesetToolsSettings) -> None:
    indent = settings.json_indent
    if args.command == "combine":
        Tilesets.combine(args.input, args.output, args.force, json_indent=indent)
    elif args.command == "merge":
        Tilesets.merge(args.input, args.output, args.force, json_indent=indent)
    elif args.command == "upgrade":
        Tilesets.upgrade(
            args.input,
            args.output,
            args.force,
            args.target_version,
            gltf_upgrade_options={"normalize_legacy_headers": not args.keep_legacy_headers},
            json_indent=indent,
        )


def main(argv: list[str] | None = None) -> int:
    """Run the command line tool. Returns 0 on success, 2 on a tileset error."""
    args = build_parser().parse_args(argv)

    try:
        settings = TilesetToolsSettings()
    except ValidationError as exc:
        print(f"error: invalid settings: {exc}", file=sys.stderr)
        return 2

    level = logging.DEBUG if args.verbose else settings.log_level.upper()
    logging.basicConfig(level=level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    try:
        run(args, settings)
    except TilesetError as exc:
        logger.debug("Operation failed", exc_info=True)
        print(f"error: {exc}", file=sys.stderr)
        return 2
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
