"""CLI entrypoint for chiara."""

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Optional

from chiara.app.app_models import PodioApp, fetch_app
from chiara.app.structure import ApplicationStructure
from chiara.config.loader import get_default_limit, load_config
from chiara.errors import ChiaraError
from chiara.iterators.item_filter import ItemFilterIterator
from chiara.remote.transport import PodioRemote, set_remote
from chiara.utils.logging import configure_logging, get_logger

logger = get_logger(__name__)


def _setup(args: argparse.Namespace) -> dict:
    """Load config and install the default remote."""
    config = load_config(Path(args.config) if args.config else None)
    set_remote(PodioRemote.from_config(config))
    return config


def _make_iterator(args: argparse.Namespace, limit: int) -> ItemFilterIterator:
    items = ItemFilterIterator(PodioApp(app_id=args.app_id), limit=limit)
    if args.view is not None:
        items = items[args.view]
    return items


def cmd_items(args: argparse.Namespace) -> None:
    """Print the (optionally view-filtered) items of an app as JSON lines."""
    config = _setup(args)
    limit = args.limit if args.limit is not None else get_default_limit(config)
    items = _make_iterator(args, limit)

    printed = 0
    for item in items:
        if args.max_items is not None and printed >= args.max_items:
            break
        print(json.dumps(item.model_dump(exclude={"raw"}), default=str))
        printed += 1
    logger.info(f"Printed {printed} of {items.total_count} items from app {args.app_id}")


def cmd_count(args: argparse.Namespace) -> None:
    """Print the number of items matching an app or view."""
    _setup(args)
    # Only the total is needed, a one-item page keeps the response small
    print(len(_make_iterator(args, limit=1)))


def cmd_structure(args: argparse.Namespace) -> None:
    """Fetch an app definition and print its offline structure."""
    _setup(args)
    app = fetch_app(args.app_id)
    structure = ApplicationStructure()
    structure.structure_from_app(app)
    print(structure.dump_structure(), end="")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="chiara",
        description="Read items from Podio apps and views",
    )
    parser.add_argument(
        "--config",
        type=str,
        help="Path to config file (default: chiara.config.yaml)",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable debug logging",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # items command
    items_parser = subparsers.add_parser("items", help="List items of an app or view")
    items_parser.add_argument("app_id", type=int, help="Podio app id")
    items_parser.add_argument("--view", type=int, help="Restrict to this view id")
    items_parser.add_argument(
        "--limit",
        type=int,
        help="Page size per request (default: filter.default_limit from config)",
    )
    items_parser.add_argument(
        "--max-items",
        type=int,
        help="Stop after printing this many items",
    )
    items_parser.set_defaults(func=cmd_items)

    # count command
    count_parser = subparsers.add_parser("count", help="Count items of an app or view")
    count_parser.add_argument("app_id", type=int, help="Podio app id")
    count_parser.add_argument("--view", type=int, help="Restrict to this view id")
    count_parser.set_defaults(func=cmd_count)

    # structure command
    structure_parser = subparsers.add_parser("structure", help="Dump an app's field structure")
    structure_parser.add_argument("app_id", type=int, help="Podio app id")
    structure_parser.set_defaults(func=cmd_structure)

    return parser


def main(argv: Optional[list] = None) -> None:
    """Main CLI entrypoint."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if not hasattr(args, "func"):
        parser.print_help()
        sys.exit(1)

    configure_logging(logging.DEBUG if args.verbose else logging.INFO)

    try:
        args.func(args)
    except FileNotFoundError as e:
        logger.error(f"Config not found: {e}")
        print("Error: config file not found. Create chiara.config.yaml or pass --config")
        sys.exit(1)
    except ChiaraError as e:
        logger.error(f"Command '{args.command}' failed: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
