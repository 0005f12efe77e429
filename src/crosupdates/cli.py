# src/crosupdates/cli.py

import argparse
import asyncio
import json
import sys
from pathlib import Path
from typing import Any, List, Optional

from crosupdates import log_utils
from crosupdates.cache import DataCache, atomic_write_json
from crosupdates.config import Settings, load_settings
from crosupdates.enhanced import EnhancedMetadataLoader
from crosupdates.exceptions import ConfigurationError
from crosupdates.fetcher import JsonFetcher
from crosupdates.pipeline import (
    build_device_data,
    fetch_flex_data,
    resolve_board_redirect,
)


def _write_output(data: Any, output: Optional[str]) -> bool:
    """
    Write JSON to `output`, or to stdout when no path is given.

    Returns:
        bool: False if the output file could not be written.
    """
    if not output:
        json.dump(data, sys.stdout, indent=2)
        sys.stdout.write("\n")
        return True

    path = Path(output)
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        log_utils.logger.error(f"Could not create output directory {path.parent}: {e}")
        return False
    if not atomic_write_json(path, data):
        return False
    log_utils.logger.info(f"Wrote {path}")
    return True


async def _run_build(settings: Settings) -> Any:
    cache = DataCache(settings.device_cache_file)
    async with JsonFetcher() as fetcher:
        return await build_device_data(fetcher, cache, settings)


async def _run_enhanced(settings: Settings) -> Any:
    async with JsonFetcher() as fetcher:
        loader = _make_enhanced_loader(fetcher, settings)
        metadata = await loader.load()
    return {board: entry.to_dict() for board, entry in metadata.items()}


async def _run_flex(settings: Settings) -> Any:
    async with JsonFetcher() as fetcher:
        return await fetch_flex_data(fetcher, settings)


def _make_enhanced_loader(
    fetcher: JsonFetcher, settings: Settings
) -> EnhancedMetadataLoader:
    return EnhancedMetadataLoader(
        fetcher,
        settings.enhanced_cache_file,
        serving_builds_url=settings.serving_builds_url,
        board_data_url_template=settings.board_data_url_template,
        cache_hours=settings.enhanced_cache_hours,
        batch_size=settings.enhanced_batch_size,
        batch_delay=settings.enhanced_batch_delay,
    )


def _run_clean(settings: Settings) -> bool:
    device_cleared = DataCache(settings.device_cache_file).clear()
    enhanced_cleared = DataCache(settings.enhanced_cache_file).clear()
    return device_cleared and enhanced_cleared


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="crosupdates",
        description="crosupdates - Chrome OS serving build and recovery data pipeline",
    )
    parser.add_argument("--config", help="Path to a YAML configuration file")
    parser.add_argument(
        "--log-level", help="Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)"
    )
    parser.add_argument("--log-dir", help="Also write a rotating log file here")
    subparsers = parser.add_subparsers(dest="command")

    build_parser_ = subparsers.add_parser(
        "build", help="Fetch and normalize devices, boards and recoveries"
    )
    build_parser_.add_argument(
        "-o", "--output", help="Write JSON here instead of stdout"
    )

    enhanced_parser = subparsers.add_parser(
        "enhanced", help="Load enhanced per-board metadata"
    )
    enhanced_parser.add_argument(
        "-o", "--output", help="Write JSON here instead of stdout"
    )

    flex_parser = subparsers.add_parser(
        "flex", help="Fetch ChromeOS Flex versions and recoveries"
    )
    flex_parser.add_argument("-o", "--output", help="Write JSON here instead of stdout")

    redirect_parser = subparsers.add_parser(
        "redirect", help="Print the device a single-device board redirects to"
    )
    redirect_parser.add_argument("board", help="Board name")

    subparsers.add_parser("clean", help="Delete the device and enhanced data caches")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """
    Entry point for the crosupdates command-line interface.

    Returns:
        int: Process exit status; 0 on success, 1 on configuration errors,
        unwritable output, or a board without a redirect target.
    """
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 0

    try:
        settings = load_settings(Path(args.config) if args.config else None)
    except ConfigurationError as e:
        log_utils.logger.error(f"Failed to load configuration: {e}")
        return 1

    log_level = args.log_level or settings.log_level
    if log_level:
        log_utils.set_log_level(log_level)
    if args.log_dir:
        log_utils.add_file_logging(Path(args.log_dir), log_level or "INFO")

    if args.command == "build":
        data = asyncio.run(_run_build(settings))
        return 0 if _write_output(data, args.output) else 1
    if args.command == "enhanced":
        data = asyncio.run(_run_enhanced(settings))
        return 0 if _write_output(data, args.output) else 1
    if args.command == "flex":
        data = asyncio.run(_run_flex(settings))
        return 0 if _write_output(data, args.output) else 1
    if args.command == "redirect":
        device_key = resolve_board_redirect(
            DataCache(settings.device_cache_file), args.board
        )
        if device_key is None:
            log_utils.logger.error(
                f"No single-device board named {args.board} in the cache"
            )
            return 1
        print(f"/device/{device_key}")
        return 0
    if args.command == "clean":
        return 0 if _run_clean(settings) else 1

    parser.print_help()
    return 0


if __name__ == "__main__":
    sys.exit(main())
