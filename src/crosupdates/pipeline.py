"""
Pipeline orchestration.

Runs one build cycle: fetch serving builds and the recovery feed, reuse the
cached result when the input hash is unchanged, otherwise normalize, match
recoveries, categorize and store the result.
"""

import asyncio
import copy
import time
from typing import Any, Dict, Optional

from crosupdates.cache import DataCache, generate_data_hash
from crosupdates.categorizer import categorize_boards
from crosupdates.config import Settings
from crosupdates.constants import (
    EMPTY_DATA,
    FLEX_RECOVERY_ERROR_LABEL,
    FLEX_SERVING_BUILDS_ERROR_LABEL,
    RECOVERY_ERROR_LABEL,
    SERVING_BUILDS_ERROR_LABEL,
)
from crosupdates.fetcher import JsonFetcher
from crosupdates.log_utils import logger
from crosupdates.models import CacheEnvelope
from crosupdates.normalizer import process_boards_and_devices
from crosupdates.recovery import process_recovery_data


def empty_data() -> Dict[str, Any]:
    return copy.deepcopy(EMPTY_DATA)


def _now_ms() -> int:
    return int(time.time() * 1000)


def build_from_sources(
    serving_builds: Dict[str, Any], recovery_data: list
) -> Dict[str, Any]:
    """
    Normalize fetched input into the data shape consumed by templates.

    Returns:
        dict: {"devices", "boards", "singleDeviceBoards"}, where "boards"
        holds only the multi-device boards.
    """
    devices, boards = process_boards_and_devices(serving_builds["builds"])
    devices = process_recovery_data(devices, recovery_data)
    multi_device_boards, single_device_boards = categorize_boards(boards)
    return {
        "devices": {key: device.to_dict() for key, device in devices.items()},
        "boards": {key: board.to_dict() for key, board in multi_device_boards.items()},
        "singleDeviceBoards": {
            key: board.to_dict() for key, board in single_device_boards.items()
        },
    }


async def build_device_data(
    fetcher: JsonFetcher, cache: DataCache, settings: Settings
) -> Dict[str, Any]:
    """
    Produce the canonical devices/boards data for one build cycle.

    A missing serving-builds response, or one without `builds`, yields the
    empty data model. A missing recovery feed is treated as an empty list.
    Nothing here raises; failures are logged and degrade the result.
    """
    start_time = time.time()
    logger.info("Starting Chrome OS data fetch...")

    try:
        serving_builds, recovery_data = await asyncio.gather(
            fetcher.fetch_json(settings.serving_builds_url, SERVING_BUILDS_ERROR_LABEL),
            fetcher.fetch_json(settings.recovery_url, RECOVERY_ERROR_LABEL),
        )

        if not isinstance(serving_builds, dict) or not isinstance(
            serving_builds.get("builds"), dict
        ):
            logger.error("No builds found in the response")
            return empty_data()

        if not isinstance(recovery_data, list):
            if recovery_data is not None:
                logger.warning(
                    f"Ignoring recovery feed: expected list, got {type(recovery_data).__name__}"
                )
            recovery_data = []
        elif recovery_data:
            logger.info(f"Fetched {len(recovery_data)} recovery images")

        data_hash = generate_data_hash(serving_builds, recovery_data)
        existing = cache.load()
        if cache.is_valid_for(existing, data_hash):
            cache_age_minutes = (_now_ms() - existing.timestamp) // 60000
            logger.info(
                f"Using cached device-recovery mappings ({cache_age_minutes}m old)"
            )
            logger.info(
                f"Build completed in {(time.time() - start_time) * 1000:.0f}ms (cache hit)"
            )
            return existing.data

        logger.info("Cache miss or invalid, rebuilding device-recovery mappings...")
        data = build_from_sources(serving_builds, recovery_data)
        logger.info(f"Processed {len(data['devices'])} devices with recovery data")

        envelope = CacheEnvelope(
            data_hash=data_hash,
            timestamp=_now_ms(),
            data=data,
            stats={
                "deviceCount": len(data["devices"]),
                "boardCount": len(data["boards"]),
                "singleDeviceBoardCount": len(data["singleDeviceBoards"]),
                "recoveryCount": len(recovery_data),
            },
        )
        if cache.save(envelope):
            logger.info("Cache saved successfully")
        logger.info(
            f"Build completed in {(time.time() - start_time) * 1000:.0f}ms (full rebuild)"
        )
        return data
    except Exception:
        logger.exception("Unexpected error in fetching builds")
        return empty_data()


async def fetch_flex_data(fetcher: JsonFetcher, settings: Settings) -> Dict[str, Any]:
    """
    Fetch ChromeOS Flex serving builds and recovery images.

    Returns:
        dict: {"versions": object, "recoveries": list}; each part is empty when its source fails.
    """
    versions, recoveries = await asyncio.gather(
        fetcher.fetch_json(
            settings.flex_serving_builds_url, FLEX_SERVING_BUILDS_ERROR_LABEL
        ),
        fetcher.fetch_json(settings.flex_recovery_url, FLEX_RECOVERY_ERROR_LABEL),
    )
    return {
        "versions": versions if isinstance(versions, dict) else {},
        "recoveries": recoveries if isinstance(recoveries, list) else [],
    }


def resolve_board_redirect(cache: DataCache, board_name: str) -> Optional[str]:
    """
    Find the device page a single-device board page should redirect to.

    Returns:
        Optional[str]: The board's only device key, or None when the board is
        not a cached single-device board.
    """
    envelope = cache.load()
    if envelope is None:
        return None
    single_device_boards = envelope.data.get("singleDeviceBoards")
    if not isinstance(single_device_boards, dict):
        return None
    board = single_device_boards.get(board_name)
    if not isinstance(board, dict):
        return None
    devices = board.get("devices")
    if not isinstance(devices, dict) or not devices:
        return None
    return next(iter(devices))
