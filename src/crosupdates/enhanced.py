"""
Enhanced Device Metadata

Loads per-board capability data (Android support, kernel version, EOL,
hardware ID, architecture) from the chromeos-update-directory project. The
result is cached on disk for a fixed number of hours, independently of the
content-hash cache used for serving builds.
"""

import asyncio
import json
import os
import time
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union

import aiofiles  # type: ignore[import-untyped]

from crosupdates.constants import (
    BOARD_DATA_URL_TEMPLATE,
    ENHANCED_BATCH_DELAY,
    ENHANCED_BATCH_SIZE,
    ENHANCED_CACHE_HOURS,
    FALLBACK_BOARDS,
    SERVING_BUILDS_ERROR_LABEL,
    SERVING_BUILDS_URL,
)
from crosupdates.exceptions import DataFormatError
from crosupdates.fetcher import JsonFetcher
from crosupdates.log_utils import logger
from crosupdates.models import EnhancedMetadata


class EnhancedMetadataLoader:
    """
    Fetches and caches enhanced metadata for every known board.

    Boards are discovered from the serving-builds endpoint, falling back to a
    fixed list. Board documents are fetched in batches; all requests of a
    batch are awaited together, then the loader pauses before the next batch.
    """

    def __init__(
        self,
        fetcher: JsonFetcher,
        cache_file: Union[str, Path],
        serving_builds_url: str = SERVING_BUILDS_URL,
        board_data_url_template: str = BOARD_DATA_URL_TEMPLATE,
        cache_hours: float = ENHANCED_CACHE_HOURS,
        batch_size: int = ENHANCED_BATCH_SIZE,
        batch_delay: float = ENHANCED_BATCH_DELAY,
    ):
        """
        Initialize the loader.

        Args:
            fetcher: Open JsonFetcher used for all requests
            cache_file: Location of the metadata cache file
            serving_builds_url: Endpoint listing all boards under `builds`
            board_data_url_template: Per-board URL with a `{board}` placeholder
            cache_hours: Hours before cached metadata is refetched
            batch_size: Boards fetched concurrently per batch
            batch_delay: Seconds to wait between batches
        """
        self.fetcher = fetcher
        self.cache_file = Path(cache_file)
        self.serving_builds_url = serving_builds_url
        self.board_data_url_template = board_data_url_template
        self.cache_hours = cache_hours
        self.batch_size = max(1, int(batch_size))
        self.batch_delay = batch_delay

    async def load(self) -> Dict[str, EnhancedMetadata]:
        """
        Return metadata keyed by board, from cache when fresh.

        Boards with no upstream data are absent from the result.
        """
        timestamp, cached = await self._load_from_cache()
        age_seconds = time.time() - timestamp
        if cached and not self._is_expired(timestamp):
            logger.info(
                f"Using cached enhanced device data ({round(age_seconds / 3600)} hours old)"
            )
            return cached

        logger.info("Cache expired or empty, fetching fresh enhanced device data...")
        boards = await self.discover_boards()
        data = await self.fetch_all(boards)
        logger.info(f"Successfully loaded enhanced data for {len(data)} boards")

        await self._save_to_cache(data)
        return data

    def _is_expired(self, timestamp: float) -> bool:
        age_hours = (time.time() - timestamp) / 3600
        return age_hours >= self.cache_hours

    async def discover_boards(self) -> List[str]:
        """List board keys from serving builds, or the fallback list if unavailable."""
        response = await self.fetcher.fetch_json(
            self.serving_builds_url, SERVING_BUILDS_ERROR_LABEL
        )
        builds = response.get("builds") if isinstance(response, dict) else None
        if isinstance(builds, dict) and builds:
            logger.info(f"Found {len(builds)} boards in serving builds data")
            return list(builds)

        logger.warning("Falling back to known boards list")
        return list(FALLBACK_BOARDS)

    async def fetch_board(self, board: str) -> Optional[EnhancedMetadata]:
        """Fetch and parse one board's data; None when unavailable."""
        url = self.board_data_url_template.format(board=board)
        raw = await self.fetcher.fetch_json(
            url, f"Enhanced data fetch failed for {board}", quiet=True
        )
        if raw is None:
            return None
        try:
            return EnhancedMetadata.from_board_data(raw)
        except DataFormatError as e:
            logger.debug(f"Ignoring enhanced data for {board}: {e}")
            return None

    async def fetch_all(self, boards: Sequence[str]) -> Dict[str, EnhancedMetadata]:
        results: Dict[str, EnhancedMetadata] = {}
        for start in range(0, len(boards), self.batch_size):
            batch = boards[start : start + self.batch_size]
            fetched = await asyncio.gather(
                *(self.fetch_board(board) for board in batch)
            )
            for board, metadata in zip(batch, fetched):
                if metadata is not None:
                    results[board] = metadata

            if start + self.batch_size < len(boards):
                await asyncio.sleep(self.batch_delay)
        return results

    async def _load_from_cache(self) -> Tuple[float, Dict[str, EnhancedMetadata]]:
        """
        Read the cache file.

        Returns:
            (timestamp_seconds, data); (0, {}) when the file is missing or unusable.
        """
        if not self.cache_file.exists():
            return 0.0, {}
        try:
            async with aiofiles.open(self.cache_file, "r", encoding="utf-8") as f:
                cache_data = json.loads(await f.read())
        except (OSError, ValueError) as e:
            logger.warning(f"Error loading cached enhanced data: {e}")
            return 0.0, {}

        if not isinstance(cache_data, dict):
            return 0.0, {}
        timestamp = cache_data.get("timestamp")
        data = cache_data.get("data")
        if isinstance(timestamp, bool) or not isinstance(timestamp, (int, float)):
            return 0.0, {}
        if not isinstance(data, dict):
            return 0.0, {}

        parsed = {
            board: EnhancedMetadata.from_dict(entry)
            for board, entry in data.items()
            if isinstance(entry, dict)
        }
        # Stored in milliseconds to match the device cache envelope
        return float(timestamp) / 1000, parsed

    async def _save_to_cache(self, data: Dict[str, EnhancedMetadata]) -> None:
        cache_data: Dict[str, Any] = {
            "timestamp": int(time.time() * 1000),
            "data": {board: metadata.to_dict() for board, metadata in data.items()},
        }
        tmp = self.cache_file.with_suffix(".json.tmp")
        try:
            self.cache_file.parent.mkdir(parents=True, exist_ok=True)
            async with aiofiles.open(tmp, "w", encoding="utf-8") as f:
                await f.write(json.dumps(cache_data, indent=2))
            os.replace(tmp, self.cache_file)
        except OSError as e:
            logger.error(f"Error saving cached enhanced data: {e}")
            return
        finally:
            if tmp.exists():
                try:
                    tmp.unlink()
                except OSError:
                    pass
        logger.info(f"Enhanced device data cached for {len(data)} boards")

