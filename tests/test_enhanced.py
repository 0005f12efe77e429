"""
Tests for the enhanced metadata loader and its TTL cache.
"""

import json
import time
from unittest.mock import AsyncMock, patch

import pytest

from crosupdates.constants import FALLBACK_BOARDS
from crosupdates.enhanced import EnhancedMetadataLoader
from crosupdates.models import EnhancedMetadata

pytestmark = [pytest.mark.unit]

SERVING_URL = "https://example.com/serving"
BOARD_TEMPLATE = "https://example.com/{board}/stable/data.json"


def _board_doc(**overrides):
    doc = {
        "linux_kernel_versions": ["5.15.0-abc123-r1", "4.19.0"],
        "android_app_support": True,
        "android_version": "11",
        "is_chromebook_plus_device": False,
        "eol_reached": False,
        "sample_hwid": "EVE E2A",
        "architecture": "x86_64",
    }
    doc.update(overrides)
    return doc


def _loader(fetcher, cache_path, **kwargs):
    return EnhancedMetadataLoader(
        fetcher,
        cache_path,
        serving_builds_url=SERVING_URL,
        board_data_url_template=BOARD_TEMPLATE,
        **kwargs,
    )


@pytest.fixture
def enhanced_cache(tmp_path):
    return tmp_path / "enhanced-devices-cache.json"


class TestEnhancedMetadataParsing:
    def test_kernel_version_truncated_at_hyphen(self):
        metadata = EnhancedMetadata.from_board_data(_board_doc())

        assert metadata.kernel_version == "5.15.0"
        assert metadata.hardware_id == "EVE E2A"
        assert metadata.android_app_support is True

    def test_missing_fields_default(self):
        metadata = EnhancedMetadata.from_board_data({})

        assert metadata.to_dict() == {
            "android_app_support": False,
            "android_version": None,
            "is_chromebook_plus_device": False,
            "kernel_version": None,
            "eol_reached": False,
            "hardware_id": None,
            "architecture": None,
        }


class TestEnhancedMetadataLoader:
    @pytest.mark.asyncio
    async def test_fresh_cache_skips_network(self, fake_fetcher, enhanced_cache):
        enhanced_cache.write_text(
            json.dumps(
                {
                    "timestamp": int(time.time() * 1000),
                    "data": {"eve": EnhancedMetadata(kernel_version="4.4").to_dict()},
                }
            )
        )

        result = await _loader(fake_fetcher, enhanced_cache).load()

        assert result["eve"].kernel_version == "4.4"
        fake_fetcher.fetch_json.assert_not_called()

    @pytest.mark.asyncio
    async def test_expired_cache_refetches(self, fake_fetcher, enhanced_cache):
        stale = int((time.time() - 25 * 3600) * 1000)
        enhanced_cache.write_text(
            json.dumps({"timestamp": stale, "data": {"eve": {"kernel_version": "old"}}})
        )
        fake_fetcher.responses = {
            SERVING_URL: {"builds": {"eve": {}}},
            BOARD_TEMPLATE.format(board="eve"): _board_doc(),
        }

        result = await _loader(fake_fetcher, enhanced_cache).load()

        assert result["eve"].kernel_version == "5.15.0"
        stored = json.loads(enhanced_cache.read_text())
        assert stored["data"]["eve"]["kernel_version"] == "5.15.0"
        assert stored["timestamp"] > stale

    @pytest.mark.asyncio
    async def test_empty_fresh_cache_refetches(self, fake_fetcher, enhanced_cache):
        enhanced_cache.write_text(
            json.dumps({"timestamp": int(time.time() * 1000), "data": {}})
        )

        with patch("crosupdates.enhanced.asyncio.sleep", new=AsyncMock()):
            await _loader(fake_fetcher, enhanced_cache).load()

        fake_fetcher.fetch_json.assert_called()

    @pytest.mark.asyncio
    async def test_corrupt_cache_refetches(self, fake_fetcher, enhanced_cache):
        enhanced_cache.write_text("{oops")
        fake_fetcher.responses = {SERVING_URL: {"builds": {"eve": {}}}}

        with patch("crosupdates.enhanced.logger") as mock_logger:
            result = await _loader(fake_fetcher, enhanced_cache).load()

        assert result == {}
        mock_logger.warning.assert_called()

    @pytest.mark.asyncio
    async def test_boards_without_data_are_omitted(self, fake_fetcher, enhanced_cache):
        fake_fetcher.responses = {
            SERVING_URL: {"builds": {"eve": {}, "fizz": {}, "link": {}}},
            BOARD_TEMPLATE.format(board="eve"): _board_doc(),
            BOARD_TEMPLATE.format(board="link"): "not an object",
        }

        result = await _loader(fake_fetcher, enhanced_cache).load()

        assert list(result) == ["eve"]

    @pytest.mark.asyncio
    async def test_board_fetches_are_quiet(self, fake_fetcher, enhanced_cache):
        fake_fetcher.responses = {SERVING_URL: {"builds": {"eve": {}}}}

        await _loader(fake_fetcher, enhanced_cache).load()

        board_call = fake_fetcher.fetch_json.call_args_list[-1]
        assert board_call.args[0] == BOARD_TEMPLATE.format(board="eve")
        assert board_call.kwargs["quiet"] is True

    @pytest.mark.asyncio
    async def test_fallback_board_list(self, fake_fetcher, enhanced_cache):
        with patch("crosupdates.enhanced.asyncio.sleep", new=AsyncMock()):
            boards = await _loader(fake_fetcher, enhanced_cache).discover_boards()

        assert boards == list(FALLBACK_BOARDS)

    @pytest.mark.asyncio
    async def test_batches_and_delay(self, fake_fetcher, enhanced_cache):
        boards = [f"board{i}" for i in range(23)]
        fake_fetcher.responses = {
            BOARD_TEMPLATE.format(board=board): _board_doc() for board in boards
        }
        loader = _loader(fake_fetcher, enhanced_cache, batch_size=10, batch_delay=0.05)

        with patch("crosupdates.enhanced.asyncio.sleep", new=AsyncMock()) as sleep:
            result = await loader.fetch_all(boards)

        assert list(result) == boards
        assert sleep.await_count == 2
        sleep.assert_awaited_with(0.05)

    @pytest.mark.asyncio
    async def test_no_delay_for_single_batch(self, fake_fetcher, enhanced_cache):
        loader = _loader(fake_fetcher, enhanced_cache, batch_size=10)

        with patch("crosupdates.enhanced.asyncio.sleep", new=AsyncMock()) as sleep:
            await loader.fetch_all(["eve", "fizz"])

        sleep.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_cache_write_failure_still_returns(self, fake_fetcher, tmp_path):
        blocker = tmp_path / "blocker"
        blocker.write_text("file")
        fake_fetcher.responses = {
            SERVING_URL: {"builds": {"eve": {}}},
            BOARD_TEMPLATE.format(board="eve"): _board_doc(),
        }

        result = await _loader(fake_fetcher, blocker / "cache.json").load()

        assert "eve" in result

    @pytest.mark.asyncio
    async def test_failed_cache_replace_removes_temp_file(
        self, fake_fetcher, enhanced_cache
    ):
        fake_fetcher.responses = {
            SERVING_URL: {"builds": {"eve": {}}},
            BOARD_TEMPLATE.format(board="eve"): _board_doc(),
        }

        with patch(
            "crosupdates.enhanced.os.replace", side_effect=OSError("disk full")
        ), patch("crosupdates.enhanced.logger") as mock_logger:
            result = await _loader(fake_fetcher, enhanced_cache).load()

        assert "eve" in result
        assert not enhanced_cache.exists()
        assert list(enhanced_cache.parent.iterdir()) == []
        mock_logger.error.assert_called_once()
