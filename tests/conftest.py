from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

import platformdirs
import pytest

_ASYNC_NETWORK_BLOCK_MSG = (
    "Async network access is blocked during tests. Mock aiohttp.ClientSession."
)


async def _async_block_network(*_args, **_kwargs):
    """
    Prevent async network calls during tests by raising a RuntimeError.

    Raises:
        RuntimeError: `_ASYNC_NETWORK_BLOCK_MSG`.
    """
    raise RuntimeError(_ASYNC_NETWORK_BLOCK_MSG)


def pytest_configure(config):
    """Register the markers used across the test suite."""
    config.addinivalue_line("markers", "unit: fast tests with no I/O beyond tmp_path")
    config.addinivalue_line(
        "markers", "integration: tests that run several components together"
    )


@pytest.fixture(autouse=True)
def _isolate_test_environment(tmp_path_factory, monkeypatch):
    """
    Point platformdirs and the crosupdates environment variables at temporary directories.
    """
    base = tmp_path_factory.mktemp("crosupdates")
    cache_dir = base / "cache"
    config_dir = base / "config"
    for path in (cache_dir, config_dir):
        path.mkdir(parents=True, exist_ok=True)

    monkeypatch.delenv("CROSUPDATES_CACHE_DIR", raising=False)
    monkeypatch.delenv("CROSUPDATES_LOG_LEVEL", raising=False)
    monkeypatch.setattr(
        platformdirs, "user_cache_dir", lambda *_args, **_kwargs: str(cache_dir)
    )
    monkeypatch.setattr(
        platformdirs, "user_config_dir", lambda *_args, **_kwargs: str(config_dir)
    )


def pytest_runtest_setup():
    """
    Prevent real network requests during tests by replacing aiohttp entry points with blocking callables.
    """
    import aiohttp

    aiohttp.request = _async_block_network
    aiohttp.ClientSession.request = _async_block_network  # type: ignore[assignment]
    aiohttp.ClientSession.get = _async_block_network  # type: ignore[assignment]
    aiohttp.ClientSession.post = _async_block_network  # type: ignore[assignment]


# =============================================================================
# Shared fixtures
# =============================================================================


@pytest.fixture
def fake_fetcher():
    """
    Provide a stand-in for JsonFetcher whose responses are looked up by URL.

    Tests fill `fake_fetcher.responses`; unknown URLs return None, like a failed fetch.
    """
    fetcher = MagicMock()
    fetcher.responses = {}

    def _lookup(url, error_label, quiet=False):
        return fetcher.responses.get(url)

    fetcher.fetch_json = AsyncMock(side_effect=_lookup)
    return fetcher


@pytest.fixture
def cache_file(tmp_path) -> Path:
    return tmp_path / "cache" / "device-recovery-cache.json"


@pytest.fixture
def serving_builds():
    """A small serving-builds response with one single-device and one multi-model board."""
    return {
        "builds": {
            "eve": {
                "servingStable": {"chromeVersion": "115.0.0.0", "version": "1.0"},
                "brandNames": ["Pixelbook"],
                "isAue": False,
                "pushRecoveries": {
                    "114": "https://dl.google.com/eve_114.bin",
                    "115": "https://dl.google.com/eve_115.bin",
                },
            },
            "hatch": {
                "models": {
                    "kohaku": {
                        "servingStable": {
                            "chromeVersion": "120.0.6099.235",
                            "version": "15662.76.0",
                        },
                        "brandNames": ["Galaxy Chromebook"],
                        "isAue": False,
                    },
                    "dragonair": {
                        "servingLtc": {
                            "chromeVersion": "114.0.5735.350",
                            "version": "15437.90.0",
                        },
                        "brandNames": ["HP Chromebook x360 14c"],
                        "isAue": False,
                    },
                }
            },
        }
    }


@pytest.fixture
def recovery_feed():
    return [
        {
            "file": "chromeos_15474.70.0_eve_recovery_beta-channel_mp.bin",
            "channel": "beta",
            "version": "15474.70.0",
            "chrome_version": "115.0.5790.130",
            "url": "https://dl.google.com/dl/edgedl/chromeos/recovery/chromeos_15474.70.0_eve_recovery_beta-channel_mp.bin.zip",
            "name": "Google Pixelbook",
            "manufacturer": "Google",
        },
        {
            "file": "chromeos_15437.90.0_hatch_recovery_ltc-channel_mp.bin",
            "channel": "LTS",
            "version": "15437.90.0",
            "chrome_version": "114.0.5735.350",
            "url": "https://dl.google.com/dl/edgedl/chromeos/recovery/chromeos_15437.90.0_hatch_recovery_lts-channel_mp.bin.zip",
        },
    ]
