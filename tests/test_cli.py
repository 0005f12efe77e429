"""
Tests for the crosupdates command-line interface.
"""

import json
from unittest.mock import AsyncMock, patch

import pytest

from crosupdates import cli
from crosupdates.cache import DataCache
from crosupdates.config import Settings
from crosupdates.models import CacheEnvelope, EnhancedMetadata

pytestmark = [pytest.mark.unit]

EMPTY = {"devices": {}, "boards": {}, "singleDeviceBoards": {}}


@pytest.fixture
def settings(tmp_path):
    settings = Settings(cache_dir=tmp_path / "cache")
    with patch("crosupdates.cli.load_settings", return_value=settings):
        yield settings


class TestBuildCommand:
    def test_build_writes_output_file(self, settings, tmp_path):
        output = tmp_path / "out" / "cros.json"

        with patch(
            "crosupdates.cli.build_device_data", new=AsyncMock(return_value=EMPTY)
        ) as build:
            exit_code = cli.main(["build", "-o", str(output)])

        assert exit_code == 0
        assert json.loads(output.read_text()) == EMPTY
        build.assert_awaited_once()
        assert build.await_args.args[2] is settings

    def test_build_to_stdout(self, settings, capsys):
        with patch(
            "crosupdates.cli.build_device_data", new=AsyncMock(return_value=EMPTY)
        ):
            assert cli.main(["build"]) == 0

        assert json.loads(capsys.readouterr().out) == EMPTY

    def test_build_stdout_is_pure_json(
        self, settings, capsys, fake_fetcher, serving_builds, recovery_feed
    ):
        """Log lines go to stderr so piped output stays parseable."""
        fake_fetcher.responses = {
            settings.serving_builds_url: serving_builds,
            settings.recovery_url: recovery_feed,
        }
        fake_fetcher.__aenter__.return_value = fake_fetcher

        with patch("crosupdates.cli.JsonFetcher", return_value=fake_fetcher):
            assert cli.main(["build"]) == 0

        captured = capsys.readouterr()
        data = json.loads(captured.out)
        assert set(data["devices"]) == {"eve", "kohaku", "dragonair"}
        assert "Starting Chrome OS data fetch" in captured.err

    def test_unwritable_output(self, settings, tmp_path):
        blocker = tmp_path / "blocker"
        blocker.write_text("file")

        with patch(
            "crosupdates.cli.build_device_data", new=AsyncMock(return_value=EMPTY)
        ):
            assert cli.main(["build", "-o", str(blocker / "out.json")]) == 1


class TestOtherCommands:
    def test_enhanced(self, settings, capsys):
        metadata = {"eve": EnhancedMetadata(kernel_version="4.4")}
        with patch(
            "crosupdates.cli.EnhancedMetadataLoader.load",
            new=AsyncMock(return_value=metadata),
        ):
            assert cli.main(["enhanced"]) == 0

        assert json.loads(capsys.readouterr().out)["eve"]["kernel_version"] == "4.4"

    def test_flex(self, settings, capsys):
        flex = {"versions": {}, "recoveries": []}
        with patch("crosupdates.cli.fetch_flex_data", new=AsyncMock(return_value=flex)):
            assert cli.main(["flex"]) == 0

        assert json.loads(capsys.readouterr().out) == flex

    def test_redirect(self, settings, capsys):
        DataCache(settings.device_cache_file).save(
            CacheEnvelope(
                data_hash="h",
                timestamp=0,
                data={
                    "devices": {},
                    "boards": {},
                    "singleDeviceBoards": {"eve": {"board": "eve", "devices": {"eve": {}}}},
                },
            )
        )

        assert cli.main(["redirect", "eve"]) == 0
        assert capsys.readouterr().out.strip() == "/device/eve"

    def test_redirect_unknown_board(self, settings):
        assert cli.main(["redirect", "nope"]) == 1

    def test_clean(self, settings):
        settings.cache_dir.mkdir(parents=True)
        settings.device_cache_file.write_text("{}")
        settings.enhanced_cache_file.write_text("{}")

        assert cli.main(["clean"]) == 0
        assert not settings.device_cache_file.exists()
        assert not settings.enhanced_cache_file.exists()

    def test_no_command_prints_help(self, capsys):
        assert cli.main([]) == 0
        assert "usage" in capsys.readouterr().out


class TestGlobalOptions:
    def test_config_error_exits_1(self, tmp_path):
        assert cli.main(["--config", str(tmp_path / "missing.yaml"), "clean"]) == 1

    def test_log_level_option(self, settings):
        with patch("crosupdates.cli.log_utils.set_log_level") as set_level:
            cli.main(["--log-level", "DEBUG", "redirect", "nope"])

        set_level.assert_called_once_with("DEBUG")

    def test_log_dir_option(self, settings, tmp_path):
        with patch("crosupdates.cli.log_utils.add_file_logging") as add_file:
            cli.main(["--log-dir", str(tmp_path / "logs"), "redirect", "nope"])

        add_file.assert_called_once()
        assert add_file.call_args.args[1] == "INFO"
