"""Smoke tests for CLI commands.

Uses Click's CliRunner. Every invocation logs to a file in the test's
temporary directory and uses a config file there too.
"""

import json

import pytest
from click.testing import CliRunner

from lightdeck.cli.main import cli, resolve_log_path

DESK = "192.168.1.10"
MATRIX = [{"device_id": DESK, "pixel": i} for i in range(3)] + [None, None]


@pytest.fixture
def runner():
    """Create a Click CLI test runner."""
    return CliRunner()


@pytest.fixture
def invoke(runner, temp_dir):
    """Invoke the CLI with logging redirected into the temp directory."""

    def run(*args, input=None):
        return runner.invoke(cli, ["--log-file", str(temp_dir / "cli.log"), *args], input=input)

    return run


@pytest.mark.integration
class TestCLIHelp:
    """Test that all commands have working help text."""

    def test_main_help(self, runner):
        result = runner.invoke(cli, ["--help"])
        assert result.exit_code == 0
        assert "lightdeck" in result.output
        for command in ("matrix", "settings", "config"):
            assert command in result.output

    def test_version_flag(self, runner):
        result = runner.invoke(cli, ["--version"])
        assert result.exit_code == 0
        assert "0.1.0" in result.output

    @pytest.mark.parametrize("group", ["matrix", "settings", "config"])
    def test_group_help(self, invoke, group):
        result = invoke(group, "--help")
        assert result.exit_code == 0

    def test_log_file_written(self, invoke, temp_dir):
        invoke("matrix", "encode", input="[]")

        assert (temp_dir / "cli.log").exists()

    def test_resolve_log_path(self, temp_dir):
        assert resolve_log_path(False, temp_dir / "x.log") == temp_dir / "x.log"
        assert resolve_log_path(True, None).name == "lightdeck-debug.log"


@pytest.mark.integration
class TestMatrixCommands:
    """Test matrix decode and encode."""

    def test_decode_flat_row(self, invoke):
        result = invoke("matrix", "decode", input=json.dumps(MATRIX))

        assert result.exit_code == 0, result.output
        segments = json.loads(result.output)
        assert segments[0]["kind"] == "device_range"
        assert (segments[0]["start"], segments[0]["end"]) == (0, 2)
        assert segments[1]["kind"] == "gap"
        assert segments[1]["gap_length"] == 2
        assert "id" not in segments[0]

    def test_decode_virtual_summary(self, invoke):
        result = invoke("matrix", "decode", "--summary", input=json.dumps({"matrix_data": [MATRIX]}))

        assert result.exit_code == 0, result.output
        assert result.output.splitlines() == [f"{DESK} [0-2]", "Gap (2)"]

    def test_decode_invalid_json(self, invoke):
        result = invoke("matrix", "decode", input="{nope")

        assert result.exit_code != 0
        assert "Invalid JSON" in result.output

    def test_decode_invalid_matrix(self, invoke):
        result = invoke("matrix", "decode", input=json.dumps([{"device_id": DESK}]))

        assert result.exit_code != 0
        assert "Not a valid matrix" in result.output

    def test_encode(self, invoke):
        segments = [
            {"kind": "device_range", "device_id": DESK, "start": 0, "end": 2},
            {"kind": "gap", "gap_length": 2},
        ]

        result = invoke("matrix", "encode", input=json.dumps(segments))

        assert result.exit_code == 0, result.output
        assert json.loads(result.output) == MATRIX

    def test_encode_invalid_segment(self, invoke):
        result = invoke("matrix", "encode", input=json.dumps([{"kind": "gap"}]))

        assert result.exit_code != 0
        assert "Not a valid segment list" in result.output


@pytest.mark.integration
class TestSettingsInspect:
    """Test settings document inspection."""

    def test_full_configuration(self, invoke, temp_dir):
        path = temp_dir / "backup.json"
        path.write_text(json.dumps({
            "engine_state": {"devices": {DESK: {}}, "virtuals": {}, "scenes": {}},
            "frontend_state": {"selectedEffects": {"v1": "rainbow"}, "effectSettings": {}},
        }))

        result = invoke("settings", "inspect", str(path))

        assert result.exit_code == 0, result.output
        assert "Format: Full Configuration" in result.output
        assert "Devices: 1" in result.output
        assert "Other sections: scenes" in result.output
        assert "v1: rainbow (0 configured)" in result.output

    def test_ui_settings(self, invoke, temp_dir):
        path = temp_dir / "ui.json"
        path.write_text(json.dumps({"selectedEffects": {}, "effectSettings": {}}))

        result = invoke("settings", "inspect", str(path))

        assert "Format: UI Settings" in result.output

    def test_unrecognized(self, invoke, temp_dir):
        path = temp_dir / "other.json"
        path.write_text(json.dumps({"foo": 1}))

        result = invoke("settings", "inspect", str(path))

        assert result.exit_code != 0
        assert "Unrecognized JSON file format" in result.output


@pytest.mark.integration
class TestConfigCommands:
    """Test config show, set and reset."""

    @pytest.fixture
    def config_file(self, temp_dir):
        return temp_dir / "config.json"

    def test_show_defaults(self, invoke, config_file):
        result = invoke("config", "--config-file", str(config_file), "show")

        assert result.exit_code == 0, result.output
        assert "live_settings_debounce_ms: 300" in result.output
        assert not config_file.exists()

    def test_set_and_show_field(self, invoke, config_file):
        result = invoke("config", "--config-file", str(config_file), "set", "preview_width", "32")

        assert result.exit_code == 0, result.output
        assert "preview_width = 32" in result.output
        assert json.loads(config_file.read_text())["preview_width"] == 32

        result = invoke("config", "--config-file", str(config_file), "show", "--field", "preview_width")
        assert result.output.strip() == "32"

    def test_set_invalid_value(self, invoke, config_file):
        result = invoke("config", "--config-file", str(config_file), "set", "preview_width", "0")

        assert result.exit_code != 0
        assert "Invalid value for preview_width" in result.output
        assert not config_file.exists()

    def test_set_unknown_field(self, invoke, config_file):
        result = invoke("config", "--config-file", str(config_file), "set", "volume", "3")

        assert result.exit_code != 0

    def test_reset(self, invoke, config_file):
        invoke("config", "--config-file", str(config_file), "set", "preview_width", "32")

        result = invoke("config", "--config-file", str(config_file), "reset", "--yes")

        assert result.exit_code == 0, result.output
        assert json.loads(config_file.read_text())["preview_width"] == 64

    def test_reset_needs_confirmation(self, invoke, config_file):
        result = invoke("config", "--config-file", str(config_file), "reset", input="n\n")

        assert result.exit_code != 0
        assert not config_file.exists()

    def test_corrupted_config_reports_hint(self, invoke, config_file):
        config_file.write_text("{ broken")

        result = invoke("config", "--config-file", str(config_file), "show")

        assert result.exit_code != 0
        assert "config" in result.output.lower()
