"""
Unit tests for the 'resolve' command.
"""

import json

import pytest

from varbind.cli.commands.resolve import resolve
from varbind.cli.main import main


class TestResolveCommand:
    @pytest.fixture
    def invoke(self, runner, demo_doc, no_config):
        def run(*args):
            return runner.invoke(main, [*no_config, "resolve", str(demo_doc), *args])
        return run

    def test_default_mode(self, invoke):
        result = invoke("accent")

        assert result.exit_code == 0
        assert "Accent = #0047AB" in result.output
        assert "mode light" in result.output

    def test_active_mode_by_collection_name(self, invoke):
        result = invoke("accent", "--mode", "Brand=dark")

        assert result.exit_code == 0
        assert "#6CA0DC" in result.output

    def test_json_chain(self, invoke):
        result = invoke("Brand/Accent", "-m", "brand=dark", "--json")

        assert result.exit_code == 0
        data = json.loads(result.output)["data"]
        assert data["value"] == "#6CA0DC"
        assert data["mode_id"] == "dark"
        assert [hop["variable_id"] for hop in data["source_chain"]] == ["accent", "primary"]
        assert data["source_chain"][1]["collection"] == "Brand"

    def test_pin_mode(self, invoke):
        data = json.loads(invoke("primary", "--pin", "dark", "--json").output)["data"]
        assert data["value"] == "#6CA0DC"

    def test_modes_are_per_collection(self, invoke):
        data = json.loads(invoke("headline-text", "-m", "Copy=de", "-m", "Brand=dark",
                                 "--json").output)["data"]
        assert data["value"] == "Mit Tokens bauen"

    def test_unknown_variable(self, invoke):
        result = invoke("ghost")

        assert result.exit_code == 1
        assert "Variable not found: ghost" in result.output

    def test_unknown_variable_json(self, invoke):
        result = invoke("ghost", "--json")

        assert result.exit_code == 1
        assert json.loads(result.output)["status"] == "error"

    def test_bad_mode_option(self, invoke):
        result = invoke("accent", "--mode", "Brand=sepia")
        assert result.exit_code == 2

    def test_resolution_error(self, runner, edit_doc):
        def change(data):
            primary = next(v for v in data["variables"] if v["id"] == "primary")
            del primary["values_by_mode"]["dark"]
        path = edit_doc(change)

        result = runner.invoke(resolve, [str(path), "accent", "--mode", "brand=dark", "--json"])

        assert result.exit_code == 1
        error = json.loads(result.output)["error"]
        assert error["code"] == "missing_mode_value"
        assert error["source_chain"] == ["accent", "primary"]
