"""Tests for the Figma variables importer."""

import pytest

from varbind.core.resolver import Resolver
from varbind.core.types import Alias, UserRole, VariableScope, VariableType
from varbind.importers.figma import FigmaVariableImporter, figma_color_to_hex, map_figma_scopes

BRAND = "VariableCollectionId:1"
LIGHT, DARK = "1:0", "1:1"


def _alias(figma_id):
    return {"type": "VARIABLE_ALIAS", "id": figma_id}


@pytest.fixture
def payload():
    """A trimmed `GET /v1/files/:key/variables/local` response."""
    return {
        "status": 200,
        "meta": {
            "variableCollections": {
                BRAND: {
                    "id": BRAND,
                    "name": "Brand",
                    "modes": [{"modeId": LIGHT, "name": "Light"}, {"modeId": DARK, "name": "Dark"}],
                    "defaultModeId": LIGHT,
                },
                "VariableCollectionId:lib": {
                    "id": "VariableCollectionId:lib",
                    "name": "Library",
                    "remote": True,
                    "modes": [{"modeId": "9:0", "name": "Default"}],
                },
            },
            "variables": {
                # Listed before its target on purpose.
                "VariableID:2": {
                    "id": "VariableID:2",
                    "name": "Accent",
                    "variableCollectionId": BRAND,
                    "resolvedType": "COLOR",
                    "valuesByMode": {LIGHT: _alias("VariableID:1"), DARK: _alias("VariableID:1")},
                    "scopes": ["ALL_SCOPES"],
                },
                "VariableID:1": {
                    "id": "VariableID:1",
                    "name": "Primary",
                    "variableCollectionId": BRAND,
                    "resolvedType": "COLOR",
                    "valuesByMode": {
                        LIGHT: {"r": 0, "g": 0.278, "b": 0.671, "a": 1},
                        DARK: {"r": 0.4235, "g": 0.6275, "b": 0.8627, "a": 1},
                    },
                    "scopes": ["FRAME_FILL", "SHAPE_FILL"],
                },
                "VariableID:3": {
                    "id": "VariableID:3",
                    "name": "Radius",
                    "variableCollectionId": BRAND,
                    "resolvedType": "FLOAT",
                    "valuesByMode": {LIGHT: 8, DARK: 8},
                    "scopes": ["CORNER_RADIUS"],
                    "description": "Button corners",
                },
                "VariableID:lib": {
                    "id": "VariableID:lib",
                    "name": "Shared",
                    "variableCollectionId": "VariableCollectionId:lib",
                    "resolvedType": "STRING",
                    "remote": True,
                    "valuesByMode": {"9:0": "hi"},
                },
            },
        },
    }


@pytest.fixture
def importer(api):
    return FigmaVariableImporter(api)


def _variable(api, report, figma_id):
    return api.store.get_variable(report.variables[figma_id])


class TestConversions:
    def test_color_to_hex(self):
        assert figma_color_to_hex({"r": 0, "g": 0.278, "b": 0.671, "a": 1}) == "#0047AB"
        assert figma_color_to_hex({"r": 1, "g": 1, "b": 1}) == "#FFFFFF"

    def test_translucent_color_keeps_alpha(self):
        assert figma_color_to_hex({"r": 1, "g": 0, "b": 0, "a": 0.5}) == "#FF000080"

    def test_out_of_range_channels_are_clamped(self):
        assert figma_color_to_hex({"r": 1.2, "g": -0.1, "b": 0}) == "#FF0000"

    def test_scopes(self):
        assert map_figma_scopes(["FRAME_FILL", "SHAPE_FILL"]) == [VariableScope.FILL]
        assert map_figma_scopes(["TEXT_CONTENT", "STROKE_COLOR"]) == [
            VariableScope.STROKE, VariableScope.TEXT,
        ]
        assert map_figma_scopes([]) == [VariableScope.ALL]
        assert map_figma_scopes(["SOMETHING_NEW"]) == [VariableScope.ALL]


class TestImportPayload:
    def test_collections_and_modes(self, api, importer, payload):
        report = importer.import_payload(payload)

        collection = api.store.get_collection(report.collections[BRAND])
        assert collection.name == "Brand"
        assert collection.mode_ids() == ["light", "dark"]
        assert collection.default_mode_id == "light"
        assert report.modes == {LIGHT: "light", DARK: "dark"}

    def test_variables_and_aliases(self, api, importer, payload):
        report = importer.import_payload(payload)

        accent = _variable(api, report, "VariableID:2")
        primary_id = report.variables["VariableID:1"]
        assert accent.values_by_mode["dark"] == Alias(variable_id=primary_id)

        snapshot = api.store.snapshot()
        assert Resolver(snapshot).resolve_variable(accent.id).unwrap().value == "#0047AB"
        assert Resolver(snapshot, {report.collections[BRAND]: "dark"}).resolve_variable(
            accent.id
        ).unwrap().value == "#6CA0DC"

    def test_types_scopes_and_descriptions(self, api, importer, payload):
        report = importer.import_payload(payload)

        radius = _variable(api, report, "VariableID:3")
        assert radius.type == VariableType.NUMBER
        assert radius.scopes == frozenset({VariableScope.NUMBER})
        assert radius.description == "Button corners"
        assert _variable(api, report, "VariableID:1").scopes == frozenset({VariableScope.FILL})

    def test_remote_entries_are_skipped(self, api, importer, payload):
        report = importer.import_payload(payload)

        assert report.skipped == ["VariableCollectionId:lib"]
        assert "VariableID:lib" not in report.variables
        assert api.store.get_stats()["collections"] == 1

    def test_top_level_lists_are_accepted(self, api, importer, payload):
        meta = payload["meta"]
        flat = {
            "variableCollections": list(meta["variableCollections"].values()),
            "variables": list(meta["variables"].values()),
        }
        report = importer.import_payload(flat)
        assert len(report.variables) == 3

    def test_alias_cycle_is_skipped(self, api, importer, payload):
        variables = payload["meta"]["variables"]
        variables["VariableID:4"] = {
            "id": "VariableID:4", "name": "Ping", "variableCollectionId": BRAND,
            "resolvedType": "COLOR", "valuesByMode": {LIGHT: _alias("VariableID:5")},
        }
        variables["VariableID:5"] = {
            "id": "VariableID:5", "name": "Pong", "variableCollectionId": BRAND,
            "resolvedType": "COLOR", "valuesByMode": {LIGHT: _alias("VariableID:4")},
        }

        report = importer.import_payload(payload)

        assert {"VariableID:4", "VariableID:5"} <= set(report.skipped)
        assert any("cycle" in warning for warning in report.warnings)
        assert len(report.variables) == 3

    def test_alias_to_unknown_variable_drops_that_value(self, api, importer, payload):
        payload["meta"]["variables"]["VariableID:2"]["valuesByMode"][DARK] = _alias("VariableID:99")

        report = importer.import_payload(payload)

        accent = _variable(api, report, "VariableID:2")
        assert set(accent.values_by_mode) == {"light"}
        assert any("VariableID:99" in warning for warning in report.warnings)

    def test_invalid_value_skips_variable(self, api, importer, payload):
        payload["meta"]["variables"]["VariableID:3"]["valuesByMode"][LIGHT] = "eight"

        report = importer.import_payload(payload)

        assert "VariableID:3" in report.skipped
        assert "VariableID:3" not in report.variables

    def test_type_inferred_without_resolved_type(self, api, importer, payload):
        del payload["meta"]["variables"]["VariableID:3"]["resolvedType"]
        report = importer.import_payload(payload)
        assert _variable(api, report, "VariableID:3").type == VariableType.NUMBER

    def test_role_is_enforced(self, api, importer, payload):
        report = importer.import_payload(payload, role=UserRole.MEMBER)

        assert report.collections == {}
        assert api.store.get_stats()["variables"] == 0
        assert report.warnings


class TestImportBindings:
    def test_hints_become_bindings(self, api, importer, payload):
        report = importer.import_payload(payload)

        importer.import_bindings([
            {"node_id": "cta", "property_path": "fill.color", "variable_id": "VariableID:2"},
            {"node_id": "cta", "property_path": "cornerRadius", "variable_id": "VariableID:3",
             "mode_id": DARK},
        ], report)

        assert report.bindings == 2
        assert api.store.binding_for("cta", "fill.color").variable_id == report.variables["VariableID:2"]
        assert api.store.binding_for("cta", "cornerRadius").mode_override == "dark"

    def test_invalid_hint_is_reported(self, api, importer, payload):
        report = importer.import_payload(payload)

        importer.import_bindings([
            {"node_id": "title", "property_path": "text.content", "variable_id": "VariableID:1"},
            {"node_id": "cta", "property_path": "fill.color", "variable_id": "VariableID:404"},
        ], report)

        assert report.bindings == 0
        assert len(report.warnings) == 2
