"""Tests for store and document persistence."""

import json

import pytest
import yaml

from varbind.core.exceptions import VarbindError
from varbind.core.resolver import Resolver
from varbind.core.types import Alias, BindingRef, UserRole
from varbind.io.serialization import (
    FORMAT_VERSION,
    dump_store,
    load_document,
    load_store,
    save_document,
)


@pytest.fixture
def document_api(scene_api, scene_brand):
    scene_api.rebind("cta", "fill.color", "accent", mode_override="dark")
    scene_api.rebind("title", "text.color", "primary")
    return scene_api


class TestStoreRecords:
    def test_dump_shape(self, api, brand):
        data = dump_store(api.store)

        assert data["format"] == FORMAT_VERSION
        assert data["version"] == api.store.version
        assert [c["id"] for c in data["collections"]] == ["brand"]
        accent = next(v for v in data["variables"] if v["id"] == "accent")
        assert accent["values_by_mode"]["light"] == {
            "kind": "alias", "variable_id": "primary", "mode_id": None,
        }
        assert accent["scopes"] == ["all"]
        assert accent["editable_by"] == ["admin", "editor", "owner"]

    def test_round_trip_rebuilds_index(self, document_api):
        store, index = load_store(dump_store(document_api.store))

        assert store.version == document_api.store.version
        assert store.get_variable("accent") == document_api.store.get_variable("accent")
        assert index.aliasers_of("primary") == {"accent"}
        assert index.bindings_for("accent") == {BindingRef(node_id="cta", property_path="fill.color")}

        binding = store.binding_for("cta", "fill.color")
        assert binding.mode_override == "dark"
        assert Resolver(store.snapshot()).resolve_binding(binding).unwrap().value == "#6CA0DC"

    def test_dangling_binding_is_kept_and_logged(self, api, brand, caplog):
        data = dump_store(api.store)
        data["bindings"].append(
            {"node_id": "cta", "property_path": "fill.color", "variable_id": "ghost"}
        )

        with caplog.at_level("WARNING", logger="varbind.io.serialization"):
            store, _ = load_store(data)

        assert store.binding_for("cta", "fill.color").variable_id == "ghost"
        assert "ghost" in caplog.text

    def test_alias_cycle_is_logged(self, api, brand, caplog):
        data = dump_store(api.store)
        primary = next(v for v in data["variables"] if v["id"] == "primary")
        primary["values_by_mode"]["dark"] = Alias(variable_id="accent").model_dump()

        with caplog.at_level("WARNING", logger="varbind.io.serialization"):
            store, _ = load_store(data)

        assert "alias cycle" in caplog.text
        assert Resolver(store.snapshot(), {"brand": "dark"}).resolve_variable("accent").is_err()

    def test_malformed_record(self):
        with pytest.raises(VarbindError):
            load_store({"variables": [{"id": "x", "name": "X", "type": "gradient",
                                       "collection_id": "c"}]})

    @pytest.mark.parametrize("record", [{"kind": "literal"}, {"kind": "alias"}])
    def test_incomplete_value_record(self, record):
        with pytest.raises(VarbindError, match="Malformed store record"):
            load_store({"variables": [{"id": "x", "name": "X", "type": "color",
                                       "collection_id": "c",
                                       "values_by_mode": {"m": record}}]})


class TestDocuments:
    def test_json_document(self, document_api, scene, tmp_path):
        path = save_document(tmp_path / "doc.json", document_api.store, scene)

        raw = json.loads(path.read_text())
        assert raw["scene"]["id"] == "page"

        document = load_document(path)
        assert document.scene.get_node("title").properties["text.content"] == "Hello"
        assert document.store.get_stats() == document_api.store.get_stats()

    def test_yaml_document_keeps_governance(self, document_api, scene, tmp_path):
        path = save_document(tmp_path / "doc.yaml", document_api.store, scene)

        assert yaml.safe_load(path.read_text())["format"] == FORMAT_VERSION

        document = load_document(path)
        lock = document.scene.get_node("cta").governance.lock_for("fill.color")
        assert lock.locked
        assert lock.allowed_roles == frozenset({UserRole.ADMIN})
        assert document.index.has_dependents("primary")

    def test_document_without_scene(self, api, brand, tmp_path):
        document = load_document(save_document(tmp_path / "tokens.yml", api.store))
        assert document.scene is None
        assert document.store.get_collection("brand").mode_ids() == ["light", "dark"]

    def test_unparseable_file(self, tmp_path):
        path = tmp_path / "broken.json"
        path.write_text("{not json")
        with pytest.raises(VarbindError):
            load_document(path)

    def test_non_mapping_document(self, tmp_path):
        path = tmp_path / "list.yaml"
        path.write_text("- a\n- b\n")
        with pytest.raises(VarbindError):
            load_document(path)

    def test_malformed_scene(self, api, brand, tmp_path):
        path = tmp_path / "doc.json"
        data = dump_store(api.store)
        data["scene"] = {"id": "page", "name": "Page", "type": "CIRCLE"}
        path.write_text(json.dumps(data))
        with pytest.raises(VarbindError):
            load_document(path)
