"""Unit tests for alias-chain resolution."""

import pytest

from varbind.core.exceptions import (
    CircularReference,
    DanglingReference,
    MissingModeValue,
    TypeMismatch,
)
from varbind.core.resolver import Resolver, resolve
from varbind.core.store import VariableStore
from varbind.core.types import (
    Alias,
    Binding,
    Collection,
    Mode,
    Variable,
    VariableType,
)


def _store(*variables, collections=None):
    collections = collections or [
        Collection(id="brand", name="Brand",
                   modes=[Mode(id="light", name="light"), Mode(id="dark", name="dark")],
                   default_mode_id="light"),
    ]
    return VariableStore.from_records(collections, variables, [])


def _color(variable_id, values, collection_id="brand"):
    return Variable(id=variable_id, name=variable_id, type=VariableType.COLOR,
                    collection_id=collection_id, values_by_mode=values)


class TestBrandScenario:
    def test_active_mode_selection(self, api, brand):
        result = Resolver(api.store.snapshot(), {"brand": "dark"}).resolve_variable("accent")

        assert result.is_ok()
        assert result.value.value == "#6CA0DC"
        assert result.value.source_chain == ["accent", "primary"]
        assert result.value.is_alias

    def test_default_mode_fallback(self, api, brand):
        result = resolve(api.store.snapshot(), "accent")

        assert result.unwrap().value == "#0047AB"
        assert result.unwrap().mode_id == "light"


class TestAliasChains:
    @pytest.mark.parametrize("length", [1, 2, 5, 20])
    def test_chain_of_length_n(self, length):
        variables = [_color("v0", {"light": "#000000"})]
        for i in range(1, length):
            variables.append(_color(f"v{i}", {"light": Alias(variable_id=f"v{i - 1}")}))

        result = Resolver(_store(*variables).snapshot()).resolve_variable(f"v{length - 1}")

        assert result.unwrap().value == "#000000"
        assert len(result.value.source_chain) == length
        assert result.value.source_chain[-1] == "v0"

    @pytest.mark.parametrize("start,chain", [
        ("a", ["a", "b", "a"]),
        ("b", ["b", "a", "b"]),
    ])
    def test_cycle_rejected_from_any_start(self, start, chain):
        store = _store(
            _color("a", {"light": Alias(variable_id="b")}),
            _color("b", {"light": Alias(variable_id="a")}),
        )
        result = Resolver(store.snapshot()).resolve_variable(start)

        assert result.is_err()
        assert isinstance(result.error, CircularReference)
        assert result.error.source_chain == chain

    def test_pinned_alias_mode_wins_over_selection(self):
        store = _store(
            _color("primary", {"light": "#0047AB", "dark": "#6CA0DC"}),
            _color("always-dark", {"light": Alias(variable_id="primary", mode_id="dark")}),
        )
        result = Resolver(store.snapshot(), {"brand": "light"}).resolve_variable("always-dark")
        assert result.unwrap().value == "#6CA0DC"

    def test_pinned_binding_carries_through_same_collection_alias(self):
        store = _store(
            _color("primary", {"light": "#0047AB", "dark": "#6CA0DC"}),
            _color("accent", {"light": Alias(variable_id="primary"),
                              "dark": Alias(variable_id="primary")}),
        )
        binding = Binding(node_id="cta", property_path="fill.color",
                          variable_id="accent", mode_override="dark")

        result = Resolver(store.snapshot()).resolve_binding(binding)

        assert result.unwrap().value == "#6CA0DC"
        assert result.value.source_chain == ["accent", "primary"]
        assert result.value.mode_id == "dark"

    def test_pin_does_not_leak_into_other_collections(self):
        collections = [
            Collection(id="brand", name="Brand",
                       modes=[Mode(id="light", name="light"), Mode(id="dark", name="dark")],
                       default_mode_id="light"),
            Collection(id="semantic", name="Semantic",
                       modes=[Mode(id="light", name="light"), Mode(id="dark", name="dark")],
                       default_mode_id="light"),
        ]
        store = _store(
            _color("primary", {"light": "#0047AB", "dark": "#6CA0DC"}),
            _color("button", {"light": Alias(variable_id="primary"),
                              "dark": Alias(variable_id="primary")},
                   collection_id="semantic"),
            collections=collections,
        )

        result = Resolver(store.snapshot()).resolve_variable("button", mode_override="dark")

        assert result.unwrap().value == "#0047AB"

    def test_chain_crosses_collections_with_independent_modes(self):
        collections = [
            Collection(id="brand", name="Brand",
                       modes=[Mode(id="light", name="light"), Mode(id="dark", name="dark")],
                       default_mode_id="light"),
            Collection(id="semantic", name="Semantic",
                       modes=[Mode(id="default", name="Default")], default_mode_id="default"),
        ]
        store = _store(
            _color("primary", {"light": "#0047AB", "dark": "#6CA0DC"}),
            _color("button", {"default": Alias(variable_id="primary")}, collection_id="semantic"),
            collections=collections,
        )
        snapshot = store.snapshot()

        assert Resolver(snapshot, {"brand": "dark"}).resolve_variable("button").unwrap().value == "#6CA0DC"
        # No selection for either collection: each falls back to its own default.
        assert Resolver(snapshot).resolve_variable("button").unwrap().value == "#0047AB"


class TestResolutionErrors:
    def test_dangling_reference(self):
        store = _store(_color("accent", {"light": Alias(variable_id="ghost")}))
        result = Resolver(store.snapshot()).resolve_variable("accent")

        assert isinstance(result.error, DanglingReference)
        assert result.error.subject_id == "ghost"
        assert result.error.source_chain == ["accent", "ghost"]

    def test_missing_mode_value_has_no_cross_mode_fallback(self):
        store = _store(_color("primary", {"light": "#0047AB"}))
        result = Resolver(store.snapshot(), {"brand": "dark"}).resolve_variable("primary")

        assert isinstance(result.error, MissingModeValue)
        assert result.error.mode_id == "dark"

    def test_alias_target_type_mismatch(self):
        store = _store(
            Variable(id="spacing", name="spacing", type=VariableType.NUMBER,
                     collection_id="brand", values_by_mode={"light": 8}),
            _color("accent", {"light": Alias(variable_id="spacing")}),
        )
        result = Resolver(store.snapshot()).resolve_variable("accent")
        assert isinstance(result.error, TypeMismatch)

    def test_binding_expected_type(self):
        store = _store(_color("primary", {"light": "#0047AB"}))
        binding = Binding(node_id="title", property_path="text.content", variable_id="primary")
        result = Resolver(store.snapshot()).resolve_binding(binding, VariableType.STRING)
        assert isinstance(result.error, TypeMismatch)

    def test_binding_mode_override(self):
        store = _store(_color("primary", {"light": "#0047AB", "dark": "#6CA0DC"}))
        binding = Binding(node_id="cta", property_path="fill.color",
                          variable_id="primary", mode_override="dark")
        result = Resolver(store.snapshot(), {"brand": "light"}).resolve_binding(binding)
        assert result.unwrap().value == "#6CA0DC"

    def test_unwrap_raises_the_error(self):
        result = Resolver(_store().snapshot()).resolve_variable("nope")
        with pytest.raises(DanglingReference):
            result.unwrap()
        assert result.unwrap_or("fallback") == "fallback"
