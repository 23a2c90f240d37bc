"""Unit tests for the varbind data model."""

import pytest
from pydantic import ValidationError

from varbind.core.types import (
    Alias,
    BindingRef,
    Collection,
    Literal,
    Mode,
    Variable,
    VariableScope,
    VariableType,
    literal_matches,
    literal_type_of,
    normalize_literal,
    value_from_record,
)


class TestLiterals:
    @pytest.mark.parametrize("value,var_type,expected", [
        ("#0047AB", VariableType.COLOR, True),
        ("#0047ab80", VariableType.COLOR, True),
        ("blue", VariableType.COLOR, False),
        (8, VariableType.NUMBER, True),
        (1.5, VariableType.NUMBER, True),
        (True, VariableType.NUMBER, False),
        (True, VariableType.BOOLEAN, True),
        (0, VariableType.BOOLEAN, False),
        ("Hello", VariableType.STRING, True),
        (3, VariableType.STRING, False),
    ])
    def test_literal_matches(self, value, var_type, expected):
        assert literal_matches(value, var_type) is expected

    def test_literal_type_of(self):
        assert literal_type_of(False) == VariableType.BOOLEAN
        assert literal_type_of(12) == VariableType.NUMBER
        assert literal_type_of("#FFFFFF") == VariableType.COLOR
        assert literal_type_of("Inter") == VariableType.STRING
        assert literal_type_of(None) is None

    def test_colors_are_normalized_to_upper_case(self):
        assert normalize_literal("#6ca0dc", VariableType.COLOR) == "#6CA0DC"
        assert normalize_literal("abc", VariableType.STRING) == "abc"


class TestValueRecords:
    def test_alias_record(self):
        value = value_from_record({"kind": "alias", "variable_id": "primary", "mode_id": "dark"})
        assert value == Alias(variable_id="primary", mode_id="dark")

    def test_bare_variable_id_is_an_alias(self):
        assert value_from_record({"variable_id": "primary"}) == Alias(variable_id="primary")

    def test_raw_values_become_literals(self):
        assert value_from_record("#FFFFFF") == Literal(value="#FFFFFF")
        assert value_from_record({"kind": "literal", "value": 4}) == Literal(value=4)

    def test_bool_literal_keeps_its_type(self):
        assert value_from_record(True).value is True


class TestCollection:
    def test_default_mode_must_exist(self):
        with pytest.raises(ValidationError):
            Collection(id="c", name="C", modes=[Mode(id="a", name="A")], default_mode_id="b")

    def test_needs_a_mode(self):
        with pytest.raises(ValidationError):
            Collection(id="c", name="C", modes=[], default_mode_id="a")

    def test_find_mode_by_id_or_name(self):
        collection = Collection(
            id="c", name="C",
            modes=[Mode(id="light", name="Light"), Mode(id="dark", name="Dark")],
            default_mode_id="light",
        )
        assert collection.find_mode("dark").id == "dark"
        assert collection.find_mode("DARK").id == "dark"
        assert collection.find_mode("dim") is None


class TestVariable:
    def test_values_are_coerced_from_records(self):
        variable = Variable(
            id="accent", name="Accent", type=VariableType.COLOR, collection_id="brand",
            values_by_mode={"light": {"variable_id": "primary"}, "dark": "#000000"},
        )
        assert variable.values_by_mode["light"] == Alias(variable_id="primary")
        assert variable.values_by_mode["dark"] == Literal(value="#000000")
        assert variable.alias_targets() == ["primary"]

    def test_scope_all_allows_everything(self):
        variable = Variable(id="v", name="V", type=VariableType.COLOR, collection_id="c")
        assert variable.allows_scope(VariableScope.STROKE)

    def test_restricted_scope(self):
        variable = Variable(id="v", name="V", type=VariableType.COLOR, collection_id="c",
                            scopes={VariableScope.FILL})
        assert variable.allows_scope(VariableScope.FILL)
        assert not variable.allows_scope(VariableScope.STROKE)

    def test_with_value_returns_a_copy(self):
        variable = Variable(id="v", name="V", type=VariableType.NUMBER, collection_id="c",
                            values_by_mode={"m": 1})
        updated = variable.with_value("m", None)
        assert "m" in variable.values_by_mode
        assert updated.values_by_mode == {}


def test_binding_ref_str():
    assert str(BindingRef(node_id="cta", property_path="fill.color")) == "cta.fill.color"
