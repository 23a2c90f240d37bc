"""
Core type definitions for varbind.

Collections, Modes, Variables, their per-mode values and the Bindings that
attach scene-node properties to Variables. Entities are frozen pydantic
models: the store replaces them wholesale instead of mutating fields.
"""

import re
from enum import StrEnum
from typing import Any, Dict, FrozenSet, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class VariableType(StrEnum):
    """Closed set of value types a Variable can hold."""
    COLOR = "color"
    NUMBER = "number"
    STRING = "string"
    BOOLEAN = "boolean"


class VariableScope(StrEnum):
    """Property categories a Variable may be bound to."""
    ALL = "all"
    TEXT = "text"
    FILL = "fill"
    STROKE = "stroke"
    NUMBER = "number"
    FONT = "font"
    VISIBILITY = "visibility"
    IMAGE = "image"


class UserRole(StrEnum):
    """Role of the user issuing an edit."""
    OWNER = "owner"
    ADMIN = "admin"
    EDITOR = "editor"
    MEMBER = "member"
    VIEWER = "viewer"


DEFAULT_EDITABLE_BY: FrozenSet[UserRole] = frozenset(
    {UserRole.OWNER, UserRole.ADMIN, UserRole.EDITOR}
)

_HEX_COLOR = re.compile(r"^#(?:[0-9A-Fa-f]{6}|[0-9A-Fa-f]{8})$")


def literal_type_of(value: Any) -> Optional[VariableType]:
    """
    Infer the VariableType of a raw literal.

    Strings that look like hex colors are reported as COLOR; callers that
    expect STRING should use `literal_matches` instead, which accepts both.
    """
    if isinstance(value, bool):
        return VariableType.BOOLEAN
    if isinstance(value, (int, float)):
        return VariableType.NUMBER
    if isinstance(value, str):
        if _HEX_COLOR.match(value):
            return VariableType.COLOR
        return VariableType.STRING
    return None


def literal_matches(value: Any, var_type: VariableType) -> bool:
    """Check a raw literal against a declared VariableType."""
    if var_type == VariableType.BOOLEAN:
        return isinstance(value, bool)
    if var_type == VariableType.NUMBER:
        return isinstance(value, (int, float)) and not isinstance(value, bool)
    if var_type == VariableType.COLOR:
        return isinstance(value, str) and bool(_HEX_COLOR.match(value))
    if var_type == VariableType.STRING:
        return isinstance(value, str)
    return False


def normalize_literal(value: Any, var_type: VariableType) -> Any:
    if var_type == VariableType.COLOR:
        return value.upper()
    return value


class Mode(BaseModel):
    """A named axis value within a Collection (e.g. "dark")."""
    id: str
    name: str

    model_config = ConfigDict(frozen=True)


class Collection(BaseModel):
    """
    Named group of Modes and the Variables defined across them.

    `modes` is never empty and `default_mode_id` always names one of them;
    the Mutation API enforces both before committing.
    """
    id: str
    name: str
    modes: List[Mode]
    default_mode_id: str
    description: str = ""
    order: int = 0

    model_config = ConfigDict(frozen=True)

    @model_validator(mode="after")
    def _check_modes(self) -> "Collection":
        if not self.modes:
            raise ValueError(f"Collection '{self.id}' needs at least one mode")
        if not self.has_mode(self.default_mode_id):
            raise ValueError(
                f"Default mode '{self.default_mode_id}' is not a mode of '{self.id}'"
            )
        return self

    def mode_ids(self) -> List[str]:
        return [m.id for m in self.modes]

    def has_mode(self, mode_id: str) -> bool:
        return any(m.id == mode_id for m in self.modes)

    def get_mode(self, mode_id: str) -> Optional[Mode]:
        return next((m for m in self.modes if m.id == mode_id), None)

    def find_mode(self, name_or_id: str) -> Optional[Mode]:
        """Look a mode up by id first, then by case-insensitive name."""
        mode = self.get_mode(name_or_id)
        if mode:
            return mode
        lowered = name_or_id.lower()
        return next((m for m in self.modes if m.name.lower() == lowered), None)


class Literal(BaseModel):
    """A type-appropriate concrete value."""
    kind: str = Field(default="literal", frozen=True)
    value: Union[bool, int, float, str]

    model_config = ConfigDict(frozen=True)


class Alias(BaseModel):
    """
    A reference to another Variable.

    With `mode_id` set, resolution is pinned to that mode of the target's
    collection regardless of the caller's active-mode selection.
    """
    kind: str = Field(default="alias", frozen=True)
    variable_id: str
    mode_id: Optional[str] = None

    model_config = ConfigDict(frozen=True)


VariableValue = Union[Literal, Alias]


def value_from_record(record: Any) -> VariableValue:
    """Rebuild a VariableValue from its plain record form."""
    if isinstance(record, (Literal, Alias)):
        return record
    if isinstance(record, dict):
        if record.get("kind") == "alias" or "variable_id" in record:
            if "variable_id" not in record:
                raise ValueError(f"Alias record without variable_id: {record!r}")
            return Alias(variable_id=record["variable_id"], mode_id=record.get("mode_id"))
        if "value" not in record:
            raise ValueError(f"Value record without value: {record!r}")
        return Literal(value=record["value"])
    return Literal(value=record)


class Variable(BaseModel):
    """A typed named token holding one value per Mode, or an alias per Mode."""
    id: str
    name: str
    type: VariableType
    collection_id: str
    values_by_mode: Dict[str, VariableValue] = Field(default_factory=dict)
    scopes: FrozenSet[VariableScope] = frozenset({VariableScope.ALL})
    description: str = ""
    tags: List[str] = Field(default_factory=list)
    editable_by: FrozenSet[UserRole] = DEFAULT_EDITABLE_BY
    locked: bool = False

    model_config = ConfigDict(frozen=True)

    @field_validator("values_by_mode", mode="before")
    @classmethod
    def _coerce_values(cls, raw: Any) -> Any:
        if isinstance(raw, dict):
            return {mode_id: value_from_record(v) for mode_id, v in raw.items()}
        return raw

    def alias_targets(self) -> List[str]:
        """Variable ids this variable aliases, in any mode."""
        return [v.variable_id for v in self.values_by_mode.values() if isinstance(v, Alias)]

    def allows_scope(self, scope: VariableScope) -> bool:
        return VariableScope.ALL in self.scopes or scope in self.scopes

    def with_value(self, mode_id: str, value: Optional[VariableValue]) -> "Variable":
        values = dict(self.values_by_mode)
        if value is None:
            values.pop(mode_id, None)
        else:
            values[mode_id] = value
        return self.model_copy(update={"values_by_mode": values})


class BindingRef(BaseModel):
    """Address of a bindable scene-node property, e.g. ("hero", "fill.color")."""
    node_id: str
    property_path: str

    model_config = ConfigDict(frozen=True)

    def __str__(self) -> str:
        return f"{self.node_id}.{self.property_path}"


class Binding(BaseModel):
    """Attachment of a scene-node property to a Variable."""
    node_id: str
    property_path: str
    variable_id: str
    mode_override: Optional[str] = None

    model_config = ConfigDict(frozen=True)

    @property
    def ref(self) -> BindingRef:
        return BindingRef(node_id=self.node_id, property_path=self.property_path)


class ResolvedVariable(BaseModel):
    """
    Output of resolution.

    `source_chain` lists every variable id traversed, starting with the one
    that was asked for and ending with the one holding the literal.
    """
    value: Union[bool, int, float, str]
    type: VariableType
    source_chain: List[str]
    mode_id: str

    model_config = ConfigDict(frozen=True)

    @property
    def is_alias(self) -> bool:
        return len(self.source_chain) > 1
