"""
Bindable property registry.

Every property path a Binding can target declares the VariableType it
accepts and the VariableScope it belongs to. Node kinds declare which
paths they expose.
"""

from enum import StrEnum
from typing import Dict, FrozenSet, NamedTuple, Optional

from ..core.types import VariableScope, VariableType


class NodeType(StrEnum):
    FRAME = "FRAME"
    TEXT = "TEXT"
    IMAGE = "IMAGE"
    RECTANGLE = "RECTANGLE"


class PropertySpec(NamedTuple):
    path: str
    type: VariableType
    scope: VariableScope


_SPECS = [
    PropertySpec("fill.color", VariableType.COLOR, VariableScope.FILL),
    PropertySpec("stroke.color", VariableType.COLOR, VariableScope.STROKE),
    PropertySpec("stroke.width", VariableType.NUMBER, VariableScope.NUMBER),
    PropertySpec("opacity", VariableType.NUMBER, VariableScope.NUMBER),
    PropertySpec("visible", VariableType.BOOLEAN, VariableScope.VISIBILITY),
    PropertySpec("cornerRadius", VariableType.NUMBER, VariableScope.NUMBER),
    PropertySpec("layout.gap", VariableType.NUMBER, VariableScope.NUMBER),
    PropertySpec("layout.padding", VariableType.NUMBER, VariableScope.NUMBER),
    PropertySpec("text.content", VariableType.STRING, VariableScope.TEXT),
    PropertySpec("text.color", VariableType.COLOR, VariableScope.FILL),
    PropertySpec("text.fontFamily", VariableType.STRING, VariableScope.FONT),
    PropertySpec("text.fontSize", VariableType.NUMBER, VariableScope.FONT),
    PropertySpec("text.fontWeight", VariableType.NUMBER, VariableScope.FONT),
    PropertySpec("text.lineHeight", VariableType.NUMBER, VariableScope.FONT),
    PropertySpec("text.letterSpacing", VariableType.NUMBER, VariableScope.FONT),
    PropertySpec("image.src", VariableType.STRING, VariableScope.IMAGE),
]

PROPERTY_SPECS: Dict[str, PropertySpec] = {spec.path: spec for spec in _SPECS}

_COMMON = frozenset({"opacity", "visible"})
_SHAPE = frozenset({"fill.color", "stroke.color", "stroke.width", "cornerRadius"})

NODE_PROPERTIES: Dict[NodeType, FrozenSet[str]] = {
    NodeType.FRAME: _COMMON | _SHAPE | {"layout.gap", "layout.padding"},
    NodeType.RECTANGLE: _COMMON | _SHAPE,
    NodeType.TEXT: _COMMON | {p for p in PROPERTY_SPECS if p.startswith("text.")},
    NodeType.IMAGE: _COMMON | {"image.src", "cornerRadius", "stroke.color", "stroke.width"},
}


def property_spec(path: str) -> Optional[PropertySpec]:
    return PROPERTY_SPECS.get(path)


def supports_property(node_type: NodeType, path: str) -> bool:
    return path in NODE_PROPERTIES.get(node_type, frozenset())
