"""
Scene model for varbind.

Immutable node tree, the bindable property registry, and materialization
of a resolved tree for the renderer.
"""

from .model import NodeGovernance, SceneGraph, SceneNode
from .properties import NodeType, PropertySpec, property_spec, supports_property

__all__ = [
    "NodeGovernance",
    "NodeType",
    "PropertySpec",
    "SceneGraph",
    "SceneNode",
    "property_spec",
    "supports_property",
]
