"""
varbind - Design-token binding and resolution engine.

Scene properties (fills, strokes, typography, spacing, text) are bound to
named Variables instead of literals and resolved per Mode (light/dark,
brand A/B), following alias chains across Collections.

Key Components:
- core: data model, store, resolver, dependency index, mutations, governance
- scene: scene tree, property registry, resolved-tree materialization
- io: persistence of stores and scenes as plain records
- importers: Figma variables import

Usage:
    from varbind import MutationAPI, Resolver

    api = MutationAPI()
    brand = api.create_collection("Brand", modes=["light", "dark"])
    api.create_variable(brand.id, "Primary", "color",
                        values={"light": "#0047AB", "dark": "#6CA0DC"})
    result = Resolver(api.store.snapshot(), {brand.id: "dark"}).resolve_variable(...)
"""

__version__ = "0.3.0"

from .core.mutations import InvalidationEvent, MutationAPI
from .core.resolver import Resolver, resolve
from .core.store import StoreSnapshot, VariableStore
from .core.types import (
    Alias,
    Binding,
    BindingRef,
    Collection,
    Literal,
    Mode,
    ResolvedVariable,
    UserRole,
    Variable,
    VariableScope,
    VariableType,
)

__all__ = [
    "__version__",
    "Alias",
    "Binding",
    "BindingRef",
    "Collection",
    "InvalidationEvent",
    "Literal",
    "Mode",
    "MutationAPI",
    "ResolvedVariable",
    "Resolver",
    "StoreSnapshot",
    "UserRole",
    "Variable",
    "VariableScope",
    "VariableStore",
    "VariableType",
    "resolve",
]
