"""
Scene Tree Resolution.

Materializes a renderable tree: every bound property is replaced by the
literal its Binding resolves to under an active-mode selection. A property
that fails to resolve falls back to the configured placeholder for its
type and is reported in `errors`; the rest of the tree is unaffected.
"""

import logging
from collections import defaultdict
from typing import Any, Callable, Dict, List, Optional

from pydantic import BaseModel, Field

from ..config import VarbindConfig
from ..core.cache import ResolutionCache
from ..core.mutations import InvalidationEvent, MutationAPI
from ..core.resolver import ActiveModes, Resolver
from ..core.store import StoreSnapshot
from ..core.types import Binding, BindingRef, VariableType
from .model import SceneGraph, SceneNode
from .properties import NodeType, property_spec

logger = logging.getLogger(__name__)


class ResolvedNode(BaseModel):
    """A scene node with concrete values only."""
    id: str
    name: str
    type: NodeType
    properties: Dict[str, Any] = Field(default_factory=dict)
    sources: Dict[str, List[str]] = Field(default_factory=dict)
    errors: Dict[str, dict] = Field(default_factory=dict)
    children: List["ResolvedNode"] = Field(default_factory=list)

    def iter_tree(self):
        stack = [self]
        while stack:
            node = stack.pop()
            yield node
            stack.extend(reversed(node.children))

    def find(self, node_id: str) -> Optional["ResolvedNode"]:
        return next((n for n in self.iter_tree() if n.id == node_id), None)


def _expected_type(ref: BindingRef) -> Optional[VariableType]:
    spec = property_spec(ref.property_path)
    return spec.type if spec else None


def resolve_scene_tree(
    root: SceneNode,
    snapshot: StoreSnapshot,
    active_modes: Optional[ActiveModes] = None,
    config: Optional[VarbindConfig] = None,
    cache: Optional[ResolutionCache] = None,
) -> ResolvedNode:
    """
    Resolve every binding under `root` against a pinned snapshot.

    Args:
        root: Scene subtree to materialize.
        snapshot: Store version to read. All bindings resolve against it.
        active_modes: Collection id -> mode id. Partial selections fall back
            to each collection's default.
        config: Supplies broken-binding placeholders.
        cache: Optional ResolutionCache; must share `active_modes`.

    Returns:
        ResolvedNode: a tree mirroring `root` with literal values only.
    """
    config = config or VarbindConfig()
    resolver = Resolver(snapshot, active_modes)

    by_node: Dict[str, List[Binding]] = defaultdict(list)
    for binding in snapshot.iter_bindings():
        by_node[binding.node_id].append(binding)

    def build(node: SceneNode) -> ResolvedNode:
        properties = dict(node.properties)
        sources: Dict[str, List[str]] = {}
        errors: Dict[str, dict] = {}

        for binding in by_node.get(node.id, ()):
            ref = binding.ref
            expected = _expected_type(ref)
            if cache is not None:
                result = cache.get(snapshot, ref)
            else:
                result = resolver.resolve_binding(binding, expected)

            if result.is_ok():
                properties[binding.property_path] = result.value.value
                sources[binding.property_path] = result.value.source_chain
                continue

            error = result.error
            placeholder_type = expected or _variable_type(snapshot, binding)
            properties[binding.property_path] = (
                config.placeholder_for(placeholder_type) if placeholder_type else None
            )
            errors[binding.property_path] = error.to_dict()
            logger.warning("Broken binding %s: %s", ref, error.message)

        return ResolvedNode(
            id=node.id,
            name=node.name,
            type=node.type,
            properties=properties,
            sources=sources,
            errors=errors,
            children=[build(child) for child in node.children],
        )

    return build(root)


def _variable_type(snapshot: StoreSnapshot, binding: Binding) -> Optional[VariableType]:
    variable = snapshot.get_variable(binding.variable_id)
    return variable.type if variable else None


class SceneResolver:
    """
    Keeps a resolved view of a SceneGraph current as the store changes.

    Owns a ResolutionCache registered with the MutationAPI, so a value edit
    only recomputes the bindings in its invalidation set. Subscribers get
    the affected property paths after each committed mutation.

    Example:
        ```python
        view = SceneResolver(api, scene, {"brand": "dark"})
        view.subscribe(lambda event: redraw(event.property_paths))
        tree = view.resolve_tree()
        ```
    """

    def __init__(
        self,
        api: MutationAPI,
        scene: SceneGraph,
        active_modes: Optional[ActiveModes] = None,
        config: Optional[VarbindConfig] = None,
    ):
        self.api = api
        self.scene = scene
        self.config = config or api.config
        self.cache = ResolutionCache(active_modes, expected_type_for=_expected_type)
        api.register_cache(self.cache)

    @property
    def active_modes(self) -> Dict[str, str]:
        return self.cache.active_modes

    def resolve_tree(self) -> ResolvedNode:
        snapshot = self.api.store.snapshot()
        return resolve_scene_tree(
            self.scene.root, snapshot, self.cache.active_modes, self.config, self.cache
        )

    def set_active_modes(self, active_modes: ActiveModes) -> None:
        self.cache.set_active_modes(active_modes)

    def subscribe(self, listener: Callable[[InvalidationEvent], None]) -> Callable[[], None]:
        return self.api.subscribe(listener)

    def close(self) -> None:
        self.api.unregister_cache(self.cache)
