"""
Scene Model.

Immutable-by-convention tree of nodes. Each node carries literal property
values keyed by property path; whether a property is bound lives in the
VariableStore, not on the node. Edits never mutate a node in place: the
SceneGraph swaps in a copy and rebuilds the path up to the root.
"""

from typing import Any, Dict, Iterator, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from ..core.governance import LockableProperty
from .properties import NodeType


class NodeGovernance(BaseModel):
    """Per-node lock state, keyed by property path."""
    locked_props: Dict[str, LockableProperty] = Field(default_factory=dict)

    model_config = ConfigDict(frozen=True)

    def lock_for(self, property_path: str) -> Optional[LockableProperty]:
        return self.locked_props.get(property_path)


class SceneNode(BaseModel):
    """A Frame, Text, Image or Rectangle in the scene tree."""
    id: str
    name: str
    type: NodeType
    properties: Dict[str, Any] = Field(default_factory=dict)
    governance: NodeGovernance = Field(default_factory=NodeGovernance)
    children: List["SceneNode"] = Field(default_factory=list)

    model_config = ConfigDict(frozen=True)

    def iter_tree(self) -> Iterator["SceneNode"]:
        """Depth-first, pre-order walk of this node and its descendants."""
        stack = [self]
        while stack:
            node = stack.pop()
            yield node
            stack.extend(reversed(node.children))

    def with_property(self, property_path: str, value: Any) -> "SceneNode":
        properties = dict(self.properties)
        properties[property_path] = value
        return self.model_copy(update={"properties": properties})


class SceneGraph:
    """
    Mutable holder of an immutable node tree.

    Keeps an id index so nodes can be found without walking the tree.
    """

    def __init__(self, root: SceneNode):
        self._root = root
        self._index: Dict[str, SceneNode] = {}
        self._reindex()

    @property
    def root(self) -> SceneNode:
        return self._root

    def _reindex(self) -> None:
        self._index = {}
        for node in self._root.iter_tree():
            if node.id in self._index:
                raise ValueError(f"Duplicate scene node id '{node.id}'")
            self._index[node.id] = node

    def get_node(self, node_id: str) -> Optional[SceneNode]:
        return self._index.get(node_id)

    def has_node(self, node_id: str) -> bool:
        return node_id in self._index

    def iter_nodes(self) -> Iterator[SceneNode]:
        return self._root.iter_tree()

    def replace_node(self, new_node: SceneNode) -> None:
        """Swap the node with `new_node.id` for `new_node`, copying its ancestors."""
        if new_node.id not in self._index:
            raise KeyError(new_node.id)
        self._root = self._replace(self._root, new_node)
        self._reindex()

    def _replace(self, current: SceneNode, new_node: SceneNode) -> SceneNode:
        if current.id == new_node.id:
            return new_node
        if not current.children:
            return current
        children = [self._replace(child, new_node) for child in current.children]
        if all(a is b for a, b in zip(children, current.children)):
            return current
        return current.model_copy(update={"children": children})

    @property
    def node_count(self) -> int:
        return len(self._index)
