"""
Alias Graph backed by rustworkx.

A whole-store view of alias edges (aliasing variable -> target variable,
across all modes). The incremental DependencyIndex answers "who depends on
X"; this graph answers the global questions asked at load and import time:
are there cycles, and in what order can variables be created so every alias
target exists before its aliasers.
"""

from typing import Any, Dict, Iterable, List, Optional

import rustworkx as rx

from .exceptions import CircularReference
from .store import StoreReader


class AliasGraph:
    """
    Directed graph of alias edges.

    Features:
    - Bimap between variable ids and rustworkx indices
    - Cycle enumeration for diagnostics
    - Creation order (targets before aliasers) for imports
    """

    def __init__(self):
        self._graph = rx.PyDiGraph(multigraph=False)
        self._id_to_idx: Dict[str, int] = {}
        self._idx_to_id: Dict[int, str] = {}

    @classmethod
    def from_reader(cls, reader: StoreReader) -> "AliasGraph":
        graph = cls()
        for variable in reader.iter_variables():
            graph.add_variable(variable.id, variable.alias_targets())
        return graph

    def add_node(self, variable_id: str) -> int:
        idx = self._id_to_idx.get(variable_id)
        if idx is None:
            idx = self._graph.add_node(variable_id)
            self._id_to_idx[variable_id] = idx
            self._idx_to_id[idx] = variable_id
        return idx

    def add_alias(self, source_id: str, target_id: str) -> None:
        """Record that `source_id` aliases `target_id`."""
        u = self.add_node(source_id)
        v = self.add_node(target_id)
        if not self._graph.has_edge(u, v):
            self._graph.add_edge(u, v, None)

    def add_variable(self, variable_id: str, targets: Iterable[str]) -> None:
        self.add_node(variable_id)
        for target in targets:
            self.add_alias(variable_id, target)

    def find_cycles(self, limit: Optional[int] = None) -> List[List[str]]:
        """
        Enumerate elementary alias cycles.

        Each cycle is reported closed, e.g. ["a", "b", "a"].
        """
        cycles: List[List[str]] = []
        for cycle in rx.simple_cycles(self._graph):
            ids = [self._idx_to_id[idx] for idx in cycle]
            cycles.append(ids + [ids[0]])
            if limit is not None and len(cycles) >= limit:
                break
        return cycles

    def is_acyclic(self) -> bool:
        return rx.is_directed_acyclic_graph(self._graph)

    def creation_order(self) -> List[str]:
        """
        Order variables so every alias target precedes its aliasers.

        Raises:
            CircularReference: If the aliases form a cycle.
        """
        try:
            order = rx.topological_sort(self._graph)
        except rx.DAGHasCycle:
            raise CircularReference(self.find_cycles(limit=1)[0])
        return [self._idx_to_id[idx] for idx in reversed(order)]

    @property
    def node_count(self) -> int:
        return self._graph.num_nodes()

    @property
    def edge_count(self) -> int:
        return self._graph.num_edges()

    def get_stats(self) -> Dict[str, Any]:
        roots = [
            idx for idx in self._graph.node_indices()
            if self._graph.out_degree(idx) == 0 and self._graph.in_degree(idx) > 0
        ]
        return {
            "variables": self.node_count,
            "alias_edges": self.edge_count,
            "token_roots": len(roots),
            "acyclic": self.is_acyclic(),
        }
