"""
Dependency Index.

Reverse lookups from a Variable to everything that depends on it:

- `variable_id -> {BindingRef}`: scene properties bound to it.
- `variable_id -> {variable_id}`: variables whose values alias it.

Forward maps are kept alongside so a single entity can be re-indexed
without scanning the rest of the store. The index is derived state; it is
never persisted and can always be rebuilt from a snapshot.
"""

import logging
from collections import defaultdict, deque
from typing import Dict, FrozenSet, Iterable, NamedTuple, Optional, Set

from .store import StoreReader
from .types import Binding, BindingRef, Variable

logger = logging.getLogger(__name__)


class InvalidationSet(NamedTuple):
    """Everything whose resolved value may change when a variable changes."""
    variables: FrozenSet[str]
    bindings: FrozenSet[BindingRef]

    def __bool__(self) -> bool:
        return bool(self.variables or self.bindings)


class DependencyIndex:
    """
    Incrementally maintained reverse dependency maps.

    Every Mutation API write re-indexes only the variables and bindings it
    touched; `rebuild` is reserved for loading a store from persistence.
    """

    def __init__(self):
        self._bindings_by_variable: Dict[str, Set[BindingRef]] = defaultdict(set)
        self._aliasers_by_variable: Dict[str, Set[str]] = defaultdict(set)
        self._alias_targets: Dict[str, Set[str]] = {}
        self._binding_targets: Dict[BindingRef, str] = {}

    # =========================================================================
    # Incremental maintenance
    # =========================================================================

    def index_variable(self, variable: Variable) -> None:
        """Re-index the alias edges leaving `variable`."""
        new_targets = set(variable.alias_targets())
        old_targets = self._alias_targets.get(variable.id, set())

        for target in old_targets - new_targets:
            self._discard(self._aliasers_by_variable, target, variable.id)
        for target in new_targets - old_targets:
            self._aliasers_by_variable[target].add(variable.id)

        if new_targets:
            self._alias_targets[variable.id] = new_targets
        else:
            self._alias_targets.pop(variable.id, None)

    def remove_variable(self, variable_id: str) -> None:
        for target in self._alias_targets.pop(variable_id, set()):
            self._discard(self._aliasers_by_variable, target, variable_id)

    def index_binding(self, binding: Binding) -> None:
        ref = binding.ref
        previous = self._binding_targets.get(ref)
        if previous == binding.variable_id:
            return
        if previous is not None:
            self._discard(self._bindings_by_variable, previous, ref)
        self._binding_targets[ref] = binding.variable_id
        self._bindings_by_variable[binding.variable_id].add(ref)

    def remove_binding(self, ref: BindingRef) -> None:
        previous = self._binding_targets.pop(ref, None)
        if previous is not None:
            self._discard(self._bindings_by_variable, previous, ref)

    def rebuild(self, reader: StoreReader) -> None:
        """Index a whole store from scratch (load time only)."""
        self.clear()
        for variable in reader.iter_variables():
            self.index_variable(variable)
        for binding in reader.iter_bindings():
            self.index_binding(binding)
        logger.debug(
            "Rebuilt dependency index: %d alias edge(s), %d binding(s)",
            sum(len(t) for t in self._alias_targets.values()),
            len(self._binding_targets),
        )

    def clear(self) -> None:
        self._bindings_by_variable.clear()
        self._aliasers_by_variable.clear()
        self._alias_targets.clear()
        self._binding_targets.clear()

    @staticmethod
    def _discard(mapping: Dict, key, member) -> None:
        members = mapping.get(key)
        if members is None:
            return
        members.discard(member)
        if not members:
            del mapping[key]

    # =========================================================================
    # Queries
    # =========================================================================

    def bindings_for(self, variable_id: str) -> Set[BindingRef]:
        """Bindings that target `variable_id` directly."""
        return self._bindings_by_variable.get(variable_id, set()).copy()

    def aliasers_of(self, variable_id: str) -> Set[str]:
        """Variables with at least one value aliasing `variable_id`."""
        return self._aliasers_by_variable.get(variable_id, set()).copy()

    def alias_targets_of(self, variable_id: str) -> Set[str]:
        return self._alias_targets.get(variable_id, set()).copy()

    def binding_target(self, ref: BindingRef) -> Optional[str]:
        return self._binding_targets.get(ref)

    def has_dependents(self, variable_id: str) -> bool:
        return bool(
            self._bindings_by_variable.get(variable_id)
            or self._aliasers_by_variable.get(variable_id)
        )

    def invalidation_set(self, variable_ids: Iterable[str]) -> InvalidationSet:
        """
        Compute the minimal set affected by a change to `variable_ids`.

        Breadth-first over the alias-reverse map, collecting every variable
        that transitively aliases a changed one and every binding on any of
        them. The visited set bounds the walk even on cyclic input.
        """
        visited: Set[str] = set()
        bindings: Set[BindingRef] = set()
        queue = deque(variable_ids)

        while queue:
            current = queue.popleft()
            if current in visited:
                continue
            visited.add(current)
            bindings.update(self._bindings_by_variable.get(current, ()))
            for aliaser in self._aliasers_by_variable.get(current, ()):
                if aliaser not in visited:
                    queue.append(aliaser)

        return InvalidationSet(frozenset(visited), frozenset(bindings))

    def get_stats(self) -> Dict[str, int]:
        return {
            "indexed_variables": len(self._alias_targets),
            "alias_edges": sum(len(t) for t in self._alias_targets.values()),
            "bindings": len(self._binding_targets),
        }
