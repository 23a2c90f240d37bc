"""
Variable Store.

In-memory owner of every Collection, Variable and Binding, keyed by id.

The store is versioned. Readers never touch the live dictionaries: they take
a `StoreSnapshot` pinned to a version. Writers go through a `Transaction`
that stages changes in an overlay and only touches the live state on
commit, so a rejected write leaves the store exactly as it was.
"""

import logging
import threading
from contextlib import contextmanager
from types import MappingProxyType
from typing import (
    Dict,
    Generic,
    Iterable,
    Iterator,
    List,
    Mapping,
    Optional,
    Set,
    TypeVar,
)

from .types import (
    Binding,
    BindingRef,
    Collection,
    Variable,
    VariableScope,
    VariableType,
    VariableValue,
)

logger = logging.getLogger(__name__)

K = TypeVar("K")
V = TypeVar("V")


class StoreReader:
    """
    Read accessors shared by snapshots and transactions.

    Subclasses provide `_collections`, `_variables` and `_bindings` mappings.
    """

    _collections: Mapping[str, Collection]
    _variables: Mapping[str, Variable]
    _bindings: Mapping[BindingRef, Binding]

    # --- Collections ---

    def get_collection(self, collection_id: str) -> Optional[Collection]:
        return self._collections.get(collection_id)

    def iter_collections(self) -> Iterator[Collection]:
        return iter(sorted(self._collections.values(), key=lambda c: (c.order, c.name)))

    # --- Variables ---

    def get_variable(self, variable_id: str) -> Optional[Variable]:
        return self._variables.get(variable_id)

    def has_variable(self, variable_id: str) -> bool:
        return variable_id in self._variables

    def get_mode_value(self, variable_id: str, mode_id: str) -> Optional[VariableValue]:
        variable = self._variables.get(variable_id)
        if variable is None:
            return None
        return variable.values_by_mode.get(mode_id)

    def iter_variables(self) -> Iterator[Variable]:
        return iter(self._variables.values())

    def variables_in_collection(self, collection_id: str) -> List[Variable]:
        return [v for v in self._variables.values() if v.collection_id == collection_id]

    def find_variable(self, name_or_id: str) -> Optional[Variable]:
        """Find a variable by id, then by exact name, then by "Collection/Name"."""
        if name_or_id in self._variables:
            return self._variables[name_or_id]
        for variable in self._variables.values():
            if variable.name == name_or_id:
                return variable
        if "/" in name_or_id:
            collection_name, _, var_name = name_or_id.rpartition("/")
            for variable in self._variables.values():
                collection = self._collections.get(variable.collection_id)
                if collection and collection.name == collection_name and variable.name == var_name:
                    return variable
        return None

    def filter_variables(
        self,
        type: Optional[VariableType] = None,
        scope: Optional[VariableScope] = None,
        collection_id: Optional[str] = None,
        tags: Optional[List[str]] = None,
        search: Optional[str] = None,
    ) -> List[Variable]:
        """
        Filter variables by type, scope, collection, tags and free text.

        A variable scoped to ALL matches any scope filter; tags match if any
        of the requested tags is present; search is case-insensitive over
        name and description.
        """
        results = list(self._variables.values())
        if type:
            results = [v for v in results if v.type == type]
        if scope:
            results = [v for v in results if v.allows_scope(scope)]
        if collection_id:
            results = [v for v in results if v.collection_id == collection_id]
        if tags:
            wanted = set(tags)
            results = [v for v in results if wanted.intersection(v.tags)]
        if search:
            needle = search.lower()
            results = [
                v for v in results
                if needle in v.name.lower() or needle in v.description.lower()
            ]
        return results

    # --- Bindings ---

    def get_binding(self, ref: BindingRef) -> Optional[Binding]:
        return self._bindings.get(ref)

    def binding_for(self, node_id: str, property_path: str) -> Optional[Binding]:
        return self._bindings.get(BindingRef(node_id=node_id, property_path=property_path))

    def bindings_for_node(self, node_id: str) -> List[Binding]:
        return [b for b in self._bindings.values() if b.node_id == node_id]

    def iter_bindings(self) -> Iterator[Binding]:
        return iter(self._bindings.values())

    # --- Stats ---

    def get_stats(self) -> Dict[str, int]:
        return {
            "collections": len(self._collections),
            "variables": len(self._variables),
            "bindings": len(self._bindings),
            "aliases": sum(len(v.alias_targets()) for v in self._variables.values()),
        }


class StoreSnapshot(StoreReader):
    """Immutable view of the store pinned to one version."""

    def __init__(
        self,
        version: int,
        collections: Dict[str, Collection],
        variables: Dict[str, Variable],
        bindings: Dict[BindingRef, Binding],
    ):
        self.version = version
        self._collections = MappingProxyType(collections)
        self._variables = MappingProxyType(variables)
        self._bindings = MappingProxyType(bindings)

    def __repr__(self) -> str:
        return f"StoreSnapshot(version={self.version}, variables={len(self._variables)})"


class _Overlay(Mapping, Generic[K, V]):
    """Staged writes layered over a base mapping."""

    def __init__(self, base: Mapping):
        self._base = base
        self.staged: Dict = {}
        self.deleted: Set = set()

    def __getitem__(self, key):
        if key in self.deleted:
            raise KeyError(key)
        if key in self.staged:
            return self.staged[key]
        return self._base[key]

    def __iter__(self):
        for key in self._base:
            if key not in self.deleted and key not in self.staged:
                yield key
        yield from self.staged

    def __len__(self) -> int:
        return sum(1 for _ in self)

    def put(self, key, value) -> None:
        self.deleted.discard(key)
        self.staged[key] = value

    def remove(self, key) -> None:
        self.staged.pop(key, None)
        if key in self._base:
            self.deleted.add(key)

    def apply(self, target: Dict) -> None:
        for key in self.deleted:
            target.pop(key, None)
        target.update(self.staged)

    @property
    def dirty(self) -> bool:
        return bool(self.staged or self.deleted)


class Transaction(StoreReader):
    """
    A staged, all-or-nothing set of writes against a VariableStore.

    Reads through the transaction see its own staged writes. Nothing reaches
    the store until `VariableStore.transaction()` exits without an exception.
    """

    def __init__(self, store: "VariableStore"):
        self._store = store
        self._collections = _Overlay(store._collection_map)
        self._variables = _Overlay(store._variable_map)
        self._bindings = _Overlay(store._binding_map)
        self.touched_variables: Set[str] = set()
        self.deleted_variables: Set[str] = set()
        self.touched_bindings: Set[BindingRef] = set()
        self.touched_collections: Set[str] = set()
        self.dirty_values: Set[str] = set()

    def put_collection(self, collection: Collection) -> None:
        self._collections.put(collection.id, collection)
        self.touched_collections.add(collection.id)

    def delete_collection(self, collection_id: str) -> None:
        self._collections.remove(collection_id)
        self.touched_collections.add(collection_id)

    def put_variable(self, variable: Variable, affects_values: bool = True) -> None:
        self._variables.put(variable.id, variable)
        self.touched_variables.add(variable.id)
        self.deleted_variables.discard(variable.id)
        if affects_values:
            self.dirty_values.add(variable.id)

    def mark_values_dirty(self, variable_ids: Iterable[str]) -> None:
        """Flag variables whose resolved values may change without a value write."""
        self.dirty_values.update(variable_ids)

    def delete_variable(self, variable_id: str) -> None:
        self._variables.remove(variable_id)
        self.touched_variables.discard(variable_id)
        self.deleted_variables.add(variable_id)

    def put_binding(self, binding: Binding) -> None:
        self._bindings.put(binding.ref, binding)
        self.touched_bindings.add(binding.ref)

    def delete_binding(self, ref: BindingRef) -> None:
        self._bindings.remove(ref)
        self.touched_bindings.add(ref)

    @property
    def dirty(self) -> bool:
        return self._collections.dirty or self._variables.dirty or self._bindings.dirty


class VariableStore(StoreReader):
    """
    Owner of all Collections, Variables and Bindings.

    Only the Mutation API writes to the store, always through
    `transaction()`. `lock` serialises writers; snapshot creation takes it
    briefly so no snapshot ever observes a half-applied commit.
    """

    def __init__(self):
        self._collection_map: Dict[str, Collection] = {}
        self._variable_map: Dict[str, Variable] = {}
        self._binding_map: Dict[BindingRef, Binding] = {}
        self._collections = self._collection_map
        self._variables = self._variable_map
        self._bindings = self._binding_map
        self._version = 0
        self._snapshot: Optional[StoreSnapshot] = None
        self.lock = threading.RLock()

    @classmethod
    def from_records(
        cls,
        collections: Iterable[Collection],
        variables: Iterable[Variable],
        bindings: Iterable[Binding],
        version: int = 0,
    ) -> "VariableStore":
        """Build a store from persisted entities, as-is, at `version`."""
        store = cls()
        store._collection_map.update((c.id, c) for c in collections)
        store._variable_map.update((v.id, v) for v in variables)
        store._binding_map.update((b.ref, b) for b in bindings)
        store._version = version
        return store

    @property
    def version(self) -> int:
        return self._version

    def snapshot(self) -> StoreSnapshot:
        """Return an immutable snapshot of the current version."""
        with self.lock:
            if self._snapshot is None or self._snapshot.version != self._version:
                self._snapshot = StoreSnapshot(
                    self._version,
                    dict(self._collection_map),
                    dict(self._variable_map),
                    dict(self._binding_map),
                )
            return self._snapshot

    @contextmanager
    def transaction(self) -> Iterator[Transaction]:
        """
        Stage writes and commit them atomically.

        Any exception raised inside the block discards every staged write.
        """
        with self.lock:
            tx = Transaction(self)
            yield tx
            if tx.dirty:
                self._commit(tx)

    def _commit(self, tx: Transaction) -> None:
        tx._collections.apply(self._collection_map)
        tx._variables.apply(self._variable_map)
        tx._bindings.apply(self._binding_map)
        self._version += 1
        logger.debug(
            "Committed store version %d (%d variable(s), %d binding(s) touched)",
            self._version,
            len(tx.touched_variables) + len(tx.deleted_variables),
            len(tx.touched_bindings),
        )
