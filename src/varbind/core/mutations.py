"""
Mutation API.

The only write path into the VariableStore. Every operation:

1. validates against the staged state (types, scopes, cycles, governance),
2. commits atomically, or raises before anything changes,
3. re-indexes just the variables and bindings it touched,
4. drops the affected entries from every registered ResolutionCache,
5. releases the store lock, then notifies subscribers with the affected
   property paths.

Steps 1-4 run under the store lock, so no snapshot or cache ever observes
a new version before its invalidation has been applied.
"""

import logging
import re
import uuid
from collections import deque
from contextlib import contextmanager
from dataclasses import dataclass
from typing import (
    Any,
    Callable,
    Dict,
    FrozenSet,
    Iterable,
    Iterator,
    List,
    Mapping,
    Optional,
    Sequence,
    Union,
)

from ..config import VarbindConfig
from ..scene.model import SceneGraph, SceneNode
from ..scene.properties import PropertySpec, property_spec, supports_property
from .cache import ResolutionCache
from .exceptions import (
    CircularReference,
    CollectionInUse,
    DanglingReference,
    DefaultModeError,
    DuplicateId,
    LastModeError,
    MissingModeValue,
    NotFoundError,
    ScopeMismatch,
    TypeMismatch,
    VarbindError,
    VariableInUse,
)
from .governance import EditTarget, GovernancePolicy, LockableProperty
from .index import DependencyIndex
from .resolver import Resolver
from .store import StoreReader, Transaction, VariableStore
from .types import (
    Alias,
    Binding,
    BindingRef,
    Collection,
    Literal,
    Mode,
    UserRole,
    Variable,
    VariableScope,
    VariableType,
    VariableValue,
    literal_matches,
    normalize_literal,
    value_from_record,
)

logger = logging.getLogger(__name__)

ModeInput = Union[str, Mode, Mapping[str, str]]


@dataclass(frozen=True)
class InvalidationEvent:
    """
    Fired after a committed mutation.

    Attributes:
        version: Store version the event belongs to.
        variables: Variables whose resolved value may have changed.
        bindings: Bound properties whose resolved value may have changed.
    """

    version: int
    variables: FrozenSet[str]
    bindings: FrozenSet[BindingRef]

    @property
    def property_paths(self) -> List[str]:
        return sorted(str(ref) for ref in self.bindings)

    @property
    def node_ids(self) -> List[str]:
        return sorted({ref.node_id for ref in self.bindings})


Listener = Callable[[InvalidationEvent], None]


def _new_id(prefix: str) -> str:
    return f"{prefix}-{uuid.uuid4().hex[:8]}"


def _slug(name: str) -> str:
    return re.sub(r"[^a-z0-9]+", "-", name.lower()).strip("-") or "mode"


def _unique_mode_id(name: str, taken: Iterable[str]) -> str:
    taken = set(taken)
    base = _slug(name)
    candidate, n = base, 2
    while candidate in taken:
        candidate = f"{base}-{n}"
        n += 1
    return candidate


def _parse_type(value: Union[VariableType, str], subject_id: str) -> VariableType:
    try:
        return VariableType(value)
    except ValueError:
        raise TypeMismatch(f"Unknown variable type '{value}'", subject_id) from None


def _parse_scopes(values: Iterable[Union[VariableScope, str]], subject_id: str) -> FrozenSet[VariableScope]:
    try:
        scopes = frozenset(VariableScope(s) for s in values)
    except ValueError as e:
        raise ScopeMismatch(f"Unknown scope for '{subject_id}': {e}", subject_id) from None
    return scopes or frozenset({VariableScope.ALL})


def _parse_roles(values: Iterable[Union[UserRole, str]], subject_id: str) -> FrozenSet[UserRole]:
    try:
        return frozenset(UserRole(r) for r in values)
    except ValueError as e:
        raise TypeMismatch(f"Unknown role for '{subject_id}': {e}", subject_id) from None


class MutationAPI:
    """
    CRUD surface over the VariableStore that preserves referential integrity.

    `role` is accepted per call. `None` means a trusted system caller
    (loaders, migrations) and skips governance; importers that act on behalf
    of a user should pass that user's role.

    Example:
        ```python
        api = MutationAPI()
        brand = api.create_collection("Brand", modes=["light", "dark"])
        api.create_variable(brand.id, "Primary", "color",
                            values={"light": "#0047AB", "dark": "#6CA0DC"},
                            variable_id="primary")
        api.create_variable(brand.id, "Accent", "color",
                            values={"light": Alias(variable_id="primary"),
                                    "dark": Alias(variable_id="primary")})
        ```
    """

    def __init__(
        self,
        store: Optional[VariableStore] = None,
        index: Optional[DependencyIndex] = None,
        scene: Optional[SceneGraph] = None,
        policy: Optional[GovernancePolicy] = None,
        config: Optional[VarbindConfig] = None,
    ):
        self.store = store or VariableStore()
        if index is None:
            index = DependencyIndex()
            index.rebuild(self.store)
        self.index = index
        self.scene = scene
        self.config = config or VarbindConfig()
        self.policy = policy or GovernancePolicy.from_config(self.config)
        self._caches: List[ResolutionCache] = []
        self._listeners: List[Listener] = []

    # =========================================================================
    # Subscriptions
    # =========================================================================

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a callback for invalidation events. Returns an unsubscribe function."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def register_cache(self, cache: ResolutionCache) -> None:
        """Caches registered here are invalidated before the store lock is released."""
        with self.store.lock:
            if cache not in self._caches:
                self._caches.append(cache)

    def unregister_cache(self, cache: ResolutionCache) -> None:
        with self.store.lock:
            if cache in self._caches:
                self._caches.remove(cache)

    # =========================================================================
    # Transaction plumbing
    # =========================================================================

    @contextmanager
    def _mutation(self) -> Iterator[Transaction]:
        with self.store.lock:
            with self.store.transaction() as tx:
                yield tx
            event = self._after_commit(tx)
        if event is not None:
            self._emit(event)

    def _after_commit(self, tx: Transaction) -> Optional[InvalidationEvent]:
        for variable_id in tx.deleted_variables:
            self.index.remove_variable(variable_id)
        for variable_id in tx.touched_variables:
            variable = self.store.get_variable(variable_id)
            if variable is not None:
                self.index.index_variable(variable)
        for ref in tx.touched_bindings:
            binding = self.store.get_binding(ref)
            if binding is not None:
                self.index.index_binding(binding)
            else:
                self.index.remove_binding(ref)

        affected = self.index.invalidation_set(tx.dirty_values)
        bindings = affected.bindings | frozenset(tx.touched_bindings)
        if not affected.variables and not bindings:
            return None

        version = self.store.version
        for cache in self._caches:
            cache.invalidate(bindings, version)
        logger.debug(
            "Version %d invalidates %d variable(s), %d binding(s)",
            version, len(affected.variables), len(bindings),
        )
        return InvalidationEvent(version, affected.variables, bindings)

    def _emit(self, event: InvalidationEvent) -> None:
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception:
                # The mutation is already committed; one failing subscriber
                # must not starve the others.
                logger.exception("Invalidation listener %r failed", listener)

    # =========================================================================
    # Lookups
    # =========================================================================

    @staticmethod
    def _require_collection(reader: StoreReader, collection_id: str) -> Collection:
        collection = reader.get_collection(collection_id)
        if collection is None:
            raise NotFoundError("Collection", collection_id)
        return collection

    @staticmethod
    def _require_variable(reader: StoreReader, variable_id: str) -> Variable:
        variable = reader.get_variable(variable_id)
        if variable is None:
            raise NotFoundError("Variable", variable_id)
        return variable

    @staticmethod
    def _require_mode(collection: Collection, mode_key: str) -> Mode:
        mode = collection.find_mode(mode_key)
        if mode is None:
            raise NotFoundError("Mode", f"{collection.id}/{mode_key}")
        return mode

    def _check_structure(self, role: Optional[UserRole], subject_id: Optional[str]) -> None:
        if role is not None:
            self.policy.check_structure(role, subject_id)

    # =========================================================================
    # Collections & Modes
    # =========================================================================

    @staticmethod
    def _build_modes(modes: Sequence[ModeInput]) -> List[Mode]:
        built: List[Mode] = []
        for mode in modes:
            if isinstance(mode, Mode):
                candidate = mode
            elif isinstance(mode, str):
                candidate = Mode(id=_unique_mode_id(mode, (m.id for m in built)), name=mode)
            else:
                name = mode.get("name") or mode["id"]
                candidate = Mode(id=mode.get("id") or _unique_mode_id(name, (m.id for m in built)),
                                 name=name)
            if any(m.id == candidate.id for m in built):
                raise DuplicateId("Mode", candidate.id)
            built.append(candidate)
        return built

    def create_collection(
        self,
        name: str,
        modes: Optional[Sequence[ModeInput]] = None,
        default_mode: Optional[str] = None,
        collection_id: Optional[str] = None,
        description: str = "",
        role: Optional[UserRole] = None,
    ) -> Collection:
        """
        Create a collection.

        Args:
            name: Display name.
            modes: Mode names, `Mode` objects or `{"id", "name"}` records.
                Defaults to a single "Default" mode.
            default_mode: Id or name of the default mode. Defaults to the first.
            collection_id: Explicit id (imports, persistence). Generated otherwise.
        """
        collection_id = collection_id or _new_id("col")
        self._check_structure(role, collection_id)
        built = self._build_modes(modes or ["Default"])

        default_id = built[0].id
        if default_mode is not None:
            match = next((m for m in built if m.id == default_mode), None) or next(
                (m for m in built if m.name.lower() == default_mode.lower()), None
            )
            if match is None:
                raise NotFoundError("Mode", f"{collection_id}/{default_mode}")
            default_id = match.id

        with self._mutation() as tx:
            if tx.get_collection(collection_id) is not None:
                raise DuplicateId("Collection", collection_id)
            collection = Collection(
                id=collection_id,
                name=name,
                modes=built,
                default_mode_id=default_id,
                description=description,
                order=len(list(tx.iter_collections())),
            )
            tx.put_collection(collection)

        logger.debug("Created collection %s with modes %s", collection_id, collection.mode_ids())
        return collection

    def update_collection(
        self,
        collection_id: str,
        name: Optional[str] = None,
        description: Optional[str] = None,
        default_mode_id: Optional[str] = None,
        order: Optional[int] = None,
        role: Optional[UserRole] = None,
    ) -> Collection:
        self._check_structure(role, collection_id)
        with self._mutation() as tx:
            collection = self._require_collection(tx, collection_id)
            updates: Dict[str, Any] = {}
            if name is not None:
                updates["name"] = name
            if description is not None:
                updates["description"] = description
            if order is not None:
                updates["order"] = order
            if default_mode_id is not None:
                mode = self._require_mode(collection, default_mode_id)
                if mode.id != collection.default_mode_id:
                    updates["default_mode_id"] = mode.id
                    # Callers without an explicit selection now read another mode.
                    tx.mark_values_dirty(v.id for v in tx.variables_in_collection(collection_id))
            if not updates:
                return collection
            collection = collection.model_copy(update=updates)
            tx.put_collection(collection)
        return collection

    def set_default_mode(self, collection_id: str, mode_id: str,
                         role: Optional[UserRole] = None) -> Collection:
        return self.update_collection(collection_id, default_mode_id=mode_id, role=role)

    def add_mode(
        self,
        collection_id: str,
        name: str,
        mode_id: Optional[str] = None,
        copy_values: bool = True,
        role: Optional[UserRole] = None,
    ) -> Mode:
        """
        Add a mode to a collection.

        With `copy_values`, every variable in the collection starts the new
        mode with its default-mode value, so nothing is left unresolvable.
        """
        self._check_structure(role, collection_id)
        with self._mutation() as tx:
            collection = self._require_collection(tx, collection_id)
            new_id = mode_id or _unique_mode_id(name, collection.mode_ids())
            if collection.has_mode(new_id):
                raise DuplicateId("Mode", f"{collection_id}/{new_id}")
            mode = Mode(id=new_id, name=name)
            tx.put_collection(collection.model_copy(update={"modes": [*collection.modes, mode]}))

            if copy_values:
                source = collection.default_mode_id
                for variable in tx.variables_in_collection(collection_id):
                    value = variable.values_by_mode.get(source)
                    if value is not None:
                        tx.put_variable(variable.with_value(new_id, value))

        logger.debug("Added mode %s to collection %s", new_id, collection_id)
        return mode

    def rename_mode(self, collection_id: str, mode_id: str, name: str,
                    role: Optional[UserRole] = None) -> Mode:
        self._check_structure(role, collection_id)
        with self._mutation() as tx:
            collection = self._require_collection(tx, collection_id)
            mode = self._require_mode(collection, mode_id)
            renamed = mode.model_copy(update={"name": name})
            modes = [renamed if m.id == mode.id else m for m in collection.modes]
            tx.put_collection(collection.model_copy(update={"modes": modes}))
        return renamed

    def delete_mode(self, collection_id: str, mode_id: str,
                    role: Optional[UserRole] = None) -> Collection:
        """
        Delete a mode and every variable value stored for it.

        Raises:
            LastModeError: The mode is the collection's only mode.
            DefaultModeError: The mode is the collection's default.
        """
        self._check_structure(role, collection_id)
        with self._mutation() as tx:
            collection = self._require_collection(tx, collection_id)
            mode = self._require_mode(collection, mode_id)
            if len(collection.modes) == 1:
                raise LastModeError(collection_id, mode.id)
            if mode.id == collection.default_mode_id:
                raise DefaultModeError(collection_id, mode.id)

            collection = collection.model_copy(
                update={"modes": [m for m in collection.modes if m.id != mode.id]}
            )
            tx.put_collection(collection)

            members = tx.variables_in_collection(collection_id)
            for variable in members:
                if mode.id in variable.values_by_mode:
                    tx.put_variable(variable.with_value(mode.id, None))
            tx.mark_values_dirty(v.id for v in members)
            self._warn_pinned_references(members, mode.id)

        logger.debug("Deleted mode %s from collection %s", mode.id, collection_id)
        return collection

    def _warn_pinned_references(self, members: List[Variable], mode_id: str) -> None:
        pinned = 0
        for variable in members:
            for ref in self.index.bindings_for(variable.id):
                binding = self.store.get_binding(ref)
                if binding and binding.mode_override == mode_id:
                    pinned += 1
            for aliaser_id in self.index.aliasers_of(variable.id):
                aliaser = self.store.get_variable(aliaser_id)
                if aliaser is None:
                    continue
                pinned += sum(
                    1 for v in aliaser.values_by_mode.values()
                    if isinstance(v, Alias) and v.variable_id == variable.id and v.mode_id == mode_id
                )
        if pinned:
            logger.warning(
                "%d binding(s)/alias(es) were pinned to deleted mode '%s' and will not resolve",
                pinned, mode_id,
            )

    def delete_collection(self, collection_id: str, role: Optional[UserRole] = None) -> None:
        self._check_structure(role, collection_id)
        with self._mutation() as tx:
            self._require_collection(tx, collection_id)
            members = tx.variables_in_collection(collection_id)
            if members:
                raise CollectionInUse(collection_id, len(members))
            tx.delete_collection(collection_id)

    # =========================================================================
    # Variables
    # =========================================================================

    def create_variable(
        self,
        collection_id: str,
        name: str,
        type: Union[VariableType, str],
        values: Optional[Mapping[str, Any]] = None,
        scopes: Optional[Iterable[Union[VariableScope, str]]] = None,
        description: str = "",
        tags: Optional[Iterable[str]] = None,
        editable_by: Optional[Iterable[Union[UserRole, str]]] = None,
        locked: bool = False,
        variable_id: Optional[str] = None,
        role: Optional[UserRole] = None,
    ) -> Variable:
        """
        Create a variable, optionally with initial values.

        `values` maps mode id (or mode name) to a literal, an `Alias`, or a
        record such as `{"variable_id": "primary"}`. Each value goes through
        the same validation as `set_variable_value`.
        """
        variable_id = variable_id or _new_id("var")
        self._check_structure(role, variable_id)
        var_type = _parse_type(type, variable_id)

        with self._mutation() as tx:
            collection = self._require_collection(tx, collection_id)
            if tx.has_variable(variable_id):
                raise DuplicateId("Variable", variable_id)
            if any(v.name == name for v in tx.variables_in_collection(collection_id)):
                raise DuplicateId("Variable name", f"{collection.name}/{name}")

            variable = Variable(
                id=variable_id,
                name=name,
                type=var_type,
                collection_id=collection_id,
                scopes=_parse_scopes(scopes or (), variable_id),
                description=description,
                tags=list(tags or []),
                editable_by=_parse_roles(
                    editable_by or self.config.governance.default_editable_by, variable_id
                ),
                locked=locked,
            )
            for mode_key, raw in (values or {}).items():
                mode = self._require_mode(collection, mode_key)
                variable = variable.with_value(mode.id, self._validate_value(tx, variable, mode.id, raw))
            tx.put_variable(variable)

        logger.debug("Created %s variable %s in %s", var_type.value, variable_id, collection_id)
        return variable

    def update_variable(
        self,
        variable_id: str,
        name: Optional[str] = None,
        description: Optional[str] = None,
        tags: Optional[Iterable[str]] = None,
        scopes: Optional[Iterable[Union[VariableScope, str]]] = None,
        editable_by: Optional[Iterable[Union[UserRole, str]]] = None,
        locked: Optional[bool] = None,
        type: Optional[Union[VariableType, str]] = None,
        role: Optional[UserRole] = None,
    ) -> Variable:
        """
        Update variable metadata.

        `type` can only change while the variable has no values and nothing
        depends on it. Narrowing `scopes` is rejected if an existing binding
        would fall outside them.
        """
        with self._mutation() as tx:
            variable = self._require_variable(tx, variable_id)
            if role is not None:
                self.policy.check_variable_edit(variable, role)

            updates: Dict[str, Any] = {}
            if name is not None and name != variable.name:
                if any(v.name == name for v in tx.variables_in_collection(variable.collection_id)):
                    raise DuplicateId("Variable name", name)
                updates["name"] = name
            if description is not None:
                updates["description"] = description
            if tags is not None:
                updates["tags"] = list(tags)
            if editable_by is not None:
                updates["editable_by"] = _parse_roles(editable_by, variable_id)
            if locked is not None:
                updates["locked"] = locked
            new_type = _parse_type(type, variable_id) if type is not None else variable.type
            if new_type != variable.type:
                if variable.values_by_mode or self.index.has_dependents(variable_id):
                    raise TypeMismatch(
                        f"Type of '{variable_id}' is fixed once values or dependents exist",
                        variable_id,
                    )
                updates["type"] = new_type
            if scopes is not None:
                new_scopes = _parse_scopes(scopes, variable_id)
                updates["scopes"] = new_scopes
                candidate = variable.model_copy(update={"scopes": new_scopes})
                for ref in self.index.bindings_for(variable_id):
                    spec = property_spec(ref.property_path)
                    if spec and not candidate.allows_scope(spec.scope):
                        raise ScopeMismatch(
                            f"Binding {ref} needs scope '{spec.scope.value}'", variable_id
                        )

            if not updates:
                return variable
            variable = variable.model_copy(update=updates)
            tx.put_variable(variable, affects_values=False)
        return variable

    def set_variable_value(
        self,
        variable_id: str,
        mode_id: str,
        value: Any,
        role: Optional[UserRole] = None,
    ) -> Variable:
        """
        Set one mode's value.

        Literals must match the declared type. Aliases are probed before
        commit: the target must exist, share the type, and not lead back to
        this variable.

        Raises:
            TypeMismatch, DanglingReference, CircularReference, PermissionDenied
        """
        with self._mutation() as tx:
            variable = self._require_variable(tx, variable_id)
            if role is not None:
                self.policy.check_variable_edit(variable, role)
            collection = self._require_collection(tx, variable.collection_id)
            mode = self._require_mode(collection, mode_id)
            new_value = self._validate_value(tx, variable, mode.id, value)
            if variable.values_by_mode.get(mode.id) == new_value:
                return variable
            variable = variable.with_value(mode.id, new_value)
            tx.put_variable(variable)

        logger.debug("Set %s[%s] = %r", variable_id, mode.id, new_value)
        return variable

    def clear_variable_value(self, variable_id: str, mode_id: str,
                             role: Optional[UserRole] = None) -> Variable:
        with self._mutation() as tx:
            variable = self._require_variable(tx, variable_id)
            if role is not None:
                self.policy.check_variable_edit(variable, role)
            collection = self._require_collection(tx, variable.collection_id)
            mode = self._require_mode(collection, mode_id)
            if mode.id not in variable.values_by_mode:
                return variable
            variable = variable.with_value(mode.id, None)
            tx.put_variable(variable)
        return variable

    def delete_variable(self, variable_id: str, role: Optional[UserRole] = None) -> None:
        """
        Delete a variable with no dependents.

        Raises:
            VariableInUse: A binding or another variable still references it.
        """
        self._check_structure(role, variable_id)
        with self._mutation() as tx:
            self._require_variable(tx, variable_id)
            if self.index.has_dependents(variable_id):
                raise VariableInUse(
                    variable_id,
                    [str(ref) for ref in self.index.bindings_for(variable_id)],
                    list(self.index.aliasers_of(variable_id)),
                )
            tx.delete_variable(variable_id)
        logger.debug("Deleted variable %s", variable_id)

    # =========================================================================
    # Value validation
    # =========================================================================

    def _validate_value(self, tx: Transaction, variable: Variable, mode_id: str,
                        raw: Any) -> VariableValue:
        try:
            value = value_from_record(raw)
        except ValueError as e:
            raise TypeMismatch(f"Unusable value for '{variable.id}': {raw!r}", variable.id) from e

        if isinstance(value, Literal):
            if not literal_matches(value.value, variable.type):
                raise TypeMismatch(
                    f"{value.value!r} is not a {variable.type.value} "
                    f"(variable '{variable.id}', mode '{mode_id}')",
                    variable.id,
                )
            return Literal(value=normalize_literal(value.value, variable.type))
        return self._validate_alias(tx, variable, value)

    def _validate_alias(self, tx: Transaction, variable: Variable, alias: Alias) -> Alias:
        target = tx.get_variable(alias.variable_id)
        if target is None:
            raise DanglingReference(alias.variable_id, [variable.id, alias.variable_id])
        if target.id == variable.id:
            raise CircularReference([variable.id, variable.id])
        if target.type != variable.type:
            raise TypeMismatch(
                f"'{variable.id}' is {variable.type.value} but alias target "
                f"'{target.id}' is {target.type.value}",
                variable.id,
                [variable.id, target.id],
            )
        if alias.mode_id:
            target_collection = self._require_collection(tx, target.collection_id)
            if not target_collection.has_mode(alias.mode_id):
                raise NotFoundError("Mode", f"{target_collection.id}/{alias.mode_id}")

        back_path = self._alias_path(tx, target.id, variable.id)
        if back_path:
            raise CircularReference([variable.id, *back_path])

        probe = Resolver(tx).resolve_variable(
            target.id, mode_override=alias.mode_id, expected_type=variable.type
        )
        if probe.is_err():
            error = probe.error
            pinned_gap = (
                isinstance(error, MissingModeValue)
                and alias.mode_id is not None
                and error.subject_id == target.id
            )
            if isinstance(error, MissingModeValue) and not pinned_gap:
                logger.warning("Alias %s -> %s: %s", variable.id, target.id, error.message)
            else:
                raise error
        return alias

    @staticmethod
    def _alias_path(reader: StoreReader, start: str, goal: str) -> Optional[List[str]]:
        """Shortest alias path from `start` to `goal` across all modes, if any."""
        parents: Dict[str, Optional[str]] = {start: None}
        queue = deque([start])
        while queue:
            current = queue.popleft()
            if current == goal:
                path: List[str] = []
                node: Optional[str] = current
                while node is not None:
                    path.append(node)
                    node = parents[node]
                return path[::-1]
            variable = reader.get_variable(current)
            if variable is None:
                continue
            for target in variable.alias_targets():
                if target not in parents:
                    parents[target] = current
                    queue.append(target)
        return None

    # =========================================================================
    # Bindings
    # =========================================================================

    def _require_property(self, node_id: str, property_path: str) -> PropertySpec:
        spec = property_spec(property_path)
        if spec is None:
            raise NotFoundError("Property", property_path)
        if self.scene is not None:
            node = self.scene.get_node(node_id)
            if node is None:
                raise NotFoundError("Node", node_id)
            if not supports_property(node.type, property_path):
                raise ScopeMismatch(
                    f"{node.type.value} node '{node_id}' has no property '{property_path}'",
                    node_id,
                )
        return spec

    def _lock_for(self, node_id: str, property_path: str) -> Optional[LockableProperty]:
        if self.scene is None:
            return None
        node = self.scene.get_node(node_id)
        return node.governance.lock_for(property_path) if node else None

    def rebind(
        self,
        node_id: str,
        property_path: str,
        variable_id: str,
        mode_override: Optional[str] = None,
        role: Optional[UserRole] = None,
    ) -> Binding:
        """
        Bind (or re-bind) a node property to a variable.

        The variable's type must match the property's semantic type and its
        scopes must allow the property's category. Only the bound property
        is invalidated.
        """
        spec = self._require_property(node_id, property_path)
        ref = BindingRef(node_id=node_id, property_path=property_path)

        with self._mutation() as tx:
            variable = tx.get_variable(variable_id)
            if variable is None:
                raise DanglingReference(variable_id, [variable_id])
            if variable.type != spec.type:
                raise TypeMismatch(
                    f"{ref} expects {spec.type.value}, '{variable_id}' is {variable.type.value}",
                    variable_id,
                )
            if not variable.allows_scope(spec.scope):
                raise ScopeMismatch(
                    f"'{variable_id}' is not scoped for {spec.scope.value} properties",
                    variable_id,
                )
            if mode_override is not None:
                collection = self._require_collection(tx, variable.collection_id)
                mode_override = self._require_mode(collection, mode_override).id

            existing = tx.get_binding(ref)
            if role is not None:
                self.policy.check_edit(
                    self._lock_for(node_id, property_path),
                    role,
                    existing is not None,
                    EditTarget.BINDING,
                    subject_id=str(ref),
                )

            binding = Binding(
                node_id=node_id,
                property_path=property_path,
                variable_id=variable_id,
                mode_override=mode_override,
            )
            if existing == binding:
                return existing
            tx.put_binding(binding)

        logger.debug("Bound %s -> %s", ref, variable_id)
        return binding

    def create_binding(
        self,
        node_id: str,
        property_path: str,
        variable_id: str,
        mode_override: Optional[str] = None,
        role: Optional[UserRole] = None,
    ) -> Binding:
        """Entry point for importers; same validation as an interactive rebind."""
        return self.rebind(node_id, property_path, variable_id, mode_override, role)

    def unbind(self, node_id: str, property_path: str,
               role: Optional[UserRole] = None) -> Optional[Binding]:
        """Remove a binding; the property falls back to its literal value."""
        ref = BindingRef(node_id=node_id, property_path=property_path)
        with self._mutation() as tx:
            existing = tx.get_binding(ref)
            if existing is None:
                return None
            if role is not None:
                self.policy.check_edit(
                    self._lock_for(node_id, property_path), role, True,
                    EditTarget.BINDING, subject_id=str(ref),
                )
            tx.delete_binding(ref)
        return existing

    def delete_bindings_for_node(self, node_id: str, role: Optional[UserRole] = None) -> int:
        with self._mutation() as tx:
            bindings = tx.bindings_for_node(node_id)
            for binding in bindings:
                if role is not None:
                    self.policy.check_edit(
                        self._lock_for(node_id, binding.property_path), role, True,
                        EditTarget.BINDING, subject_id=str(binding.ref),
                    )
                tx.delete_binding(binding.ref)
        return len(bindings)

    # =========================================================================
    # Scene literals
    # =========================================================================

    def set_node_property(
        self,
        node_id: str,
        property_path: str,
        value: Any,
        role: Optional[UserRole] = None,
    ) -> SceneNode:
        """
        Write a literal to a node property.

        A bound property is detached first, which needs binding rights.
        """
        if self.scene is None:
            raise VarbindError("No scene attached to this MutationAPI", node_id)
        spec = self._require_property(node_id, property_path)
        ref = BindingRef(node_id=node_id, property_path=property_path)
        if not literal_matches(value, spec.type):
            raise TypeMismatch(f"{ref} expects {spec.type.value}, got {value!r}", str(ref))

        with self._mutation() as tx:
            node = self.scene.get_node(node_id)
            existing = tx.get_binding(ref)
            if role is not None:
                lock = node.governance.lock_for(property_path)
                self.policy.check_edit(lock, role, existing is not None,
                                       EditTarget.VALUE, subject_id=str(ref))
                self.policy.check_constraint(lock, value, str(ref))

            if existing is not None:
                tx.delete_binding(ref)
            else:
                tx.touched_bindings.add(ref)
            updated = node.with_property(property_path, normalize_literal(value, spec.type))
            self.scene.replace_node(updated)

        return updated
