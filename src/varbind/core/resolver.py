"""
Variable Resolver.

Turns a Binding or a variable reference into a concrete literal by walking
alias chains, possibly across collections.

Resolution Strategy (per hop):
    1. Look up the variable                      -> DanglingReference
    2. Pick the mode: pinned override, else the mode selected for the
       variable's collection, else that collection's default. A pin
       becomes the selection for its collection for the rest of the walk
    3. Fetch the value for that mode             -> MissingModeValue
    4. Literal: done. Alias: follow it, unless already visited
                                                 -> CircularReference

There is no cross-mode fallback: a value missing for the resolved mode is an
error, so authoring gaps surface instead of silently rendering another mode.
"""

import logging
from typing import List, Mapping, Optional, Set

from .exceptions import (
    CircularReference,
    DanglingReference,
    MissingModeValue,
    ResolutionError,
    TypeMismatch,
)
from .result import Err, Ok, Result
from .store import StoreReader
from .types import (
    Alias,
    Binding,
    Literal,
    ResolvedVariable,
    Variable,
    VariableType,
    literal_matches,
)

logger = logging.getLogger(__name__)

ActiveModes = Mapping[str, str]
"""Active-mode selection: collection id -> mode id. May be partial."""

ResolutionResult = Result[ResolvedVariable, ResolutionError]


class Resolver:
    """
    Pure resolution against a store reader.

    Bind it to a `StoreSnapshot` for a resolution pass; the Mutation API also
    binds it to an open `Transaction` to probe a write before committing.

    Example:
        ```python
        resolver = Resolver(store.snapshot(), {"brand": "dark"})
        result = resolver.resolve_variable("accent")
        if result.is_ok():
            print(result.value.value, result.value.source_chain)
        ```
    """

    def __init__(self, reader: StoreReader, active_modes: Optional[ActiveModes] = None):
        self.reader = reader
        self.active_modes: ActiveModes = dict(active_modes or {})

    def effective_mode(
        self,
        variable: Variable,
        mode_override: Optional[str] = None,
        modes: Optional[ActiveModes] = None,
    ) -> Optional[str]:
        """Mode used to read `variable`: override, then selection, then default."""
        if mode_override:
            return mode_override
        selected = (self.active_modes if modes is None else modes).get(variable.collection_id)
        if selected:
            return selected
        collection = self.reader.get_collection(variable.collection_id)
        return collection.default_mode_id if collection else None

    def resolve_variable(
        self,
        variable_id: str,
        mode_override: Optional[str] = None,
        expected_type: Optional[VariableType] = None,
    ) -> ResolutionResult:
        """
        Resolve a variable reference to a literal.

        Args:
            variable_id: Variable to start from.
            mode_override: Mode pinned for the first hop. Later hops in the
                same collection keep it; other collections use their own
                selection or default.
            expected_type: If given, the resolved type must equal it.

        Returns:
            Ok(ResolvedVariable) or Err(ResolutionError).
        """
        chain: List[str] = []
        visited: Set[str] = set()
        declared_type: Optional[VariableType] = None
        current_id = variable_id
        override = mode_override
        modes = dict(self.active_modes)

        while True:
            if current_id in visited:
                return Err(CircularReference(chain + [current_id]))

            variable = self.reader.get_variable(current_id)
            if variable is None:
                return Err(DanglingReference(current_id, chain + [current_id]))

            chain.append(current_id)
            visited.add(current_id)

            if declared_type is None:
                declared_type = variable.type
                if expected_type is not None and declared_type != expected_type:
                    return Err(TypeMismatch(
                        f"Variable '{variable_id}' is {declared_type.value}, "
                        f"expected {expected_type.value}",
                        variable_id,
                        list(chain),
                    ))
            elif variable.type != declared_type:
                return Err(TypeMismatch(
                    f"Alias target '{current_id}' is {variable.type.value}, "
                    f"'{variable_id}' is {declared_type.value}",
                    current_id,
                    list(chain),
                ))

            mode_id = self.effective_mode(variable, override, modes)
            if override:
                modes[variable.collection_id] = override
            value = variable.values_by_mode.get(mode_id) if mode_id else None
            if value is None:
                return Err(MissingModeValue(current_id, mode_id or "<none>", list(chain)))

            if isinstance(value, Literal):
                if not literal_matches(value.value, variable.type):
                    return Err(TypeMismatch(
                        f"Value of '{current_id}' in mode '{mode_id}' is not a "
                        f"{variable.type.value}",
                        current_id,
                        list(chain),
                    ))
                return Ok(ResolvedVariable(
                    value=value.value,
                    type=variable.type,
                    source_chain=chain,
                    mode_id=mode_id,
                ))

            if isinstance(value, Alias):
                current_id = value.variable_id
                override = value.mode_id
                continue

            return Err(TypeMismatch(
                f"Unrecognised value for '{current_id}' in mode '{mode_id}'",
                current_id,
                list(chain),
            ))

    def resolve_binding(
        self,
        binding: Binding,
        expected_type: Optional[VariableType] = None,
    ) -> ResolutionResult:
        """Resolve a Binding, honouring its own mode override."""
        result = self.resolve_variable(
            binding.variable_id,
            mode_override=binding.mode_override,
            expected_type=expected_type,
        )
        if result.is_err():
            logger.debug("Binding %s failed to resolve: %s", binding.ref, result.error)
        return result


def resolve(
    reader: StoreReader,
    variable_id: str,
    active_modes: Optional[ActiveModes] = None,
    mode_override: Optional[str] = None,
) -> ResolutionResult:
    """Convenience wrapper for one-off resolutions."""
    return Resolver(reader, active_modes).resolve_variable(variable_id, mode_override)
