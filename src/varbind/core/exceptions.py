"""
Error taxonomy for varbind.

Every error is recoverable: it names the offending id (and, for resolution
failures, the chain of variables traversed) so the caller can fix the
authoring mistake. Resolution errors are returned inside `Err`, mutation
errors are raised.
"""

from typing import List, Optional


class VarbindError(Exception):
    """Base class for all varbind errors."""

    code = "varbind_error"

    def __init__(self, message: str, subject_id: Optional[str] = None):
        self.message = message
        self.subject_id = subject_id
        super().__init__(message)

    def to_dict(self) -> dict:
        return {"code": self.code, "message": self.message, "subject_id": self.subject_id}


class ResolutionError(VarbindError):
    """A binding or alias could not be turned into a literal."""

    code = "resolution_error"

    def __init__(self, message: str, subject_id: Optional[str] = None,
                 source_chain: Optional[List[str]] = None):
        super().__init__(message, subject_id)
        self.source_chain = list(source_chain or [])

    def to_dict(self) -> dict:
        data = super().to_dict()
        data["source_chain"] = self.source_chain
        return data


class DanglingReference(ResolutionError):
    code = "dangling_reference"

    def __init__(self, variable_id: str, source_chain: Optional[List[str]] = None):
        super().__init__(f"Variable '{variable_id}' does not exist", variable_id, source_chain)


class MissingModeValue(ResolutionError):
    code = "missing_mode_value"

    def __init__(self, variable_id: str, mode_id: str,
                 source_chain: Optional[List[str]] = None):
        self.mode_id = mode_id
        super().__init__(
            f"Variable '{variable_id}' has no value for mode '{mode_id}'",
            variable_id,
            source_chain,
        )


class CircularReference(ResolutionError):
    code = "circular_reference"

    def __init__(self, source_chain: List[str]):
        cycle = " -> ".join(source_chain)
        super().__init__(f"Alias cycle detected: {cycle}", source_chain[0], source_chain)


class TypeMismatch(ResolutionError):
    code = "type_mismatch"

    def __init__(self, message: str, subject_id: Optional[str] = None,
                 source_chain: Optional[List[str]] = None):
        super().__init__(message, subject_id, source_chain)


class IntegrityError(VarbindError):
    """A write was rejected to keep ids and references intact."""

    code = "integrity_error"


class VariableInUse(IntegrityError):
    code = "variable_in_use"

    def __init__(self, variable_id: str, bindings: List[str], aliases: List[str]):
        self.bindings = sorted(bindings)
        self.aliases = sorted(aliases)
        super().__init__(
            f"Variable '{variable_id}' is still referenced by "
            f"{len(bindings)} binding(s) and {len(aliases)} alias(es)",
            variable_id,
        )


class CollectionInUse(IntegrityError):
    code = "collection_in_use"

    def __init__(self, collection_id: str, variable_count: int):
        self.variable_count = variable_count
        super().__init__(
            f"Collection '{collection_id}' still holds {variable_count} variable(s)",
            collection_id,
        )


class LastModeError(IntegrityError):
    code = "last_mode"

    def __init__(self, collection_id: str, mode_id: str):
        self.mode_id = mode_id
        super().__init__(
            f"Mode '{mode_id}' is the only mode of collection '{collection_id}'",
            collection_id,
        )


class DefaultModeError(IntegrityError):
    code = "default_mode"

    def __init__(self, collection_id: str, mode_id: str):
        self.mode_id = mode_id
        super().__init__(
            f"Mode '{mode_id}' is the default of collection '{collection_id}'; "
            "reassign the default first",
            collection_id,
        )


class NotFoundError(VarbindError):
    """A mutation addressed an entity that does not exist."""

    code = "not_found"

    def __init__(self, kind: str, entity_id: str):
        self.kind = kind
        super().__init__(f"{kind} '{entity_id}' not found", entity_id)


class ScopeMismatch(TypeMismatch):
    code = "scope_mismatch"


class PermissionDenied(VarbindError):
    code = "permission_denied"

    def __init__(self, message: str, subject_id: Optional[str] = None,
                 role: Optional[str] = None):
        self.role = role
        super().__init__(message, subject_id)

    def to_dict(self) -> dict:
        data = super().to_dict()
        data["role"] = self.role
        return data


class ConstraintViolation(PermissionDenied):
    code = "constraint_violation"


class ConfigError(VarbindError):
    code = "config_error"


class DuplicateId(IntegrityError):
    code = "duplicate_id"

    def __init__(self, kind: str, entity_id: str):
        self.kind = kind
        super().__init__(f"{kind} '{entity_id}' already exists", entity_id)
