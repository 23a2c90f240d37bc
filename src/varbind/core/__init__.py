"""
Core engine for varbind.

Data model, versioned store, resolver, dependency index, resolution cache,
governance and the Mutation API.
"""

from .exceptions import (
    CircularReference,
    DanglingReference,
    MissingModeValue,
    PermissionDenied,
    ResolutionError,
    TypeMismatch,
    VarbindError,
)
from .result import Err, Ok, Result
from .types import Alias, Binding, BindingRef, Literal, Variable, VariableType

__all__ = [
    "Alias",
    "Binding",
    "BindingRef",
    "CircularReference",
    "DanglingReference",
    "Err",
    "Literal",
    "MissingModeValue",
    "Ok",
    "PermissionDenied",
    "ResolutionError",
    "Result",
    "TypeMismatch",
    "VarbindError",
    "Variable",
    "VariableType",
]
