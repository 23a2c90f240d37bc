"""
Governance / Lock Layer.

Decides whether a role may write to a scene-node property or a Variable.

Three different things can be edited and each is gated separately:

- VALUE: the literal on a node property. Writing a literal over a bound
  property detaches the binding, so it also needs binding rights.
- BINDING: which Variable a property is bound to.
- VARIABLE: the Variable's own value. Gated by the Variable's `editable_by`
  and `locked`, never by the nodes that reference it, because one Variable
  backs many nodes.
"""

import logging
from enum import StrEnum
from typing import FrozenSet, Iterable, Optional

from pydantic import BaseModel, ConfigDict

from .exceptions import ConstraintViolation, PermissionDenied
from .types import UserRole, Variable

logger = logging.getLogger(__name__)


class EditTarget(StrEnum):
    VALUE = "value"
    BINDING = "binding"
    VARIABLE = "variable"


class LockableProperty(BaseModel):
    """
    Lock state of one node property.

    A locked property only accepts writes from `allowed_roles`. The optional
    bounds restrict literal Number writes for roles that are allowed in.
    """
    locked: bool = False
    allowed_roles: FrozenSet[UserRole] = frozenset()
    min_value: Optional[float] = None
    max_value: Optional[float] = None

    model_config = ConfigDict(frozen=True)


_DEFAULT_MANAGERS = frozenset({UserRole.OWNER, UserRole.ADMIN, UserRole.EDITOR})


class GovernancePolicy:
    """
    Permission rules for edits.

    Args:
        manage_binding_roles: Roles allowed to bind, rebind and unbind.
        structure_roles: Roles allowed to create or delete collections,
            modes and variables.
    """

    def __init__(
        self,
        manage_binding_roles: Optional[Iterable[UserRole]] = None,
        structure_roles: Optional[Iterable[UserRole]] = None,
    ):
        self.manage_binding_roles = frozenset(manage_binding_roles or _DEFAULT_MANAGERS)
        self.structure_roles = frozenset(structure_roles or _DEFAULT_MANAGERS)

    @classmethod
    def from_config(cls, config) -> "GovernancePolicy":
        return cls(
            manage_binding_roles=config.governance.manage_binding_roles,
            structure_roles=config.governance.structure_roles,
        )

    def _edit_denial(
        self,
        prop: Optional[LockableProperty],
        role: UserRole,
        is_bound: bool,
        target: EditTarget,
    ) -> Optional[str]:
        if role == UserRole.VIEWER:
            return "viewers cannot edit"
        if prop is not None and prop.locked and role not in prop.allowed_roles:
            return f"property is locked for role '{role.value}'"
        if target == EditTarget.BINDING and role not in self.manage_binding_roles:
            return f"role '{role.value}' cannot manage bindings"
        if target == EditTarget.VALUE and is_bound and role not in self.manage_binding_roles:
            return f"role '{role.value}' cannot detach a bound property"
        return None

    def can_edit(
        self,
        prop: Optional[LockableProperty],
        role: UserRole,
        is_bound: bool,
        target: EditTarget = EditTarget.VALUE,
    ) -> bool:
        return self._edit_denial(prop, role, is_bound, target) is None

    def check_edit(
        self,
        prop: Optional[LockableProperty],
        role: UserRole,
        is_bound: bool,
        target: EditTarget = EditTarget.VALUE,
        subject_id: Optional[str] = None,
    ) -> None:
        """Raise PermissionDenied unless `role` may perform the edit."""
        reason = self._edit_denial(prop, role, is_bound, target)
        if reason:
            logger.warning("Rejected %s edit on %s: %s", target.value, subject_id, reason)
            raise PermissionDenied(f"Cannot edit {subject_id}: {reason}", subject_id, role.value)

    def can_edit_variable(self, variable: Variable, role: UserRole) -> bool:
        if role == UserRole.VIEWER:
            return False
        if variable.locked:
            return role == UserRole.OWNER
        return role in variable.editable_by

    def check_variable_edit(self, variable: Variable, role: UserRole) -> None:
        if not self.can_edit_variable(variable, role):
            logger.warning("Rejected value edit on variable %s by %s", variable.id, role.value)
            raise PermissionDenied(
                f"Role '{role.value}' cannot edit variable '{variable.name}'",
                variable.id,
                role.value,
            )

    def check_structure(self, role: UserRole, subject_id: Optional[str] = None) -> None:
        if role not in self.structure_roles:
            raise PermissionDenied(
                f"Role '{role.value}' cannot change collections, modes or variables",
                subject_id,
                role.value,
            )

    @staticmethod
    def check_constraint(prop: Optional[LockableProperty], value, subject_id: str) -> None:
        """Enforce numeric bounds on a literal write."""
        if prop is None or isinstance(value, bool) or not isinstance(value, (int, float)):
            return
        if prop.min_value is not None and value < prop.min_value:
            raise ConstraintViolation(
                f"{subject_id} must be >= {prop.min_value}, got {value}", subject_id
            )
        if prop.max_value is not None and value > prop.max_value:
            raise ConstraintViolation(
                f"{subject_id} must be <= {prop.max_value}, got {value}", subject_id
            )
