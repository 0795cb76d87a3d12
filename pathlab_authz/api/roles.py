"""Public API for the role/permission table.

A role is a named bundle of a hierarchy level and a set of global permissions.
The table is static configuration (``pathlab_authz.constants.roles``) loaded at
import time and never modified while serving requests, so every function here
is a pure read.
"""

from pathlab_authz.api.data import LabRole, RoleDefinition
from pathlab_authz.constants import roles as role_constants

__all__ = [
    "UnknownRoleError",
    "get_role_definition",
    "get_all_role_definitions",
    "level_of",
    "permissions_of",
    "has_permission",
    "role_level_at_least",
]


class UnknownRoleError(ValueError):
    """Raised when a role name has no definition in the role table."""

    def __init__(self, role):
        super().__init__(f"Role '{role}' is not recognized")
        self.role = role


def get_role_definition(role: LabRole | str) -> RoleDefinition | None:
    """Get the definition for a role.

    Args:
        role: A LabRole or a role name.

    Returns:
        RoleDefinition | None: The definition, or None if the role is unknown.
    """
    lab_role = LabRole.parse(role)
    if lab_role is None:
        return None
    return role_constants.ROLE_DEFINITIONS.get(lab_role)


def get_all_role_definitions() -> list[RoleDefinition]:
    """Get every role definition, most privileged first.

    Roles sharing a level keep their declaration order.

    Returns:
        list[RoleDefinition]: All role definitions.
    """
    return sorted(role_constants.ROLE_DEFINITIONS.values(), key=lambda definition: -definition.level)


def level_of(role: LabRole | str) -> int:
    """Get the hierarchy level of a role.

    Args:
        role: A LabRole or a role name.

    Returns:
        int: The role's level.

    Raises:
        UnknownRoleError: If the role is not in the table.
    """
    definition = get_role_definition(role)
    if definition is None:
        raise UnknownRoleError(role)
    return definition.level


def permissions_of(role: LabRole | str) -> frozenset:
    """Get the permission set of a role.

    Unknown roles have no permissions; this never raises.

    Args:
        role: A LabRole or a role name.

    Returns:
        frozenset[str]: The role's permissions.
    """
    definition = get_role_definition(role)
    if definition is None:
        return frozenset()
    return definition.permissions


def has_permission(role: LabRole | str, permission: str) -> bool:
    """Check whether a role holds a permission.

    Examples:
        >>> has_permission("technician", "manage_tests")
        True
        >>> has_permission("receptionist", "manage_tests")
        False
    """
    return permission in permissions_of(role)


def role_level_at_least(role: LabRole | str, required_role: LabRole | str) -> bool:
    """Check whether a role is at least as privileged as another.

    Unknown roles count as level 0 on either side, so an unknown role never
    satisfies a real required role.

    Examples:
        >>> role_level_at_least("lab_admin", "technician")
        True
        >>> role_level_at_least("finance", "staff")
        True
        >>> role_level_at_least("retired_role", "patient")
        False
    """
    return _level_or_zero(role) >= _level_or_zero(required_role)


def _level_or_zero(role) -> int:
    definition = get_role_definition(role)
    return definition.level if definition else 0
