"""Data classes and enums for representing roles, principals, and authorization decisions."""

import re
from enum import Enum
from typing import Any, ClassVar

from attrs import define, field, frozen

__all__ = [
    "AUTHZ_POLICY_ATTRIBUTES_SEPARATOR",
    "POLICY_WILDCARD",
    "BaseEnum",
    "LabRole",
    "DenialKind",
    "RoleData",
    "ResourceData",
    "ActionData",
    "RoleDefinition",
    "PrincipalData",
    "AuthorizationRequest",
    "AuthorizationDecision",
]

AUTHZ_POLICY_ATTRIBUTES_SEPARATOR = "^"
POLICY_WILDCARD = "*"
NAMESPACED_KEY_PATTERN = rf"^.+{re.escape(AUTHZ_POLICY_ATTRIBUTES_SEPARATOR)}.+$"

ALLOWED_KIND = "allowed"


class BaseEnum(str, Enum):
    """Base enum class."""

    @classmethod
    def values(cls):
        """List the values of the enum."""
        return [e.value for e in cls]


class LabRole(BaseEnum):
    """Closed set of roles a principal can hold.

    Ordered from most to least privileged. The hierarchy level of each role lives in
    ``pathlab_authz.constants.roles``.
    """

    SUPER_ADMIN = "super_admin"
    LAB_ADMIN = "lab_admin"
    TECHNICIAN = "technician"
    RECEPTIONIST = "receptionist"
    FINANCE = "finance"
    STAFF = "staff"
    PATIENT = "patient"

    @classmethod
    def parse(cls, value) -> "LabRole | None":
        """Return the role matching ``value`` or None when it is not a known role.

        Roles arrive as plain strings from tokens and user records, so this is where
        a retired or misspelled role name is caught.

        Examples:
            >>> LabRole.parse("lab_admin")
            <LabRole.LAB_ADMIN: 'lab_admin'>
            >>> LabRole.parse("lab_manager") is None
            True
        """
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError:
            return None


class DenialKind(BaseEnum):
    """Reasons an authorization check can deny a request."""

    UNAUTHENTICATED = "unauthenticated"
    INVALID_ROLE = "invalid_role"
    INSUFFICIENT_ROLE = "insufficient_role"
    INSUFFICIENT_PERMISSION = "insufficient_permission"
    TENANT_MISMATCH = "tenant_mismatch"
    NOT_OWNER = "not_owner"
    NOT_FOUND = "not_found"
    FEATURE_DISABLED = "feature_disabled"
    AUTHORIZATION_CHECK_FAILED = "authorization_check_failed"


class AuthzBaseClass:
    """Base class for all authz classes.

    Attributes:
        SEPARATOR: The separator between the namespace and the identifier (default: '^').
        NAMESPACE: The namespace prefix for the data type (e.g., 'role', 'res', 'act').
    """

    SEPARATOR: ClassVar[str] = AUTHZ_POLICY_ATTRIBUTES_SEPARATOR
    NAMESPACE: ClassVar[str] = None


@define
class AuthZData(AuthzBaseClass):
    """Base class for the keys stored in the action policy matrix.

    Attributes:
        external_key: The ID for the object outside of the policy matrix (e.g., 'technician'
            for a role, 'tests' for a resource type, 'update_pricing' for an action).
        namespaced_key: The ID for the object within the policy matrix, combining namespace
            and external_key (e.g., 'role^technician', 'res^tests', 'act^update_pricing').

    Examples:
        >>> role = RoleData(external_key='technician')
        >>> role.namespaced_key
        'role^technician'
        >>> resource = ResourceData(namespaced_key='res^tests')
        >>> resource.external_key
        'tests'
    """

    external_key: str = ""
    namespaced_key: str = ""

    def __attrs_post_init__(self):
        """Derive whichever of external_key and namespaced_key was not provided."""
        if not self.NAMESPACE:
            return

        if not self.external_key and not self.namespaced_key:
            raise ValueError("Either external_key or namespaced_key must be provided.")

        if not self.namespaced_key:
            self.namespaced_key = f"{self.NAMESPACE}{self.SEPARATOR}{self.external_key}"

        if not self.external_key:
            if not re.match(NAMESPACED_KEY_PATTERN, self.namespaced_key):
                raise ValueError(f"Invalid namespaced_key format: {self.namespaced_key}")
            namespace, external_key = self.namespaced_key.split(self.SEPARATOR, 1)
            if namespace != self.NAMESPACE:
                raise ValueError(f"Expected namespace '{self.NAMESPACE}' in namespaced_key: {self.namespaced_key}")
            self.external_key = external_key

    @property
    def name(self) -> str:
        """Human-readable name derived from the external key (e.g., 'Update Pricing')."""
        return self.external_key.replace("_", " ").title()

    def __str__(self):
        """Human readable string representation."""
        return self.name

    def __repr__(self):
        """Developer friendly string representation."""
        return self.namespaced_key


@define(repr=False)
class RoleData(AuthZData):
    """A role as a policy subject (e.g., 'role^lab_admin')."""

    NAMESPACE: ClassVar[str] = "role"


@define(repr=False)
class ResourceData(AuthZData):
    """A resource type guarded by the action matrix (e.g., 'res^tests')."""

    NAMESPACE: ClassVar[str] = "res"


@define(repr=False)
class ActionData(AuthZData):
    """An action on a resource type (e.g., 'act^update_pricing')."""

    NAMESPACE: ClassVar[str] = "act"


@frozen
class RoleDefinition:
    """Static definition of a role: its hierarchy level and its permission set.

    Attributes:
        role: The role being defined.
        level: Hierarchy level; a higher number means more privilege.
        permissions: The global permission strings granted to the role.

    Examples:
        >>> definition = RoleDefinition(LabRole.PATIENT, 1, ["view_own_reports"])
        >>> definition.permissions
        frozenset({'view_own_reports'})
    """

    role: LabRole = field(converter=LabRole)
    level: int
    permissions: frozenset = field(converter=frozenset, factory=frozenset)

    @property
    def name(self) -> str:
        """Human-readable role name (e.g., 'Lab Admin')."""
        return self.role.value.replace("_", " ").title()


def _scalar_id(value) -> str | None:
    """Flatten an identifier that may be a model instance or a populated document to a string."""
    if value is None:
        return None
    if isinstance(value, dict):
        value = value.get("_id", value.get("id"))
        return None if value is None else str(value)
    for attribute in ("pk", "_id", "id"):
        nested = getattr(value, attribute, None)
        if nested is not None:
            return str(nested)
    return str(value)


def _role_value(role) -> str:
    if role is None:
        return ""
    if isinstance(role, Enum):
        return str(role.value)
    return str(role)


@frozen
class PrincipalData:
    """The authenticated actor of a single request.

    Instances are built once per request, usually with :meth:`from_user`, and are never
    stored beyond the request.

    Attributes:
        user_id: String form of the user's primary key.
        role: The role name exactly as found on the user record. It may not be a valid
            ``LabRole``; that is decided by the authorization checks.
        tenant_id: String form of the user's lab id, None for users without a lab.
        user: The underlying user object, for handlers that need more than the above.
    """

    user_id: str = field(converter=str)
    role: str = field(converter=_role_value)
    tenant_id: str | None = field(default=None, converter=_scalar_id)
    user: Any = field(default=None, eq=False, repr=False)

    @classmethod
    def from_user(cls, user) -> "PrincipalData | None":
        """Build a principal from an authenticated user object.

        The lab reference is flattened to a plain id here, whatever shape the user
        record carries it in (``tenant_id``, ``lab_id``, or a populated ``lab``).

        Returns:
            PrincipalData | None: None for missing or anonymous users.
        """
        if user is None or not getattr(user, "is_authenticated", False):
            return None

        tenant = None
        for attribute in ("tenant_id", "lab_id", "lab"):
            tenant = getattr(user, attribute, None)
            if tenant is not None:
                break

        return cls(
            user_id=_scalar_id(user),
            role=getattr(user, "role", None),
            tenant_id=tenant,
            user=user,
        )

    @property
    def lab_role(self) -> LabRole | None:
        """The parsed role, or None if the role name is unknown."""
        return LabRole.parse(self.role)

    @property
    def is_super_admin(self) -> bool:
        return self.lab_role is LabRole.SUPER_ADMIN


def _name_sequence(values, kind: str) -> tuple:
    if isinstance(values, str):
        raise TypeError(f"Expected a collection of {kind}, got the string {values!r}")
    return tuple(values or ())


def _role_names(roles) -> frozenset:
    return frozenset(_role_value(role) for role in _name_sequence(roles, "roles"))


def _permission_names(permissions) -> tuple:
    return _name_sequence(permissions, "permissions")


def _optional_str(value) -> str | None:
    return None if value is None else str(value)


@frozen
class AuthorizationRequest:
    """What a protected operation demands from the caller.

    Attributes:
        allowed_roles: Roles that may call the operation. Empty means any valid role.
        required_permissions: Permissions the caller's role must all hold. Order is kept
            so missing permissions can be reported in the declared order.
        target_tenant_id: The lab named by the route, if any.
    """

    allowed_roles: frozenset = field(factory=frozenset, converter=_role_names)
    required_permissions: tuple = field(factory=tuple, converter=_permission_names)
    target_tenant_id: str | None = field(default=None, converter=_optional_str)


@frozen
class AuthorizationDecision:
    """Outcome of one authorization check.

    Attributes:
        allow: Whether the request may continue.
        denied_reason: Why the request was denied, None when allowed.
        resolved_permissions: The caller's full permission set (empty when denied).
        resolved_level: The caller's hierarchy level (0 when denied).
        missing_permissions: Required permissions the caller lacks, in declared order.
        detail: Free-form diagnostic text for logs (never shown for allowed decisions).
    """

    allow: bool
    denied_reason: DenialKind | None = None
    resolved_permissions: frozenset = field(factory=frozenset, converter=frozenset)
    resolved_level: int = 0
    missing_permissions: tuple = field(factory=tuple, converter=tuple)
    detail: str = ""

    @classmethod
    def allowed(cls, permissions=(), level: int = 0) -> "AuthorizationDecision":
        return cls(allow=True, resolved_permissions=permissions, resolved_level=level)

    @classmethod
    def denied(cls, reason: DenialKind, missing_permissions=(), detail: str = "") -> "AuthorizationDecision":
        return cls(allow=False, denied_reason=reason, missing_permissions=missing_permissions, detail=detail)

    @property
    def kind(self) -> str:
        """The decision kind: 'allowed' or the value of the denial reason."""
        if self.allow:
            return ALLOWED_KIND
        return self.denied_reason.value
