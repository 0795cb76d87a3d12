"""Public API for authorization decisions.

Every entry point returns an ``AuthorizationDecision`` and never raises for a
denial. Each emits exactly one decision event (see ``pathlab_authz.api.events``).

``authorize`` evaluates its checks in a fixed order and stops at the first that
fails:

1. authentication: a principal must be present
2. role validity: the principal's role must be in the role table
3. role membership: the role must be allowed by the operation, if it names roles
4. permission coverage: the role must hold every required permission
5. tenant isolation: the principal's lab must be the target lab, unless the
   principal is a super admin or there is no target lab
"""

import logging
from collections.abc import Callable, Mapping

from django.conf import settings
from django.core.exceptions import ObjectDoesNotExist

from pathlab_authz.api.data import (
    ActionData,
    AuthorizationDecision,
    AuthorizationRequest,
    DenialKind,
    LabRole,
    PrincipalData,
    ResourceData,
    RoleData,
)
from pathlab_authz.api.events import DecisionEvent, emit_decision
from pathlab_authz.api.roles import get_role_definition, permissions_of
from pathlab_authz.constants.features import DEFAULT_FEATURES
from pathlab_authz.engine.enforcer import ActionEnforcer

__all__ = [
    "DEFAULT_ELEVATED_ROLES",
    "get_elevated_roles",
    "evaluate",
    "authorize",
    "authorize_owner_or_elevated",
    "is_action_allowed",
    "get_allowed_actions",
    "authorize_action",
    "authorize_tenant_resource",
    "authorize_feature",
]

logger = logging.getLogger(__name__)

DEFAULT_ELEVATED_ROLES = (LabRole.SUPER_ADMIN.value, LabRole.LAB_ADMIN.value)


def get_elevated_roles() -> frozenset:
    """Get the roles that pass ownership checks regardless of owner.

    Returns:
        frozenset[str]: Role names from ``PATHLAB_AUTHZ_ELEVATED_ROLES``.
    """
    roles = getattr(settings, "PATHLAB_AUTHZ_ELEVATED_ROLES", DEFAULT_ELEVATED_ROLES)
    return AuthorizationRequest(allowed_roles=roles).allowed_roles


def _check_principal(principal: PrincipalData | None) -> AuthorizationDecision | None:
    """Authentication and role validity checks shared by every entry point."""
    if principal is None:
        return AuthorizationDecision.denied(DenialKind.UNAUTHENTICATED, detail="User not authenticated")

    if get_role_definition(principal.role) is None:
        return AuthorizationDecision.denied(
            DenialKind.INVALID_ROLE,
            detail=f"Role '{principal.role}' is not recognized",
        )

    return None


def _check_tenant(principal: PrincipalData, target_tenant_id) -> AuthorizationDecision | None:
    if target_tenant_id is None or principal.is_super_admin:
        return None

    if principal.tenant_id != str(target_tenant_id):
        return AuthorizationDecision.denied(
            DenialKind.TENANT_MISMATCH,
            detail=f"Lab '{principal.tenant_id}' cannot access data of lab '{target_tenant_id}'",
        )

    return None


def _allow(principal: PrincipalData) -> AuthorizationDecision:
    definition = get_role_definition(principal.role)
    return AuthorizationDecision.allowed(permissions=definition.permissions, level=definition.level)


def evaluate(principal: PrincipalData | None, request: AuthorizationRequest) -> AuthorizationDecision:
    """Evaluate an authorization request without emitting an event.

    Args:
        principal: The caller, None if the request is not authenticated.
        request: The roles, permissions and target lab the operation demands.

    Returns:
        AuthorizationDecision: The decision for the first failing check, or an
            allowed decision carrying the caller's permissions and level.
    """
    decision = _check_principal(principal)
    if decision is not None:
        return decision

    if request.allowed_roles and principal.role not in request.allowed_roles:
        return AuthorizationDecision.denied(
            DenialKind.INSUFFICIENT_ROLE,
            detail=f"Role '{principal.role}' is not authorized for this action",
        )

    granted = permissions_of(principal.role)
    missing = [permission for permission in request.required_permissions if permission not in granted]
    if missing:
        return AuthorizationDecision.denied(
            DenialKind.INSUFFICIENT_PERMISSION,
            missing_permissions=missing,
            detail=f"Missing required permissions: {', '.join(missing)}",
        )

    return _check_tenant(principal, request.target_tenant_id) or _allow(principal)


def authorize(
    principal: PrincipalData | None,
    allowed_roles=(),
    required_permissions=(),
    target_tenant_id=None,
    decision_logger: logging.Logger | None = None,
) -> AuthorizationDecision:
    """Decide whether a principal may perform a role/permission-gated operation.

    Args:
        principal: The caller, None if the request is not authenticated.
        allowed_roles: Roles allowed to perform the operation; empty allows any valid role.
        required_permissions: Permissions the caller's role must all hold.
        target_tenant_id: The lab named by the route, if any.
        decision_logger: Logger for the decision event instead of the configured decision logger.

    Returns:
        AuthorizationDecision: The decision.

    Examples:
        >>> principal = PrincipalData(user_id="U1", role="lab_admin", tenant_id="T1")
        >>> authorize(principal, ["lab_admin"], target_tenant_id="T2").kind
        'tenant_mismatch'
    """
    request = AuthorizationRequest(
        allowed_roles=allowed_roles,
        required_permissions=required_permissions,
        target_tenant_id=target_tenant_id,
    )
    decision = evaluate(principal, request)
    emit_decision(
        DecisionEvent.build(
            "authorize",
            principal,
            decision,
            allowed_roles=request.allowed_roles,
            required_permissions=request.required_permissions,
            target=request.target_tenant_id,
        ),
        decision,
        decision_logger,
    )
    return decision


def authorize_owner_or_elevated(
    principal: PrincipalData | None,
    resource_owner_id,
    elevated_roles=None,
    decision_logger: logging.Logger | None = None,
) -> AuthorizationDecision:
    """Decide whether a principal may act on a record owned by ``resource_owner_id``.

    Elevated roles pass unconditionally; everyone else must be the owner. Owner ids
    are compared as strings.

    Args:
        principal: The caller, None if the request is not authenticated.
        resource_owner_id: Id of the user owning the record.
        elevated_roles: Roles that bypass the ownership check. Defaults to
            ``PATHLAB_AUTHZ_ELEVATED_ROLES``.
        decision_logger: Logger for the decision event instead of the configured decision logger.

    Returns:
        AuthorizationDecision: The decision.
    """
    if elevated_roles is None:
        elevated = get_elevated_roles()
    else:
        elevated = AuthorizationRequest(allowed_roles=elevated_roles).allowed_roles

    decision = _check_principal(principal)
    if decision is None:
        if principal.role in elevated:
            decision = _allow(principal)
        elif resource_owner_id is not None and principal.user_id == str(resource_owner_id):
            decision = _allow(principal)
        else:
            decision = AuthorizationDecision.denied(
                DenialKind.NOT_OWNER,
                detail="You can only access your own resources",
            )

    emit_decision(
        DecisionEvent.build("owner", principal, decision, allowed_roles=elevated, target=resource_owner_id),
        decision,
        decision_logger,
    )
    return decision


def is_action_allowed(role, resource_type: str, action: str) -> bool:
    """Check the action matrix for a single (role, resource type, action) entry.

    Args:
        role: A LabRole or a role name.
        resource_type: The resource type (e.g., 'tests').
        action: The action (e.g., 'update_pricing').

    Returns:
        bool: True if the matrix grants the action, False otherwise, including for
            unknown roles.
    """
    lab_role = LabRole.parse(role)
    if lab_role is None:
        return False

    enforcer = ActionEnforcer.get_enforcer()
    return enforcer.enforce(
        RoleData(external_key=lab_role.value).namespaced_key,
        ResourceData(external_key=resource_type).namespaced_key,
        ActionData(external_key=action).namespaced_key,
    )


def _external_key(data_class, namespaced_key: str) -> str:
    if namespaced_key == "*":
        return namespaced_key
    return data_class(namespaced_key=namespaced_key).external_key


def get_allowed_actions(role) -> list[tuple[str, str]]:
    """List the (resource type, action) pairs the matrix grants a role.

    Wildcard grants are returned as ``'*'``.

    Args:
        role: A LabRole or a role name.

    Returns:
        list[tuple[str, str]]: Granted pairs in policy file order; empty for unknown roles.
    """
    lab_role = LabRole.parse(role)
    if lab_role is None:
        return []

    enforcer = ActionEnforcer.get_enforcer()
    policies = enforcer.get_filtered_policy(0, RoleData(external_key=lab_role.value).namespaced_key)
    return [
        (_external_key(ResourceData, policy[1]), _external_key(ActionData, policy[2]))
        for policy in policies
    ]


def authorize_action(
    principal: PrincipalData | None,
    resource_type: str,
    action: str,
    target_tenant_id=None,
    decision_logger: logging.Logger | None = None,
) -> AuthorizationDecision:
    """Decide whether a principal may perform ``action`` on ``resource_type``.

    Consults the action matrix only; the global permission table plays no part.
    A missing grant is reported as ``insufficient_permission`` with the missing
    permission written as ``'<resource_type>.<action>'``.

    Args:
        principal: The caller, None if the request is not authenticated.
        resource_type: The resource type (e.g., 'tests').
        action: The action (e.g., 'delete').
        target_tenant_id: The lab named by the route, if any.
        decision_logger: Logger for the decision event instead of the configured decision logger.

    Returns:
        AuthorizationDecision: The decision.
    """
    permission = f"{resource_type}.{action}"

    decision = _check_principal(principal)
    if decision is None and not is_action_allowed(principal.role, resource_type, action):
        decision = AuthorizationDecision.denied(
            DenialKind.INSUFFICIENT_PERMISSION,
            missing_permissions=[permission],
            detail=f"Missing required permissions: {permission}",
        )
    if decision is None:
        decision = _check_tenant(principal, target_tenant_id) or _allow(principal)

    emit_decision(
        DecisionEvent.build("action", principal, decision, required_permissions=[permission], target=target_tenant_id),
        decision,
        decision_logger,
    )
    return decision


def _resolve(lookup: Callable, key, subject: str) -> tuple[object, AuthorizationDecision | None]:
    """Run a data-store lookup, turning its failures into decisions."""
    try:
        return lookup(key), None
    except ObjectDoesNotExist:
        return None, None
    except Exception as exc:  # pylint: disable=broad-exception-caught
        logger.exception(f"Authorization lookup for {subject} '{key}' failed")
        return None, AuthorizationDecision.denied(DenialKind.AUTHORIZATION_CHECK_FAILED, detail=str(exc))


def authorize_tenant_resource(
    principal: PrincipalData | None,
    resource_id,
    resolve_tenant: Callable,
    allowed_roles=(),
    required_permissions=(),
    decision_logger: logging.Logger | None = None,
) -> AuthorizationDecision:
    """Decide whether a principal may act on a resource whose lab must be looked up.

    Runs the ``authorize`` checks first. If they pass and the principal is not a
    super admin, ``resolve_tenant(resource_id)`` is called to find the resource's lab:
    no result (None or ``ObjectDoesNotExist``) is ``not_found``, any other error is
    ``authorization_check_failed``, and a different lab is ``tenant_mismatch``.

    Args:
        principal: The caller, None if the request is not authenticated.
        resource_id: Id of the resource being accessed.
        resolve_tenant: Callable returning the lab id owning a resource id.
        allowed_roles: Roles allowed to perform the operation; empty allows any valid role.
        required_permissions: Permissions the caller's role must all hold.
        decision_logger: Logger for the decision event instead of the configured decision logger.

    Returns:
        AuthorizationDecision: The decision.
    """
    request = AuthorizationRequest(allowed_roles=allowed_roles, required_permissions=required_permissions)
    decision = evaluate(principal, request)

    if decision.allow and not principal.is_super_admin:
        tenant_id, failure = _resolve(resolve_tenant, resource_id, "resource")
        if failure is not None:
            decision = failure
        elif tenant_id is None:
            decision = AuthorizationDecision.denied(
                DenialKind.NOT_FOUND,
                detail=f"Resource '{resource_id}' was not found",
            )
        else:
            decision = _check_tenant(principal, tenant_id) or decision

    emit_decision(
        DecisionEvent.build(
            "tenant_resource",
            principal,
            decision,
            allowed_roles=request.allowed_roles,
            required_permissions=request.required_permissions,
            target=resource_id,
        ),
        decision,
        decision_logger,
    )
    return decision


def _feature_enabled(features, feature: str) -> bool:
    default = DEFAULT_FEATURES.get(feature, False)
    if isinstance(features, Mapping):
        value = features.get(feature, default)
    else:
        value = getattr(features, feature, default)
    return bool(value)


def authorize_feature(
    principal: PrincipalData | None,
    feature: str,
    get_lab_features: Callable,
    decision_logger: logging.Logger | None = None,
) -> AuthorizationDecision:
    """Decide whether the principal's lab has a subscription feature enabled.

    Super admins always pass. Otherwise ``get_lab_features(tenant_id)`` must return
    the lab's feature flags (a mapping or an object with flag attributes); flags it
    does not mention take their default from ``constants.features``.

    Args:
        principal: The caller, None if the request is not authenticated.
        feature: The feature flag name (e.g., 'canBulkOperations').
        get_lab_features: Callable returning the feature flags of a lab id.
        decision_logger: Logger for the decision event instead of the configured decision logger.

    Returns:
        AuthorizationDecision: The decision.
    """
    decision = _check_principal(principal)

    if decision is None and not principal.is_super_admin:
        features, failure = (None, None)
        if principal.tenant_id is not None:
            features, failure = _resolve(get_lab_features, principal.tenant_id, "lab")

        if failure is not None:
            decision = failure
        elif features is None:
            decision = AuthorizationDecision.denied(
                DenialKind.NOT_FOUND,
                detail=f"Lab '{principal.tenant_id}' was not found",
            )
        elif not _feature_enabled(features, feature):
            decision = AuthorizationDecision.denied(
                DenialKind.FEATURE_DISABLED,
                detail=f"Feature '{feature}' not available in your subscription plan",
            )

    if decision is None:
        decision = _allow(principal)

    emit_decision(
        DecisionEvent.build("feature", principal, decision, target=feature),
        decision,
        decision_logger,
    )
    return decision
