"""Structured decision events.

Every authorization check produces exactly one ``DecisionEvent``. The event is
logged on the decision logger with the event attached as ``extra["authz_event"]``
and then broadcast through the ``authorization_decided`` signal, so audit trails
and metrics can subscribe without the checks knowing about them. A failing
receiver is logged and never changes the decision.
"""

import logging

from attrs import asdict, field, frozen
from django.conf import settings

from pathlab_authz.api.data import AuthorizationDecision, DenialKind, PrincipalData
from pathlab_authz.signals import authorization_decided

__all__ = [
    "DECISION_LOGGER_NAME",
    "DecisionEvent",
    "get_decision_logger",
    "emit_decision",
]

DECISION_LOGGER_NAME = "pathlab_authz.decisions"

logger = logging.getLogger(__name__)


def _serialize_value(instance, attribute, value):
    if isinstance(value, tuple):
        return list(value)
    return value


@frozen
class DecisionEvent:
    """One authorization decision, flattened for logging.

    Attributes:
        check: Which entry point produced the decision (e.g., 'authorize', 'action').
        principal_id: The caller's user id, None when unauthenticated.
        role: The caller's role name, None when unauthenticated.
        tenant_id: The caller's lab id.
        allowed_roles: Roles the operation accepts, sorted.
        required_permissions: Permissions the operation requires, in declared order.
        target: What the check was evaluated against (a lab id, an owner id, or
            'resource.action'), if anything.
        decision_kind: 'allowed' or the denial reason.
        missing_permissions: Required permissions the caller lacks.
    """

    check: str
    principal_id: str | None
    role: str | None
    tenant_id: str | None
    allowed_roles: tuple = field(factory=tuple, converter=lambda roles: tuple(sorted(roles)))
    required_permissions: tuple = field(factory=tuple, converter=tuple)
    target: str | None = None
    decision_kind: str = ""
    missing_permissions: tuple = field(factory=tuple, converter=tuple)

    @classmethod
    def build(
        cls,
        check: str,
        principal: PrincipalData | None,
        decision: AuthorizationDecision,
        allowed_roles=(),
        required_permissions=(),
        target=None,
    ) -> "DecisionEvent":
        """Build the event for a decision taken for ``principal``."""
        return cls(
            check=check,
            principal_id=principal.user_id if principal else None,
            role=principal.role if principal else None,
            tenant_id=principal.tenant_id if principal else None,
            allowed_roles=allowed_roles,
            required_permissions=required_permissions,
            target=None if target is None else str(target),
            decision_kind=decision.kind,
            missing_permissions=decision.missing_permissions,
        )

    def as_dict(self) -> dict:
        """Flatten the event to plain types, with tuples as lists."""
        return asdict(self, value_serializer=_serialize_value)


def get_decision_logger() -> logging.Logger:
    """Get the logger decisions are written to when no logger is injected."""
    return logging.getLogger(getattr(settings, "PATHLAB_AUTHZ_DECISION_LOGGER", DECISION_LOGGER_NAME))


def emit_decision(
    event: DecisionEvent,
    decision: AuthorizationDecision,
    decision_logger: logging.Logger | None = None,
) -> None:
    """Log a decision event and send the ``authorization_decided`` signal.

    Allowed decisions are logged at INFO, denials at WARNING and failed checks
    at ERROR.

    Args:
        event: The event describing the decision.
        decision: The decision itself, forwarded to signal receivers.
        decision_logger: Logger to write to instead of the configured decision logger.
    """
    if decision.allow:
        level = logging.INFO
    elif decision.denied_reason is DenialKind.AUTHORIZATION_CHECK_FAILED:
        level = logging.ERROR
    else:
        level = logging.WARNING

    (decision_logger or get_decision_logger()).log(
        level,
        "Authorization %s for principal=%s role=%s: %s",
        event.check,
        event.principal_id,
        event.role,
        event.decision_kind,
        extra={"authz_event": event.as_dict()},
    )
    responses = authorization_decided.send_robust(sender=DecisionEvent, event=event, decision=decision)
    for receiver, response in responses:
        if isinstance(response, Exception):
            logger.error(
                f"Receiver {receiver!r} of authorization_decided failed for {event.check}: {response}",
                exc_info=response,
            )
