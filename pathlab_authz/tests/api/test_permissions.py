"""Test the authorization decision API."""

import logging
from unittest.mock import Mock

from ddt import data, ddt, unpack
from django.core.exceptions import ObjectDoesNotExist
from django.test import TestCase, override_settings

from pathlab_authz.api.data import AuthorizationDecision, DenialKind, LabRole, PrincipalData
from pathlab_authz.api.events import DecisionEvent
from pathlab_authz.api.permissions import (
    authorize,
    authorize_action,
    authorize_feature,
    authorize_owner_or_elevated,
    authorize_tenant_resource,
    get_allowed_actions,
    get_elevated_roles,
    is_action_allowed,
)
from pathlab_authz.api.roles import level_of, permissions_of
from pathlab_authz.constants import actions, features
from pathlab_authz.signals import authorization_decided

ALL_ROLES = LabRole.values()
LAB_ROLES = [role for role in ALL_ROLES if role != "super_admin"]


def make_principal(role="lab_admin", tenant_id="T1", user_id="U1") -> PrincipalData:
    return PrincipalData(user_id=user_id, role=role, tenant_id=tenant_id)


class DecisionRecorderMixin:
    """Collect the decisions sent on the ``authorization_decided`` signal."""

    def setUp(self):
        super().setUp()
        self.events = []
        authorization_decided.connect(self._record, dispatch_uid="test-decision-recorder")
        self.addCleanup(authorization_decided.disconnect, dispatch_uid="test-decision-recorder")

    def _record(self, sender, event, decision, **kwargs):
        self.events.append((event, decision))


@ddt
class TestAuthorize(DecisionRecorderMixin, TestCase):
    """Test the core role, permission and tenant decision."""

    def test_unauthenticated(self):
        decision = authorize(None, ["lab_admin"], ["manage_tests"], target_tenant_id="T2")

        self.assertFalse(decision.allow)
        self.assertEqual(decision.denied_reason, DenialKind.UNAUTHENTICATED)

    @data(
        ("lab_manager", ["lab_admin"]),
        ("lab_manager", ["lab_manager"]),
        ("", []),
        ("SUPER_ADMIN", ["lab_admin", "technician"]),
    )
    @unpack
    def test_unknown_role_is_invalid(self, role, allowed_roles):
        """Test that a role outside the table is invalid whatever the allowed roles.

        Expected Result:
            - The decision is ``invalid_role`` even when the role is listed as allowed.
        """
        decision = authorize(make_principal(role=role), allowed_roles, ["manage_tests"], target_tenant_id="T2")

        self.assertEqual(decision.denied_reason, DenialKind.INVALID_ROLE)

    @data(*ALL_ROLES)
    def test_role_not_allowed_is_insufficient_role(self, role):
        """Test that a role outside a non-empty allowed set is rejected before permissions."""
        allowed_roles = [other for other in ALL_ROLES if other != role]

        decision = authorize(make_principal(role=role), allowed_roles, ["no_such_permission"])

        self.assertEqual(decision.denied_reason, DenialKind.INSUFFICIENT_ROLE)
        self.assertEqual(decision.missing_permissions, ())

    @data(*ALL_ROLES)
    def test_held_permissions_allow(self, role):
        """Test that any subset of the role's permissions is allowed, with the role resolved."""
        required = sorted(permissions_of(role))[:2]

        decision = authorize(make_principal(role=role), [role], required)

        self.assertTrue(decision.allow)
        self.assertEqual(decision.resolved_permissions, permissions_of(role))
        self.assertEqual(decision.resolved_level, level_of(role))

    @data(*ALL_ROLES)
    def test_empty_allowed_roles_allows_any_valid_role(self, role):
        self.assertTrue(authorize(make_principal(role=role)).allow)

    def test_missing_permissions_in_declared_order(self):
        decision = authorize(
            make_principal(role="receptionist"),
            required_permissions=["manage_tests", "view_tests", "manage_invoices", "manage_patients"],
        )

        self.assertEqual(decision.denied_reason, DenialKind.INSUFFICIENT_PERMISSION)
        self.assertEqual(decision.missing_permissions, ("manage_tests", "manage_invoices"))
        self.assertEqual(decision.detail, "Missing required permissions: manage_tests, manage_invoices")

    @data("T1", "T2", "any-lab", 42)
    def test_super_admin_skips_tenant_check(self, target_tenant_id):
        decision = authorize(make_principal(role="super_admin", tenant_id=None), target_tenant_id=target_tenant_id)

        self.assertTrue(decision.allow)
        self.assertEqual(decision.resolved_level, 4)

    @data(*LAB_ROLES)
    def test_tenant_mismatch(self, role):
        decision = authorize(make_principal(role=role, tenant_id="T1"), target_tenant_id="T2")

        self.assertEqual(decision.denied_reason, DenialKind.TENANT_MISMATCH)

    def test_same_tenant_allowed(self):
        self.assertTrue(authorize(make_principal(tenant_id="7"), target_tenant_id=7).allow)

    def test_principal_without_tenant_fails_closed(self):
        """Test that a lab role without a lab cannot reach a lab's data."""
        decision = authorize(make_principal(role="technician", tenant_id=None), target_tenant_id="T1")

        self.assertEqual(decision.denied_reason, DenialKind.TENANT_MISMATCH)

    def test_no_target_tenant_skips_check(self):
        self.assertTrue(authorize(make_principal(role="patient", tenant_id=None), ["patient"]).allow)

    def test_ordering_unauthenticated_first(self):
        """Test that an unauthenticated request never reports a later-stage denial."""
        decision = authorize(None, ["lab_admin"], ["manage_labs", "system_settings"], target_tenant_id="T9")

        self.assertEqual(decision.kind, "unauthenticated")

    def test_ordering_role_before_permissions_before_tenant(self):
        principal = make_principal(role="receptionist", tenant_id="T1")

        self.assertEqual(
            authorize(principal, ["lab_admin"], ["manage_tests"], "T2").denied_reason,
            DenialKind.INSUFFICIENT_ROLE,
        )
        self.assertEqual(
            authorize(principal, ["receptionist"], ["manage_tests"], "T2").denied_reason,
            DenialKind.INSUFFICIENT_PERMISSION,
        )
        self.assertEqual(
            authorize(principal, ["receptionist"], ["view_tests"], "T2").denied_reason,
            DenialKind.TENANT_MISMATCH,
        )

    def test_idempotent(self):
        principal = make_principal(role="technician", tenant_id="T1")

        first = authorize(principal, ["lab_admin", "technician"], ["manage_tests"], "T1")
        second = authorize(principal, ["lab_admin", "technician"], ["manage_tests"], "T1")

        self.assertEqual(first, second)

    def test_scenario_lab_admin_other_lab(self):
        decision = authorize(make_principal(role="lab_admin", tenant_id="T1"), ["lab_admin"], [], "T2")

        self.assertEqual(decision.denied_reason, DenialKind.TENANT_MISMATCH)

    def test_scenario_technician_manage_tests(self):
        decision = authorize(make_principal(role="technician"), ["lab_admin", "technician"], ["manage_tests"])

        self.assertTrue(decision.allow)
        self.assertEqual(
            decision.resolved_permissions,
            frozenset({"manage_tests", "update_test_results", "view_patients"}),
        )

    def test_scenario_receptionist_manage_tests(self):
        decision = authorize(make_principal(role="receptionist"), required_permissions=["manage_tests"])

        self.assertEqual(decision.denied_reason, DenialKind.INSUFFICIENT_PERMISSION)
        self.assertEqual(decision.missing_permissions, ("manage_tests",))

    def test_emits_one_event_per_decision(self):
        """Test that the decision is logged once and sent on the signal once."""
        with self.assertLogs("pathlab_authz.decisions", level="INFO") as logs:
            decision = authorize(make_principal(role="receptionist"), ["lab_admin"], ["manage_tests"], "T1")

        self.assertEqual(len(logs.records), 1)
        record = logs.records[0]
        self.assertEqual(record.levelno, logging.WARNING)
        self.assertEqual(
            record.authz_event,
            {
                "check": "authorize",
                "principal_id": "U1",
                "role": "receptionist",
                "tenant_id": "T1",
                "allowed_roles": ["lab_admin"],
                "required_permissions": ["manage_tests"],
                "target": "T1",
                "decision_kind": "insufficient_role",
                "missing_permissions": [],
            },
        )
        self.assertEqual(len(self.events), 1)
        event, sent_decision = self.events[0]
        self.assertIsInstance(event, DecisionEvent)
        self.assertIs(sent_decision, decision)

    def test_allowed_decision_logged_at_info(self):
        with self.assertLogs("pathlab_authz.decisions", level="INFO") as logs:
            authorize(make_principal())

        self.assertEqual(logs.records[0].levelno, logging.INFO)

    def test_unauthenticated_event_has_no_principal(self):
        authorize(None)

        event, _ = self.events[0]
        self.assertIsNone(event.principal_id)
        self.assertIsNone(event.role)
        self.assertEqual(event.decision_kind, "unauthenticated")

    def test_injected_logger(self):
        decision_logger = Mock()

        authorize(make_principal(), decision_logger=decision_logger)

        decision_logger.log.assert_called_once()
        self.assertEqual(decision_logger.log.call_args.args[0], logging.INFO)
        self.assertEqual(decision_logger.log.call_args.kwargs["extra"]["authz_event"]["decision_kind"], "allowed")

    @override_settings(PATHLAB_AUTHZ_DECISION_LOGGER="audit.authz")
    def test_configured_logger(self):
        with self.assertLogs("audit.authz", level="INFO") as logs:
            authorize(make_principal())

        self.assertEqual(len(logs.records), 1)

    def test_failing_receiver_does_not_change_decision(self):
        def failing_receiver(sender, **kwargs):
            raise RuntimeError("audit sink down")

        authorization_decided.connect(failing_receiver, dispatch_uid="test-failing-receiver")
        self.addCleanup(authorization_decided.disconnect, dispatch_uid="test-failing-receiver")

        with self.assertLogs("pathlab_authz.api.events", level="ERROR") as logs:
            decision = authorize(make_principal(), ["lab_admin"])

        self.assertTrue(decision.allow)
        self.assertIn("audit sink down", logs.output[0])
        self.assertEqual(len(self.events), 1)

    def test_event_dict_uses_lists(self):
        event = DecisionEvent.build(
            "authorize",
            make_principal(),
            AuthorizationDecision.denied(DenialKind.INSUFFICIENT_PERMISSION, missing_permissions=("manage_labs",)),
            allowed_roles=frozenset({"technician", "lab_admin"}),
            required_permissions=("manage_labs",),
        )

        event_dict = event.as_dict()

        self.assertEqual(event_dict["allowed_roles"], ["lab_admin", "technician"])
        self.assertEqual(event_dict["required_permissions"], ["manage_labs"])
        self.assertEqual(event_dict["missing_permissions"], ["manage_labs"])
        self.assertIsNone(event_dict["target"])


@ddt
class TestAuthorizeOwnerOrElevated(DecisionRecorderMixin, TestCase):
    """Test the self-access variant."""

    def test_scenario_staff_not_owner(self):
        decision = authorize_owner_or_elevated(make_principal(role="staff", user_id="U1"), "U2")

        self.assertEqual(decision.denied_reason, DenialKind.NOT_OWNER)

    def test_scenario_staff_owner(self):
        decision = authorize_owner_or_elevated(make_principal(role="staff", user_id="U1"), "U1")

        self.assertTrue(decision.allow)

    def test_owner_ids_compared_as_strings(self):
        self.assertTrue(authorize_owner_or_elevated(make_principal(role="patient", user_id="42"), 42).allow)

    @data("super_admin", "lab_admin")
    def test_elevated_roles_bypass_ownership(self, role):
        self.assertTrue(authorize_owner_or_elevated(make_principal(role=role), "someone-else").allow)

    def test_explicit_elevated_roles(self):
        principal = make_principal(role="lab_admin")

        decision = authorize_owner_or_elevated(principal, "U2", elevated_roles=["super_admin"])

        self.assertEqual(decision.denied_reason, DenialKind.NOT_OWNER)

    @override_settings(PATHLAB_AUTHZ_ELEVATED_ROLES=["super_admin", "finance"])
    def test_configured_elevated_roles(self):
        self.assertEqual(get_elevated_roles(), frozenset({"super_admin", "finance"}))
        self.assertTrue(authorize_owner_or_elevated(make_principal(role="finance"), "U2").allow)
        self.assertFalse(authorize_owner_or_elevated(make_principal(role="lab_admin"), "U2").allow)

    @override_settings(PATHLAB_AUTHZ_ELEVATED_ROLES="lab_admin")
    def test_single_elevated_role_string_rejected(self):
        with self.assertRaises(TypeError):
            get_elevated_roles()

    def test_missing_owner_is_not_owner(self):
        decision = authorize_owner_or_elevated(make_principal(role="patient"), None)

        self.assertEqual(decision.denied_reason, DenialKind.NOT_OWNER)

    def test_unauthenticated_first(self):
        self.assertEqual(authorize_owner_or_elevated(None, "U1").denied_reason, DenialKind.UNAUTHENTICATED)

    def test_invalid_role_before_ownership(self):
        """Test that owning the record does not rescue an unknown role."""
        decision = authorize_owner_or_elevated(make_principal(role="lab_manager", user_id="U1"), "U1")

        self.assertEqual(decision.denied_reason, DenialKind.INVALID_ROLE)

    def test_event(self):
        authorize_owner_or_elevated(make_principal(role="staff"), "U2")

        event, _ = self.events[0]
        self.assertEqual(event.check, "owner")
        self.assertEqual(event.target, "U2")
        self.assertEqual(event.allowed_roles, ("lab_admin", "super_admin"))
        self.assertEqual(event.decision_kind, "not_owner")


@ddt
class TestActionMatrix(DecisionRecorderMixin, TestCase):
    """Test the resource-scoped action matrix."""

    @data(
        ("lab_admin", actions.TESTS, actions.DELETE, True),
        ("lab_admin", actions.TESTS, actions.UPDATE_PRICING, True),
        ("technician", actions.TESTS, actions.READ, True),
        ("technician", actions.TESTS, actions.VIEW_QUALITY_CONTROL, True),
        ("technician", actions.TESTS, actions.UPDATE, False),
        ("finance", actions.TESTS, actions.UPDATE_PRICING, True),
        ("finance", actions.TESTS, actions.DELETE, False),
        ("receptionist", actions.TESTS, actions.READ, True),
        ("staff", actions.TESTS, actions.CREATE, False),
        ("patient", actions.TESTS, actions.READ, False),
        ("finance", actions.TEST_PACKAGES, actions.VIEW_ANALYTICS, True),
        ("technician", actions.TEST_PACKAGES, actions.DUPLICATE, False),
        ("lab_admin", actions.PATIENTS, "anything", True),
        ("lab_admin", actions.ANALYTICS, actions.UPDATE, False),
        ("receptionist", actions.INVOICES, actions.UPDATE, True),
        ("technician", actions.SAMPLES, actions.DELETE, False),
        ("super_admin", "unknown_resource", "unknown_action", True),
        ("lab_manager", actions.TESTS, actions.READ, False),
    )
    @unpack
    def test_is_action_allowed(self, role, resource_type, action, expected):
        self.assertEqual(is_action_allowed(role, resource_type, action), expected)

    def test_matrix_is_independent_of_global_table(self):
        """Test that the two tables answer independently.

        Expected Result:
            - Finance lacks ``manage_tests`` globally but may update test pricing.
            - Technician holds ``manage_tests`` globally but may not update tests.
        """
        self.assertFalse(authorize(make_principal(role="finance"), required_permissions=["manage_tests"]).allow)
        self.assertTrue(authorize_action(make_principal(role="finance"), actions.TESTS, actions.UPDATE_PRICING).allow)
        self.assertTrue(authorize(make_principal(role="technician"), required_permissions=["manage_tests"]).allow)
        self.assertFalse(authorize_action(make_principal(role="technician"), actions.TESTS, actions.UPDATE).allow)

    def test_authorize_action_denied(self):
        decision = authorize_action(make_principal(role="staff"), actions.TESTS, actions.DELETE)

        self.assertEqual(decision.denied_reason, DenialKind.INSUFFICIENT_PERMISSION)
        self.assertEqual(decision.missing_permissions, ("tests.delete",))

    def test_authorize_action_allowed_resolves_role(self):
        decision = authorize_action(make_principal(role="finance"), actions.TESTS, actions.UPDATE_PRICING, "T1")

        self.assertTrue(decision.allow)
        self.assertEqual(decision.resolved_level, 2)
        self.assertEqual(decision.resolved_permissions, permissions_of("finance"))

    def test_authorize_action_tenant_mismatch(self):
        decision = authorize_action(make_principal(role="lab_admin", tenant_id="T1"), actions.TESTS, actions.READ, "T2")

        self.assertEqual(decision.denied_reason, DenialKind.TENANT_MISMATCH)

    def test_authorize_action_super_admin_any_lab(self):
        principal = make_principal(role="super_admin", tenant_id=None)

        self.assertTrue(authorize_action(principal, actions.INVOICES, actions.DELETE, "T2").allow)

    @data(
        (None, DenialKind.UNAUTHENTICATED),
        (make_principal(role="lab_manager"), DenialKind.INVALID_ROLE),
    )
    @unpack
    def test_authorize_action_principal_checks_first(self, principal, expected):
        self.assertEqual(authorize_action(principal, actions.TESTS, actions.READ, "T2").denied_reason, expected)

    def test_authorize_action_event(self):
        authorize_action(make_principal(role="staff"), actions.TESTS, actions.DELETE, "T1")

        event, _ = self.events[0]
        self.assertEqual(event.check, "action")
        self.assertEqual(event.required_permissions, ("tests.delete",))
        self.assertEqual(event.missing_permissions, ("tests.delete",))

    def test_get_allowed_actions(self):
        self.assertEqual(get_allowed_actions("super_admin"), [("*", "*")])
        self.assertIn((actions.PATIENTS, "*"), get_allowed_actions("lab_admin"))
        self.assertEqual(
            get_allowed_actions("staff"),
            [(actions.TESTS, actions.READ), (actions.TEST_PACKAGES, actions.READ)],
        )
        self.assertEqual(get_allowed_actions("patient"), [])
        self.assertEqual(get_allowed_actions("lab_manager"), [])


class TestAuthorizeTenantResource(DecisionRecorderMixin, TestCase):
    """Test decisions that need the resource's lab looked up."""

    def test_same_lab_allowed(self):
        resolver = Mock(return_value="T1")

        decision = authorize_tenant_resource(make_principal(role="technician"), "R1", resolver, ["technician"])

        self.assertTrue(decision.allow)
        resolver.assert_called_once_with("R1")

    def test_other_lab_is_mismatch(self):
        decision = authorize_tenant_resource(make_principal(), "R1", Mock(return_value="T2"))

        self.assertEqual(decision.denied_reason, DenialKind.TENANT_MISMATCH)

    def test_missing_resource_is_not_found(self):
        """Test that a missing resource is distinct from a resource of another lab."""
        for resolver in (Mock(return_value=None), Mock(side_effect=ObjectDoesNotExist)):
            decision = authorize_tenant_resource(make_principal(), "R404", resolver)

            self.assertEqual(decision.denied_reason, DenialKind.NOT_FOUND)

    def test_lookup_failure_fails_closed(self):
        resolver = Mock(side_effect=ConnectionError("database unavailable"))

        with self.assertLogs("pathlab_authz.api.permissions", level="ERROR"):
            decision = authorize_tenant_resource(make_principal(), "R1", resolver)

        self.assertFalse(decision.allow)
        self.assertEqual(decision.denied_reason, DenialKind.AUTHORIZATION_CHECK_FAILED)
        self.assertEqual(decision.detail, "database unavailable")

    def test_lookup_failure_logged_as_error_event(self):
        with self.assertLogs("pathlab_authz.decisions", level="INFO") as logs:
            authorize_tenant_resource(make_principal(), "R1", Mock(side_effect=RuntimeError("boom")))

        self.assertEqual(logs.records[0].levelno, logging.ERROR)

    def test_role_checks_before_lookup(self):
        resolver = Mock(return_value="T1")

        decision = authorize_tenant_resource(
            make_principal(role="receptionist"), "R1", resolver, required_permissions=["manage_tests"]
        )

        self.assertEqual(decision.denied_reason, DenialKind.INSUFFICIENT_PERMISSION)
        resolver.assert_not_called()

    def test_super_admin_skips_lookup(self):
        resolver = Mock(side_effect=RuntimeError("should not be called"))

        decision = authorize_tenant_resource(make_principal(role="super_admin", tenant_id=None), "R1", resolver)

        self.assertTrue(decision.allow)
        resolver.assert_not_called()

    def test_event_target_is_resource(self):
        authorize_tenant_resource(make_principal(), 5, Mock(return_value="T1"))

        event, _ = self.events[0]
        self.assertEqual(event.check, "tenant_resource")
        self.assertEqual(event.target, "5")


@ddt
class TestAuthorizeFeature(DecisionRecorderMixin, TestCase):
    """Test the subscription feature gate."""

    def test_enabled_feature(self):
        resolver = Mock(return_value={features.BULK_OPERATIONS: True})

        decision = authorize_feature(make_principal(), features.BULK_OPERATIONS, resolver)

        self.assertTrue(decision.allow)
        resolver.assert_called_once_with("T1")

    def test_disabled_feature(self):
        decision = authorize_feature(
            make_principal(), features.BULK_OPERATIONS, Mock(return_value={features.BULK_OPERATIONS: False})
        )

        self.assertEqual(decision.denied_reason, DenialKind.FEATURE_DISABLED)
        self.assertEqual(decision.detail, "Feature 'canBulkOperations' not available in your subscription plan")

    @data(
        (features.PATIENT_REGISTRATION, True),
        (features.ADVANCED_ANALYTICS, False),
        ("canTimeTravel", False),
    )
    @unpack
    def test_unset_feature_uses_default(self, feature, expected):
        decision = authorize_feature(make_principal(), feature, Mock(return_value={}))

        self.assertEqual(decision.allow, expected)

    def test_feature_object_attributes(self):
        flags = Mock(spec=[features.ADVANCED_ANALYTICS], **{features.ADVANCED_ANALYTICS: True})

        self.assertTrue(authorize_feature(make_principal(), features.ADVANCED_ANALYTICS, Mock(return_value=flags)).allow)

    def test_super_admin_bypass(self):
        resolver = Mock()

        self.assertTrue(authorize_feature(make_principal(role="super_admin", tenant_id=None), "anything", resolver).allow)
        resolver.assert_not_called()

    def test_missing_lab_is_not_found(self):
        for principal, resolver in (
            (make_principal(tenant_id=None), Mock()),
            (make_principal(), Mock(return_value=None)),
            (make_principal(), Mock(side_effect=ObjectDoesNotExist)),
        ):
            decision = authorize_feature(principal, features.BULK_OPERATIONS, resolver)

            self.assertEqual(decision.denied_reason, DenialKind.NOT_FOUND)

    def test_lookup_failure_fails_closed(self):
        with self.assertLogs("pathlab_authz.api.permissions", level="ERROR"):
            decision = authorize_feature(make_principal(), features.BULK_OPERATIONS, Mock(side_effect=OSError("down")))

        self.assertEqual(decision.denied_reason, DenialKind.AUTHORIZATION_CHECK_FAILED)

    def test_unauthenticated(self):
        self.assertEqual(authorize_feature(None, features.BULK_OPERATIONS, Mock()).denied_reason, DenialKind.UNAUTHENTICATED)

