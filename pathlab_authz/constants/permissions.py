"""
Global permission constants.

These are the coarse capability strings checked by ``authorize``. The finer
per-action flags used for the test catalog and lab modules live in the action
policy matrix instead (see ``pathlab_authz/engine/config/actions.policy``).
"""

# Platform

MANAGE_LABS = "manage_labs"
MANAGE_SUBSCRIPTIONS = "manage_subscriptions"
VIEW_ALL_DATA = "view_all_data"
MANAGE_USERS = "manage_users"
SYSTEM_SETTINGS = "system_settings"

# Lab administration

MANAGE_LAB_STAFF = "manage_lab_staff"
MANAGE_STAFF = "manage_staff"
LAB_SETTINGS = "lab_settings"
VIEW_LAB_ANALYTICS = "view_lab_analytics"
VIEW_ANALYTICS = "view_analytics"

# Patients and appointments

MANAGE_PATIENTS = "manage_patients"
VIEW_PATIENTS = "view_patients"
MANAGE_APPOINTMENTS = "manage_appointments"

# Test catalog and results

MANAGE_TESTS = "manage_tests"
VIEW_TESTS = "view_tests"
UPDATE_TEST_RESULTS = "update_test_results"

# Samples, reports and tasks

MANAGE_SAMPLES = "manage_samples"
MANAGE_REPORTS = "manage_reports"
CREATE_REPORTS = "create_reports"
UPDATE_REPORTS = "update_reports"
VIEW_ASSIGNED_TASKS = "view_assigned_tasks"

# Billing

MANAGE_INVOICES = "manage_invoices"
VIEW_INVOICES = "view_invoices"
VIEW_PAYMENTS = "view_payments"

# Patient self-service

VIEW_OWN_REPORTS = "view_own_reports"
VIEW_OWN_INVOICES = "view_own_invoices"
UPDATE_PROFILE = "update_profile"
