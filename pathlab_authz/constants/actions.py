"""
Resource types and actions of the action policy matrix.

The grants themselves live in ``engine/config/actions.policy``; these names are
what views and callers pass to ``authorize_action``.
"""

ACTION_POLICY_VERSION = 1

# Resource types

TESTS = "tests"
TEST_PACKAGES = "test_packages"
PATIENTS = "patients"
SAMPLES = "samples"
REPORTS = "reports"
INVOICES = "invoices"
STAFF = "staff"
ANALYTICS = "analytics"

RESOURCE_TYPES = [TESTS, TEST_PACKAGES, PATIENTS, SAMPLES, REPORTS, INVOICES, STAFF, ANALYTICS]

# Actions shared by most resource types

CREATE = "create"
READ = "read"
UPDATE = "update"
DELETE = "delete"

# Test catalog actions

BULK_UPDATE = "bulk_update"
UPDATE_PRICING = "update_pricing"
VIEW_STATS = "view_stats"
VIEW_QUALITY_CONTROL = "view_quality_control"

# Test package actions

TOGGLE_STATUS = "toggle_status"
DUPLICATE = "duplicate"
VIEW_ANALYTICS = "view_analytics"
