"""
Default roles, their hierarchy levels and their associated permissions.
"""

from pathlab_authz.api.data import LabRole, RoleDefinition
from pathlab_authz.constants import permissions

# Bump whenever a level or a permission set below changes. The action matrix in
# engine/config/actions.policy is versioned on its own.
ROLE_TABLE_VERSION = 1

# Define the associated permissions for each role

SUPER_ADMIN_PERMISSIONS = [
    permissions.MANAGE_LABS,
    permissions.MANAGE_SUBSCRIPTIONS,
    permissions.VIEW_ALL_DATA,
    permissions.MANAGE_USERS,
    permissions.SYSTEM_SETTINGS,
]

LAB_ADMIN_PERMISSIONS = [
    permissions.MANAGE_LAB_STAFF,
    permissions.MANAGE_PATIENTS,
    permissions.MANAGE_REPORTS,
    permissions.MANAGE_INVOICES,
    permissions.MANAGE_SAMPLES,
    permissions.VIEW_LAB_ANALYTICS,
    permissions.LAB_SETTINGS,
    permissions.MANAGE_STAFF,
    permissions.MANAGE_TESTS,
    permissions.VIEW_ANALYTICS,
]

TECHNICIAN_PERMISSIONS = [
    permissions.MANAGE_TESTS,
    permissions.UPDATE_TEST_RESULTS,
    permissions.VIEW_PATIENTS,
]

RECEPTIONIST_PERMISSIONS = [
    permissions.MANAGE_PATIENTS,
    permissions.MANAGE_APPOINTMENTS,
    permissions.VIEW_TESTS,
]

FINANCE_PERMISSIONS = [
    permissions.MANAGE_INVOICES,
    permissions.VIEW_PAYMENTS,
    permissions.VIEW_ANALYTICS,
]

STAFF_PERMISSIONS = [
    permissions.VIEW_PATIENTS,
    permissions.CREATE_REPORTS,
    permissions.UPDATE_REPORTS,
    permissions.MANAGE_SAMPLES,
    permissions.VIEW_INVOICES,
    permissions.VIEW_ASSIGNED_TASKS,
]

PATIENT_PERMISSIONS = [
    permissions.VIEW_OWN_REPORTS,
    permissions.VIEW_OWN_INVOICES,
    permissions.UPDATE_PROFILE,
]

SUPER_ADMIN = RoleDefinition(role=LabRole.SUPER_ADMIN, level=4, permissions=SUPER_ADMIN_PERMISSIONS)
LAB_ADMIN = RoleDefinition(role=LabRole.LAB_ADMIN, level=3, permissions=LAB_ADMIN_PERMISSIONS)
TECHNICIAN = RoleDefinition(role=LabRole.TECHNICIAN, level=2, permissions=TECHNICIAN_PERMISSIONS)
RECEPTIONIST = RoleDefinition(role=LabRole.RECEPTIONIST, level=2, permissions=RECEPTIONIST_PERMISSIONS)
FINANCE = RoleDefinition(role=LabRole.FINANCE, level=2, permissions=FINANCE_PERMISSIONS)
STAFF = RoleDefinition(role=LabRole.STAFF, level=2, permissions=STAFF_PERMISSIONS)
PATIENT = RoleDefinition(role=LabRole.PATIENT, level=1, permissions=PATIENT_PERMISSIONS)

ROLE_DEFINITIONS = {
    definition.role: definition
    for definition in (SUPER_ADMIN, LAB_ADMIN, TECHNICIAN, RECEPTIONIST, FINANCE, STAFF, PATIENT)
}
