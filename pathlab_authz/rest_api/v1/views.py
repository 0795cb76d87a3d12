"""
REST API views for the pathology lab authorization system.

These views expose the role table and the caller's own authorization so that
clients can adapt their interface to what the caller is allowed to do. They never
grant or change anything.
"""

import logging

import edx_api_doc_tools as apidocs
from django.http import HttpRequest
from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import APIView

from pathlab_authz import api
from pathlab_authz.constants.actions import ACTION_POLICY_VERSION
from pathlab_authz.constants.roles import ROLE_TABLE_VERSION
from pathlab_authz.rest_api.decorators import view_auth_classes
from pathlab_authz.rest_api.utils import get_principal
from pathlab_authz.rest_api.v1.permissions import RoleBasedPermission
from pathlab_authz.rest_api.v1.serializers import (
    AuthorizationMeSerializer,
    LabAccessSerializer,
    PermissionValidationResponseSerializer,
    PermissionValidationSerializer,
    RoleListResponseSerializer,
)

logger = logging.getLogger(__name__)


@view_auth_classes()
class RoleListView(APIView):
    """
    API view for listing the role table.

    **Endpoints**

    - GET: Retrieve every role with its level, permissions and action matrix grants

    **Response Format**

    Returns HTTP 200 OK with the table versions and the roles ordered from the most
    to the least privileged. A wildcard grant is returned as ``"*"``.

    **Authentication and Permissions**

    - Requires authenticated user.

    **Example Request**

    GET /api/authz/v1/roles/

    **Example Response**

    .. code-block:: json

        {
            "role_table_version": 1,
            "action_policy_version": 1,
            "roles": [
                {
                    "role": "super_admin",
                    "name": "Super Admin",
                    "level": 4,
                    "permissions": ["manage_labs", "manage_subscriptions", "..."],
                    "allowed_actions": [{"resource": "*", "action": "*"}]
                }
            ]
        }
    """

    @apidocs.schema(
        responses={
            status.HTTP_200_OK: RoleListResponseSerializer,
            status.HTTP_401_UNAUTHORIZED: "The user is not authenticated",
        },
    )
    def get(self, request: HttpRequest) -> Response:
        """Retrieve the role table."""
        roles = [
            {
                "role": definition.role.value,
                "name": definition.name,
                "level": definition.level,
                "permissions": definition.permissions,
                "allowed_actions": [
                    {"resource": resource, "action": action}
                    for resource, action in api.get_allowed_actions(definition.role)
                ],
            }
            for definition in api.get_all_role_definitions()
        ]
        serializer = RoleListResponseSerializer(
            {
                "role_table_version": ROLE_TABLE_VERSION,
                "action_policy_version": ACTION_POLICY_VERSION,
                "roles": roles,
            }
        )
        return Response(serializer.data, status=status.HTTP_200_OK)


@view_auth_classes()
class AuthorizationMeView(APIView):
    """
    API view returning the caller's resolved role, level and permissions.

    **Endpoints**

    - GET: Retrieve the caller's authorization

    **Authentication and Permissions**

    - Requires authenticated user with a valid role.

    **Example Response**

    .. code-block:: json

        {
            "user_id": "42",
            "role": "technician",
            "lab_id": "7",
            "level": 2,
            "permissions": ["manage_tests", "update_test_results", "..."]
        }
    """

    permission_classes = [RoleBasedPermission]

    @apidocs.schema(
        responses={
            status.HTTP_200_OK: AuthorizationMeSerializer,
            status.HTTP_401_UNAUTHORIZED: "The user is not authenticated",
            status.HTTP_403_FORBIDDEN: "The user's role is not recognized",
        },
    )
    def get(self, request: HttpRequest) -> Response:
        """Retrieve the caller's authorization."""
        principal = request.authz_principal
        serializer = AuthorizationMeSerializer(
            {
                "user_id": principal.user_id,
                "role": request.user_role,
                "lab_id": principal.tenant_id,
                "level": request.role_level,
                "permissions": request.user_permissions,
            }
        )
        return Response(serializer.data, status=status.HTTP_200_OK)


@view_auth_classes()
class PermissionValidationMeView(APIView):
    """
    API view for validating the caller's permissions.

    Supports batch validation of global permissions and action matrix entries in a
    single request. The checks only consult the caller's role; no lab is involved.

    **Endpoints**

    - POST: Validate one or more permissions for the authenticated user

    **Request Format**

    Expects a list of objects, each containing either:

    - permission: A global permission (e.g., 'manage_tests')

    or:

    - resource: A resource type (e.g., 'tests')
    - action: An action on that resource type (e.g., 'update_pricing')

    **Response Format**

    Returns a list of validation results, each echoing the request object with an
    ``allowed`` boolean added.

    **Authentication and Permissions**

    - Requires authenticated user with a valid role.

    **Example Request**

    POST /api/authz/v1/permissions/validate/me

    .. code-block:: json

        [
            {"permission": "manage_tests"},
            {"resource": "tests", "action": "update_pricing"}
        ]

    **Example Response**

    .. code-block:: json

        [
            {"permission": "manage_tests", "allowed": false},
            {"resource": "tests", "action": "update_pricing", "allowed": true}
        ]
    """

    permission_classes = [RoleBasedPermission]

    @apidocs.schema(
        body=PermissionValidationSerializer(help_text="The permissions to validate", many=True),
        responses={
            status.HTTP_200_OK: PermissionValidationResponseSerializer,
            status.HTTP_400_BAD_REQUEST: "The request data is invalid",
            status.HTTP_401_UNAUTHORIZED: "The user is not authenticated",
            status.HTTP_403_FORBIDDEN: "The user's role is not recognized",
        },
    )
    def post(self, request: HttpRequest) -> Response:
        """Validate one or more permissions for the authenticated user."""
        serializer = PermissionValidationSerializer(data=request.data, many=True)
        serializer.is_valid(raise_exception=True)

        role = request.user_role
        response_data = []
        for check in serializer.validated_data:
            if "permission" in check:
                allowed = api.has_permission(role, check["permission"])
            else:
                allowed = api.is_action_allowed(role, check["resource"], check["action"])
            response_data.append({**check, "allowed": allowed})

        serializer = PermissionValidationResponseSerializer(response_data, many=True)
        return Response(serializer.data, status=status.HTTP_200_OK)


@view_auth_classes()
class LabAccessView(APIView):
    """
    API view probing whether the caller may access a lab's data.

    The probe runs the tenant isolation check and reports its outcome instead of
    rejecting the request, so clients can tell a forbidden lab from a missing page.

    **Endpoints**

    - GET: Check access to the lab named in the route

    **Authentication and Permissions**

    - Requires authenticated user.

    **Example Request**

    GET /api/authz/v1/labs/7/access

    **Example Response**

    .. code-block:: json

        {"lab_id": "7", "role": "lab_admin", "allowed": false, "reason": "tenant_mismatch"}
    """

    @apidocs.schema(
        parameters=[
            apidocs.path_parameter("lab_id", str, description="The lab to check access to"),
        ],
        responses={
            status.HTTP_200_OK: LabAccessSerializer,
            status.HTTP_401_UNAUTHORIZED: "The user is not authenticated",
        },
    )
    def get(self, request: HttpRequest, lab_id: str) -> Response:
        """Check the caller's access to a lab."""
        principal = get_principal(request)
        decision = api.authorize(principal, target_tenant_id=lab_id)
        if not decision.allow:
            logger.info(f"Lab access probe denied for user {principal.user_id} on lab {lab_id}: {decision.kind}")

        serializer = LabAccessSerializer(
            {
                "lab_id": lab_id,
                "role": principal.role,
                "allowed": decision.allow,
                "reason": decision.kind,
            }
        )
        return Response(serializer.data, status=status.HTTP_200_OK)
