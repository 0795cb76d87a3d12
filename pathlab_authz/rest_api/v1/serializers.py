"""Serializers for the lab authorization REST API."""

from rest_framework import serializers


class RoleMixin(serializers.Serializer):  # pylint: disable=abstract-method
    """Mixin providing role field functionality."""

    role = serializers.CharField(max_length=255)


class AllowedActionSerializer(serializers.Serializer):  # pylint: disable=abstract-method
    """Serializer for an action matrix grant."""

    resource = serializers.CharField()
    action = serializers.CharField()


class RoleDefinitionSerializer(RoleMixin):  # pylint: disable=abstract-method
    """Serializer for a role table entry and its action matrix grants."""

    name = serializers.CharField()
    level = serializers.IntegerField()
    permissions = serializers.SerializerMethodField()
    allowed_actions = AllowedActionSerializer(many=True)

    def get_permissions(self, obj) -> list[str]:
        return sorted(obj["permissions"])


class RoleListResponseSerializer(serializers.Serializer):  # pylint: disable=abstract-method
    """Serializer for the role table response."""

    role_table_version = serializers.IntegerField()
    action_policy_version = serializers.IntegerField()
    roles = RoleDefinitionSerializer(many=True)


class AuthorizationMeSerializer(RoleMixin):  # pylint: disable=abstract-method
    """Serializer for the caller's resolved authorization."""

    user_id = serializers.CharField()
    lab_id = serializers.CharField(allow_null=True)
    level = serializers.IntegerField()
    permissions = serializers.ListField(child=serializers.CharField())


class PermissionValidationSerializer(serializers.Serializer):  # pylint: disable=abstract-method
    """Serializer for one permission validation request.

    Either ``permission`` (global permission table) or both ``resource`` and
    ``action`` (action matrix) must be given, not both forms.
    """

    permission = serializers.CharField(max_length=255, required=False)
    resource = serializers.CharField(max_length=255, required=False)
    action = serializers.CharField(max_length=255, required=False)

    def validate(self, attrs) -> dict:
        """Validate that exactly one form of check is requested.

        Raises:
            serializers.ValidationError: If both or neither forms are given, or if only
                one of ``resource`` and ``action`` is given.
        """
        validated_data = super().validate(attrs)
        has_permission = "permission" in validated_data
        has_resource = "resource" in validated_data
        has_action = "action" in validated_data

        if has_resource != has_action:
            raise serializers.ValidationError("'resource' and 'action' must be given together")
        if has_permission == has_resource:
            raise serializers.ValidationError("Give either 'permission' or 'resource' and 'action'")
        return validated_data


class PermissionValidationResponseSerializer(PermissionValidationSerializer):  # pylint: disable=abstract-method
    """Serializer for permission validation response."""

    allowed = serializers.BooleanField()


class LabAccessSerializer(RoleMixin):  # pylint: disable=abstract-method
    """Serializer for the result of a lab access probe."""

    lab_id = serializers.CharField()
    allowed = serializers.BooleanField()
    reason = serializers.CharField()
