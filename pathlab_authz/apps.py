"""
pathlab_authz Django application initialization.
"""

from django.apps import AppConfig


class PathlabAuthzConfig(AppConfig):
    """
    Configuration for the pathlab_authz Django application.
    """

    name = "pathlab_authz"
    verbose_name = "Pathology Lab AuthZ"
    default_auto_field = "django.db.models.BigAutoField"

    def ready(self):
        """Load the action matrix so a broken policy file fails at startup."""
        from pathlab_authz.engine.enforcer import ActionEnforcer  # pylint: disable=import-outside-toplevel

        ActionEnforcer.get_enforcer()
