"""
Common settings for pathlab_authz.
"""

import os

from pathlab_authz import ROOT_DIRECTORY


def plugin_settings(settings):
    """
    Configure the default settings of the app.
    Host projects call this from their settings module; values they already
    define are kept.

    Args:
        settings: The Django settings object
    """
    # Casbin model and policy files of the resource-scoped action matrix.
    if not hasattr(settings, "PATHLAB_AUTHZ_ACTION_MODEL"):
        settings.PATHLAB_AUTHZ_ACTION_MODEL = os.path.join(ROOT_DIRECTORY, "engine", "config", "actions.conf")

    if not hasattr(settings, "PATHLAB_AUTHZ_ACTION_POLICY"):
        settings.PATHLAB_AUTHZ_ACTION_POLICY = os.path.join(ROOT_DIRECTORY, "engine", "config", "actions.policy")

    # Roles that pass ownership checks on records they do not own.
    if not hasattr(settings, "PATHLAB_AUTHZ_ELEVATED_ROLES"):
        settings.PATHLAB_AUTHZ_ELEVATED_ROLES = ["super_admin", "lab_admin"]

    # URL keyword argument naming the target lab.
    if not hasattr(settings, "PATHLAB_AUTHZ_TENANT_URL_KWARG"):
        settings.PATHLAB_AUTHZ_TENANT_URL_KWARG = "lab_id"

    # Logger receiving one record per authorization decision.
    if not hasattr(settings, "PATHLAB_AUTHZ_DECISION_LOGGER"):
        settings.PATHLAB_AUTHZ_DECISION_LOGGER = "pathlab_authz.decisions"

    rest_framework = getattr(settings, "REST_FRAMEWORK", None)
    if rest_framework is None:
        rest_framework = settings.REST_FRAMEWORK = {}
    rest_framework.setdefault("EXCEPTION_HANDLER", "pathlab_authz.rest_api.exceptions.authz_exception_handler")
