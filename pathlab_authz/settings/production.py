"""
Production settings for pathlab_authz.
"""

import os


def plugin_settings(settings):
    """
    Configure production overrides of the app settings.

    The action matrix files can be moved out of the installed package with the
    ``PATHLAB_AUTHZ_ACTION_MODEL`` and ``PATHLAB_AUTHZ_ACTION_POLICY`` environment
    variables.

    Args:
        settings: The Django settings object
    """
    for name in ("PATHLAB_AUTHZ_ACTION_MODEL", "PATHLAB_AUTHZ_ACTION_POLICY"):
        if os.environ.get(name):
            setattr(settings, name, os.environ[name])
