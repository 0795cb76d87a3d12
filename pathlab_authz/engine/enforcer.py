"""
Casbin enforcer for the resource-scoped action matrix.

The matrix is static: it is read once from the model and policy files named by
the ``PATHLAB_AUTHZ_ACTION_MODEL`` and ``PATHLAB_AUTHZ_ACTION_POLICY`` settings
and never written while serving requests, so concurrent ``enforce`` calls need
no synchronization.

Usage:
    from pathlab_authz.engine.enforcer import ActionEnforcer
    allowed = ActionEnforcer.get_enforcer().enforce(role, resource, action)
"""

import logging
import os

from casbin import Enforcer
from django.conf import settings

from pathlab_authz import ROOT_DIRECTORY

logger = logging.getLogger(__name__)

DEFAULT_ACTION_MODEL = os.path.join(ROOT_DIRECTORY, "engine", "config", "actions.conf")
DEFAULT_ACTION_POLICY = os.path.join(ROOT_DIRECTORY, "engine", "config", "actions.policy")


class ActionEnforcer:
    """Singleton holder of the action matrix Casbin Enforcer.

    Either call the class method or instantiate the class; both yield the same
    enforcer instance::

        enforcer = ActionEnforcer.get_enforcer()
        enforcer = ActionEnforcer()

    Attributes:
        _enforcer (Enforcer): The singleton enforcer instance.
    """

    _enforcer = None

    def __new__(cls):
        """Singleton pattern to ensure a single enforcer instance."""
        return cls.get_enforcer()

    @classmethod
    def get_enforcer(cls) -> Enforcer:
        """Get the enforcer instance, creating it if needed.

        Returns:
            Enforcer: The singleton enforcer instance.
        """
        if cls._enforcer is None:
            cls._enforcer = cls._initialize_enforcer()
        return cls._enforcer

    @classmethod
    def reset(cls) -> None:
        """Drop the current instance so the next call reloads the configured files.

        Only meant for tests and for operators switching policy files; request
        handling never calls this.
        """
        cls._enforcer = None

    @classmethod
    def get_model_path(cls) -> str:
        return getattr(settings, "PATHLAB_AUTHZ_ACTION_MODEL", DEFAULT_ACTION_MODEL)

    @classmethod
    def get_policy_path(cls) -> str:
        return getattr(settings, "PATHLAB_AUTHZ_ACTION_POLICY", DEFAULT_ACTION_POLICY)

    @classmethod
    def _initialize_enforcer(cls) -> Enforcer:
        """Create the Casbin Enforcer from the configured model and policy files.

        Returns:
            Enforcer: Enforcer loaded with the action matrix.
        """
        model_path = cls.get_model_path()
        policy_path = cls.get_policy_path()

        try:
            enforcer = Enforcer(model_path, policy_path)
        except Exception as e:
            logger.error(f"Failed to load action policy from '{model_path}' and '{policy_path}': {e}")
            raise

        logger.info(f"Loaded {len(enforcer.get_policy())} action policies from {policy_path}")
        return enforcer
