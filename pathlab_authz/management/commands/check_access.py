"""
Django management command for interactive access checks.

This command provides an interactive shell for checking what a role may do,
with two operational modes for the action matrix:

1. **Configured mode (default)**: Uses ActionEnforcer with the model and policy
   files named by the settings

2. **File mode**: Uses a custom Casbin enforcer with policies from files
   - Activated when --policy-file-path and --model-file-path are provided
   - Useful for trying out policy changes before deploying them

Two input formats are accepted:
- ``role resource action`` checks the action matrix
- ``role permission`` checks the global permission table

Example usage:
    # Use the configured action matrix
    python manage.py check_access

    # Use custom model and policy files
    python manage.py check_access -m /path/to/actions.conf -p /path/to/actions.policy

Example test input:
    >>> finance tests update_pricing
    ✓ ALLOWED: finance tests update_pricing
    >>> receptionist manage_tests
    ✗ DENIED: receptionist manage_tests
"""

import argparse
import os

from casbin import Enforcer
from casbin.util.log import disabled_logging
from django.core.management.base import BaseCommand, CommandError

from pathlab_authz import api
from pathlab_authz.api.data import ActionData, LabRole, ResourceData, RoleData
from pathlab_authz.constants.actions import ACTION_POLICY_VERSION
from pathlab_authz.constants.roles import ROLE_TABLE_VERSION
from pathlab_authz.engine.enforcer import ActionEnforcer

FORMAT_HELP = "Format: role resource action | role permission"
EXAMPLE_HELP = "Example: finance tests update_pricing | technician manage_tests"


class Command(BaseCommand):
    """
    Django management command for interactive access checks.

    1. Configured mode (default): Uses ActionEnforcer with the configured policy files.

    2. File mode: Uses a custom Casbin enforcer with policies from files.
       Activated when both --policy-file-path and --model-file-path are provided.
    """

    help = (
        "Interactive mode for checking role access. By default, uses the configured "
        "action matrix. Use --policy-file-path and --model-file-path to test with custom "
        "files instead. Format: 'role resource action' or 'role permission'."
    )

    def __init__(self, *args, **kwargs):
        """Initialize the command with required attributes."""
        super().__init__(*args, **kwargs)
        self._custom_enforcer = None

    def add_arguments(self, parser: argparse.ArgumentParser) -> None:
        """Add command-line arguments to the argument parser.

        Args:
            parser (argparse.ArgumentParser): The Django argument parser instance to configure.
        """
        parser.add_argument(
            "-p",
            "--policy-file-path",
            type=str,
            default=None,
            help=(
                "Path to the Casbin policy CSV file. When provided together with "
                "--model-file-path, switches to file mode using a custom enforcer."
            ),
        )
        parser.add_argument(
            "-m",
            "--model-file-path",
            type=str,
            default=None,
            help=(
                "Path to the Casbin model configuration file. When provided together with "
                "--policy-file-path, switches to file mode using a custom enforcer."
            ),
        )

    def handle(self, *args, **options):
        """Execute the access check command.

        Args:
            *args: Positional command arguments (unused).
            **options: Command options including ``--policy-file-path`` and ``--model-file-path``.
        """
        policy_file_path = options["policy_file_path"]
        model_file_path = options["model_file_path"]

        if policy_file_path is not None and model_file_path is not None:
            self._handle_file_mode(policy_file_path, model_file_path)
        else:
            self._handle_configured_mode()

    def _handle_configured_mode(self) -> None:
        """Check access against the configured action matrix.

        Raises:
            CommandError: If the enforcer cannot be created.
        """
        try:
            enforcer = ActionEnforcer.get_enforcer()
            disabled_logging()

            self.stdout.write(self.style.SUCCESS("Interactive Access Check (Configured Mode)"))
            self.stdout.write(f"Using ActionEnforcer with policies from {ActionEnforcer.get_policy_path()}")
            self.stdout.write("")

            self._display_loaded_tables(enforcer)
            self._run_interactive_mode()
        except Exception as e:
            raise CommandError(f"Error creating Casbin enforcer: {str(e)}") from e

    def _handle_file_mode(self, policy_file_path: str, model_file_path: str) -> None:
        """Check access against an action matrix read from custom files.

        Args:
            policy_file_path (str): Path to the policy CSV file.
            model_file_path (str): Path to the model configuration file.

        Raises:
            CommandError: If required files are not found or enforcer creation fails.
        """
        if not os.path.isfile(model_file_path):
            raise CommandError(f"Model file not found: {model_file_path}")
        if not os.path.isfile(policy_file_path):
            raise CommandError(f"Policy file not found: {policy_file_path}")

        try:
            enforcer = Enforcer(model_file_path, policy_file_path)

            self.stdout.write(self.style.SUCCESS("Interactive Access Check (File Mode)"))
            self.stdout.write(f"Model file: {model_file_path}")
            self.stdout.write(f"Policy file: {policy_file_path}")
            self.stdout.write("")

            self._custom_enforcer = enforcer
            self._display_loaded_tables(enforcer)
            self._run_interactive_mode()
        except Exception as e:
            raise CommandError(f"Error creating Casbin enforcer: {str(e)}") from e

    def _display_loaded_tables(self, enforcer: Enforcer) -> None:
        """Display the size and version of the role table and the action matrix.

        Args:
            enforcer (Enforcer): The Casbin enforcer instance with loaded policies.
        """
        self.stdout.write(f"✓ Loaded {len(api.get_all_role_definitions())} roles (table version {ROLE_TABLE_VERSION})")
        self.stdout.write(f"✓ Loaded {len(enforcer.get_policy())} action policies (version {ACTION_POLICY_VERSION})")
        self.stdout.write("")

    def _run_interactive_mode(self) -> None:
        """Start the interactive access check shell.

        Note:
            Exit the interactive mode with Ctrl+C or Ctrl+D.
        """
        self.stdout.write(self.style.SUCCESS("Interactive Mode"))
        self.stdout.write("Check role access interactively.")
        self.stdout.write("Enter 'quit', 'exit', or 'q' to exit the interactive mode.")
        self.stdout.write("")
        self.stdout.write(FORMAT_HELP)
        self.stdout.write(EXAMPLE_HELP)
        self.stdout.write("")

        while True:
            try:
                user_input = input("Enter access check: ").strip()

                if not user_input:
                    continue

                if user_input.lower() in ["quit", "exit", "q"]:
                    break

                self._test_interactive_request(user_input)
            except (KeyboardInterrupt, EOFError):
                self.stdout.write(self.style.ERROR("Exiting interactive mode..."))
                break

    def _is_action_allowed(self, role: str, resource: str, action: str) -> bool:
        if self._custom_enforcer is None:
            return api.is_action_allowed(role, resource, action)

        return self._custom_enforcer.enforce(
            RoleData(external_key=role).namespaced_key,
            ResourceData(external_key=resource).namespaced_key,
            ActionData(external_key=action).namespaced_key,
        )

    def _test_interactive_request(self, user_input: str) -> None:
        """Process and check a single request from user input.

        Args:
            user_input (str): The user's input, 'role resource action' or 'role permission'.
        """
        try:
            parts = [part.strip() for part in user_input.split()]
            if len(parts) not in (2, 3):
                self.stdout.write(self.style.ERROR(f"✗ Invalid format. Expected 2 or 3 parts, got {len(parts)}"))
                self.stdout.write(FORMAT_HELP)
                self.stdout.write(EXAMPLE_HELP)
                return

            role = parts[0]
            if LabRole.parse(role) is None:
                self.stdout.write(self.style.ERROR(f"✗ Unknown role: {role}"))
                return

            if len(parts) == 3:
                result = self._is_action_allowed(*parts)
            else:
                result = api.has_permission(role, parts[1])

            request = " ".join(parts)
            if result:
                self.stdout.write(self.style.SUCCESS(f"✓ ALLOWED: {request}"))
            else:
                self.stdout.write(self.style.ERROR(f"✗ DENIED: {request}"))
        except (ValueError, IndexError, TypeError) as e:
            self.stdout.write(self.style.ERROR(f"✗ Error processing request: {str(e)}"))
