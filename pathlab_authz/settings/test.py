"""
Test settings for pathlab_authz.
"""

import os

from pathlab_authz import ROOT_DIRECTORY

DATABASES = {
    "default": {
        "ENGINE": "django.db.backends.sqlite3",
        "NAME": "default.db",
        "USER": "",
        "PASSWORD": "",
        "HOST": "",
        "PORT": "",
    }
}

INSTALLED_APPS = (
    "django.contrib.auth",
    "django.contrib.contenttypes",
    "django.contrib.messages",
    "django.contrib.sessions",
    "rest_framework",
    "pathlab_authz.apps.PathlabAuthzConfig",
    "pathlab_authz.tests.stubs",
)

MIDDLEWARE = [
    "django.contrib.sessions.middleware.SessionMiddleware",
    "django.contrib.auth.middleware.AuthenticationMiddleware",
    "django.contrib.messages.middleware.MessageMiddleware",
]

SECRET_KEY = "test-secret-key"

USE_TZ = True

ROOT_URLCONF = "pathlab_authz.tests.stubs.urls"

REST_FRAMEWORK = {
    "EXCEPTION_HANDLER": "pathlab_authz.rest_api.exceptions.authz_exception_handler",
}

# Action matrix configuration
PATHLAB_AUTHZ_ACTION_MODEL = os.path.join(ROOT_DIRECTORY, "engine", "config", "actions.conf")
PATHLAB_AUTHZ_ACTION_POLICY = os.path.join(ROOT_DIRECTORY, "engine", "config", "actions.policy")
PATHLAB_AUTHZ_ELEVATED_ROLES = ["super_admin", "lab_admin"]
PATHLAB_AUTHZ_TENANT_URL_KWARG = "lab_id"
