"""Lab authorization API URLs."""

from django.urls import include, path

from pathlab_authz.rest_api import urls

app_name = "pathlab_authz"

urlpatterns = [
    path("authz/", include(urls)),
]
