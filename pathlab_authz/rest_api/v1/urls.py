"""Lab authorization API v1 URLs."""

from django.urls import path

from pathlab_authz.rest_api.v1 import views

urlpatterns = [
    path("roles/", views.RoleListView.as_view(), name="role-list"),
    path("permissions/me", views.AuthorizationMeView.as_view(), name="permission-me"),
    path("permissions/validate/me", views.PermissionValidationMeView.as_view(), name="permission-validation-me"),
    path("labs/<str:lab_id>/access", views.LabAccessView.as_view(), name="lab-access"),
]
