"""
URL Configuration for the CA Directory Backend API

All routes are prefixed with /api/ and mirror the client's screens.
"""
from django.urls import include, path

from apps.auth_api.views import AuthView, RoleSelectionView
from apps.core.views import health_check
from apps.profiles.views import ProfileWizardView

urlpatterns = [
    # Health check endpoint (public)
    path('api/health', health_check, name='health_check'),

    # Authentication endpoints
    path('api/auth', AuthView.as_view(), name='auth'),
    path('api/auth/', include('apps.auth_api.urls')),

    # Role gate between sign-in and the profile wizard
    path('api/role-selection', RoleSelectionView.as_view(), name='role_selection'),

    # Profile wizard
    path('api/profile', ProfileWizardView.as_view(), name='profile_wizard'),
    path('api/profile/', include('apps.profiles.urls')),
]
