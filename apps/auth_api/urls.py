"""
Authentication API URLs

All routes are relative to /api/auth/
"""
from django.urls import path

from . import views

urlpatterns = [
    # Public auth endpoints
    path('sign-in', views.SignInView.as_view(), name='auth_sign_in'),
    path('sign-up', views.SignUpView.as_view(), name='auth_sign_up'),
    path('oauth', views.OAuthView.as_view(), name='auth_oauth'),
    path('callback', views.CallbackView.as_view(), name='auth_callback'),

    # Session management
    path('refresh', views.RefreshView.as_view(), name='auth_refresh'),
    path('session', views.SessionView.as_view(), name='auth_session'),
    path('sign-out', views.SignOutView.as_view(), name='auth_sign_out'),
]
