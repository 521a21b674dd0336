"""
Authentication Helpers

Error-code mapping for the OAuth callback and the post-sign-in routing rule.
"""
from urllib.parse import urlencode

from apps.core.messages import StatusMessage
from apps.profiles.completion import has_completed_required_steps
from apps.profiles.constants import (
    AUTH_PATH,
    DASHBOARD_PATH,
    PROFILE_PATH,
    ROLE_SELECTION_PATH,
    UserRole,
)

from .constants import AUTH_ERROR_MESSAGES, AuthErrorType


def get_auth_error_type(error_code: str | None) -> AuthErrorType:
    """Map an error code from the query string to a known type, DEFAULT otherwise."""
    if not error_code:
        return AuthErrorType.DEFAULT
    try:
        return AuthErrorType(error_code)
    except ValueError:
        return AuthErrorType.DEFAULT


def get_auth_error_message(error_code: str | None) -> StatusMessage:
    return AUTH_ERROR_MESSAGES[get_auth_error_type(error_code)]


def get_callback_error_redirect(error_code: str) -> str:
    """Where the OAuth callback sends the user when the provider reports an error."""
    if error_code == AuthErrorType.ACCESS_DENIED.value:
        return f'{AUTH_PATH}?{urlencode({"message": AuthErrorType.CANCELLED.value})}'
    return f'{AUTH_PATH}?{urlencode({"error": error_code})}'


def resolve_destination(profile: dict | None) -> str:
    """
    Where a signed-in user lands.

    No profile or no role -> role selection; accountants with unfinished
    required steps -> the profile wizard; everyone else -> dashboard.
    """
    if not profile or not profile.get('role'):
        return ROLE_SELECTION_PATH

    if profile['role'] == UserRole.ACCOUNTANT.value and not has_completed_required_steps(profile):
        return PROFILE_PATH

    return DASHBOARD_PATH


def role_selection_destination(role: UserRole) -> str:
    if role == UserRole.ACCOUNTANT:
        return PROFILE_PATH
    return DASHBOARD_PATH
