"""
Authentication Constants
"""
from enum import Enum

from apps.core.messages import StatusMessage


class AuthErrorType(str, Enum):
    ACCESS_DENIED = 'access_denied'
    CALLBACK_ERROR = 'callback_error'
    CANCELLED = 'cancelled'
    DEFAULT = 'default'


AUTH_ERROR_MESSAGES: dict[AuthErrorType, StatusMessage] = {
    AuthErrorType.ACCESS_DENIED: StatusMessage.info(
        "Sign in was cancelled. You can try again whenever you're ready."
    ),
    AuthErrorType.CALLBACK_ERROR: StatusMessage.error(
        'There was an error during sign in. Please try again.'
    ),
    AuthErrorType.CANCELLED: StatusMessage.info(
        "Sign in was cancelled. You can try again whenever you're ready."
    ),
    AuthErrorType.DEFAULT: StatusMessage.error(
        'An error occurred during sign in. Please try again.'
    ),
}

SUPPORTED_OAUTH_PROVIDERS = ('google',)

CALLBACK_PATH = '/auth/callback'

# Shown on the role-selection screen
ROLE_OPTIONS = [
    {
        'role': 'accountant',
        'title': 'I am a CA',
        'description': 'Chartered Accountant looking for clients',
        'benefits': [
            'Create your professional profile with expertise showcase',
            'Display certifications and build credibility with clients',
            'Receive qualified contact requests from potential clients',
            'Manage your service offerings, pricing, and availability',
        ],
    },
    {
        'role': 'customer',
        'title': 'I need CA services',
        'description': 'Looking for a Chartered Accountant',
        'benefits': [
            'Browse verified CA profiles with detailed expertise',
            'Filter CAs by location, specialization, and ratings',
            'Send direct contact requests with your requirements',
            'Compare services, expertise, and client reviews',
        ],
    },
]
