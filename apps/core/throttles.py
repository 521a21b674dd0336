"""
Custom Throttle Classes for the CA Directory Backend

Provides rate limiting for security-sensitive endpoints.
"""
from rest_framework.throttling import AnonRateThrottle, UserRateThrottle


class AuthRateThrottle(AnonRateThrottle):
    """
    Rate limiting for authentication endpoints.

    Applied to: sign-in, sign-up, OAuth start, callback exchange.
    """
    scope = 'auth'


class UploadRateThrottle(UserRateThrottle):
    """
    Rate limiting for avatar and certificate uploads.
    """
    scope = 'uploads'


class BurstRateThrottle(UserRateThrottle):
    """
    Rate limiting for the username availability check, which the
    client calls on every debounced keystroke.
    """
    scope = 'burst'
