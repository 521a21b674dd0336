"""
Authentication Middleware for the CA Directory Backend

Handles JWT authentication and attaches user context to requests.
"""
import logging
import re
from collections.abc import Callable

from django.http import JsonResponse

from .authentication import SupabaseJWTAuthentication

logger = logging.getLogger(__name__)


class SupabaseAuthMiddleware:
    """
    Middleware that authenticates requests using Supabase JWTs.

    This middleware:
    1. Skips authentication for public routes
    2. Validates JWT for protected routes
    3. Attaches AuthenticatedUser to request.user
    4. Returns 401 for unauthenticated requests to protected routes
    """

    # Routes that don't require authentication
    PUBLIC_ROUTES: list[str] = [
        r'^/api/health$',
        r'^/api/auth$',
        r'^/api/auth/sign-in$',
        r'^/api/auth/sign-up$',
        r'^/api/auth/oauth$',
        r'^/api/auth/callback$',
        r'^/api/auth/refresh$',
    ]

    def __init__(self, get_response: Callable):
        self.get_response = get_response
        self.authenticator = SupabaseJWTAuthentication()
        self._public_patterns = [re.compile(pattern) for pattern in self.PUBLIC_ROUTES]

    def __call__(self, request):
        if self._is_public_route(request.path):
            request.user = None
            return self.get_response(request)

        try:
            auth_result = self.authenticator.authenticate(request)

            if auth_result is None:
                return JsonResponse(
                    {
                        'error': 'Unauthorized',
                        'message': 'Authentication required',
                        'redirect_to': '/auth',
                    },
                    status=401
                )

            user, token = auth_result
            request.user = user
            request.auth_token = token

            logger.debug(f'Authenticated user {user.id} accessing {request.path}')

        except Exception as e:
            logger.warning(f'Authentication failed: {e}')
            return JsonResponse(
                {
                    'error': 'Unauthorized',
                    'message': str(e),
                    'redirect_to': '/auth',
                },
                status=401
            )

        return self.get_response(request)

    def _is_public_route(self, path: str) -> bool:
        """Check if the given path matches any public route pattern."""
        return any(pattern.match(path) for pattern in self._public_patterns)
