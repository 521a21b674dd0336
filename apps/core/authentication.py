"""
Supabase JWT Authentication for Django REST Framework

Validates JWTs issued by Supabase Auth and attaches user context to requests.
"""
import logging
from dataclasses import dataclass, field
from uuid import UUID

import jwt
from django.conf import settings
from rest_framework import authentication, exceptions

logger = logging.getLogger(__name__)


@dataclass
class AuthenticatedUser:
    """
    Represents an authenticated user from Supabase.

    This is NOT a Django User model - it's a lightweight container
    for user context derived from the JWT claims. The matching profile
    row (if any) is loaded separately; it is created lazily by the wizard.
    """
    id: UUID                      # auth.users.id (profiles.auth_user_id)
    email: str
    user_metadata: dict = field(default_factory=dict)  # OAuth provider metadata

    @property
    def is_authenticated(self) -> bool:
        return True

    @property
    def first_name(self) -> str:
        """Given name from provider metadata, used to prefill the wizard."""
        full_name = self.user_metadata.get('full_name') or ''
        if full_name.strip():
            return full_name.split(' ')[0]
        return self.user_metadata.get('given_name') or ''

    @property
    def last_name(self) -> str:
        full_name = self.user_metadata.get('full_name') or ''
        if full_name.strip():
            return ' '.join(full_name.split(' ')[1:])
        return self.user_metadata.get('family_name') or ''


class SupabaseJWTAuthentication(authentication.BaseAuthentication):
    """
    Authenticates requests using Supabase JWTs.

    Flow:
    1. Extract Bearer token from Authorization header
    2. Decode and validate JWT using Supabase JWT secret
    3. Build AuthenticatedUser from the sub/email/user_metadata claims
    """

    def authenticate(self, request):
        """
        Authenticate the request and return (user, token) or None.

        Returns:
            tuple: (AuthenticatedUser, token) if authenticated
            None: If no authentication credentials provided

        Raises:
            AuthenticationFailed: If credentials are invalid
        """
        auth_header = request.META.get('HTTP_AUTHORIZATION', '')

        if not auth_header:
            return None

        if not auth_header.startswith('Bearer '):
            return None

        token = auth_header[7:]  # Remove 'Bearer ' prefix

        if not token:
            return None

        payload = self._decode_jwt(token)
        if not payload:
            raise exceptions.AuthenticationFailed('Invalid or expired token')

        user = self._get_user_from_payload(payload)
        if not user:
            raise exceptions.AuthenticationFailed('Invalid token claims')

        return (user, token)

    def authenticate_header(self, request):
        """
        Return the WWW-Authenticate header value for 401 responses.
        """
        return 'Bearer realm="api"'

    def _decode_jwt(self, token: str) -> dict | None:
        """
        Decode and validate a Supabase JWT.

        Args:
            token: The JWT string

        Returns:
            dict: The decoded payload if valid
            None: If token is invalid or expired
        """
        jwt_secret = getattr(settings, 'SUPABASE_JWT_SECRET', None)

        if not jwt_secret:
            logger.error('SUPABASE_JWT_SECRET not configured')
            return None

        try:
            supabase_url = getattr(settings, 'SUPABASE_URL', '')
            expected_issuer = f'{supabase_url}/auth/v1' if supabase_url else None

            # Supabase JWTs use HS256 algorithm
            decode_kwargs = {
                'jwt': token,
                'key': jwt_secret,
                'algorithms': ['HS256'],
                'audience': 'authenticated',
                'options': {
                    'verify_exp': True,
                    'verify_aud': True,
                    'verify_iss': bool(expected_issuer),
                },
            }

            if expected_issuer:
                decode_kwargs['issuer'] = expected_issuer

            return jwt.decode(**decode_kwargs)
        except jwt.ExpiredSignatureError:
            logger.debug('JWT has expired')
            return None
        except jwt.InvalidAudienceError:
            logger.debug('JWT has invalid audience')
            return None
        except jwt.InvalidTokenError as e:
            logger.debug(f'JWT validation failed: {e}')
            return None

    def _get_user_from_payload(self, payload: dict) -> AuthenticatedUser | None:
        """
        Build the request user from the JWT claims.

        Args:
            payload: Decoded JWT payload

        Returns:
            AuthenticatedUser if the claims are usable, None otherwise
        """
        auth_user_id = payload.get('sub')
        if not auth_user_id:
            logger.warning('JWT missing sub claim')
            return None

        try:
            user_id = UUID(auth_user_id)
        except (TypeError, ValueError):
            logger.warning(f'JWT sub claim is not a UUID: {auth_user_id}')
            return None

        return AuthenticatedUser(
            id=user_id,
            email=payload.get('email') or '',
            user_metadata=payload.get('user_metadata') or {},
        )


def get_user_context(request) -> AuthenticatedUser | None:
    """
    Utility function to get authenticated user from request.

    Use this in views that need user context.

    Args:
        request: Django request object

    Returns:
        AuthenticatedUser if authenticated, None otherwise
    """
    user = getattr(request, 'user', None)
    if isinstance(user, AuthenticatedUser):
        return user
    return None
