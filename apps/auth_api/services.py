"""
Supabase Auth Service

Thin wrapper over the GoTrue REST API: password sign-in and sign-up, the
Google OAuth URL with PKCE, code exchange, token refresh and sign-out.
"""
import base64
import hashlib
import logging
import secrets
from urllib.parse import urlencode

import httpx
from django.conf import settings
from django.core.cache import cache

from apps.core.exceptions import AuthenticationError, ServiceUnavailableError, ValidationError

from .constants import CALLBACK_PATH, SUPPORTED_OAUTH_PROVIDERS

logger = logging.getLogger(__name__)

REQUEST_TIMEOUT = 10.0
PKCE_CACHE_PREFIX = 'auth:pkce'
PKCE_TIMEOUT = 600


def _auth_url(path: str) -> str:
    return f'{settings.SUPABASE_URL}/auth/v1/{path}'


def _headers(access_token: str | None = None) -> dict:
    headers = {
        'apikey': settings.SUPABASE_ANON_KEY,
        'Content-Type': 'application/json',
    }
    if access_token:
        headers['Authorization'] = f'Bearer {access_token}'
    return headers


def _error_message(response: httpx.Response, default: str) -> str:
    try:
        error_data = response.json() if response.content else {}
    except ValueError:
        return default
    return (
        error_data.get('error_description')
        or error_data.get('msg')
        or error_data.get('message')
        or default
    )


def _post(path: str, payload: dict, failure_message: str, access_token: str | None = None) -> dict:
    """POST to GoTrue and return the JSON body, raising on transport or auth failure."""
    try:
        with httpx.Client() as client:
            response = client.post(
                _auth_url(path),
                json=payload,
                headers=_headers(access_token),
                timeout=REQUEST_TIMEOUT
            )
    except httpx.RequestError as e:
        logger.error(f'Supabase auth request to {path} failed: {e}')
        raise ServiceUnavailableError('Authentication service is unavailable. Please try again.')

    if response.status_code not in (200, 201, 204):
        message = _error_message(response, failure_message)
        logger.info(f'Supabase auth {path} returned {response.status_code}: {message}')
        raise AuthenticationError(message)

    if response.status_code == 204 or not response.content:
        return {}
    return response.json()


def session_payload(auth_data: dict) -> dict:
    """The parts of a GoTrue session the client keeps."""
    return {
        'access_token': auth_data.get('access_token'),
        'refresh_token': auth_data.get('refresh_token'),
        'expires_in': auth_data.get('expires_in'),
        'token_type': auth_data.get('token_type') or 'bearer',
    }


def callback_url(flow_id: str | None = None) -> str:
    url = f'{settings.APP_URL}{CALLBACK_PATH}'
    if flow_id:
        url = f'{url}?{urlencode({"flow": flow_id})}'
    return url


def sign_in_with_password(email: str, password: str) -> dict:
    return _post(
        'token?grant_type=password',
        {'email': email, 'password': password},
        'Invalid email or password',
    )


def sign_up(email: str, password: str, metadata: dict | None = None) -> dict:
    """
    Create an auth user. When email confirmation is on, GoTrue returns the
    user without a session and mails a link back to the callback route.
    """
    return _post(
        f'signup?{urlencode({"redirect_to": callback_url()})}',
        {'email': email, 'password': password, 'data': metadata or {}},
        'Sign up failed',
    )


def _code_challenge(verifier: str) -> str:
    digest = hashlib.sha256(verifier.encode('ascii')).digest()
    return base64.urlsafe_b64encode(digest).rstrip(b'=').decode('ascii')


def get_oauth_url(provider: str) -> dict:
    """
    Build the provider authorize URL.

    The PKCE verifier stays in the cache under a flow id that rides along on
    the callback URL, so the callback can complete the exchange.

    Returns:
        {'url': ..., 'flow_id': ...}
    """
    if provider not in SUPPORTED_OAUTH_PROVIDERS:
        raise ValidationError(f'Unsupported sign-in provider: {provider}')

    flow_id = secrets.token_urlsafe(16)
    verifier = secrets.token_urlsafe(48)
    cache.set(f'{PKCE_CACHE_PREFIX}:{flow_id}', verifier, PKCE_TIMEOUT)

    query = urlencode({
        'provider': provider,
        'redirect_to': callback_url(flow_id),
        'code_challenge': _code_challenge(verifier),
        'code_challenge_method': 's256',
    })
    return {'url': _auth_url(f'authorize?{query}'), 'flow_id': flow_id}


def pop_code_verifier(flow_id: str | None) -> str | None:
    if not flow_id:
        return None
    key = f'{PKCE_CACHE_PREFIX}:{flow_id}'
    verifier = cache.get(key)
    cache.delete(key)
    return verifier


def exchange_code_for_session(auth_code: str, code_verifier: str) -> dict:
    return _post(
        'token?grant_type=pkce',
        {'auth_code': auth_code, 'code_verifier': code_verifier},
        'Unable to complete sign in',
    )


def refresh_session(refresh_token: str) -> dict:
    return _post(
        'token?grant_type=refresh_token',
        {'refresh_token': refresh_token},
        'Token refresh failed',
    )


def sign_out(access_token: str) -> None:
    _post('logout', {}, 'Sign out failed', access_token=access_token)
