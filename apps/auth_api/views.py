"""
Authentication API Views

Implements auth endpoints that work with Supabase Auth:
- GET /api/auth - Auth screen state (status message from ?error= / ?message=)
- POST /api/auth/sign-in, /api/auth/sign-up - Email and password
- POST /api/auth/oauth - Google authorize URL
- GET /api/auth/callback - OAuth error mapping or PKCE code exchange
- POST /api/auth/refresh - Refresh access token
- GET /api/auth/session - Current user, profile and destination
- POST /api/auth/sign-out
- GET/POST /api/role-selection
"""
import logging
from uuid import UUID

from rest_framework import status
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from apps.core.authentication import AuthenticatedUser, get_user_context
from apps.core.exceptions import APIException, AuthenticationError
from apps.core.messages import StatusMessage
from apps.core.throttles import AuthRateThrottle
from apps.profiles.constants import AUTH_PATH, UserRole
from apps.profiles.context import ProfileContext
from apps.profiles.serializers import RoleSelectionSerializer
from apps.profiles.services import update_profile_role
from apps.profiles.watch import discard_watcher

from . import services
from .constants import ROLE_OPTIONS, SUPPORTED_OAUTH_PROVIDERS, AuthErrorType
from .helpers import (
    get_auth_error_message,
    get_callback_error_redirect,
    resolve_destination,
    role_selection_destination,
)
from .serializers import OAuthSerializer, RefreshSerializer, SignInSerializer, SignUpSerializer

logger = logging.getLogger(__name__)


def _user_from_auth(auth_user: dict) -> AuthenticatedUser:
    return AuthenticatedUser(
        id=UUID(auth_user['id']),
        email=auth_user.get('email') or '',
        user_metadata=auth_user.get('user_metadata') or {},
    )


def _user_payload(user: AuthenticatedUser) -> dict:
    return {
        'id': str(user.id),
        'email': user.email,
        'first_name': user.first_name,
        'last_name': user.last_name,
    }


def _signed_in_response(auth_data: dict, status_code=status.HTTP_200_OK) -> Response:
    """Session tokens plus where the freshly signed-in user should go."""
    user = _user_from_auth(auth_data['user'])
    context = ProfileContext.load(user)
    return Response(
        {
            **services.session_payload(auth_data),
            'user': _user_payload(user),
            'profile': context.profile,
            'redirect_to': resolve_destination(context.profile),
        },
        status=status_code
    )


class AuthView(APIView):
    """
    GET /api/auth?error=access_denied

    Response (200):
        {
            "status_message": {"type": "info", "text": "..."} | null,
            "providers": ["google"]
        }

    The client clears the query string once the message is shown.
    """
    permission_classes = [AllowAny]

    def get(self, request):
        code = request.query_params.get('error') or request.query_params.get('message')
        message = get_auth_error_message(code).to_dict() if code else None
        return Response({
            'status_message': message,
            'providers': list(SUPPORTED_OAUTH_PROVIDERS),
        })


class SignInView(APIView):
    """
    POST /api/auth/sign-in

    Request Body:
        {"email": "jane@example.com", "password": "..."}

    Response (200):
        {
            "access_token": "...",
            "refresh_token": "...",
            "expires_in": 3600,
            "token_type": "bearer",
            "user": {...},
            "profile": {...} | null,
            "redirect_to": "/role-selection"
        }

    Errors:
        400: Invalid request body
        401: Invalid credentials
    """
    permission_classes = [AllowAny]
    throttle_classes = [AuthRateThrottle]

    def post(self, request):
        serializer = SignInSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        auth_data = services.sign_in_with_password(**serializer.validated_data)
        if not auth_data.get('user'):
            raise AuthenticationError('Invalid email or password')

        logger.info(f'Password sign-in for {auth_data["user"].get("id")}')
        return _signed_in_response(auth_data)


class SignUpView(APIView):
    """
    POST /api/auth/sign-up

    Request Body:
        {"email": "jane@example.com", "password": "...", "full_name": "Jane Doe"}

    Response (201):
        Same as sign-in when the project auto-confirms emails, otherwise
        {"confirmation_required": true, "status_message": {...}}
    """
    permission_classes = [AllowAny]
    throttle_classes = [AuthRateThrottle]

    def post(self, request):
        serializer = SignUpSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        metadata = {'full_name': data['full_name']} if data.get('full_name') else {}
        auth_data = services.sign_up(data['email'], data['password'], metadata)

        if auth_data.get('access_token') and auth_data.get('user'):
            return _signed_in_response(auth_data, status.HTTP_201_CREATED)

        return Response(
            {
                'confirmation_required': True,
                'status_message': StatusMessage.success(
                    'Check your email for a confirmation link to finish signing up.'
                ).to_dict(),
            },
            status=status.HTTP_201_CREATED
        )


class OAuthView(APIView):
    """
    POST /api/auth/oauth

    Request Body:
        {"provider": "google"}

    Response (200):
        {"url": "https://<project>.supabase.co/auth/v1/authorize?...", "flow_id": "..."}
    """
    permission_classes = [AllowAny]
    throttle_classes = [AuthRateThrottle]

    def post(self, request):
        serializer = OAuthSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        return Response(services.get_oauth_url(serializer.validated_data['provider']))


class CallbackView(APIView):
    """
    GET /api/auth/callback?code=...&flow=...
    GET /api/auth/callback?error=access_denied&error_description=...

    Response (200):
        Session as for sign-in on success, otherwise
        {"redirect_to": "/auth?error=callback_error", "status_message": {...}}
    """
    permission_classes = [AllowAny]
    throttle_classes = [AuthRateThrottle]

    def get(self, request):
        error = request.query_params.get('error')
        if error:
            logger.warning(
                f'OAuth error: {error} {request.query_params.get("error_description", "")}'.strip()
            )
            return Response({
                'redirect_to': get_callback_error_redirect(error),
                'status_message': get_auth_error_message(error).to_dict(),
            })

        code = request.query_params.get('code')
        if not code:
            return Response({'redirect_to': AUTH_PATH, 'status_message': None})

        verifier = services.pop_code_verifier(request.query_params.get('flow'))
        try:
            if not verifier:
                raise AuthenticationError('Sign-in flow expired')
            auth_data = services.exchange_code_for_session(code, verifier)
            if not auth_data.get('user'):
                raise AuthenticationError('No user in session')
            return _signed_in_response(auth_data)
        except APIException as e:
            logger.error(f'Auth callback failed: {e.message}')
            return Response({
                'redirect_to': get_callback_error_redirect(AuthErrorType.CALLBACK_ERROR.value),
                'status_message': get_auth_error_message(AuthErrorType.CALLBACK_ERROR.value).to_dict(),
            })


class RefreshView(APIView):
    """
    POST /api/auth/refresh

    Request Body:
        {"refresh_token": "..."}

    Response (200):
        {"access_token": "...", "refresh_token": "...", "expires_in": 3600, "token_type": "bearer"}
    """
    permission_classes = [AllowAny]

    def post(self, request):
        serializer = RefreshSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        auth_data = services.refresh_session(serializer.validated_data['refresh_token'])
        return Response(services.session_payload(auth_data))


class SessionView(APIView):
    """
    GET /api/auth/session

    Reloads the profile context, so this is also how the client picks up a
    profile changed elsewhere.

    Response (200):
        {
            "authenticated": true,
            "user": {...},
            "profile": {...} | null,
            "completed_steps": ["PERSONAL_INFO"],
            "redirect_to": "/profile"
        }
    """
    permission_classes = [IsAuthenticated]

    def get(self, request):
        user = get_user_context(request)
        if not user:
            return Response({'authenticated': False, 'redirect_to': AUTH_PATH})

        context = ProfileContext.load(user)
        return Response({
            'authenticated': True,
            'user': _user_payload(user),
            'profile': context.profile,
            'completed_steps': context.to_cache()['completed_steps'],
            'redirect_to': resolve_destination(context.profile),
        })


class SignOutView(APIView):
    """
    POST /api/auth/sign-out

    Revokes the session, drops the wizard context and any pending
    username check.
    """
    permission_classes = [IsAuthenticated]

    def post(self, request):
        user = get_user_context(request)
        if not user:
            return Response({'redirect_to': AUTH_PATH})

        ProfileContext.clear(user.id)
        discard_watcher(user.id)

        token = getattr(request, 'auth', None)
        if token:
            try:
                services.sign_out(token)
            except APIException as e:
                # Local state is already gone; the token expires on its own
                logger.warning(f'Supabase sign-out failed for {user.id}: {e.message}')

        return Response({'success': True, 'redirect_to': AUTH_PATH})


class RoleSelectionView(APIView):
    """
    GET /api/role-selection

    Response (200):
        {"options": [...], "current_role": "accountant" | null}

    POST /api/role-selection

    Request Body:
        {"role": "accountant"}

    Response (200):
        {"profile": {...}, "redirect_to": "/profile", "status_message": {...}}
    """
    permission_classes = [IsAuthenticated]

    def get(self, request):
        user = get_user_context(request)
        if not user:
            return Response({'error': 'Unauthorized', 'redirect_to': AUTH_PATH}, status=status.HTTP_401_UNAUTHORIZED)

        context = ProfileContext.get_or_load(user)
        return Response({
            'options': ROLE_OPTIONS,
            'current_role': context.role,
        })

    def post(self, request):
        user = get_user_context(request)
        if not user:
            return Response({'error': 'Unauthorized', 'redirect_to': AUTH_PATH}, status=status.HTTP_401_UNAUTHORIZED)

        serializer = RoleSelectionSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        role = UserRole(serializer.validated_data['role'])

        profile = update_profile_role(user.id, role)

        context = ProfileContext.get_or_load(user)
        context.update_profile(profile)

        return Response({
            'profile': profile,
            'redirect_to': role_selection_destination(role),
            'status_message': StatusMessage.success('Role saved').to_dict(),
        })
