"""
Profile Wizard API Views

Provides endpoints for the CA profile wizard:
- GET /api/profile - Wizard state for the requested ?step=
- POST /api/profile/navigate - Move to another step
- POST /api/profile/steps/{step} - Submit one step
- GET /api/profile/username-availability - Username check for a location
- POST /api/profile/username-availability - Debounced check while typing
- GET /api/profile/username-availability/result - Outcome of the debounced check
- GET /api/profile/details - Profile with location and reference names
- GET /api/profile/languages, /specializations, /states, /states/{id}/districts
- DELETE /api/profile/avatar, /api/profile/certificate
"""
import json
import logging

from django.conf import settings
from rest_framework import status
from rest_framework.parsers import FormParser, JSONParser, MultiPartParser
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from apps.core.authentication import get_user_context
from apps.core.exceptions import NotFoundError, ValidationError
from apps.core.messages import StatusMessage
from apps.core.throttles import BurstRateThrottle, UploadRateThrottle

from . import storage_service
from .availability import UsernameQuery
from .constants import ROLE_SELECTION_PATH, ProfileStep, UserRole
from .context import ProfileContext
from .forms import PersonalInfoForm, get_step_form
from .selectors import (
    check_username_availability,
    fetch_districts,
    fetch_languages,
    fetch_profile_details,
    fetch_specializations,
    fetch_states,
)
from .serializers import UsernameAvailabilityQuerySerializer
from .stepper import ProfileStepper, StepNotReachable
from .watch import get_published_check

logger = logging.getLogger(__name__)


def _unauthorized():
    return Response(
        {'error': 'Unauthorized', 'redirect_to': '/auth'},
        status=status.HTTP_401_UNAUTHORIZED
    )


def _role_required_response():
    message = StatusMessage.info('Choose how you want to use the directory to continue.')
    return Response(
        {
            'error': 'Forbidden',
            'message': 'The profile wizard is only available to accountants',
            'redirect_to': ROLE_SELECTION_PATH,
            'status_message': message.to_dict(),
        },
        status=status.HTTP_403_FORBIDDEN
    )


def _parse_step(value) -> ProfileStep:
    step = ProfileStep.parse(value)
    if step is None:
        raise NotFoundError(f'Unknown profile step: {value}')
    return step


def _step_payload(request) -> dict:
    """
    Step data from the request body.

    Multipart submissions carry the step fields as a JSON string in `data`
    next to the uploaded files.
    """
    raw = request.data.get('data') if hasattr(request.data, 'get') else None
    if isinstance(raw, str):
        try:
            payload = json.loads(raw)
        except json.JSONDecodeError as e:
            raise ValidationError('Invalid step data', details={'data': [str(e)]}) from e
        if not isinstance(payload, dict):
            raise ValidationError('Invalid step data', details={'data': ['Expected an object']})
        return payload

    if hasattr(request.data, 'dict'):
        return request.data.dict()
    return dict(request.data)


class ProfileWizardView(APIView):
    """
    GET /api/profile?step=PERSONAL_INFO

    Wizard host. Unknown steps open on PERSONAL_INFO; locked steps open on
    the first incomplete required step.

    Response (200):
        {
            "stepper": {...},
            "profile": {...} | null,
            "initial": {...},
            "redirected_from": "EDUCATION" | null
        }

    Errors:
        403: User has not chosen the accountant role
    """
    permission_classes = [IsAuthenticated]

    def get(self, request):
        user = get_user_context(request)
        if not user:
            return _unauthorized()

        context = ProfileContext.get_or_load(user)
        if context.role != UserRole.ACCOUNTANT.value:
            return _role_required_response()

        requested = request.query_params.get('step')
        stepper = ProfileStepper(context.completed_steps, initial_step=requested)
        form = get_step_form(stepper.current_step)(user, existing_profile=context.profile)

        redirected_from = None
        if requested and requested != stepper.current_step.value:
            redirected_from = requested

        return Response({
            'stepper': stepper.snapshot(),
            'profile': context.profile,
            'initial': form.initial(),
            'redirected_from': redirected_from,
        })


class ProfileNavigateView(APIView):
    """
    POST /api/profile/navigate

    Request Body:
        {"step": "VERIFICATION"}

    Response (200):
        {"stepper": {...}, "initial": {...}}

    Errors:
        403: Step is locked (response names the step to complete first)
        404: Unknown step
    """
    permission_classes = [IsAuthenticated]

    def post(self, request):
        user = get_user_context(request)
        if not user:
            return _unauthorized()

        context = ProfileContext.get_or_load(user)
        if context.role != UserRole.ACCOUNTANT.value:
            return _role_required_response()

        target = _parse_step(request.data.get('step'))
        current = request.data.get('current_step')
        stepper = ProfileStepper(context.completed_steps, initial_step=current)

        try:
            stepper.navigate_to(target)
        except StepNotReachable as e:
            return Response(
                {
                    'error': 'StepLocked',
                    'message': str(e),
                    'required_step': e.fallback.value,
                    'stepper': stepper.snapshot(),
                },
                status=status.HTTP_403_FORBIDDEN
            )

        form = get_step_form(target)(user, existing_profile=context.profile)
        return Response({
            'stepper': stepper.snapshot(),
            'initial': form.initial(),
        })


class ProfileStepView(APIView):
    """
    POST /api/profile/steps/{step}

    Submit one wizard step. JSON bodies carry the step fields directly;
    multipart bodies carry them as a JSON string in `data` alongside
    `profile_picture` (PERSONAL_INFO) or `certificate` (VERIFICATION).

    Response (200):
        {
            "profile": {...},
            "stepper": {... "transition": {"redirect_to", "delay_ms"}},
            "status_message": {"type": "success", "text": "..."},
            "availability": {...} | null
        }

    Errors:
        400: Validation failed or upload rejected
        403: Step is locked
        409: Username taken in the selected location
        503: Database or storage unavailable
    """
    permission_classes = [IsAuthenticated]
    parser_classes = [JSONParser, MultiPartParser, FormParser]
    throttle_classes = [UploadRateThrottle]

    def post(self, request, step: str):
        user = get_user_context(request)
        if not user:
            return _unauthorized()

        step = _parse_step(step)
        context = ProfileContext.get_or_load(user)
        if context.role != UserRole.ACCOUNTANT.value:
            return _role_required_response()

        stepper = ProfileStepper(context.completed_steps, initial_step=step)
        if not stepper.can_navigate_to(step):
            fallback = stepper.current_step
            return Response(
                {
                    'error': 'StepLocked',
                    'message': f'Complete {fallback.value} before {step.value}',
                    'required_step': fallback.value,
                    'stepper': stepper.snapshot(),
                },
                status=status.HTTP_403_FORBIDDEN
            )

        form = get_step_form(step)(
            user,
            existing_profile=context.profile,
            data=_step_payload(request),
            files=request.FILES,
        )
        result = form.submit()

        context.mark_step_completed(step, result.profile)
        stepper.completed_steps = set(context.completed_steps)
        stepper.complete_step(step)

        return Response({
            'profile': result.profile,
            'stepper': stepper.snapshot(),
            'status_message': stepper.message.to_dict(),
            'availability': result.availability.to_dict() if result.availability else None,
        })


class UsernameAvailabilityView(APIView):
    """
    GET /api/profile/username-availability?username=ca_jane&state_id=5&district_id=12

    Response (200):
        {"is_available": true, "suggested": [], "profile_url": "state/district/ca_jane"}

    A request whose triple matches the caller's stored profile, or that is
    incomplete (username shorter than 3, no state or district), is answered
    without querying and with `checked: false`.
    """
    permission_classes = [IsAuthenticated]
    throttle_classes = [BurstRateThrottle]

    def get(self, request):
        user = get_user_context(request)
        if not user:
            return _unauthorized()

        serializer = UsernameAvailabilityQuerySerializer(data=request.query_params)
        serializer.is_valid(raise_exception=True)
        params = serializer.validated_data

        form = PersonalInfoForm(user, existing_profile=ProfileContext.get_or_load(user).profile)
        query = UsernameQuery(params['username'], params['state_id'], params['district_id'])

        if not query.is_checkable() or not form.needs_username_check(query):
            return Response({
                'is_available': True,
                'suggested': [],
                'profile_url': None,
                'checked': False,
            })

        availability = check_username_availability(
            query.username,
            query.state_id,
            query.district_id,
            exclude_user_id=str(user.id),
        )
        return Response({**availability.to_dict(), 'checked': True})

    def post(self, request):
        """
        Debounced check for the value being typed.

        Body: {"username": "ca_jane", "state_id": 5, "district_id": 12}

        Response (202):
            {"scheduled": true, "delay_ms": 800}

        Each post replaces the previous pending check. Poll
        GET /api/profile/username-availability/result for the outcome.
        """
        user = get_user_context(request)
        if not user:
            return _unauthorized()

        serializer = UsernameAvailabilityQuerySerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        params = serializer.validated_data

        form = PersonalInfoForm(user, existing_profile=ProfileContext.get_or_load(user).profile)
        query = UsernameQuery(params['username'], params['state_id'], params['district_id'])
        scheduled = form.watch_username(query)

        return Response(
            {
                'scheduled': scheduled,
                'delay_ms': settings.PROFILE_WIZARD['USERNAME_CHECK_DEBOUNCE_MS'],
            },
            status=status.HTTP_202_ACCEPTED
        )


class UsernameCheckResultView(APIView):
    """
    GET /api/profile/username-availability/result

    Latest outcome of the debounced check:
        {"status": "pending" | "done" | "error" | "idle",
         "username": ..., "state_id": ..., "district_id": ...,
         "is_available": ..., "suggested": [...], "profile_url": ...}

    Availability fields are present only once status is "done".
    """
    permission_classes = [IsAuthenticated]
    throttle_classes = [BurstRateThrottle]

    def get(self, request):
        user = get_user_context(request)
        if not user:
            return _unauthorized()

        return Response(get_published_check(user.id))


class ProfileDetailsView(APIView):
    """
    GET /api/profile/details

    Profile joined with state, district, language and specialization names.
    """
    permission_classes = [IsAuthenticated]

    def get(self, request):
        user = get_user_context(request)
        if not user:
            return _unauthorized()

        details = fetch_profile_details(user.id)
        if details is None:
            raise NotFoundError('Profile not found')

        return Response(details)


class LanguagesView(APIView):
    """GET /api/profile/languages"""
    permission_classes = [IsAuthenticated]

    def get(self, request):
        return Response(fetch_languages())


class SpecializationsView(APIView):
    """GET /api/profile/specializations"""
    permission_classes = [IsAuthenticated]

    def get(self, request):
        return Response(fetch_specializations())


class StatesView(APIView):
    """GET /api/profile/states"""
    permission_classes = [IsAuthenticated]

    def get(self, request):
        return Response(fetch_states())


class DistrictsView(APIView):
    """GET /api/profile/states/{state_id}/districts"""
    permission_classes = [IsAuthenticated]

    def get(self, request, state_id: int):
        return Response(fetch_districts(state_id))


class ProfilePictureView(APIView):
    """
    DELETE /api/profile/avatar

    Removes the stored avatar under every allowed extension.
    """
    permission_classes = [IsAuthenticated]

    def delete(self, request):
        user = get_user_context(request)
        if not user:
            return _unauthorized()

        if not storage_service.delete_profile_picture(user.id):
            return Response(
                {
                    'error': 'StorageError',
                    'message': 'Failed to delete profile picture',
                    'status_message': StatusMessage.error('Failed to delete profile picture').to_dict(),
                },
                status=status.HTTP_502_BAD_GATEWAY
            )

        return Response({
            'success': True,
            'status_message': StatusMessage.success('Profile picture removed').to_dict(),
        })


class CertificateView(APIView):
    """
    DELETE /api/profile/certificate?type=membership

    Removes a stored certificate under every allowed extension.
    """
    permission_classes = [IsAuthenticated]

    def delete(self, request):
        user = get_user_context(request)
        if not user:
            return _unauthorized()

        certificate_type = request.query_params.get('type') or storage_service.DEFAULT_CERTIFICATE_TYPE
        if not certificate_type.isalnum():
            raise ValidationError('Invalid certificate type')

        if not storage_service.delete_certificate(user.id, certificate_type):
            return Response(
                {
                    'error': 'StorageError',
                    'message': 'Failed to delete certificate',
                    'status_message': StatusMessage.error('Failed to delete certificate').to_dict(),
                },
                status=status.HTTP_502_BAD_GATEWAY
            )

        return Response({
            'success': True,
            'status_message': StatusMessage.success('Certificate removed').to_dict(),
        })
