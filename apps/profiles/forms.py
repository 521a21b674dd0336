"""
Profile Step Forms

One form per wizard step. A form validates its payload through the step's
serializer, does any side-channel work (uploads, username re-check), saves
only the columns its step owns and hands the stored profile back to the
caller, which then advances the stepper.
"""
import logging
from dataclasses import dataclass
from typing import Optional

from django.conf import settings

from apps.core.authentication import AuthenticatedUser
from apps.core.exceptions import ConflictError, ValidationError
from apps.core.messages import StatusMessage

from . import storage_service, watch
from .availability import DebouncedUsernameCheck, UsernameAvailability, UsernameQuery
from .constants import (
    ProfileStep,
    blank_education_item,
    blank_work_experience,
    step_defaults,
)
from .dynamic_lists import DynamicList, TagList
from .selectors import check_username_availability
from .serializers import (
    EducationSerializer,
    PersonalInfoSerializer,
    ProfessionalSerializer,
    VerificationSerializer,
)
from .services import save_profile_step

logger = logging.getLogger(__name__)


def _or_none(value):
    """Empty strings, zero and missing values are stored as NULL."""
    return value or None


@dataclass
class StepResult:
    step: ProfileStep
    profile: dict
    message: StatusMessage
    availability: Optional[UsernameAvailability] = None


class BaseStepForm:
    step: ProfileStep
    serializer_class = None
    success_text = 'Saved successfully!'

    def __init__(
        self,
        user: AuthenticatedUser,
        existing_profile: dict | None = None,
        data: dict | None = None,
        files: dict | None = None,
    ):
        self.user = user
        self.existing_profile = existing_profile
        self.data = data or {}
        self.files = files or {}
        self.validated_data: dict | None = None
        self.errors: dict = {}

    def initial(self) -> dict:
        """Form values to render, taken from the stored profile where present."""
        values = step_defaults(self.step)
        profile = self.existing_profile or {}
        for key in values:
            if profile.get(key) not in (None, ''):
                values[key] = profile[key]
        return values

    def prepare_data(self, data: dict) -> dict:
        return data

    def is_valid(self) -> bool:
        serializer = self.serializer_class(data=self.prepare_data(dict(self.data)))
        if serializer.is_valid():
            self.validated_data = serializer.validated_data
            self.errors = {}
            return True
        self.validated_data = None
        self.errors = serializer.errors
        return False

    def build_payload(self, data: dict) -> dict:
        raise NotImplementedError

    def submit(self) -> StepResult:
        """
        Validate and persist the step.

        Raises:
            ValidationError: Field errors or a rejected upload
            ConflictError: Username already taken in the chosen location
            ProfileServiceError: The database could not be read or written
        """
        if not self.is_valid():
            raise ValidationError(self.first_error_message(), details=self.errors)

        payload = self.build_payload(dict(self.validated_data))
        profile = save_profile_step(self.user.id, self.step, payload)
        return StepResult(
            step=self.step,
            profile=profile,
            message=StatusMessage.success(self.success_text),
        )

    def first_error_message(self) -> str:
        return _first_message(self.errors) or 'Please correct the highlighted fields'

    def _upload(self, field: str, uploader, **kwargs) -> Optional[str]:
        uploaded = self.files.get(field)
        if uploaded is None:
            return None

        result = uploader(
            self.user.id,
            uploaded.read(),
            uploaded.name,
            uploaded.content_type,
            **kwargs,
        )
        if not result.success:
            raise ValidationError(result.error, details={field: [result.error]})
        return result.url


def _first_message(errors) -> Optional[str]:
    if isinstance(errors, dict):
        for value in errors.values():
            message = _first_message(value)
            if message:
                return message
        return None
    if isinstance(errors, list):
        for value in errors:
            message = _first_message(value)
            if message:
                return message
        return None
    return str(errors) if errors else None


class PersonalInfoForm(BaseStepForm):
    step = ProfileStep.PERSONAL_INFO
    serializer_class = PersonalInfoSerializer
    success_text = 'Personal information saved successfully!'

    def initial(self) -> dict:
        values = super().initial()
        # Prefill names from the OAuth provider for first-time users
        if not values['first_name']:
            values['first_name'] = self.user.first_name
        if not values['last_name']:
            values['last_name'] = self.user.last_name
        return values

    @property
    def persisted_query(self) -> Optional[UsernameQuery]:
        return UsernameQuery.from_profile(self.existing_profile)

    def username_watcher(self, on_result, delay_ms: int | None = None, **kwargs) -> DebouncedUsernameCheck:
        """Debounced availability check bound to this user and their stored triple."""
        if delay_ms is None:
            delay_ms = settings.PROFILE_WIZARD['USERNAME_CHECK_DEBOUNCE_MS']
        return DebouncedUsernameCheck(
            checker=check_username_availability,
            on_result=on_result,
            delay_ms=delay_ms,
            exclude_user_id=str(self.user.id),
            persisted=self.persisted_query,
            **kwargs,
        )

    def watch_username(self, query: UsernameQuery) -> bool:
        """
        Re-arm this user's debounced check with the value being typed.

        The outcome is published for polling; returns False when nothing
        needs checking (incomplete input or the stored triple).
        """
        user_id = str(self.user.id)
        watcher = watch.get_watcher(user_id, lambda: self.username_watcher(
            on_result=lambda q, result: watch.publish_check(user_id, watch.WatchStatus.DONE, q, result),
            on_error=lambda q, e: watch.publish_check(user_id, watch.WatchStatus.ERROR, q),
        ))
        # The stored triple may have changed since the watcher was created
        watcher.persisted = self.persisted_query

        scheduled = watcher.schedule(query)
        status = watch.WatchStatus.PENDING if scheduled else watch.WatchStatus.IDLE
        watch.publish_check(user_id, status, query)
        return scheduled

    def needs_username_check(self, query: UsernameQuery) -> bool:
        return self.existing_profile is None or query != self.persisted_query

    def submit(self) -> StepResult:
        if not self.is_valid():
            raise ValidationError(self.first_error_message(), details=self.errors)

        data = dict(self.validated_data)
        query = UsernameQuery(data['username'], data['state_id'], data['district_id'])

        availability = None
        if self.needs_username_check(query):
            availability = check_username_availability(
                query.username,
                query.state_id,
                query.district_id,
                exclude_user_id=str(self.user.id),
            )
            if not availability.is_available:
                raise ConflictError(
                    'Username is not available in this location. Please choose a different username.',
                    details={
                        'username': ['This username is already taken in the selected location'],
                        **availability.to_dict(),
                    },
                )

        picture_url = self._upload('profile_picture', storage_service.upload_profile_picture)
        if picture_url:
            data['profile_picture_url'] = picture_url

        profile = save_profile_step(self.user.id, self.step, self.build_payload(data))
        return StepResult(
            step=self.step,
            profile=profile,
            message=StatusMessage.success(self.success_text),
            availability=availability,
        )

    def build_payload(self, data: dict) -> dict:
        return {
            'username': data['username'],
            'first_name': data['first_name'],
            'middle_name': _or_none(data.get('middle_name')),
            'last_name': data['last_name'],
            'profile_picture_url': _or_none(data.get('profile_picture_url')),
            'bio': _or_none(data.get('bio')),
            'state_id': data['state_id'],
            'district_id': data['district_id'],
            'language_ids': data['language_ids'],
            'specialization_ids': data['specialization_ids'],
            'phone': data['phone'],
            'whatsapp_available': data.get('whatsapp_available', False),
        }


class VerificationForm(BaseStepForm):
    step = ProfileStep.VERIFICATION
    serializer_class = VerificationSerializer
    success_text = 'Verification details saved successfully!'
    certificate_type = storage_service.DEFAULT_CERTIFICATE_TYPE

    def initial(self) -> dict:
        values = super().initial()
        profile = self.existing_profile or {}
        values['certificate_url'] = profile.get('membership_certificate_url') or ''
        if not values['professional_email']:
            values['professional_email'] = self.user.email or ''
        return values

    def submit(self) -> StepResult:
        if not self.is_valid():
            raise ValidationError(self.first_error_message(), details=self.errors)

        data = dict(self.validated_data)
        if not self.files.get('certificate') and not data.get('certificate_url'):
            raise ValidationError(
                'Please upload your CA membership certificate',
                details={'certificate': ['Please upload your CA membership certificate']},
            )

        certificate_url = self._upload(
            'certificate',
            storage_service.upload_certificate,
            certificate_type=self.certificate_type,
        )
        if certificate_url:
            data['certificate_url'] = certificate_url

        profile = save_profile_step(self.user.id, self.step, self.build_payload(data))
        return StepResult(
            step=self.step,
            profile=profile,
            message=StatusMessage.success(self.success_text),
        )

    def build_payload(self, data: dict) -> dict:
        return {
            'membership_number': data['membership_number'],
            'membership_certificate_url': data['certificate_url'],
            'professional_email': _or_none(data.get('professional_email')),
            'professional_phone': _or_none(data.get('professional_phone')),
        }


class ProfessionalForm(BaseStepForm):
    step = ProfileStep.PROFESSIONAL
    serializer_class = ProfessionalSerializer
    success_text = 'Professional details saved successfully!'

    def initial(self) -> dict:
        values = super().initial()
        profile = self.existing_profile or {}
        experiences = DynamicList(profile.get('work_experiences') or [], factory=blank_work_experience)
        if not len(experiences):
            experiences.append()
        values['experiences'] = experiences.to_list()
        return values

    def prepare_data(self, data: dict) -> dict:
        if isinstance(data.get('practice_areas'), list):
            data['practice_areas'] = TagList(data['practice_areas']).to_list()
        return data

    def build_payload(self, data: dict) -> dict:
        return {
            'current_firm': _or_none(data.get('current_firm')),
            'years_of_experience': _or_none(data.get('years_of_experience')),
            'practice_areas': data.get('practice_areas', []),
            'professional_achievements': _or_none(data.get('professional_achievements')),
            'consultation_fee': _or_none(data.get('consultation_fee')),
            'work_experiences': [dict(experience) for experience in data.get('experiences', [])],
        }


class EducationForm(BaseStepForm):
    step = ProfileStep.EDUCATION
    serializer_class = EducationSerializer
    success_text = 'Education details saved successfully!'

    def initial(self) -> dict:
        values = super().initial()
        qualifications = DynamicList(values['other_qualifications'], factory=blank_education_item)
        if not len(qualifications):
            qualifications.append()
        values['other_qualifications'] = qualifications.to_list()
        return values

    def prepare_data(self, data: dict) -> dict:
        # Untouched blank rows are dropped rather than failing validation
        if isinstance(data.get('other_qualifications'), list):
            data['other_qualifications'] = [
                item for item in data['other_qualifications']
                if not isinstance(item, dict)
                or (item.get('institute_name') or '').strip()
                or (item.get('degree') or '').strip()
            ]
        for field in ('certifications', 'professional_memberships'):
            if isinstance(data.get(field), list):
                data[field] = TagList(data[field]).to_list()
        return data

    def build_payload(self, data: dict) -> dict:
        return {
            'ca_qualification': dict(data['ca_qualification']),
            'other_qualifications': [
                dict(item) for item in data.get('other_qualifications', [])
                if item.get('institute_name') and item.get('degree')
            ],
            'certifications': data.get('certifications', []),
            'professional_memberships': data.get('professional_memberships', []),
        }


STEP_FORMS: dict[ProfileStep, type[BaseStepForm]] = {
    ProfileStep.PERSONAL_INFO: PersonalInfoForm,
    ProfileStep.VERIFICATION: VerificationForm,
    ProfileStep.PROFESSIONAL: ProfessionalForm,
    ProfileStep.EDUCATION: EducationForm,
}


def get_step_form(step: ProfileStep) -> type[BaseStepForm]:
    return STEP_FORMS[step]
