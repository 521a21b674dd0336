"""
Profile Wizard Serializers

One validation schema per wizard step. Every step form validates through these
classes; no step applies rules of its own outside this module.
"""
import re
from datetime import date

from rest_framework import serializers

from .constants import MIN_COMPLETION_YEAR, UserRole

USERNAME_REGEX = r'^[a-zA-Z0-9_-]+$'
PHONE_REGEX = r'^[+]?[0-9\s\-()]+$'
MEMBERSHIP_NUMBER_REGEX = r'^[A-Z0-9]+$'


def normalize_membership_number(value: str) -> str:
    """Uppercase and strip everything that is not a letter or digit."""
    return re.sub(r'[^A-Z0-9]', '', (value or '').upper())


def _required_text(message: str, min_length: int = 2, **kwargs) -> serializers.CharField:
    return serializers.CharField(
        min_length=min_length,
        error_messages={
            'required': message,
            'blank': message,
            'null': message,
            'min_length': message,
        },
        **kwargs,
    )


def _optional_text(max_length: int | None = None, message: str | None = None) -> serializers.CharField:
    error_messages = {}
    if max_length is not None:
        error_messages['max_length'] = message or f'Must be less than {max_length} characters'
    return serializers.CharField(
        required=False,
        allow_blank=True,
        allow_null=True,
        max_length=max_length,
        error_messages=error_messages,
    )


def _required_selection(field_name: str) -> serializers.IntegerField:
    message = f'Please select a {field_name.lower()}'
    return serializers.IntegerField(
        min_value=1,
        error_messages={
            'required': message,
            'null': message,
            'invalid': message,
            'min_value': message,
        },
    )


def _required_id_list(field_name: str) -> serializers.ListField:
    message = f'Select at least one {field_name.lower()}'
    return serializers.ListField(
        child=serializers.IntegerField(min_value=1),
        min_length=1,
        error_messages={
            'required': message,
            'null': message,
            'empty': message,
            'min_length': message,
        },
    )


def _phone(required: bool = True) -> serializers.RegexField:
    return serializers.RegexField(
        PHONE_REGEX,
        min_length=10,
        required=required,
        allow_blank=not required,
        allow_null=not required,
        error_messages={
            'required': 'Phone number must be at least 10 digits',
            'blank': 'Phone number must be at least 10 digits',
            'min_length': 'Phone number must be at least 10 digits',
            'invalid': 'Invalid phone number format',
        },
    )


def _tag_list() -> serializers.ListField:
    return serializers.ListField(
        child=serializers.CharField(allow_blank=True),
        required=False,
        default=list,
    )


class PersonalInfoSerializer(serializers.Serializer):
    username = serializers.RegexField(
        USERNAME_REGEX,
        min_length=3,
        max_length=50,
        error_messages={
            'required': 'Username must be at least 3 characters',
            'blank': 'Username must be at least 3 characters',
            'min_length': 'Username must be at least 3 characters',
            'max_length': 'Username must be less than 50 characters',
            'invalid': 'Username can only contain letters, numbers, hyphens and underscores',
        },
    )
    first_name = _required_text('First name must be at least 2 characters')
    middle_name = _optional_text()
    last_name = _required_text('Last name must be at least 2 characters')
    profile_picture_url = _optional_text()
    bio = _optional_text(500, 'Bio must be less than 500 characters')
    state_id = _required_selection('State')
    district_id = _required_selection('District')
    language_ids = _required_id_list('Language')
    specialization_ids = _required_id_list('Specialization')
    phone = _phone()
    whatsapp_available = serializers.BooleanField(required=False, default=False)


class VerificationSerializer(serializers.Serializer):
    membership_number = serializers.RegexField(
        MEMBERSHIP_NUMBER_REGEX,
        min_length=6,
        error_messages={
            'required': 'Membership number must be at least 6 characters',
            'blank': 'Membership number must be at least 6 characters',
            'min_length': 'Membership number must be at least 6 characters',
            'invalid': 'Membership number should contain only uppercase letters and numbers',
        },
    )
    certificate_url = _optional_text()
    professional_email = serializers.EmailField(
        required=False,
        allow_blank=True,
        allow_null=True,
        error_messages={'invalid': 'Please enter a valid professional email'},
    )
    professional_phone = _phone(required=False)

    def to_internal_value(self, data):
        # Membership numbers are typed loosely ("ab-123 456"); store them canonically.
        if hasattr(data, 'copy') and isinstance(data.get('membership_number'), str):
            data = data.copy()
            data['membership_number'] = normalize_membership_number(data['membership_number'])
        return super().to_internal_value(data)


class WorkExperienceSerializer(serializers.Serializer):
    title = _required_text('Job title is required')
    company_name = _required_text('Company name is required')
    location = _optional_text()
    is_current = serializers.BooleanField(default=False)
    start_date = _required_text('Start date is required', min_length=1)
    end_date = _optional_text()
    description = _optional_text()

    def validate(self, attrs):
        if not attrs.get('is_current') and not attrs.get('end_date'):
            raise serializers.ValidationError(
                {'end_date': 'End date is required for non-current positions'}
            )
        return attrs


class ProfessionalSerializer(serializers.Serializer):
    current_firm = _optional_text()
    years_of_experience = serializers.IntegerField(
        required=False,
        allow_null=True,
        min_value=0,
        error_messages={'min_value': 'Years of experience must be 0 or more'},
    )
    practice_areas = _tag_list()
    professional_achievements = _optional_text(1000, 'Achievements must be less than 1000 characters')
    consultation_fee = serializers.FloatField(
        required=False,
        allow_null=True,
        min_value=0,
        error_messages={'min_value': 'Consultation fee must be 0 or more'},
    )
    experiences = WorkExperienceSerializer(many=True, required=False, default=list)


class EducationItemSerializer(serializers.Serializer):
    institute_name = _required_text('Institute name is required')
    degree = _required_text('Degree is required')
    field_of_study = _optional_text()
    start_date = _optional_text()
    end_date = _optional_text()
    grade = _optional_text()
    description = _optional_text()


class CAQualificationSerializer(serializers.Serializer):
    institute_name = _required_text('Institute name is required')
    completion_year = serializers.IntegerField(
        error_messages={
            'required': 'Please enter a valid year',
            'invalid': 'Please enter a valid year',
        },
    )
    rank = _optional_text()

    def validate_completion_year(self, value):
        if value < MIN_COMPLETION_YEAR:
            raise serializers.ValidationError('Please enter a valid year')
        if value > date.today().year:
            raise serializers.ValidationError('Cannot be a future year')
        return value


class EducationSerializer(serializers.Serializer):
    ca_qualification = CAQualificationSerializer()
    other_qualifications = EducationItemSerializer(many=True, required=False, default=list)
    certifications = _tag_list()
    professional_memberships = _tag_list()


class UsernameAvailabilityQuerySerializer(serializers.Serializer):
    username = serializers.CharField(max_length=50, trim_whitespace=True)
    state_id = serializers.IntegerField(min_value=0)
    district_id = serializers.IntegerField(min_value=0)


class RoleSelectionSerializer(serializers.Serializer):
    role = serializers.ChoiceField(
        choices=[role.value for role in UserRole],
        error_messages={'invalid_choice': 'Please choose either accountant or customer'},
    )
