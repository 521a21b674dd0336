"""
Profile Wizard Constants

Step table, roles and per-step field ownership for the CA profile wizard.
"""
from dataclasses import dataclass
from datetime import date
from enum import Enum


class ProfileStep(str, Enum):
    PERSONAL_INFO = 'PERSONAL_INFO'
    VERIFICATION = 'VERIFICATION'
    PROFESSIONAL = 'PROFESSIONAL'
    EDUCATION = 'EDUCATION'

    @classmethod
    def parse(cls, value) -> 'ProfileStep | None':
        """Return the matching step for a query-string value, or None."""
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError:
            return None


class UserRole(str, Enum):
    ACCOUNTANT = 'accountant'
    CUSTOMER = 'customer'


@dataclass(frozen=True)
class StepConfig:
    step: ProfileStep
    title: str
    short_title: str
    description: str
    required: bool
    weight: int


# Order matters: gating and auto-advance follow this sequence.
STEP_CONFIG: list[StepConfig] = [
    StepConfig(
        step=ProfileStep.PERSONAL_INFO,
        title='Personal Information',
        short_title='Personal Info',
        description='Basic details and profile setup',
        required=True,
        weight=40,
    ),
    StepConfig(
        step=ProfileStep.VERIFICATION,
        title='CA Verification',
        short_title='CA Verification',
        description='Professional credentials and documents',
        required=True,
        weight=30,
    ),
    StepConfig(
        step=ProfileStep.PROFESSIONAL,
        title='Professional Details',
        short_title='Professional',
        description='Work experience and expertise',
        required=False,
        weight=20,
    ),
    StepConfig(
        step=ProfileStep.EDUCATION,
        title='Education & Qualifications',
        short_title='Education',
        description='Academic background and certifications',
        required=False,
        weight=10,
    ),
]

STEP_ORDER: list[ProfileStep] = [config.step for config in STEP_CONFIG]

TOTAL_WEIGHT = sum(config.weight for config in STEP_CONFIG)


def get_step_config(step: ProfileStep) -> StepConfig:
    return STEP_CONFIG[STEP_ORDER.index(step)]


def get_step_title(step: ProfileStep) -> str:
    return get_step_config(step).title


# Routes the client navigates to
AUTH_PATH = '/auth'
ROLE_SELECTION_PATH = '/role-selection'
PROFILE_PATH = '/profile'
PROFILE_VIEW_PATH = '/profile/view'
DASHBOARD_PATH = '/dashboard'

# Columns each step is allowed to write. save_profile_step rejects anything else.
STEP_FIELDS: dict[ProfileStep, tuple[str, ...]] = {
    ProfileStep.PERSONAL_INFO: (
        'username',
        'first_name',
        'middle_name',
        'last_name',
        'profile_picture_url',
        'bio',
        'state_id',
        'district_id',
        'language_ids',
        'specialization_ids',
        'phone',
        'whatsapp_available',
    ),
    ProfileStep.VERIFICATION: (
        'membership_number',
        'membership_certificate_url',
        'professional_email',
        'professional_phone',
    ),
    ProfileStep.PROFESSIONAL: (
        'current_firm',
        'years_of_experience',
        'practice_areas',
        'professional_achievements',
        'consultation_fee',
        'work_experiences',
    ),
    ProfileStep.EDUCATION: (
        'ca_qualification',
        'other_qualifications',
        'certifications',
        'professional_memberships',
    ),
}

BOOKKEEPING_FIELDS = (
    'last_completed_section',
    'profile_completion_percentage',
    'completion_updated_at',
)

# Postgres jsonb columns need an explicit cast when written from raw SQL
JSONB_COLUMNS = frozenset({'work_experiences', 'ca_qualification', 'other_qualifications'})

# Defaults applied when the first step submission creates the profile row
NEW_PROFILE_DEFAULTS = {
    'role': UserRole.ACCOUNTANT.value,
    'country': 'India',
    'language_ids': [],
    'specialization_ids': [],
    'whatsapp_available': False,
    'is_active': True,
}

CA_INSTITUTE_NAME = 'Institute of Chartered Accountants of India (ICAI)'

MIN_COMPLETION_YEAR = 1980

USERNAME_SUGGESTION_PATTERNS = (
    '{username}ca',
    '{username}123',
    '{username}2024',
    'ca{username}',
    '{username}audit',
)
MAX_USERNAME_SUGGESTIONS = 3


def blank_work_experience() -> dict:
    return {
        'title': '',
        'company_name': '',
        'location': '',
        'is_current': False,
        'start_date': '',
        'end_date': '',
        'description': '',
    }


def blank_education_item() -> dict:
    return {
        'institute_name': '',
        'degree': '',
        'field_of_study': '',
        'start_date': '',
        'end_date': '',
        'grade': '',
        'description': '',
    }


def step_defaults(step: ProfileStep) -> dict:
    """Initial form values for a step when the profile has nothing stored yet."""
    if step == ProfileStep.PERSONAL_INFO:
        return {
            'username': '',
            'first_name': '',
            'middle_name': '',
            'last_name': '',
            'profile_picture_url': '',
            'bio': '',
            'state_id': 0,
            'district_id': 0,
            'language_ids': [],
            'specialization_ids': [],
            'phone': '',
            'whatsapp_available': False,
        }
    if step == ProfileStep.VERIFICATION:
        return {
            'membership_number': '',
            'certificate_url': '',
            'professional_email': '',
            'professional_phone': '',
        }
    if step == ProfileStep.PROFESSIONAL:
        return {
            'current_firm': '',
            'years_of_experience': 0,
            'practice_areas': [],
            'professional_achievements': '',
            'consultation_fee': 0,
            'experiences': [blank_work_experience()],
        }
    return {
        'ca_qualification': {
            'institute_name': CA_INSTITUTE_NAME,
            'completion_year': date.today().year,
            'rank': '',
        },
        'other_qualifications': [blank_education_item()],
        'certifications': [],
        'professional_memberships': [],
    }
