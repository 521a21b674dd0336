"""
Profile Factories

Profiles live in Supabase and are handled as plain dicts, so the profile
factories build dicts (and selector rows); the location factories build
State/District model instances.
"""
import uuid
from datetime import datetime, timezone

import factory
from faker import Faker

from apps.profiles.constants import CA_INSTITUTE_NAME
from apps.profiles.models import District, State
from apps.profiles.selectors import PROFILE_COLUMNS

fake = Faker('en_IN')


class ProfileFactory(factory.DictFactory):
    """
    Accountant profile with every step filled in.

    personal_info_only() builds one that has only finished the first step.
    """
    id = factory.LazyFunction(lambda: str(uuid.uuid4()))
    auth_user_id = factory.LazyFunction(lambda: str(uuid.uuid4()))
    role = 'accountant'
    username = factory.Sequence(lambda n: f'ca_user{n}')
    first_name = factory.LazyAttribute(lambda _: fake.first_name())
    middle_name = None
    last_name = factory.LazyAttribute(lambda _: fake.last_name())
    profile_picture_url = None
    bio = factory.LazyAttribute(lambda _: fake.sentence())
    country = 'India'
    state_id = 5
    district_id = 12
    language_ids = factory.LazyFunction(lambda: [1, 2])
    specialization_ids = factory.LazyFunction(lambda: [3])
    phone = '+91 98765 43210'
    whatsapp_available = True
    membership_number = 'ABC123456'
    membership_certificate_url = None
    professional_email = factory.LazyAttribute(lambda _: fake.email())
    professional_phone = None
    current_firm = factory.LazyAttribute(lambda _: fake.company())
    years_of_experience = 8
    practice_areas = factory.LazyFunction(lambda: ['GST', 'Audit'])
    professional_achievements = None
    consultation_fee = 1500.0
    work_experiences = factory.LazyFunction(list)
    ca_qualification = factory.LazyFunction(
        lambda: {'institute_name': CA_INSTITUTE_NAME, 'completion_year': 2015, 'rank': ''}
    )
    other_qualifications = factory.LazyFunction(list)
    certifications = factory.LazyFunction(list)
    professional_memberships = factory.LazyFunction(list)
    is_active = True
    last_completed_section = 'EDUCATION'
    profile_completion_percentage = 100
    completion_updated_at = None
    created_at = None
    updated_at = None


def personal_info_only(**overrides) -> dict:
    """Profile with only PERSONAL_INFO satisfied."""
    values = {
        'membership_number': None,
        'current_firm': None,
        'years_of_experience': None,
        'practice_areas': [],
        'work_experiences': [],
        'ca_qualification': None,
        'last_completed_section': 'PERSONAL_INFO',
        'profile_completion_percentage': 40,
    }
    values.update(overrides)
    return ProfileFactory(**values)


def profile_row(**overrides) -> tuple:
    """A `SELECT PROFILE_SELECT` row, as the database cursor returns it."""
    profile = ProfileFactory(**overrides)
    profile['id'] = uuid.UUID(profile['id'])
    profile['auth_user_id'] = uuid.UUID(profile['auth_user_id'])
    if profile['created_at'] is None:
        profile['created_at'] = datetime(2025, 1, 2, 10, 30, tzinfo=timezone.utc)
    return tuple(profile[column] for column in PROFILE_COLUMNS)


class StateFactory(factory.django.DjangoModelFactory):
    class Meta:
        model = State

    name = factory.Sequence(lambda n: f'State {n}')
    code = factory.Sequence(lambda n: f'S{n}')


class DistrictFactory(factory.django.DjangoModelFactory):
    class Meta:
        model = District

    name = factory.Sequence(lambda n: f'{fake.city()} {n}')
    state = factory.SubFactory(StateFactory)
