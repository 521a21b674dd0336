"""
Profile Selectors

Read-side queries for profiles, username availability and reference data.
Remote failures are logged and re-raised as ProfileServiceError carrying a
message that can be shown to the user as-is.
"""
import json
import logging
from decimal import Decimal
from uuid import UUID

from django.conf import settings
from django.core.cache import cache
from django.db import connection

from apps.core.exceptions import ServiceUnavailableError
from apps.core.utils import isoformat_or_none

from .availability import UsernameAvailability
from .constants import MAX_USERNAME_SUGGESTIONS, USERNAME_SUGGESTION_PATTERNS

logger = logging.getLogger(__name__)

PROFILE_COLUMNS = (
    'id',
    'auth_user_id',
    'role',
    'username',
    'first_name',
    'middle_name',
    'last_name',
    'profile_picture_url',
    'bio',
    'country',
    'state_id',
    'district_id',
    'language_ids',
    'specialization_ids',
    'phone',
    'whatsapp_available',
    'membership_number',
    'membership_certificate_url',
    'professional_email',
    'professional_phone',
    'current_firm',
    'years_of_experience',
    'practice_areas',
    'professional_achievements',
    'consultation_fee',
    'work_experiences',
    'ca_qualification',
    'other_qualifications',
    'certifications',
    'professional_memberships',
    'is_active',
    'last_completed_section',
    'profile_completion_percentage',
    'completion_updated_at',
    'created_at',
    'updated_at',
)

PROFILE_SELECT = ', '.join(PROFILE_COLUMNS)

_ARRAY_COLUMNS = (
    'language_ids',
    'specialization_ids',
    'practice_areas',
    'certifications',
    'professional_memberships',
)

_TIMESTAMP_COLUMNS = ('completion_updated_at', 'created_at', 'updated_at')


class ProfileServiceError(ServiceUnavailableError):
    """A read or write against the profile store failed."""


def _load_json(value):
    if isinstance(value, str):
        return json.loads(value)
    return value


def _reference_data_timeout() -> int:
    return settings.PROFILE_WIZARD['REFERENCE_DATA_TIMEOUT']


def row_to_profile(row) -> dict:
    """Map a SELECT {PROFILE_SELECT} row to the profile dict used across the app."""
    profile = dict(zip(PROFILE_COLUMNS, row))
    profile['id'] = str(profile['id']) if profile['id'] else None
    profile['auth_user_id'] = str(profile['auth_user_id']) if profile['auth_user_id'] else None
    for column in _ARRAY_COLUMNS:
        profile[column] = list(profile[column] or [])
    profile['work_experiences'] = _load_json(profile['work_experiences']) or []
    profile['ca_qualification'] = _load_json(profile['ca_qualification'])
    profile['other_qualifications'] = _load_json(profile['other_qualifications']) or []
    if isinstance(profile['consultation_fee'], Decimal):
        profile['consultation_fee'] = float(profile['consultation_fee'])
    for column in _TIMESTAMP_COLUMNS:
        profile[column] = isoformat_or_none(profile[column])
    return profile


def fetch_profile(user_id: UUID) -> dict | None:
    """
    Get the profile row owned by an auth user.

    Args:
        user_id: auth.users id of the signed-in user

    Returns:
        Profile dict or None if the user has not created one yet
    """
    try:
        with connection.cursor() as cursor:
            cursor.execute(f"""
                SELECT {PROFILE_SELECT}
                FROM profiles
                WHERE auth_user_id = %s
                LIMIT 1
            """, [str(user_id)])
            row = cursor.fetchone()
    except Exception as e:
        logger.error(f'Failed to fetch profile for {user_id}: {e}')
        raise ProfileServiceError('Unable to load profile. Please try again.') from e

    if not row:
        return None

    return row_to_profile(row)


def fetch_profile_details(user_id: UUID) -> dict | None:
    """
    Get the denormalised profile (location, language and specialization names)
    from the profile_details view.
    """
    try:
        with connection.cursor() as cursor:
            cursor.execute("""
                SELECT *
                FROM profile_details
                WHERE auth_user_id = %s
                LIMIT 1
            """, [str(user_id)])
            row = cursor.fetchone()
            columns = [col[0] for col in cursor.description] if row else []
    except Exception as e:
        logger.error(f'Failed to fetch profile details for {user_id}: {e}')
        raise ProfileServiceError('Unable to load profile details. Please try again.') from e

    if not row:
        return None

    details = dict(zip(columns, row))
    for key, value in details.items():
        if isinstance(value, UUID):
            details[key] = str(value)
        elif isinstance(value, Decimal):
            details[key] = float(value)
        elif hasattr(value, 'isoformat'):
            details[key] = value.isoformat()
    return details


def _is_username_taken(
    username: str,
    state_id: int,
    district_id: int,
    exclude_user_id: UUID | str | None = None,
) -> bool:
    query = """
        SELECT 1
        FROM profiles
        WHERE username = %s
        AND state_id = %s
        AND district_id = %s
    """
    params = [username, state_id, district_id]

    if exclude_user_id:
        query += ' AND auth_user_id <> %s'
        params.append(str(exclude_user_id))

    with connection.cursor() as cursor:
        cursor.execute(query + ' LIMIT 1', params)
        row = cursor.fetchone()

    return row is not None


def get_profile_url_slug(username: str, state_id: int, district_id: int) -> str | None:
    """
    Public profile path preview: {state}/{district}/{username}, names lowercased.

    Returns None when the district does not belong to the state.
    """
    with connection.cursor() as cursor:
        cursor.execute("""
            SELECT s.name, d.name
            FROM states s
            JOIN districts d ON d.state_id = s.id
            WHERE s.id = %s AND d.id = %s
            LIMIT 1
        """, [state_id, district_id])
        row = cursor.fetchone()

    if not row:
        return None

    return f'{row[0].lower()}/{row[1].lower()}/{username}'


def generate_username_suggestions(
    username: str,
    state_id: int,
    district_id: int,
    exclude_user_id: UUID | str | None = None,
) -> list[str]:
    """Up to three variants of `username` that are free in the same location."""
    suggestions = []
    for pattern in USERNAME_SUGGESTION_PATTERNS:
        candidate = pattern.format(username=username)
        if not _is_username_taken(candidate, state_id, district_id, exclude_user_id):
            suggestions.append(candidate)
        if len(suggestions) >= MAX_USERNAME_SUGGESTIONS:
            break
    return suggestions


def check_username_availability(
    username: str,
    state_id: int,
    district_id: int,
    exclude_user_id: UUID | str | None = None,
) -> UsernameAvailability:
    """
    Check whether `username` is free within (state, district).

    Args:
        username: Requested username
        state_id: State the profile is listed under
        district_id: District the profile is listed under
        exclude_user_id: Auth user whose own row should not count as a clash

    Returns:
        UsernameAvailability with suggestions when taken
    """
    try:
        is_available = not _is_username_taken(username, state_id, district_id, exclude_user_id)
        profile_url = get_profile_url_slug(username, state_id, district_id)
        suggested = [] if is_available else generate_username_suggestions(
            username, state_id, district_id, exclude_user_id
        )
    except Exception as e:
        logger.error(f'Failed to check username availability for {username}: {e}')
        raise ProfileServiceError('Unable to verify username availability. Please try again.') from e

    return UsernameAvailability(
        is_available=is_available,
        suggested=suggested,
        profile_url=profile_url,
    )


def fetch_languages() -> list[dict]:
    """Active languages ordered by name. Cached."""
    cache_key = 'profiles:languages'
    cached = cache.get(cache_key)
    if cached is not None:
        return cached

    try:
        with connection.cursor() as cursor:
            cursor.execute("""
                SELECT id, name
                FROM languages
                WHERE is_active = true
                ORDER BY name
            """)
            rows = cursor.fetchall()
    except Exception as e:
        logger.error(f'Failed to fetch languages: {e}')
        raise ProfileServiceError('Unable to load languages. Please try again.') from e

    languages = [{'id': row[0], 'name': row[1]} for row in rows]
    cache.set(cache_key, languages, _reference_data_timeout())
    return languages


def fetch_specializations() -> list[dict]:
    """Active specializations with their category, in display order. Cached."""
    cache_key = 'profiles:specializations'
    cached = cache.get(cache_key)
    if cached is not None:
        return cached

    try:
        with connection.cursor() as cursor:
            cursor.execute("""
                SELECT id, name, category_id, category_name
                FROM specializations_with_categories
                WHERE is_active = true
                ORDER BY category_display_order, display_order
            """)
            rows = cursor.fetchall()
    except Exception as e:
        logger.error(f'Failed to fetch specializations: {e}')
        raise ProfileServiceError('Unable to load specializations. Please try again.') from e

    specializations = [
        {
            'id': row[0],
            'name': row[1],
            'category_id': row[2],
            'category_name': row[3],
        }
        for row in rows
    ]
    cache.set(cache_key, specializations, _reference_data_timeout())
    return specializations


def fetch_states() -> list[dict]:
    cache_key = 'profiles:states'
    cached = cache.get(cache_key)
    if cached is not None:
        return cached

    try:
        with connection.cursor() as cursor:
            cursor.execute("""
                SELECT id, name, code
                FROM states
                ORDER BY name ASC
            """)
            rows = cursor.fetchall()
    except Exception as e:
        logger.error(f'Error fetching states: {e}')
        raise ProfileServiceError('Unable to load states. Please try again.') from e

    states = [{'id': row[0], 'name': row[1], 'code': row[2]} for row in rows]
    cache.set(cache_key, states, _reference_data_timeout())
    return states


def fetch_districts(state_id: int) -> list[dict]:
    cache_key = f'profiles:districts:{state_id}'
    cached = cache.get(cache_key)
    if cached is not None:
        return cached

    try:
        with connection.cursor() as cursor:
            cursor.execute("""
                SELECT id, name, state_id
                FROM districts
                WHERE state_id = %s
                ORDER BY name ASC
            """, [state_id])
            rows = cursor.fetchall()
    except Exception as e:
        logger.error(f'Error fetching districts for state {state_id}: {e}')
        raise ProfileServiceError('Unable to load districts. Please try again.') from e

    districts = [{'id': row[0], 'name': row[1], 'state_id': row[2]} for row in rows]
    cache.set(cache_key, districts, _reference_data_timeout())
    return districts
