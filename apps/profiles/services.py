"""
Profile Services

Write-side operations on the profiles table.
Uses @transaction.atomic for database consistency.
"""
import json
import logging
from uuid import UUID

from django.db import connection, transaction
from django.utils import timezone

from .completion import calculate_step_completion_percentage, get_furthest_section
from .constants import JSONB_COLUMNS, NEW_PROFILE_DEFAULTS, STEP_FIELDS, ProfileStep, UserRole
from .selectors import PROFILE_SELECT, ProfileServiceError, fetch_profile, row_to_profile

logger = logging.getLogger(__name__)


def _step_label(step: ProfileStep) -> str:
    return step.value.replace('_', ' ').lower()


def _placeholder(column: str) -> str:
    return '%s::jsonb' if column in JSONB_COLUMNS else '%s'


def _param(column: str, value):
    if column in JSONB_COLUMNS and value is not None:
        return json.dumps(value)
    return value


@transaction.atomic
def save_profile_step(user_id: UUID, step: ProfileStep, step_data: dict) -> dict:
    """
    Persist one wizard step.

    Creates the profile on first call and patches it afterwards. Every save
    stamps last_completed_section (the furthest step saved so far),
    completion_updated_at and a recomputed profile_completion_percentage.

    Args:
        user_id: auth.users id of the profile owner
        step: The step being saved
        step_data: Column values owned by `step`

    Returns:
        The stored profile

    Raises:
        ValueError: If `step_data` contains columns `step` does not own
        ProfileServiceError: If the database rejects the read or write
    """
    unknown = set(step_data) - set(STEP_FIELDS[step])
    if unknown:
        raise ValueError(f'Fields not owned by {step.value}: {sorted(unknown)}')

    error_message = f'Unable to save {_step_label(step)} information. Please try again.'

    try:
        current_profile = fetch_profile(user_id)

        updates = {
            **step_data,
            'last_completed_section': get_furthest_section(current_profile, step).value,
            'completion_updated_at': timezone.now(),
            'profile_completion_percentage': calculate_step_completion_percentage(
                current_profile, step, step_data
            ),
        }

        with connection.cursor() as cursor:
            if current_profile:
                assignments = ', '.join(
                    f'{column} = {_placeholder(column)}' for column in updates
                )
                params = [_param(column, value) for column, value in updates.items()]
                params.append(str(user_id))

                cursor.execute(f"""
                    UPDATE profiles
                    SET {assignments}, updated_at = NOW()
                    WHERE auth_user_id = %s
                    RETURNING {PROFILE_SELECT}
                """, params)
            else:
                values = {'auth_user_id': str(user_id), **NEW_PROFILE_DEFAULTS, **updates}
                columns = ', '.join(values)
                placeholders = ', '.join(_placeholder(column) for column in values)
                params = [_param(column, value) for column, value in values.items()]

                cursor.execute(f"""
                    INSERT INTO profiles ({columns})
                    VALUES ({placeholders})
                    RETURNING {PROFILE_SELECT}
                """, params)

            row = cursor.fetchone()
    except Exception as e:
        logger.error(f'Failed to save {step.value} step for {user_id}: {e}')
        raise ProfileServiceError(error_message) from e

    if not row:
        logger.error(f'Saving {step.value} step for {user_id} returned no row')
        raise ProfileServiceError(error_message)

    profile = row_to_profile(row)
    logger.info(
        f'Saved {step.value} for {user_id} '
        f'({profile["profile_completion_percentage"]}% complete)'
    )
    return profile


@transaction.atomic
def update_profile_role(user_id: UUID, role: UserRole) -> dict:
    """
    Record the role chosen on the role-selection screen.

    Creates a bare profile when the user has none yet.
    """
    values = {
        'auth_user_id': str(user_id),
        **NEW_PROFILE_DEFAULTS,
        'role': role.value,
    }
    columns = ', '.join(values)
    placeholders = ', '.join(['%s'] * len(values))

    try:
        with connection.cursor() as cursor:
            cursor.execute(f"""
                INSERT INTO profiles ({columns})
                VALUES ({placeholders})
                ON CONFLICT (auth_user_id) DO UPDATE
                SET role = EXCLUDED.role, updated_at = NOW()
                RETURNING {PROFILE_SELECT}
            """, list(values.values()))
            row = cursor.fetchone()
    except Exception as e:
        logger.error(f'Failed to update role for {user_id}: {e}')
        raise ProfileServiceError('Unable to save your role. Please try again.') from e

    logger.info(f'User {user_id} selected role {role.value}')
    return row_to_profile(row)
