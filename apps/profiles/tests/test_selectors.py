"""
Profile Selector Tests

Database access is mocked at the connection; these tests check row mapping,
the per-location username rule and how failures surface.
"""
import json
import uuid
from decimal import Decimal
from unittest.mock import MagicMock, patch

from django.core.cache import cache
from django.test import SimpleTestCase

from apps.profiles.selectors import (
    ProfileServiceError,
    check_username_availability,
    fetch_districts,
    fetch_languages,
    fetch_profile,
    fetch_profile_details,
    generate_username_suggestions,
    row_to_profile,
)
from tests.factories import profile_row


def mock_cursor_for(mock_connection):
    cursor = MagicMock()
    mock_connection.cursor.return_value.__enter__.return_value = cursor
    return cursor


class RowToProfileTests(SimpleTestCase):

    def test_maps_columns_and_normalises_types(self):
        experiences = [{'title': 'Partner', 'company_name': 'Sharma & Co'}]
        row = profile_row(
            consultation_fee=Decimal('1500.50'),
            work_experiences=json.dumps(experiences),
            certifications=None,
        )

        profile = row_to_profile(row)

        self.assertIsInstance(profile['id'], str)
        self.assertIsInstance(profile['auth_user_id'], str)
        self.assertEqual(profile['consultation_fee'], 1500.5)
        self.assertEqual(profile['work_experiences'], experiences)
        self.assertEqual(profile['certifications'], [])
        self.assertEqual(profile['created_at'], '2025-01-02T10:30:00+00:00')
        self.assertIsNone(profile['updated_at'])


class FetchProfileTests(SimpleTestCase):

    @patch('apps.profiles.selectors.connection')
    def test_returns_profile(self, mock_connection):
        user_id = uuid.uuid4()
        cursor = mock_cursor_for(mock_connection)
        cursor.fetchone.return_value = profile_row(auth_user_id=str(user_id), username='ca_jane')

        profile = fetch_profile(user_id)

        self.assertEqual(profile['username'], 'ca_jane')
        self.assertEqual(profile['auth_user_id'], str(user_id))
        self.assertEqual(cursor.execute.call_args.args[1], [str(user_id)])

    @patch('apps.profiles.selectors.connection')
    def test_returns_none_without_row(self, mock_connection):
        mock_cursor_for(mock_connection).fetchone.return_value = None
        self.assertIsNone(fetch_profile(uuid.uuid4()))

    @patch('apps.profiles.selectors.connection')
    def test_database_error_is_wrapped(self, mock_connection):
        mock_cursor_for(mock_connection).execute.side_effect = Exception('connection reset')

        with self.assertRaises(ProfileServiceError) as ctx:
            fetch_profile(uuid.uuid4())

        self.assertEqual(ctx.exception.message, 'Unable to load profile. Please try again.')
        self.assertEqual(ctx.exception.status_code, 503)

    @patch('apps.profiles.selectors.connection')
    def test_profile_details_uses_column_names(self, mock_connection):
        cursor = mock_cursor_for(mock_connection)
        profile_id = uuid.uuid4()
        cursor.fetchone.return_value = (profile_id, 'ca_jane', 'Maharashtra', Decimal('999.00'))
        cursor.description = [('id',), ('username',), ('state_name',), ('consultation_fee',)]

        details = fetch_profile_details(uuid.uuid4())

        self.assertEqual(details, {
            'id': str(profile_id),
            'username': 'ca_jane',
            'state_name': 'Maharashtra',
            'consultation_fee': 999.0,
        })


class UsernameAvailabilityTests(SimpleTestCase):
    """ca_jane is taken in Pune (state 5, district 12) and free elsewhere."""

    def setUp(self):
        self.taken = {('ca_jane', 5, 12), ('ca_janeca', 5, 12)}

    def _execute(self, cursor):
        def execute(sql, params=None):
            if 'FROM profiles' in sql:
                username, state_id, district_id = params[:3]
                cursor.fetchone.return_value = (
                    (1,) if (username, state_id, district_id) in self.taken else None
                )
            else:
                state_id, district_id = params
                cursor.fetchone.return_value = (
                    ('Maharashtra', 'Pune') if (state_id, district_id) == (5, 12) else None
                )
        return execute

    @patch('apps.profiles.selectors.connection')
    def test_taken_username_gets_suggestions(self, mock_connection):
        cursor = mock_cursor_for(mock_connection)
        cursor.execute.side_effect = self._execute(cursor)

        result = check_username_availability('ca_jane', 5, 12)

        self.assertFalse(result.is_available)
        self.assertEqual(result.suggested, ['ca_jane123', 'ca_jane2024', 'caca_jane'])
        self.assertEqual(result.profile_url, 'maharashtra/pune/ca_jane')

    @patch('apps.profiles.selectors.connection')
    def test_same_username_free_in_another_district(self, mock_connection):
        cursor = mock_cursor_for(mock_connection)
        cursor.execute.side_effect = self._execute(cursor)

        result = check_username_availability('ca_jane', 5, 13)

        self.assertTrue(result.is_available)
        self.assertEqual(result.suggested, [])
        self.assertIsNone(result.profile_url)

    @patch('apps.profiles.selectors.connection')
    def test_own_row_is_excluded(self, mock_connection):
        cursor = mock_cursor_for(mock_connection)
        cursor.fetchone.return_value = None

        check_username_availability('ca_jane', 5, 12, exclude_user_id='user-1')

        first_sql, first_params = cursor.execute.call_args_list[0].args
        self.assertIn('auth_user_id <> %s', first_sql)
        self.assertEqual(first_params, ['ca_jane', 5, 12, 'user-1'])

    @patch('apps.profiles.selectors.connection')
    def test_suggestions_are_verified_with_the_same_exclusion(self, mock_connection):
        cursor = mock_cursor_for(mock_connection)
        cursor.fetchone.return_value = None

        generate_username_suggestions('ca_jane', 5, 12, exclude_user_id='user-1')

        for call in cursor.execute.call_args_list:
            sql, params = call.args
            self.assertIn('auth_user_id <> %s', sql)
            self.assertEqual(params[-1], 'user-1')

    @patch('apps.profiles.selectors.connection')
    def test_suggestions_are_capped_at_three(self, mock_connection):
        mock_cursor_for(mock_connection).fetchone.return_value = None

        suggestions = generate_username_suggestions('ca_jane', 5, 12)

        self.assertEqual(suggestions, ['ca_janeca', 'ca_jane123', 'ca_jane2024'])

    @patch('apps.profiles.selectors.connection')
    def test_failure_is_reported(self, mock_connection):
        mock_cursor_for(mock_connection).execute.side_effect = Exception('timeout')

        with self.assertRaises(ProfileServiceError) as ctx:
            check_username_availability('ca_jane', 5, 12)

        self.assertEqual(
            ctx.exception.message,
            'Unable to verify username availability. Please try again.',
        )


class ReferenceDataTests(SimpleTestCase):

    def setUp(self):
        cache.clear()

    @patch('apps.profiles.selectors.connection')
    def test_languages_are_cached(self, mock_connection):
        cursor = mock_cursor_for(mock_connection)
        cursor.fetchall.return_value = [(1, 'English'), (2, 'Hindi')]

        first = fetch_languages()
        second = fetch_languages()

        self.assertEqual(first, [{'id': 1, 'name': 'English'}, {'id': 2, 'name': 'Hindi'}])
        self.assertEqual(second, first)
        self.assertEqual(cursor.execute.call_count, 1)

    @patch('apps.profiles.selectors.connection')
    def test_districts_are_cached_per_state(self, mock_connection):
        cursor = mock_cursor_for(mock_connection)
        cursor.fetchall.side_effect = [
            [(12, 'Pune', 5)],
            [(40, 'Nagpur', 6)],
        ]

        self.assertEqual(fetch_districts(5), [{'id': 12, 'name': 'Pune', 'state_id': 5}])
        self.assertEqual(fetch_districts(6), [{'id': 40, 'name': 'Nagpur', 'state_id': 6}])
        self.assertEqual(fetch_districts(5), [{'id': 12, 'name': 'Pune', 'state_id': 5}])
        self.assertEqual(cursor.execute.call_count, 2)
