"""
Supabase JWT Authentication Tests
"""
import time
import uuid

import jwt
from django.test import RequestFactory, SimpleTestCase
from rest_framework import exceptions

from apps.core.authentication import (
    AuthenticatedUser,
    SupabaseJWTAuthentication,
    get_user_context,
)

JWT_SECRET = 'test-jwt-secret-key-for-testing-purposes-only'
ISSUER = 'http://localhost:54321/auth/v1'


def make_token(**overrides):
    payload = {
        'sub': str(uuid.uuid4()),
        'email': 'jane@example.com',
        'aud': 'authenticated',
        'iss': ISSUER,
        'exp': int(time.time()) + 3600,
        'user_metadata': {'full_name': 'Jane Mary Doe'},
    }
    payload.update(overrides)
    return jwt.encode(payload, JWT_SECRET, algorithm='HS256'), payload


class SupabaseJWTAuthenticationTests(SimpleTestCase):

    def setUp(self):
        self.factory = RequestFactory()
        self.authenticator = SupabaseJWTAuthentication()

    def authenticate(self, header):
        request = self.factory.get('/api/profile', HTTP_AUTHORIZATION=header)
        return self.authenticator.authenticate(request)

    def test_valid_token(self):
        token, payload = make_token()

        user, returned_token = self.authenticate(f'Bearer {token}')

        self.assertEqual(returned_token, token)
        self.assertEqual(user.id, uuid.UUID(payload['sub']))
        self.assertEqual(user.email, 'jane@example.com')
        self.assertEqual(user.first_name, 'Jane')
        self.assertEqual(user.last_name, 'Mary Doe')

    def test_missing_header(self):
        request = self.factory.get('/api/profile')
        self.assertIsNone(self.authenticator.authenticate(request))

    def test_non_bearer_header(self):
        self.assertIsNone(self.authenticate('Basic dXNlcjpwYXNz'))

    def test_expired_token(self):
        token, _ = make_token(exp=int(time.time()) - 60)

        with self.assertRaises(exceptions.AuthenticationFailed):
            self.authenticate(f'Bearer {token}')

    def test_wrong_audience(self):
        token, _ = make_token(aud='anon')

        with self.assertRaises(exceptions.AuthenticationFailed):
            self.authenticate(f'Bearer {token}')

    def test_wrong_issuer(self):
        token, _ = make_token(iss='https://elsewhere.supabase.co/auth/v1')

        with self.assertRaises(exceptions.AuthenticationFailed):
            self.authenticate(f'Bearer {token}')

    def test_sub_must_be_uuid(self):
        token, _ = make_token(sub='not-a-uuid')

        with self.assertRaises(exceptions.AuthenticationFailed):
            self.authenticate(f'Bearer {token}')


class AuthenticatedUserTests(SimpleTestCase):

    def test_name_falls_back_to_given_and_family_name(self):
        user = AuthenticatedUser(
            id=uuid.uuid4(),
            email='jane@example.com',
            user_metadata={'given_name': 'Jane', 'family_name': 'Doe'},
        )
        self.assertEqual(user.first_name, 'Jane')
        self.assertEqual(user.last_name, 'Doe')

    def test_no_metadata(self):
        user = AuthenticatedUser(id=uuid.uuid4(), email='jane@example.com')
        self.assertEqual(user.first_name, '')
        self.assertTrue(user.is_authenticated)

    def test_get_user_context(self):
        request = RequestFactory().get('/')
        request.user = None
        self.assertIsNone(get_user_context(request))

        request.user = AuthenticatedUser(id=uuid.uuid4(), email='jane@example.com')
        self.assertIs(get_user_context(request), request.user)
