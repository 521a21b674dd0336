"""
Supabase Auth Middleware Tests
"""
import time
import uuid

import jwt
from django.http import HttpResponse
from django.test import RequestFactory, SimpleTestCase

from apps.core.authentication import AuthenticatedUser
from apps.core.middleware import SupabaseAuthMiddleware

JWT_SECRET = 'test-jwt-secret-key-for-testing-purposes-only'


class SupabaseAuthMiddlewareTests(SimpleTestCase):

    def setUp(self):
        self.factory = RequestFactory()
        self.middleware = SupabaseAuthMiddleware(lambda request: HttpResponse('ok'))

    def test_public_routes_pass_through(self):
        for path in ['/api/health', '/api/auth', '/api/auth/sign-in', '/api/auth/callback']:
            request = self.factory.get(path)

            response = self.middleware(request)

            self.assertEqual(response.status_code, 200, path)
            self.assertIsNone(request.user)

    def test_protected_route_requires_token(self):
        response = self.middleware(self.factory.get('/api/profile'))

        self.assertEqual(response.status_code, 401)
        self.assertJSONEqual(response.content, {
            'error': 'Unauthorized',
            'message': 'Authentication required',
            'redirect_to': '/auth',
        })

    def test_session_is_not_public(self):
        response = self.middleware(self.factory.get('/api/auth/session'))
        self.assertEqual(response.status_code, 401)

    def test_invalid_token(self):
        request = self.factory.get('/api/profile', HTTP_AUTHORIZATION='Bearer not-a-jwt')

        response = self.middleware(request)

        self.assertEqual(response.status_code, 401)
        self.assertIn(b'/auth', response.content)

    def test_valid_token_attaches_user(self):
        user_id = uuid.uuid4()
        token = jwt.encode(
            {
                'sub': str(user_id),
                'email': 'jane@example.com',
                'aud': 'authenticated',
                'iss': 'http://localhost:54321/auth/v1',
                'exp': int(time.time()) + 3600,
            },
            JWT_SECRET,
            algorithm='HS256',
        )
        request = self.factory.get('/api/profile', HTTP_AUTHORIZATION=f'Bearer {token}')

        response = self.middleware(request)

        self.assertEqual(response.status_code, 200)
        self.assertIsInstance(request.user, AuthenticatedUser)
        self.assertEqual(request.user.id, user_id)
        self.assertEqual(request.auth_token, token)
