"""
Supabase Auth Service Tests (httpx mocked)
"""
from unittest.mock import MagicMock, patch
from urllib.parse import parse_qs, urlparse

import httpx
from django.core.cache import cache
from django.test import SimpleTestCase

from apps.auth_api import services
from apps.core.exceptions import AuthenticationError, ServiceUnavailableError, ValidationError


def mock_client(mock_client_class):
    client = MagicMock()
    mock_client_class.return_value.__enter__.return_value = client
    return client


def json_response(status_code, payload):
    response = MagicMock()
    response.status_code = status_code
    response.content = b'{}' if payload is not None else b''
    response.json.return_value = payload
    return response


class PasswordSignInTests(SimpleTestCase):

    @patch('apps.auth_api.services.httpx.Client')
    def test_returns_session(self, mock_client_class):
        client = mock_client(mock_client_class)
        client.post.return_value = json_response(200, {
            'access_token': 'access',
            'refresh_token': 'refresh',
            'expires_in': 3600,
            'user': {'id': 'abc'},
        })

        auth_data = services.sign_in_with_password('jane@example.com', 'secret-password')

        self.assertEqual(auth_data['access_token'], 'access')
        url = client.post.call_args.args[0]
        self.assertEqual(url, 'http://localhost:54321/auth/v1/token?grant_type=password')
        self.assertEqual(client.post.call_args.kwargs['headers']['apikey'], 'test-anon-key')

    @patch('apps.auth_api.services.httpx.Client')
    def test_bad_credentials(self, mock_client_class):
        client = mock_client(mock_client_class)
        client.post.return_value = json_response(400, {
            'error': 'invalid_grant',
            'error_description': 'Invalid login credentials',
        })

        with self.assertRaises(AuthenticationError) as ctx:
            services.sign_in_with_password('jane@example.com', 'wrong')

        self.assertEqual(ctx.exception.message, 'Invalid login credentials')
        self.assertEqual(ctx.exception.status_code, 401)

    @patch('apps.auth_api.services.httpx.Client')
    def test_network_error(self, mock_client_class):
        client = mock_client(mock_client_class)
        client.post.side_effect = httpx.ConnectError('refused')

        with self.assertRaises(ServiceUnavailableError):
            services.sign_in_with_password('jane@example.com', 'secret-password')


class SignUpTests(SimpleTestCase):

    @patch('apps.auth_api.services.httpx.Client')
    def test_redirects_confirmation_to_callback(self, mock_client_class):
        client = mock_client(mock_client_class)
        client.post.return_value = json_response(200, {'id': 'abc', 'email': 'jane@example.com'})

        services.sign_up('jane@example.com', 'secret-password', {'full_name': 'Jane Doe'})

        url = client.post.call_args.args[0]
        query = parse_qs(urlparse(url).query)
        self.assertEqual(query['redirect_to'], ['http://localhost:3000/auth/callback'])
        self.assertEqual(client.post.call_args.kwargs['json']['data'], {'full_name': 'Jane Doe'})


class OAuthTests(SimpleTestCase):

    def setUp(self):
        cache.clear()

    def test_authorize_url_carries_pkce_challenge(self):
        result = services.get_oauth_url('google')

        parsed = urlparse(result['url'])
        query = parse_qs(parsed.query)
        self.assertEqual(parsed.path, '/auth/v1/authorize')
        self.assertEqual(query['provider'], ['google'])
        self.assertEqual(query['code_challenge_method'], ['s256'])
        self.assertEqual(
            query['redirect_to'],
            [f'http://localhost:3000/auth/callback?flow={result["flow_id"]}'],
        )

        verifier = services.pop_code_verifier(result['flow_id'])
        self.assertEqual(query['code_challenge'], [services._code_challenge(verifier)])

    def test_verifier_is_single_use(self):
        flow_id = services.get_oauth_url('google')['flow_id']

        self.assertIsNotNone(services.pop_code_verifier(flow_id))
        self.assertIsNone(services.pop_code_verifier(flow_id))
        self.assertIsNone(services.pop_code_verifier(None))

    def test_unsupported_provider(self):
        with self.assertRaises(ValidationError):
            services.get_oauth_url('myspace')

    @patch('apps.auth_api.services.httpx.Client')
    def test_code_exchange(self, mock_client_class):
        client = mock_client(mock_client_class)
        client.post.return_value = json_response(200, {'access_token': 'access', 'user': {'id': 'abc'}})

        services.exchange_code_for_session('auth-code', 'verifier')

        self.assertEqual(
            client.post.call_args.args[0],
            'http://localhost:54321/auth/v1/token?grant_type=pkce',
        )
        self.assertEqual(
            client.post.call_args.kwargs['json'],
            {'auth_code': 'auth-code', 'code_verifier': 'verifier'},
        )


class SignOutTests(SimpleTestCase):

    @patch('apps.auth_api.services.httpx.Client')
    def test_sends_bearer_token(self, mock_client_class):
        client = mock_client(mock_client_class)
        client.post.return_value = json_response(204, None)

        services.sign_out('access')

        headers = client.post.call_args.kwargs['headers']
        self.assertEqual(headers['Authorization'], 'Bearer access')
        self.assertEqual(client.post.call_args.args[0], 'http://localhost:54321/auth/v1/logout')
