"""
Pytest Configuration for the CA Directory Backend Tests

Key Features:
- Enables managed=True for unmanaged models during tests
- Provides fixtures for authenticated users and API clients
- Clears the cache between tests (profile context and reference data live there)
"""
import pytest
from django.apps import apps
from django.core.cache import cache
from rest_framework.test import APIClient

from tests.factories import make_user


# =============================================================================
# Database Setup - Enable managed=True for unmanaged models
# =============================================================================

@pytest.fixture(scope='session')
def django_db_setup(django_db_setup, django_db_blocker):
    """
    Create tables for models that normally point to existing Supabase
    tables (managed=False) on top of the regular test database.
    """
    from django.db import connection

    with django_db_blocker.unblock():
        with connection.schema_editor() as schema_editor:
            for model in apps.get_models():
                if not model._meta.managed:
                    schema_editor.create_model(model)


@pytest.fixture(autouse=True)
def clear_cache():
    cache.clear()
    yield
    cache.clear()


# =============================================================================
# AuthenticatedUser
# =============================================================================

@pytest.fixture
def auth_user():
    return make_user()


# =============================================================================
# API Client Fixtures
# =============================================================================

@pytest.fixture
def api_client():
    """Basic API client without authentication."""
    return APIClient()


@pytest.fixture
def authenticated_client(api_client, auth_user):
    """API client authenticated as `auth_user`."""
    api_client.force_authenticate(user=auth_user, token='test-access-token')
    return api_client, auth_user
