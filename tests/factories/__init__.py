"""
Factory Boy Factories for the CA Directory

Import all factories here for easy access in tests.
"""
from tests.factories.profiles import (
    DistrictFactory,
    ProfileFactory,
    StateFactory,
    personal_info_only,
    profile_row,
)
from tests.factories.users import make_user

__all__ = [
    # Profiles
    'ProfileFactory',
    'personal_info_only',
    'profile_row',
    # Locations
    'StateFactory',
    'DistrictFactory',
    # Request users
    'make_user',
]
