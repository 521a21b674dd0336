"""
Profile Context

Per-user wizard state shared by the auth and profile endpoints: the signed-in
user, their profile and the steps completed so far. Lives in the Django cache
from session fetch until sign-out.
"""
import logging
from dataclasses import dataclass, field
from typing import Optional

from django.conf import settings
from django.core.cache import cache

from apps.core.authentication import AuthenticatedUser

from .completion import get_completed_steps
from .constants import STEP_ORDER, ProfileStep
from .selectors import fetch_profile

logger = logging.getLogger(__name__)

CACHE_KEY_PREFIX = 'profile_context'


def _cache_key(user_id) -> str:
    return f'{CACHE_KEY_PREFIX}:{user_id}'


def _timeout() -> int:
    return settings.PROFILE_WIZARD['CONTEXT_TIMEOUT']


@dataclass
class ProfileContext:
    user_id: str
    email: str
    profile: Optional[dict] = None
    completed_steps: set[ProfileStep] = field(default_factory=set)

    @property
    def role(self) -> Optional[str]:
        return (self.profile or {}).get('role')

    @property
    def has_profile(self) -> bool:
        return self.profile is not None

    def to_cache(self) -> dict:
        return {
            'user_id': self.user_id,
            'email': self.email,
            'profile': self.profile,
            'completed_steps': [step.value for step in STEP_ORDER if step in self.completed_steps],
        }

    @classmethod
    def from_cache(cls, data: dict) -> 'ProfileContext':
        return cls(
            user_id=data['user_id'],
            email=data.get('email') or '',
            profile=data.get('profile'),
            completed_steps={ProfileStep(value) for value in data.get('completed_steps', [])},
        )

    def save(self) -> None:
        cache.set(_cache_key(self.user_id), self.to_cache(), _timeout())

    @classmethod
    def load(cls, user: AuthenticatedUser) -> 'ProfileContext':
        """Fetch the profile, derive completed steps and store a fresh context."""
        profile = fetch_profile(user.id)
        context = cls(
            user_id=str(user.id),
            email=user.email,
            profile=profile,
            completed_steps=get_completed_steps(profile),
        )
        context.save()
        logger.debug(f'Loaded profile context for {user.id}')
        return context

    @classmethod
    def get(cls, user_id) -> Optional['ProfileContext']:
        data = cache.get(_cache_key(user_id))
        if data is None:
            return None
        return cls.from_cache(data)

    @classmethod
    def get_or_load(cls, user: AuthenticatedUser) -> 'ProfileContext':
        return cls.get(user.id) or cls.load(user)

    def update_profile(self, profile: dict) -> None:
        self.profile = profile
        self.completed_steps |= get_completed_steps(profile)
        self.save()

    def mark_step_completed(self, step: ProfileStep, profile: Optional[dict] = None) -> None:
        if profile is not None:
            self.profile = profile
            self.completed_steps |= get_completed_steps(profile)
        self.completed_steps.add(step)
        self.save()

    @classmethod
    def clear(cls, user_id) -> None:
        cache.delete(_cache_key(user_id))
        logger.debug(f'Cleared profile context for {user_id}')
