"""
Username Watch

Server side of the as-you-type availability check. Each user has one
DebouncedUsernameCheck per worker process; every edit re-arms it, and the
outcome of the check that survives the quiet period is published to the
cache where the client polls for it.
"""
import logging
import threading
from collections.abc import Callable
from enum import Enum
from typing import Optional

from django.core.cache import cache

from .availability import DebouncedUsernameCheck, UsernameAvailability, UsernameQuery

logger = logging.getLogger(__name__)

RESULT_CACHE_PREFIX = 'username_check'
RESULT_TIMEOUT = 60 * 5


class WatchStatus(str, Enum):
    IDLE = 'idle'
    PENDING = 'pending'
    DONE = 'done'
    ERROR = 'error'


def _result_key(user_id) -> str:
    return f'{RESULT_CACHE_PREFIX}:{user_id}'


def publish_check(
    user_id,
    status: WatchStatus,
    query: Optional[UsernameQuery] = None,
    availability: Optional[UsernameAvailability] = None,
) -> dict:
    state = {
        'status': status.value,
        'username': query.username if query else None,
        'state_id': query.state_id if query else None,
        'district_id': query.district_id if query else None,
    }
    if availability is not None:
        state.update(availability.to_dict())
    cache.set(_result_key(user_id), state, RESULT_TIMEOUT)
    return state


def get_published_check(user_id) -> dict:
    state = cache.get(_result_key(user_id))
    if state is None:
        return {'status': WatchStatus.IDLE.value, 'username': None, 'state_id': None, 'district_id': None}
    return state


_watchers: dict[str, DebouncedUsernameCheck] = {}
_watchers_lock = threading.Lock()


def get_watcher(user_id, factory: Callable[[], DebouncedUsernameCheck]) -> DebouncedUsernameCheck:
    key = str(user_id)
    with _watchers_lock:
        watcher = _watchers.get(key)
        if watcher is None:
            watcher = factory()
            _watchers[key] = watcher
        return watcher


def discard_watcher(user_id) -> None:
    """Cancel any pending check for the user and forget the published result."""
    with _watchers_lock:
        watcher = _watchers.pop(str(user_id), None)
    if watcher is not None:
        watcher.cancel()
        logger.debug(f'Discarded username watcher for {user_id}')
    cache.delete(_result_key(user_id))
