"""
Username Availability

Usernames are unique per (username, state, district), not globally. This
module holds the result type and a debounced checker that re-arms on every
change and discards results from superseded checks.
"""
import logging
import threading
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Optional

logger = logging.getLogger(__name__)

MIN_USERNAME_LENGTH = 3


@dataclass(frozen=True)
class UsernameQuery:
    username: str
    state_id: int
    district_id: int

    def is_checkable(self) -> bool:
        """A check only makes sense once a username and a full location are chosen."""
        return (
            len(self.username or '') >= MIN_USERNAME_LENGTH
            and (self.state_id or 0) > 0
            and (self.district_id or 0) > 0
        )

    @classmethod
    def from_profile(cls, profile: dict | None) -> Optional['UsernameQuery']:
        if not profile:
            return None
        return cls(
            username=profile.get('username') or '',
            state_id=profile.get('state_id') or 0,
            district_id=profile.get('district_id') or 0,
        )


@dataclass
class UsernameAvailability:
    is_available: bool
    suggested: list[str] = field(default_factory=list)
    profile_url: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            'is_available': self.is_available,
            'suggested': list(self.suggested),
            'profile_url': self.profile_url,
        }


class DebouncedUsernameCheck:
    """
    Cancel-and-replace availability check.

    Each call to `schedule` cancels the pending timer and arms a new one.
    A generation counter is bumped on every schedule/cancel; a check whose
    generation is no longer current when it completes is dropped, so a slow
    response can never overwrite a newer one.

    `timer_factory` defaults to threading.Timer and must return an object
    with start() and cancel().
    """

    def __init__(
        self,
        checker: Callable[..., UsernameAvailability],
        on_result: Callable[[UsernameQuery, UsernameAvailability], None],
        delay_ms: int = 800,
        exclude_user_id: Optional[str] = None,
        persisted: Optional[UsernameQuery] = None,
        on_error: Optional[Callable[[UsernameQuery, Exception], None]] = None,
        timer_factory: Optional[Callable] = None,
    ):
        self.checker = checker
        self.on_result = on_result
        self.on_error = on_error
        self.delay_ms = delay_ms
        self.exclude_user_id = exclude_user_id
        self.persisted = persisted
        self._timer_factory = timer_factory or threading.Timer
        self._lock = threading.Lock()
        self._timer = None
        self._generation = 0
        self.is_checking = False
        self.last_result: Optional[UsernameAvailability] = None

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def is_pending(self) -> bool:
        return self._timer is not None

    def schedule(self, query: UsernameQuery) -> bool:
        """
        Arm a check for `query` after the quiet period.

        Returns False (and only cancels) when the query is incomplete or
        matches the value already persisted for this user.
        """
        with self._lock:
            self._cancel_locked()
            if not query.is_checkable() or query == self.persisted:
                self.last_result = None
                return False

            generation = self._generation
            self._timer = self._timer_factory(
                self.delay_ms / 1000,
                self._run,
                args=(query, generation),
            )
            self._timer.start()
        return True

    def cancel(self) -> None:
        with self._lock:
            self._cancel_locked()

    def _cancel_locked(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        self._generation += 1
        self.is_checking = False

    def _run(self, query: UsernameQuery, generation: int) -> None:
        with self._lock:
            if generation != self._generation:
                return
            self._timer = None
            self.is_checking = True

        try:
            result = self.checker(
                query.username,
                query.state_id,
                query.district_id,
                exclude_user_id=self.exclude_user_id,
            )
        except Exception as e:
            with self._lock:
                if generation != self._generation:
                    logger.debug(f'Discarding stale availability error for {query.username}: {e}')
                    return
                self.is_checking = False
            logger.warning(f'Username availability check failed for {query.username}: {e}')
            if self.on_error is not None:
                self.on_error(query, e)
            return

        with self._lock:
            if generation != self._generation:
                logger.debug(f'Discarding stale availability result for {query.username}')
                return
            self.is_checking = False
            self.last_result = result

        self.on_result(query, result)
