"""
Profile Stepper

State machine for the profile wizard: which step is active, which steps are
complete, which steps may be entered, and where to go after a step is saved.
"""
import logging
from collections.abc import Iterable
from dataclasses import dataclass
from typing import Optional
from urllib.parse import urlencode

from django.conf import settings

from apps.core.messages import StatusMessage

from .completion import get_completion_percentage, get_first_incomplete_required_step
from .constants import (
    PROFILE_PATH,
    PROFILE_VIEW_PATH,
    STEP_CONFIG,
    STEP_ORDER,
    ProfileStep,
    get_step_title,
)

logger = logging.getLogger(__name__)


def step_url(step: ProfileStep) -> str:
    """Wizard URL with the step mirrored into the query string."""
    return f'{PROFILE_PATH}?{urlencode({"step": step.value})}'


@dataclass(frozen=True)
class StepTransition:
    """What the client should do after a step completes."""
    completed_step: ProfileStep
    next_step: Optional[ProfileStep]
    redirect_to: str
    delay_ms: int

    @property
    def is_final(self) -> bool:
        return self.next_step is None

    def to_dict(self) -> dict:
        return {
            'completed_step': self.completed_step.value,
            'next_step': self.next_step.value if self.next_step else None,
            'redirect_to': self.redirect_to,
            'delay_ms': self.delay_ms,
            'history': 'replace' if self.next_step else 'push',
        }


class StepNotReachable(Exception):
    """Raised when navigating to a step whose required predecessors are incomplete."""

    def __init__(self, step: ProfileStep, fallback: ProfileStep):
        self.step = step
        self.fallback = fallback
        super().__init__(f'{step.value} is locked until {fallback.value} is completed')


class ProfileStepper:
    """
    Holds the active step and the completed-step set.

    A step is navigable when it is already completed or every required step
    before it is completed.
    """

    def __init__(
        self,
        completed_steps: Iterable[ProfileStep] = (),
        initial_step: ProfileStep | str | None = None,
    ):
        self.completed_steps: set[ProfileStep] = set(completed_steps)
        self.message: Optional[StatusMessage] = None
        self.transition: Optional[StepTransition] = None
        self.current_step = self.resolve_initial_step(initial_step)

    @property
    def wizard_settings(self) -> dict:
        return settings.PROFILE_WIZARD

    def resolve_initial_step(self, requested: ProfileStep | str | None) -> ProfileStep:
        """
        Step to open the wizard on.

        Unknown values fall back to the first step; locked steps fall back to
        the first required step that is still incomplete.
        """
        step = ProfileStep.parse(requested) or STEP_ORDER[0]
        if self.can_navigate_to(step):
            return step

        fallback = get_first_incomplete_required_step(self.completed_steps) or STEP_ORDER[0]
        logger.debug(f'Step {step.value} is locked, opening {fallback.value} instead')
        return fallback

    @property
    def current_index(self) -> int:
        return STEP_ORDER.index(self.current_step)

    @property
    def progress_percentage(self) -> int:
        return get_completion_percentage(self.completed_steps)

    @property
    def url(self) -> str:
        return step_url(self.current_step)

    def is_completed(self, step: ProfileStep) -> bool:
        return step in self.completed_steps

    def can_navigate_to(self, step: ProfileStep) -> bool:
        if step in self.completed_steps:
            return True

        for config in STEP_CONFIG[:STEP_ORDER.index(step)]:
            if config.required and config.step not in self.completed_steps:
                return False

        return True

    def navigate_to(self, step: ProfileStep) -> str:
        """
        Make `step` the active step and clear the current message.

        Returns:
            The URL to mirror into the address bar (history replace)

        Raises:
            StepNotReachable: If the step is locked
        """
        if not self.can_navigate_to(step):
            fallback = get_first_incomplete_required_step(self.completed_steps) or STEP_ORDER[0]
            raise StepNotReachable(step, fallback)

        self.current_step = step
        self.message = None
        self.transition = None
        return self.url

    def previous_step(self) -> Optional[ProfileStep]:
        if self.current_index == 0:
            return None
        return STEP_ORDER[self.current_index - 1]

    def next_step(self) -> Optional[ProfileStep]:
        if self.current_index >= len(STEP_ORDER) - 1:
            return None
        return STEP_ORDER[self.current_index + 1]

    def complete_step(self, step: ProfileStep) -> StepTransition:
        """
        Mark `step` complete and work out where the wizard goes next.

        The next step becomes active immediately; the client shows the success
        message for `delay_ms` before following `redirect_to`.
        """
        self.completed_steps.add(step)
        self.message = StatusMessage.success(f'{get_step_title(step)} completed successfully!')

        index = STEP_ORDER.index(step)
        if index + 1 < len(STEP_ORDER):
            next_step = STEP_ORDER[index + 1]
            self.current_step = next_step
            self.transition = StepTransition(
                completed_step=step,
                next_step=next_step,
                redirect_to=step_url(next_step),
                delay_ms=self.wizard_settings['AUTO_ADVANCE_DELAY_MS'],
            )
        else:
            self.transition = StepTransition(
                completed_step=step,
                next_step=None,
                redirect_to=PROFILE_VIEW_PATH,
                delay_ms=self.wizard_settings['COMPLETION_REDIRECT_DELAY_MS'],
            )

        logger.debug(f'Step {step.value} completed, next: {self.transition.redirect_to}')
        return self.transition

    def snapshot(self) -> dict:
        """Serialisable view of the wizard for the API."""
        previous_step = self.previous_step()
        next_step = self.next_step()
        return {
            'current_step': self.current_step.value,
            'current_step_index': self.current_index,
            'url': self.url,
            'history': 'replace',
            'progress_percentage': self.progress_percentage,
            'completed_steps': [step.value for step in STEP_ORDER if step in self.completed_steps],
            'previous_step': previous_step.value if previous_step else None,
            'next_step': next_step.value if next_step else None,
            'steps': [
                {
                    'step': config.step.value,
                    'title': config.title,
                    'short_title': config.short_title,
                    'description': config.description,
                    'required': config.required,
                    'weight': config.weight,
                    'is_completed': config.step in self.completed_steps,
                    'is_current': config.step == self.current_step,
                    'can_navigate': self.can_navigate_to(config.step),
                }
                for config in STEP_CONFIG
            ],
            'status_message': self.message.to_dict() if self.message else None,
            'transition': self.transition.to_dict() if self.transition else None,
        }
