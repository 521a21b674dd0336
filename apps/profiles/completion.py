"""
Profile Completion

Completeness predicates for each wizard step and the weighted percentage
derived from them. Profiles are plain dicts as returned by the selectors.
"""
from collections.abc import Iterable

from .constants import STEP_CONFIG, STEP_ORDER, TOTAL_WEIGHT, ProfileStep


def _has_text(value) -> bool:
    return isinstance(value, str) and bool(value.strip())


def _has_items(value) -> bool:
    return bool(value) and len(value) > 0


def _is_selected(value) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and value > 0


def is_personal_info_complete(profile: dict | None) -> bool:
    if not profile:
        return False
    return (
        _has_text(profile.get('first_name'))
        and _has_text(profile.get('last_name'))
        and _has_text(profile.get('username'))
        and _is_selected(profile.get('state_id'))
        and _is_selected(profile.get('district_id'))
        and _has_items(profile.get('language_ids'))
        and _has_items(profile.get('specialization_ids'))
        and _has_text(profile.get('phone'))
    )


def is_verification_complete(profile: dict | None) -> bool:
    if not profile:
        return False
    return _has_text(profile.get('membership_number'))


def is_professional_complete(profile: dict | None) -> bool:
    if not profile:
        return False
    return (
        profile.get('years_of_experience') is not None
        or _has_text(profile.get('current_firm'))
        or _has_items(profile.get('practice_areas'))
        or _has_items(profile.get('work_experiences'))
    )


def is_education_complete(profile: dict | None) -> bool:
    if not profile:
        return False
    qualification = profile.get('ca_qualification') or {}
    return _has_text(qualification.get('institute_name')) and bool(qualification.get('completion_year'))


STEP_PREDICATES = {
    ProfileStep.PERSONAL_INFO: is_personal_info_complete,
    ProfileStep.VERIFICATION: is_verification_complete,
    ProfileStep.PROFESSIONAL: is_professional_complete,
    ProfileStep.EDUCATION: is_education_complete,
}


def is_step_complete(profile: dict | None, step: ProfileStep) -> bool:
    return STEP_PREDICATES[step](profile)


def get_recorded_steps(profile: dict | None) -> set[ProfileStep]:
    """Every step up to and including the furthest section saved."""
    furthest = ProfileStep.parse((profile or {}).get('last_completed_section'))
    if furthest is None:
        return set()
    return set(STEP_ORDER[:STEP_ORDER.index(furthest) + 1])


def get_completed_steps(profile: dict | None) -> set[ProfileStep]:
    """
    Steps whose fields are populated on the stored profile, plus the steps
    already saved through the wizard.

    An optional step saved with every field empty has nothing for its
    predicate to see; last_completed_section keeps it counted.
    """
    if not profile:
        return set()
    satisfied = {step for step in STEP_ORDER if is_step_complete(profile, step)}
    return satisfied | get_recorded_steps(profile)


def get_completion_percentage(completed_steps: Iterable[ProfileStep]) -> int:
    """
    Weighted percentage for a set of completed steps.

    Order independent; capped at 100.
    """
    completed = set(completed_steps)
    earned = sum(config.weight for config in STEP_CONFIG if config.step in completed)
    return min(100, round(earned / TOTAL_WEIGHT * 100))


def get_profile_completion_percentage(profile: dict | None) -> int:
    return get_completion_percentage(get_completed_steps(profile))


def has_completed_required_steps(profile: dict | None) -> bool:
    completed = get_completed_steps(profile)
    return all(config.step in completed for config in STEP_CONFIG if config.required)


def get_first_incomplete_required_step(completed_steps: Iterable[ProfileStep]) -> ProfileStep | None:
    completed = set(completed_steps)
    for config in STEP_CONFIG:
        if config.required and config.step not in completed:
            return config.step
    return None


def get_next_incomplete_step(profile: dict | None) -> ProfileStep | None:
    """First step in wizard order that the profile has not satisfied yet."""
    completed = get_completed_steps(profile)
    for step in STEP_ORDER:
        if step not in completed:
            return step
    return None


def get_furthest_section(profile: dict | None, step: ProfileStep) -> ProfileStep:
    """last_completed_section after saving `step`: re-saving an earlier step does not move it back."""
    stored = ProfileStep.parse((profile or {}).get('last_completed_section'))
    if stored is None:
        return step
    return max(stored, step, key=STEP_ORDER.index)


def calculate_step_completion_percentage(
    profile: dict | None,
    step: ProfileStep,
    step_data: dict,
) -> int:
    """
    Percentage to persist when `step` is saved with `step_data`.

    Reconciles against the full stored profile rather than only the steps
    that precede `step`, and never drops a step an earlier save counted.
    """
    merged = {
        **(profile or {}),
        **step_data,
        'last_completed_section': get_furthest_section(profile, step).value,
    }
    return get_completion_percentage(get_completed_steps(merged))
