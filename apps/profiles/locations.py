"""
Location Import

Loads states and districts from the national pincode directory CSV
(district in column 8, state in column 9). Existing rows are left alone, so
the import can be re-run after a new CSV drop.
"""
import csv
import logging
from collections.abc import Iterable
from dataclasses import dataclass

from django.db import transaction

from .models import District, State

logger = logging.getLogger(__name__)

BATCH_SIZE = 1000
DISTRICT_COLUMN = 7
STATE_COLUMN = 8


@dataclass
class LocationImportResult:
    rows_parsed: int = 0
    states_created: int = 0
    districts_created: int = 0


def _clean(value: str) -> str:
    return value.strip().replace('"', '')


def parse_location_rows(rows: Iterable[list[str]]) -> list[tuple[str, str]]:
    """
    (state, district) pairs from CSV rows, header excluded.

    Rows that are too short or have a blank state or district are skipped.
    """
    locations = []
    for row in rows:
        if len(row) <= STATE_COLUMN:
            continue
        state = _clean(row[STATE_COLUMN])
        district = _clean(row[DISTRICT_COLUMN])
        if state and district:
            locations.append((state, district))
    return locations


def read_location_csv(path) -> list[tuple[str, str]]:
    with open(path, newline='', encoding='utf-8') as handle:
        reader = csv.reader(handle)
        header = next(reader, None)
        if header is None:
            return []
        logger.debug(f'Location CSV headers: {header}')
        return parse_location_rows(reader)


def build_state_codes(state_names: Iterable[str], taken_codes: Iterable[str] = ()) -> dict[str, str]:
    """
    Two-letter codes from the state name, suffixed with a counter on clashes.

    e.g. Maharashtra -> MA, then Manipur -> MA1
    """
    taken = set(taken_codes)
    codes = {}
    for name in state_names:
        if name in codes:
            continue
        base = name[:2].upper()
        code = base
        counter = 1
        while code in taken:
            code = f'{base}{counter}'
            counter += 1
        taken.add(code)
        codes[name] = code
    return codes


@transaction.atomic
def import_locations(locations: list[tuple[str, str]]) -> LocationImportResult:
    """
    Insert any states and districts not already present.

    Args:
        locations: (state name, district name) pairs

    Returns:
        Counts of what was created
    """
    result = LocationImportResult(rows_parsed=len(locations))

    existing_states = dict(State.objects.values_list('name', 'code'))
    state_names = list(dict.fromkeys(state for state, _ in locations))
    new_state_names = [name for name in state_names if name not in existing_states]

    codes = build_state_codes(new_state_names, existing_states.values())
    State.objects.bulk_create(
        [State(name=name, code=codes[name]) for name in new_state_names],
        batch_size=BATCH_SIZE,
    )
    result.states_created = len(new_state_names)

    state_ids = dict(State.objects.values_list('name', 'id'))
    existing_districts = set(District.objects.values_list('state_id', 'name'))

    new_districts = []
    seen = set(existing_districts)
    for state_name, district_name in locations:
        state_id = state_ids.get(state_name)
        if state_id is None:
            continue
        key = (state_id, district_name)
        if key in seen:
            continue
        seen.add(key)
        new_districts.append(District(name=district_name, state_id=state_id))

    District.objects.bulk_create(new_districts, batch_size=BATCH_SIZE)
    result.districts_created = len(new_districts)

    logger.info(
        f'Location import: {result.rows_parsed} rows, '
        f'{result.states_created} new states, {result.districts_created} new districts'
    )
    return result
