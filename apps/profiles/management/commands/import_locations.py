"""
Import states and districts from a location CSV.

Usage:
    python manage.py import_locations location-data/
    python manage.py import_locations location-data/pincodes.csv
"""
import logging
from pathlib import Path

from django.core.management.base import BaseCommand, CommandError

from apps.profiles.locations import import_locations, read_location_csv

logger = logging.getLogger(__name__)


class Command(BaseCommand):
    help = 'Import states and districts from a location CSV (first *.csv when given a directory)'

    def add_arguments(self, parser):
        parser.add_argument('path', help='CSV file, or a directory containing CSV files')

    def handle(self, *args, **options):
        path = Path(options['path'])

        if path.is_dir():
            csv_files = sorted(path.glob('*.csv'))
            if not csv_files:
                self.stdout.write(f'No CSV files found in {path}')
                return
            path = csv_files[0]
        elif not path.exists():
            raise CommandError(f'{path} does not exist')

        self.stdout.write(f'Processing file: {path.name}')
        locations = read_location_csv(path)
        self.stdout.write(f'Parsed {len(locations)} valid locations')

        result = import_locations(locations)

        self.stdout.write(self.style.SUCCESS(
            f'States added: {result.states_created}, districts added: {result.districts_created}'
        ))
