from pathlib import Path

from django.core.management.base import BaseCommand, CommandError

from documents.seed import seed_collection
from documents.store import PAYMENT_METHODS, PROGRAMS


class Command(BaseCommand):
    help = 'Seed the programs and paymentMethods collections from JSON arrays.'

    def add_arguments(self, parser):
        parser.add_argument('--programs', default='')
        parser.add_argument('--payment-methods', default='')

    def handle(self, *args, **options):
        programs = (options.get('programs') or '').strip()
        methods = (options.get('payment_methods') or '').strip()
        if not programs and not methods:
            raise CommandError('Pass --programs and/or --payment-methods')

        jobs = []
        if programs:
            jobs.append((PROGRAMS, Path(programs), 'id'))
        if methods:
            jobs.append((PAYMENT_METHODS, Path(methods), 'value'))

        for collection, path, id_field in jobs:
            res = seed_collection(collection, path, id_field)
            if res.error:
                self.stderr.write(f'{collection}: {res.error}')
                continue
            self.stdout.write(f'{collection}: seeded={res.seeded} skipped={res.skipped} failed={res.failed}')
