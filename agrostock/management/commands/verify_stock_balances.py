"""
Management command to audit input balances against the ledger.

Usage:
    python manage.py verify_stock_balances
    python manage.py verify_stock_balances --firm 1
    python manage.py verify_stock_balances --fix
"""

from django.core.management.base import BaseCommand

from agrostock import stock


class Command(BaseCommand):
    """Verify stock balance cache command."""

    help = 'Verifica que el stock de cada insumo coincida con sus movimientos'

    def add_arguments(self, parser):
        parser.add_argument('--firm', type=int, default=None, help='ID de la firma')
        parser.add_argument(
            '--fix',
            action='store_true',
            help='Recalcula los saldos con diferencias',
        )

    def handle(self, *args, **options):
        drifts = stock.verify_balances(firm_id=options['firm'])

        if not drifts:
            self.stdout.write(self.style.SUCCESS('Todos los saldos coinciden con el libro'))
            return

        for drift in drifts:
            self.stdout.write(
                f'{drift.name} (#{drift.input_id}): '
                f'saldo {drift.cached}, libro {drift.ledger} ({drift.difference:+})'
            )

        if options['fix']:
            for drift in drifts:
                stock.recalculate(drift.input_id)
            self.stdout.write(self.style.SUCCESS(f'{len(drifts)} saldo(s) corregido(s)'))
        else:
            self.stdout.write(
                self.style.WARNING(f'{len(drifts)} saldo(s) con diferencias (use --fix)')
            )
