"""
Management command to evaluate alert rules for a firm.

Usage:
    python manage.py evaluate_alerts --firm 1
    python manage.py evaluate_alerts --firm 1 --scope inputs
    python manage.py evaluate_alerts --firm 1 --dry-run
"""

from django.core.management.base import BaseCommand, CommandError
from django.db import transaction

from agrostock import stock
from agrostock.exceptions import StockError
from agrostock.services.alerts import SCOPES


class Command(BaseCommand):
    """Evaluate alert rules command."""

    help = 'Evalúa las reglas de alertas de una firma'

    def add_arguments(self, parser):
        parser.add_argument('--firm', type=int, required=True, help='ID de la firma')
        parser.add_argument('--scope', choices=SCOPES, default='all')
        parser.add_argument('--premise', type=int, default=None, help='Limitar a un predio')
        parser.add_argument(
            '--rule',
            action='append',
            dest='rules',
            help='Evaluar solo esta regla (repetible)',
        )
        parser.add_argument(
            '--dry-run',
            action='store_true',
            help='Muestra lo que se crearía o cerraría sin guardar',
        )

    def handle(self, *args, **options):
        try:
            with transaction.atomic():
                result = stock.evaluate_alerts(
                    options['firm'],
                    scope=options['scope'],
                    premise_id=options['premise'],
                    rules=options['rules'],
                )
                if options['dry_run']:
                    transaction.set_rollback(True)
        except StockError as e:
            raise CommandError(str(e))

        for alert in result.created:
            self.stdout.write(f'+ [{alert.rule_id}] {alert.title}')
        for alert in result.closed:
            self.stdout.write(f'- [{alert.rule_id}] {alert.title}')

        if options['dry_run']:
            self.stdout.write(
                f'{len(result.created)} alerta(s) se crearían, '
                f'{len(result.closed)} se cerrarían'
            )
        else:
            self.stdout.write(
                self.style.SUCCESS(
                    f'{len(result.created)} alerta(s) creada(s), '
                    f'{len(result.closed)} cerrada(s)'
                )
            )
