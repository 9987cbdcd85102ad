"""
Management command for periodic inventory maintenance.

Usage:
    python manage.py inventory_maintenance
    python manage.py inventory_maintenance --type alerts
    python manage.py inventory_maintenance --type reconcile --repair --actor storeroom-lead
"""

from django.core.management.base import BaseCommand

from partsledger import ledger
from partsledger.conf import ledger_settings
from partsledger.models import LowStockAlert


class Command(BaseCommand):
    """Low-stock alert sweep and balance reconciliation."""

    help = 'Runs the low-stock alert sweep and balance reconciliation'

    def add_arguments(self, parser):
        parser.add_argument(
            '--type',
            choices=['all', 'alerts', 'reconcile'],
            default='all',
            help='Maintenance task to run',
        )
        parser.add_argument(
            '--repair',
            action='store_true',
            help='Rewrite cached balances that disagree with the transaction log',
        )
        parser.add_argument(
            '--actor',
            default=None,
            help='Name recorded for repairs (default: PARTSLEDGER["DEFAULT_ACTOR"])',
        )

    def handle(self, *args, **options):
        task = options['type']

        if task in ('all', 'alerts'):
            self._check_alerts()
        if task in ('all', 'reconcile'):
            actor = options['actor'] or ledger_settings.DEFAULT_ACTOR
            self._reconcile(options['repair'], actor)

    def _check_alerts(self):
        alerts = ledger.check_alerts()
        if not alerts:
            self.stdout.write(self.style.SUCCESS('No low stock parts found'))
            return

        self.stdout.write(self.style.WARNING(f'{len(alerts)} low stock part(s):'))
        for alert in LowStockAlert.objects.filter(pk__in=[a.pk for a in alerts]).select_related('part'):
            self.stdout.write(
                f'  [{alert.urgency}] {alert.part.part_number} '
                f'(stock: {alert.current_stock}, threshold: {alert.threshold})'
            )

    def _reconcile(self, repair, actor):
        report = ledger.reconciliation(repair=repair, actor=actor)
        if report.is_consistent:
            self.stdout.write(self.style.SUCCESS(f'{len(report.checks)} part(s) reconciled, no discrepancies'))
            return

        for check in report.discrepancies:
            status = f'repaired by {actor}' if check.repaired else 'not repaired'
            self.stdout.write(self.style.ERROR(
                f'  {check.part_number}: recorded {check.recorded}, '
                f'log {check.reconstructed} ({status})'
            ))
