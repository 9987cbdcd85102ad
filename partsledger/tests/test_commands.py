"""
Tests for the inventory_maintenance management command.
"""

from io import StringIO

import pytest
from django.core.management import call_command

from partsledger import ledger
from partsledger.models import LowStockAlert, Part


pytestmark = pytest.mark.django_db


def run(*args):
    out = StringIO()
    call_command('inventory_maintenance', *args, stdout=out)
    return out.getvalue()


class TestInventoryMaintenance:

    def test_nothing_to_report(self, part):
        output = run()

        assert 'No low stock parts found' in output
        assert '1 part(s) reconciled, no discrepancies' in output

    def test_alert_sweep(self, part, empty_part):
        output = run('--type', 'alerts')

        assert '1 low stock part(s):' in output
        assert '[CRITICAL] WB-300 (stock: 0, threshold: 5)' in output
        assert LowStockAlert.objects.filter(part=empty_part, acknowledged=False).exists()
        assert 'reconciled' not in output

    def test_reconcile_reports_without_repair(self, part):
        Part.objects.filter(pk=part.pk).update(current_stock=8)

        output = run('--type', 'reconcile')

        assert 'BP-100: recorded 8, log 10 (not repaired)' in output
        assert ledger.current_stock(part) == 8

    def test_reconcile_repair_uses_default_actor(self, part):
        Part.objects.filter(pk=part.pk).update(current_stock=8)

        output = run('--type', 'reconcile', '--repair')

        assert 'BP-100: recorded 8, log 10 (repaired by system)' in output
        assert ledger.current_stock(part) == 10

    def test_reconcile_repair_with_actor(self, part):
        Part.objects.filter(pk=part.pk).update(current_stock=8)

        output = run('--type', 'reconcile', '--repair', '--actor', 'auditor')

        assert '(repaired by auditor)' in output
