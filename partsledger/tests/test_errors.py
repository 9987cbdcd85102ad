"""
Tests for LedgerError and configuration.
"""

from decimal import Decimal

import pytest
from django.db import InterfaceError, OperationalError

from partsledger import LedgerError
from partsledger.conf import get_ledger_settings, ledger_settings
from partsledger.exceptions import storage_guard


class TestLedgerError:

    def test_default_message(self):
        error = LedgerError('INSUFFICIENT_STOCK', available=3, requested=5)

        assert error.message == 'Not enough stock on hand'
        assert str(error) == '[INSUFFICIENT_STOCK] Not enough stock on hand'
        assert error.available == 3
        assert error.requested == 5

    def test_as_dict_serializes_decimals(self):
        error = LedgerError('VALIDATION_ERROR', field='unit_cost', value=Decimal('1.50'))

        assert error.as_dict() == {
            'code': 'VALIDATION_ERROR',
            'message': 'Invalid input',
            'data': {'field': 'unit_cost', 'value': '1.50'},
        }

    def test_only_storage_failures_are_retryable(self):
        assert LedgerError('STORAGE_UNAVAILABLE').retryable
        assert not LedgerError('INSUFFICIENT_STOCK').retryable
        assert not LedgerError('INVALID_TRANSITION').retryable

    @pytest.mark.parametrize('error', [OperationalError('gone'), InterfaceError('closed')])
    def test_storage_guard(self, error):
        with pytest.raises(LedgerError) as exc:
            with storage_guard('test.op'):
                raise error

        assert exc.value.code == 'STORAGE_UNAVAILABLE'
        assert exc.value.data['operation'] == 'test.op'
        assert exc.value.__cause__ is error

    def test_storage_guard_passes_other_errors(self):
        with pytest.raises(KeyError):
            with storage_guard('test.op'):
                raise KeyError('x')


class TestSettings:

    def test_defaults(self, settings):
        del settings.PARTSLEDGER

        conf = get_ledger_settings()

        assert conf.HIGH_URGENCY_RATIO == 0.5
        assert conf.ALERT_SWEEP_BATCH_SIZE == 200
        assert conf.DEFAULT_ACTOR == 'system'

    def test_overrides_and_unknown_keys(self, settings):
        settings.PARTSLEDGER = {'DEFAULT_ACTOR': 'night-shift', 'UNKNOWN': 1}

        assert ledger_settings.DEFAULT_ACTOR == 'night-shift'
        assert ledger_settings.ALERT_SWEEP_BATCH_SIZE == 200
