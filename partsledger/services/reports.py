"""
Usage reporting — read-only summaries over the transaction log.

Reports are frozen dataclasses tagged by ``kind`` so consumers can
dispatch on the variant:

    report = UsageReporter.summarize(part, Period.for_day(date.today()))
    match report.kind:
        case 'usage': ...
        case 'reconciliation': ...
        case 'inventory_summary': ...
        case 'procurement': ...
"""

from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta
from decimal import Decimal
from typing import Literal, Union

from django.db.models import Count, DecimalField, F, Q, Sum
from django.db.models.functions import Coalesce
from django.utils import timezone

from partsledger.exceptions import LedgerError, storage_guard
from partsledger.models.alert import LowStockAlert
from partsledger.models.enums import TransactionType
from partsledger.models.part import Part
from partsledger.models.reservation import Reservation
from partsledger.models.transaction import StockTransaction
from partsledger.services.common import part_id_of
from partsledger.services.ledger import BalanceCheck, StockLedger


@dataclass(frozen=True)
class Period:
    """Half-open time window [start, end)."""

    start: datetime
    end: datetime

    def __post_init__(self):
        if self.end <= self.start:
            raise LedgerError('VALIDATION_ERROR', field='period', start=str(self.start), end=str(self.end))

    @classmethod
    def for_day(cls, day: date) -> 'Period':
        start = timezone.make_aware(datetime.combine(day, time.min))
        return cls(start, start + timedelta(days=1))

    @classmethod
    def last_days(cls, days: int) -> 'Period':
        end = timezone.now()
        return cls(end - timedelta(days=days), end)

    @classmethod
    def for_month(cls, year: int, month: int) -> 'Period':
        start = timezone.make_aware(datetime(year, month, 1))
        end = timezone.make_aware(datetime(year + month // 12, month % 12 + 1, 1))
        return cls(start, end)

    def previous(self) -> 'Period':
        """Window of the same length ending where this one starts."""
        return Period(self.start - (self.end - self.start), self.start)


@dataclass(frozen=True)
class UsageReport:
    part_id: int
    part_number: str
    description: str
    period: Period
    consumed: int
    reserved: int
    returned: int
    cost: Decimal
    kind: Literal['usage'] = field(default='usage', init=False)

    @property
    def net_consumed(self) -> int:
        return self.consumed - self.returned


@dataclass(frozen=True)
class ReconciliationReport:
    generated_at: datetime
    checks: tuple[BalanceCheck, ...]
    kind: Literal['reconciliation'] = field(default='reconciliation', init=False)

    @property
    def discrepancies(self) -> tuple[BalanceCheck, ...]:
        return tuple(c for c in self.checks if not c.matches)

    @property
    def is_consistent(self) -> bool:
        return not self.discrepancies


@dataclass(frozen=True)
class InventorySummary:
    generated_at: datetime
    total_parts: int
    total_value: Decimal
    low_stock_parts: int
    out_of_stock_parts: int
    open_reservations: int
    open_alerts: int
    kind: Literal['inventory_summary'] = field(default='inventory_summary', init=False)


@dataclass(frozen=True)
class ProcurementLine:
    """Restocks of one part in a period."""

    part_id: int
    part_number: str
    description: str
    category: str
    supplier: str
    quantity: int
    procurements: int
    unit_cost: Decimal
    value: Decimal

    @property
    def average_quantity(self) -> Decimal:
        return (Decimal(self.quantity) / self.procurements).quantize(Decimal('0.01'))


@dataclass(frozen=True)
class CategoryProcurement:
    category: str
    parts: int
    quantity: int
    value: Decimal


@dataclass(frozen=True)
class ProcurementReport:
    period: Period
    lines: tuple[ProcurementLine, ...]
    categories: tuple[CategoryProcurement, ...]
    previous_value: Decimal
    kind: Literal['procurement'] = field(default='procurement', init=False)

    @property
    def total_value(self) -> Decimal:
        return sum((line.value for line in self.lines), Decimal('0'))

    @property
    def total_quantity(self) -> int:
        return sum(line.quantity for line in self.lines)

    @property
    def procurements(self) -> int:
        return sum(line.procurements for line in self.lines)

    @property
    def change_percent(self) -> Decimal:
        """Change in value against the previous period; 0 when it had none."""
        if not self.previous_value:
            return Decimal('0')
        change = (self.total_value - self.previous_value) / self.previous_value * 100
        return change.quantize(Decimal('0.01'))


Report = Union[UsageReport, ReconciliationReport, InventorySummary, ProcurementReport]


def _usage_totals(qs) -> dict:
    return qs.aggregate(
        consumed=Coalesce(Sum('quantity', filter=Q(type=TransactionType.CONSUME)), 0),
        reserved=Coalesce(Sum('quantity', filter=Q(type=TransactionType.RESERVE)), 0),
        returned=Coalesce(Sum('quantity', filter=Q(type=TransactionType.RETURN)), 0),
    )


def _usage_report(part: Part, period: Period, totals: dict) -> UsageReport:
    # CONSUME quantities are stored negative
    consumed = abs(totals['consumed'])
    return UsageReport(
        part_id=part.pk,
        part_number=part.part_number,
        description=part.description,
        period=period,
        consumed=consumed,
        reserved=totals['reserved'],
        returned=totals['returned'],
        cost=consumed * part.unit_cost,
    )


def _restocks(period: Period, category: str | None):
    qs = StockTransaction.objects.between(period.start, period.end).filter(
        type=TransactionType.RESTOCK,
    )
    if category is not None:
        qs = qs.filter(part__category=category)
    return qs


def _category_rollup(lines) -> tuple[CategoryProcurement, ...]:
    grouped: dict[str, list[ProcurementLine]] = {}
    for line in lines:
        grouped.setdefault(line.category, []).append(line)
    return tuple(
        CategoryProcurement(
            category=category,
            parts=len(members),
            quantity=sum(m.quantity for m in members),
            value=sum((m.value for m in members), Decimal('0')),
        )
        for category, members in sorted(grouped.items())
    )


class UsageReporter:
    """Derived reports; no state of their own."""

    @classmethod
    def summarize(cls, part, period: Period) -> UsageReport:
        """Consumed, reserved and returned quantities of one part in a period."""
        with storage_guard('reports.summarize'):
            try:
                part = Part.objects.get(pk=part_id_of(part))
            except Part.DoesNotExist:
                raise LedgerError('PART_NOT_FOUND', part_id=part_id_of(part)) from None
            totals = _usage_totals(
                StockTransaction.objects.for_part(part).between(period.start, period.end)
            )
        return _usage_report(part, period, totals)

    @classmethod
    def usage_by_part(cls, period: Period, category: str | None = None) -> list[UsageReport]:
        """Usage of every part with activity in the period, highest cost first."""
        with storage_guard('reports.usage_by_part'):
            qs = StockTransaction.objects.between(period.start, period.end)
            if category is not None:
                qs = qs.filter(part__category=category)
            part_ids = set(qs.values_list('part_id', flat=True))
            parts = Part.objects.filter(pk__in=part_ids)
            reports = [
                _usage_report(part, period, _usage_totals(qs.filter(part=part)))
                for part in parts
            ]
        return sorted(reports, key=lambda r: (-r.cost, r.part_number))

    @classmethod
    def procurement(cls, period: Period, category: str | None = None) -> ProcurementReport:
        """
        Restocks in a period, per part and per category.

        Values use each part's current unit cost. ``previous_value`` covers
        the window of the same length just before ``period``.
        """
        value = DecimalField(max_digits=18, decimal_places=2)

        with storage_guard('reports.procurement'):
            rows = list(
                _restocks(period, category)
                .order_by()
                .values('part_id')
                .annotate(quantity=Sum('quantity'), procurements=Count('id'))
            )
            parts = Part.objects.in_bulk([row['part_id'] for row in rows])
            previous = _restocks(period.previous(), category).aggregate(
                value=Coalesce(
                    Sum(F('quantity') * F('part__unit_cost'), output_field=value),
                    Decimal('0'),
                    output_field=value,
                ),
            )

        lines = []
        for row in rows:
            part = parts[row['part_id']]
            lines.append(ProcurementLine(
                part_id=part.pk,
                part_number=part.part_number,
                description=part.description,
                category=part.category,
                supplier=part.supplier,
                quantity=row['quantity'],
                procurements=row['procurements'],
                unit_cost=part.unit_cost,
                value=row['quantity'] * part.unit_cost,
            ))
        lines.sort(key=lambda line: (-line.value, line.part_number))

        return ProcurementReport(
            period=period,
            lines=tuple(lines),
            categories=_category_rollup(lines),
            previous_value=previous['value'],
        )

    @classmethod
    def reconciliation(cls, repair: bool = False, actor=None) -> ReconciliationReport:
        """Compare every part's cached balance with its transaction log."""
        with storage_guard('reports.reconciliation'):
            part_ids = list(Part.objects.order_by('pk').values_list('pk', flat=True))
        checks = tuple(StockLedger.reconcile(pid, repair=repair, actor=actor) for pid in part_ids)
        return ReconciliationReport(generated_at=timezone.now(), checks=checks)

    @classmethod
    def inventory_summary(cls) -> InventorySummary:
        """Totals across active parts."""
        with storage_guard('reports.inventory_summary'):
            active = Part.objects.active()
            totals = active.aggregate(
                value=Coalesce(
                    Sum(F('current_stock') * F('unit_cost'), output_field=DecimalField(max_digits=18, decimal_places=2)),
                    Decimal('0'),
                    output_field=DecimalField(max_digits=18, decimal_places=2),
                ),
            )
            return InventorySummary(
                generated_at=timezone.now(),
                total_parts=active.count(),
                total_value=totals['value'],
                low_stock_parts=active.low_stock().count(),
                out_of_stock_parts=active.out_of_stock().count(),
                open_reservations=Reservation.objects.open().count(),
                open_alerts=LowStockAlert.objects.open().count(),
            )
