"""
Exceptions for Partsledger.

All errors are LedgerError with a structured code for programmatic handling.
"""

from contextlib import contextmanager
from decimal import Decimal
from typing import Any

from django.db import InterfaceError, OperationalError


class BaseError(Exception):
    """
    Base for coded errors.

    Subclasses provide ``_default_messages`` mapping code -> message.
    """

    _default_messages: dict[str, str] = {}

    def __init__(self, code: str, message: str | None = None, **data):
        self.code = code
        self.message = message or self._default_messages.get(code, code)
        self.data = data
        super().__init__(f"[{code}] {self.message}")

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.code!r}, data={self.data!r})"


class LedgerError(BaseError):
    """
    Structured exception for ledger operations.

    Usage:
        try:
            ledger.consume(part, 10, actor='mech-7')
        except LedgerError as e:
            if e.code == 'INSUFFICIENT_STOCK':
                print(f"Only {e.available} on hand")

    Attributes:
        code: Error code for programmatic handling
        message: Human-readable message
        data: Additional context data
    """

    _default_messages = {
        'INVALID_QUANTITY': 'Quantity must be positive',
        'INSUFFICIENT_STOCK': 'Not enough stock on hand',
        'CAPACITY_EXCEEDED': 'Resulting stock exceeds part capacity',
        'INVALID_ADJUSTMENT': 'Adjustment would leave stock out of range',
        'OVER_CONSUMPTION': 'Quantity exceeds the unconsumed reservation',
        'INVALID_TRANSITION': 'Reservation status does not allow this operation',
        'DUPLICATE_ACTIVE_RESERVATION': 'Job order already holds an open reservation for this part',
        'ALREADY_ACKNOWLEDGED': 'Alert was already acknowledged',
        'STORAGE_UNAVAILABLE': 'Storage backend unavailable',
        'VALIDATION_ERROR': 'Invalid input',
        'PART_NOT_FOUND': 'Part not found',
        'RESERVATION_NOT_FOUND': 'Reservation not found',
        'ALERT_NOT_FOUND': 'Alert not found',
    }

    # Only storage failures are transient; everything else is a rule violation.
    RETRYABLE_CODES = frozenset({'STORAGE_UNAVAILABLE'})

    @property
    def available(self) -> int:
        """Shortcut for data['available']."""
        return self.data.get('available', 0)

    @property
    def requested(self) -> int:
        """Shortcut for data['requested']."""
        return self.data.get('requested', 0)

    @property
    def retryable(self) -> bool:
        return self.code in self.RETRYABLE_CODES

    def as_dict(self) -> dict[str, Any]:
        """Serialize to dict (useful for APIs)."""
        return {
            'code': self.code,
            'message': self.message,
            'data': {
                k: str(v) if isinstance(v, Decimal) else v
                for k, v in self.data.items()
            }
        }


@contextmanager
def storage_guard(operation: str):
    """Translate database connectivity failures into STORAGE_UNAVAILABLE."""
    try:
        yield
    except (OperationalError, InterfaceError) as e:
        raise LedgerError(
            'STORAGE_UNAVAILABLE',
            operation=operation,
            detail=str(e),
        ) from e
