"""
Shared argument checks and lookups for the ledger services.
"""

from partsledger.exceptions import LedgerError
from partsledger.models.part import Part


def part_id_of(part) -> int:
    """Accept a Part instance or a primary key."""
    return part.pk if isinstance(part, Part) else part


def require_actor(actor, field='actor') -> None:
    if not actor or not str(actor).strip():
        raise LedgerError('VALIDATION_ERROR', field=field)


def require_positive(quantity, field='quantity') -> None:
    if isinstance(quantity, bool) or not isinstance(quantity, int):
        raise LedgerError('VALIDATION_ERROR', field=field, requested=quantity)
    if quantity <= 0:
        raise LedgerError('INVALID_QUANTITY', requested=quantity)


def load_part_for_update(part_id) -> Part:
    """Fetch and row-lock a part. Must run inside transaction.atomic()."""
    try:
        return Part.objects.select_for_update().get(pk=part_id)
    except Part.DoesNotExist:
        raise LedgerError('PART_NOT_FOUND', part_id=part_id) from None
