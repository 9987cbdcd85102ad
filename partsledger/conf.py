"""
Partsledger configuration.

Usage in settings.py:
    PARTSLEDGER = {
        "HIGH_URGENCY_RATIO": 0.5,
        "ALERT_SWEEP_BATCH_SIZE": 200,
        "DEFAULT_ACTOR": "system",
    }
"""

from dataclasses import dataclass
from typing import Any

from django.conf import settings


@dataclass
class LedgerSettings:
    """Partsledger configuration settings."""

    # Stock at or below threshold * ratio escalates an alert to HIGH
    HIGH_URGENCY_RATIO: float = 0.5

    # Parts fetched per query during the alert sweep
    ALERT_SWEEP_BATCH_SIZE: int = 200

    # Actor recorded by maintenance tasks that have no human caller
    DEFAULT_ACTOR: str = "system"


def get_ledger_settings() -> LedgerSettings:
    """Load settings from Django settings."""
    user_settings: dict[str, Any] = getattr(settings, "PARTSLEDGER", {})
    return LedgerSettings(**{
        k: v for k, v in user_settings.items()
        if k in LedgerSettings.__dataclass_fields__
    })


class _LazySettings:
    """Lazy proxy that re-reads settings on every attribute access."""

    def __getattr__(self, name):
        return getattr(get_ledger_settings(), name)


ledger_settings = _LazySettings()
