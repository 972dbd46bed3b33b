"""
Agrostock configuration.

Usage in settings.py:
    AGROSTOCK = {
        "EXPIRY_WARNING_DAYS": 30,
        "MEASUREMENT_STALE_DAYS": 14,
        "DEPOT_STALE_DAYS": 21,
        "NDVI_THRESHOLD": 0.4,
        "RECEIPT_TOLERANCE": "0.10",
        "RECEIVE_RETRIES": 1,
        "DISABLED_ALERT_RULES": ["ndvi_low"],
    }
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import Any

from django.conf import settings


@dataclass
class AgrostockSettings:
    """Agrostock configuration settings."""

    # Days before expiration that raise the "expiring" alert
    EXPIRY_WARNING_DAYS: int = 30

    # Livestock plots without pasture measurement for longer than this
    MEASUREMENT_STALE_DAYS: int = 14

    # Depots without stock activity for longer than this
    DEPOT_STALE_DAYS: int = 21

    # NDVI below this value indicates vegetation stress
    NDVI_THRESHOLD: float = 0.4

    # Accepted over-receipt on a remittance item (0.10 = up to 110% of ordered)
    RECEIPT_TOLERANCE: Decimal = Decimal('0.10')

    # Automatic retries of receive() after a concurrency conflict
    RECEIVE_RETRIES: int = 1

    # In-transit remittances older than this are reported as stale
    STALE_REMITTANCE_DAYS: int = 30

    # Rule ids skipped by evaluate()
    DISABLED_ALERT_RULES: tuple = ()


def get_agrostock_settings() -> AgrostockSettings:
    """Load settings from Django settings."""
    user_settings: dict[str, Any] = getattr(settings, "AGROSTOCK", {})
    loaded = AgrostockSettings(**{
        k: v for k, v in user_settings.items()
        if k in AgrostockSettings.__dataclass_fields__
    })
    loaded.RECEIPT_TOLERANCE = Decimal(str(loaded.RECEIPT_TOLERANCE))
    loaded.DISABLED_ALERT_RULES = tuple(loaded.DISABLED_ALERT_RULES)
    return loaded


class _LazySettings:
    """Lazy proxy that re-reads settings on every attribute access."""

    def __getattr__(self, name):
        return getattr(get_agrostock_settings(), name)


agrostock_settings = _LazySettings()
