"""
Agrostock Models.

Core models for input stock management:
- Plot / Depot: Where stock exists (and what alert rules watch)
- Input: Stock-keeping unit with balance cache
- Movement: Immutable ledger of changes
- Batch: Lot traceability
- Remittance / RemittanceItem: Delivery documents under reconciliation
- Alert: Deduplicated rule alerts
"""

from agrostock.models.alert import Alert
from agrostock.models.batch import Batch
from agrostock.models.enums import (
    AlertOrigin,
    AlertPriority,
    AlertStatus,
    ItemCondition,
    LandUse,
    MovementType,
    RemittanceStatus,
)
from agrostock.models.input import Input
from agrostock.models.linkage import UNLINKED, Linked, Unlinked
from agrostock.models.movement import Movement
from agrostock.models.plot import Depot, Plot
from agrostock.models.remittance import Remittance, RemittanceItem

__all__ = [
    'LandUse',
    'MovementType',
    'RemittanceStatus',
    'ItemCondition',
    'AlertStatus',
    'AlertPriority',
    'AlertOrigin',
    'Plot',
    'Depot',
    'Input',
    'Movement',
    'Batch',
    'Remittance',
    'RemittanceItem',
    'Linked',
    'Unlinked',
    'UNLINKED',
    'Alert',
]
