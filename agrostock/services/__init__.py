"""
Agrostock services — modular organization of ledger, reception and alert operations.

    from agrostock.services import StockQueries, StockMovements, Reception, AlertEngine
"""

from agrostock.services.alerts import AlertEngine, EvaluationResult
from agrostock.services.movements import StockMovements, TransferResult
from agrostock.services.queries import (
    Availability,
    BalanceDrift,
    InputTotal,
    KardexEntry,
    StockQueries,
)
from agrostock.services.reception import ReceiptResult, Reception

__all__ = [
    'StockQueries',
    'StockMovements',
    'Reception',
    'AlertEngine',
    'Availability',
    'KardexEntry',
    'BalanceDrift',
    'InputTotal',
    'TransferResult',
    'ReceiptResult',
    'EvaluationResult',
]
