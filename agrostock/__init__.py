"""
Agrostock — farm input ledger, delivery reconciliation and operational alerts.

Uso:
    from agrostock import stock, StockError

    stock.register_movement(urea, 'entry', 100, reference='Compra inicial')
    stock.current_stock(urea)  # Decimal('100')

    result = stock.receive(remito, 'capataz', [{'item_id': 7, 'quantity_received': 20}])
    result.pending_input_creation  # items that still need an Input

    stock.evaluate_alerts(firm_id=1)
"""


def __getattr__(name):
    """Lazy import to avoid circular imports during app loading."""
    if name == 'stock':
        from agrostock.service import Stock
        return Stock
    elif name == 'StockError':
        from agrostock.exceptions import StockError
        return StockError
    elif name == 'InsufficientStock':
        from agrostock.exceptions import InsufficientStock
        return InsufficientStock
    elif name == 'DuplicateDocument':
        from agrostock.exceptions import DuplicateDocument
        return DuplicateDocument
    elif name == 'InvalidTransition':
        from agrostock.exceptions import InvalidTransition
        return InvalidTransition
    elif name == 'ConcurrencyConflict':
        from agrostock.exceptions import ConcurrencyConflict
        return ConcurrencyConflict
    elif name == 'Plot':
        from agrostock.models.plot import Plot
        return Plot
    elif name == 'Depot':
        from agrostock.models.plot import Depot
        return Depot
    elif name == 'Input':
        from agrostock.models.input import Input
        return Input
    elif name == 'Movement':
        from agrostock.models.movement import Movement
        return Movement
    elif name == 'Batch':
        from agrostock.models.batch import Batch
        return Batch
    elif name == 'Remittance':
        from agrostock.models.remittance import Remittance
        return Remittance
    elif name == 'RemittanceItem':
        from agrostock.models.remittance import RemittanceItem
        return RemittanceItem
    elif name == 'Alert':
        from agrostock.models.alert import Alert
        return Alert
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


__all__ = [
    'stock',
    'StockError',
    'InsufficientStock',
    'DuplicateDocument',
    'InvalidTransition',
    'ConcurrencyConflict',
    'Plot',
    'Depot',
    'Input',
    'Movement',
    'Batch',
    'Remittance',
    'RemittanceItem',
    'Alert',
]

__version__ = '0.1.0'
