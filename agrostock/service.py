"""
Stock Service — The single public interface for all Agrostock operations.

Usage:
    from agrostock import stock, StockError

    stock.register_movement(urea, 'entry', 100, reference='Compra inicial')
    stock.transfer(urea, 40, galpon_2, reference='Reposición')
    stock.current_stock(urea)  # Decimal('60')

    remito = stock.create_remittance('0001-00012345', date.today(), 'Agro SA',
                                     galpon_1, items=[...])
    stock.receive(remito, 'capataz', [{'item_id': 7, 'quantity_received': 20}])

    stock.evaluate_alerts(firm_id=1)
"""

from agrostock.services.alerts import AlertEngine
from agrostock.services.movements import StockMovements
from agrostock.services.queries import StockQueries
from agrostock.services.reception import Reception


class Stock(StockQueries, StockMovements, Reception, AlertEngine):
    """
    Single interface for all stock operations.

    IMPORTANT: All state-changing methods use atomic transactions
    with appropriate locking. See each method's docstring.
    """

    @classmethod
    def evaluate_alerts(cls, firm_id, scope='all', **kwargs):
        return cls.evaluate(firm_id, scope=scope, **kwargs)

    @classmethod
    def resolve_alert(cls, alert):
        return cls.resolve(alert)

    @classmethod
    def cancel_alert(cls, alert):
        return cls.cancel(alert)
