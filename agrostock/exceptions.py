"""
Exceptions for Agrostock.

All errors are AgrostockError subclasses with a structured code for
programmatic handling. The ledger and reception engines raise StockError
(or one of its named subclasses below); callers can catch the family or a
specific case.
"""

from decimal import Decimal
from typing import Any


class AgrostockError(Exception):
    """
    Base structured error.

    Attributes:
        code: Error code for programmatic handling
        message: Human-readable message
        data: Additional context data
    """

    _default_messages: dict[str, str] = {}
    default_code: str = 'ERROR'

    def __init__(self, code: str | None = None, message: str | None = None, **data: Any):
        self.code = code or self.default_code
        self.message = message or self._default_messages.get(self.code, self.code)
        self.data = data
        super().__init__(self.message)

    def __str__(self) -> str:
        if not self.data:
            return f"[{self.code}] {self.message}"
        context = ', '.join(f"{k}={v}" for k, v in self.data.items())
        return f"[{self.code}] {self.message} ({context})"

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


class StockError(AgrostockError):
    """
    Structured exception for ledger, reception and alert operations.

    Usage:
        try:
            stock.register_movement(urea, 'exit', 150, reference='Aplicación lote 4')
        except StockError as e:
            if e.code == 'INSUFFICIENT_STOCK':
                print(f"Solo hay {e.available} disponible")
    """

    _default_messages = {
        'INSUFFICIENT_STOCK': 'Stock insuficiente para registrar el movimiento',
        'INVALID_QUANTITY': 'Cantidad inválida (debe ser un número positivo)',
        'INVALID_MOVEMENT_TYPE': 'Tipo de movimiento inválido',
        'REFERENCE_REQUIRED': 'La referencia del movimiento es obligatoria',
        'REASON_REQUIRED': 'El motivo es obligatorio',
        'DEPOT_MISMATCH': 'El depósito no corresponde al insumo',
        'DESTINATION_REQUIRED': 'El depósito destino es obligatorio para transferencias',
        'INVALID_TRANSFER': 'Transferencia inválida',
        'INVALID_DEPOT': 'El lote no funciona como depósito',
        'DUPLICATE_DOCUMENT': 'Ya existe un remito activo con el mismo número, fecha y proveedor',
        'INVALID_TRANSITION': 'Operación no permitida en el estado actual',
        'INVALID_STATUS': 'Estado inválido para esta operación',
        'INVALID_DOCUMENT': 'Datos del remito incompletos',
        'INVALID_ITEM': 'Ítem de remito inválido',
        'OVER_RECEIPT': 'La cantidad recibida excede la tolerancia sobre lo pedido',
        'ALREADY_LINKED': 'El ítem ya está vinculado a otro insumo',
        'CONCURRENT_MODIFICATION': 'Modificación concurrente detectada',
        'UNKNOWN_RULE': 'Regla de alerta desconocida',
        'INVALID_SCOPE': 'Alcance de evaluación inválido',
        'TITLE_REQUIRED': 'El título de la alerta es obligatorio',
    }

    @property
    def available(self) -> Decimal:
        """Shortcut for data['available']."""
        return self.data.get('available', Decimal('0'))

    @property
    def requested(self) -> Decimal:
        """Shortcut for data['requested']."""
        return self.data.get('requested', Decimal('0'))


class InsufficientStock(StockError):
    """Exit, adjustment or transfer would drive a balance below zero."""

    default_code = 'INSUFFICIENT_STOCK'


class DuplicateDocument(StockError):
    """An active remittance already exists for firm + number + date + supplier."""

    default_code = 'DUPLICATE_DOCUMENT'


class InvalidTransition(StockError):
    """Operation on a terminal document, or a non-monotonic receipt."""

    default_code = 'INVALID_TRANSITION'


class ConcurrencyConflict(StockError):
    """Optimistic check failed: someone else wrote the row first."""

    default_code = 'CONCURRENT_MODIFICATION'
