"""
Enums for Agrostock models.
"""

from django.db import models
from django.utils.translation import gettext_lazy as _


class LandUse(models.TextChoices):
    """What a plot is used for. Drives which monitoring rules apply."""
    AGRICULTURAL = 'agricultural', _('Agrícola')
    LIVESTOCK = 'livestock', _('Ganadero')
    MIXED = 'mixed', _('Mixto')
    OTHER = 'other', _('Otro')


class MovementType(models.TextChoices):
    """
    Kind of ledger entry. The sign of Movement.quantity follows from it.

    ENTRY:      +quantity (purchase, receipt, production)
    EXIT:       -quantity (application, consumption, loss)
    ADJUSTMENT: -quantity by default, +quantity for count corrections upward
    TRANSFER:   -quantity at source, +quantity at destination (paired rows)
    """
    ENTRY = 'entry', _('Ingreso')
    EXIT = 'exit', _('Egreso')
    ADJUSTMENT = 'adjustment', _('Ajuste')
    TRANSFER = 'transfer', _('Transferencia')


class RemittanceStatus(models.TextChoices):
    """
    Delivery document lifecycle.

    IN_TRANSIT ──► PARTIALLY_RECEIVED ──► RECEIVED
         │                  │
         └──────────────────┴──────────► CANCELLED

    RECEIVED and CANCELLED are terminal.
    """
    IN_TRANSIT = 'in_transit', _('En tránsito')
    PARTIALLY_RECEIVED = 'partially_received', _('Recibido parcialmente')
    RECEIVED = 'received', _('Recibido')
    CANCELLED = 'cancelled', _('Cancelado')

    @classmethod
    def terminal(cls) -> list[str]:
        return [cls.RECEIVED, cls.CANCELLED]


class ItemCondition(models.TextChoices):
    """Physical condition of a received line."""
    GOOD = 'good', _('Bueno')
    DAMAGED = 'damaged', _('Dañado')
    PARTIAL = 'partial', _('Incompleto')


class AlertStatus(models.TextChoices):
    """Alert lifecycle status. COMPLETED and CANCELLED are terminal."""
    PENDING = 'pending', _('Pendiente')
    COMPLETED = 'completed', _('Completada')
    CANCELLED = 'cancelled', _('Cancelada')


class AlertPriority(models.TextChoices):
    HIGH = 'high', _('Alta')
    MEDIUM = 'medium', _('Media')
    LOW = 'low', _('Baja')


class AlertOrigin(models.TextChoices):
    AUTOMATIC = 'automatic', _('Automática')
    MANUAL = 'manual', _('Manual')
