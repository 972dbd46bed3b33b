"""
Movement model — Immutable ledger of input quantity changes.
"""

from decimal import Decimal

from django.conf import settings
from django.db import models, transaction
from django.db.models import F
from django.utils import timezone
from django.utils.translation import gettext_lazy as _

from agrostock.models.enums import MovementType


class MovementQuerySet(models.QuerySet):

    def for_firm(self, firm_id):
        return self.filter(depot__firm_id=firm_id)

    def of_type(self, movement_type):
        return self.filter(type=movement_type)

    def between(self, since=None, until=None):
        qs = self
        if since is not None:
            qs = qs.filter(timestamp__date__gte=since)
        if until is not None:
            qs = qs.filter(timestamp__date__lte=until)
        return qs


class Movement(models.Model):
    """
    Immutable record of a stock change.

    Rules:
    - NEVER update() or delete()
    - Corrections are new Movements (adjustments)
    - Updates Input._balance atomically on save()

    This is the ONLY model that changes stock.
    """

    input = models.ForeignKey(
        'agrostock.Input',
        on_delete=models.PROTECT,
        related_name='movements',
        verbose_name=_('Insumo'),
    )
    type = models.CharField(
        max_length=20,
        choices=MovementType.choices,
        verbose_name=_('Tipo'),
    )
    quantity = models.DecimalField(
        max_digits=14,
        decimal_places=3,
        verbose_name=_('Cantidad'),
        help_text=_('Positivo = ingreso, Negativo = egreso'),
    )

    depot = models.ForeignKey(
        'agrostock.Plot',
        on_delete=models.PROTECT,
        related_name='movements',
        verbose_name=_('Depósito'),
    )
    destination_depot = models.ForeignKey(
        'agrostock.Plot',
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name='incoming_transfers',
        verbose_name=_('Depósito destino'),
    )

    reference = models.CharField(
        max_length=255,
        verbose_name=_('Referencia'),
        help_text=_('Obligatoria. Ej: "Recepción remito 0001-00012345", "Aplicación potrero 4"'),
    )
    remittance = models.ForeignKey(
        'agrostock.Remittance',
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name='movements',
        verbose_name=_('Remito'),
    )
    remittance_item = models.ForeignKey(
        'agrostock.RemittanceItem',
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name='movements',
        verbose_name=_('Ítem de remito'),
    )
    batch = models.ForeignKey(
        'agrostock.Batch',
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name='movements',
        verbose_name=_('Lote'),
    )
    unit_cost = models.DecimalField(
        max_digits=14,
        decimal_places=4,
        null=True,
        blank=True,
        verbose_name=_('Costo unitario'),
    )
    transfer_group = models.UUIDField(
        null=True,
        blank=True,
        db_index=True,
        verbose_name=_('Grupo de transferencia'),
        help_text=_('Compartido por los dos movimientos de una transferencia'),
    )

    metadata = models.JSONField(default=dict, blank=True, verbose_name=_('Metadatos'))

    timestamp = models.DateTimeField(default=timezone.now, db_index=True, verbose_name=_('Fecha/Hora'))
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        verbose_name=_('Usuario'),
    )

    objects = MovementQuerySet.as_manager()

    class Meta:
        verbose_name = _('Movimiento')
        verbose_name_plural = _('Movimientos')
        ordering = ['timestamp', 'pk']
        indexes = [
            models.Index(fields=['input', 'timestamp'], name='agrostock_mov_input_ts_idx'),
            models.Index(fields=['depot', 'type'], name='agrostock_mov_depot_type_idx'),
        ]

    def save(self, *args, **kwargs):
        """Save movement and update the input balance cache atomically."""
        # Immutability check
        if self.pk:
            raise ValueError(
                "Los movimientos son inmutables. "
                "Para corregir, registre un ajuste."
            )

        # Validations
        if not (self.reference or '').strip():
            raise ValueError("La referencia es obligatoria")

        # Save and update cache atomically
        with transaction.atomic():
            super().save(*args, **kwargs)

            # Import here to avoid circular import
            from agrostock.models.input import Input

            # Update Input cache using F() for atomicity
            Input.objects.filter(pk=self.input_id).update(
                _balance=F('_balance') + self.quantity,
                updated_at=timezone.now(),
            )

    def delete(self, *args, **kwargs):
        """Prevent deletion — movements are immutable."""
        raise ValueError(
            "Los movimientos son inmutables. "
            "Para revertir, registre un ajuste."
        )

    @property
    def is_inbound(self) -> bool:
        return self.quantity > 0

    @property
    def valuation(self) -> Decimal | None:
        if self.unit_cost is None:
            return None
        return abs(self.quantity) * self.unit_cost

    def __str__(self) -> str:
        sign = '+' if self.quantity > 0 else ''
        return f"{sign}{self.quantity} {self.get_type_display()} | {self.reference}"
