"""
Remittance models — supplier delivery documents and their lines.
"""

from decimal import Decimal

from django.db import models
from django.db.models import F, Q
from django.utils.translation import gettext_lazy as _

from agrostock.models.enums import ItemCondition, RemittanceStatus
from agrostock.models.linkage import UNLINKED, Linkage, Linked


class RemittanceQuerySet(models.QuerySet):
    """Custom QuerySet for Remittance."""

    def for_firm(self, firm_id):
        return self.filter(firm_id=firm_id)

    def active(self):
        """Not cancelled: these take part in duplicate detection."""
        return self.exclude(status=RemittanceStatus.CANCELLED)

    def open(self):
        """Still accepting receipts."""
        return self.exclude(status__in=RemittanceStatus.terminal())

    def same_document(self, firm_id, document_number, date, supplier_tax_id):
        return self.filter(
            firm_id=firm_id,
            document_number=document_number,
            date=date,
            supplier_tax_id=supplier_tax_id,
        )


class Remittance(models.Model):
    """
    Delivery document (remito) received at a depot.

    Lifecycle:
        IN_TRANSIT → PARTIALLY_RECEIVED → RECEIVED
        any non-terminal → CANCELLED (with reason)

    Status changes go through agrostock.services.reception.Reception;
    every state-changing write bumps ``version``.
    """

    firm_id = models.PositiveIntegerField(
        db_index=True,
        verbose_name=_('Firma'),
    )
    document_number = models.CharField(
        max_length=50,
        verbose_name=_('Número de remito'),
    )
    date = models.DateField(
        verbose_name=_('Fecha'),
    )
    supplier_name = models.CharField(
        max_length=200,
        verbose_name=_('Proveedor'),
    )
    supplier_tax_id = models.CharField(
        max_length=20,
        blank=True,
        default='',
        verbose_name=_('CUIT proveedor'),
    )
    depot = models.ForeignKey(
        'agrostock.Plot',
        on_delete=models.PROTECT,
        related_name='remittances',
        limit_choices_to={'is_depot': True},
        verbose_name=_('Depósito de ingreso'),
    )

    status = models.CharField(
        max_length=20,
        choices=RemittanceStatus.choices,
        default=RemittanceStatus.IN_TRANSIT,
        db_index=True,
        verbose_name=_('Estado'),
    )
    received_by = models.CharField(
        max_length=150,
        blank=True,
        default='',
        verbose_name=_('Recibido por'),
    )
    received_at = models.DateTimeField(
        null=True,
        blank=True,
        verbose_name=_('Fecha de recepción'),
    )
    cancellation_reason = models.TextField(
        blank=True,
        default='',
        verbose_name=_('Motivo de cancelación'),
    )
    cancelled_at = models.DateTimeField(
        null=True,
        blank=True,
        verbose_name=_('Fecha de cancelación'),
    )

    purchase_order_ref = models.CharField(
        max_length=50,
        blank=True,
        default='',
        verbose_name=_('Orden de compra'),
    )
    notes = models.TextField(
        blank=True,
        default='',
        verbose_name=_('Observaciones'),
    )

    # Optimistic concurrency token
    version = models.PositiveIntegerField(default=0)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = RemittanceQuerySet.as_manager()

    class Meta:
        verbose_name = _('Remito')
        verbose_name_plural = _('Remitos')
        ordering = ['-date', '-pk']
        constraints = [
            models.UniqueConstraint(
                fields=['firm_id', 'document_number', 'date', 'supplier_tax_id'],
                condition=~Q(status='cancelled'),
                name='unique_active_remittance_document',
            ),
        ]
        indexes = [
            models.Index(fields=['firm_id', 'status'], name='agrostock_rem_firm_status_idx'),
        ]

    @property
    def is_terminal(self) -> bool:
        return self.status in RemittanceStatus.terminal()

    @property
    def is_fully_received(self) -> bool:
        items = list(self.items.all())
        return bool(items) and all(i.quantity_received >= i.quantity_ordered for i in items)

    def __str__(self) -> str:
        return f"Remito {self.document_number} ({self.supplier_name})"


class RemittanceItemQuerySet(models.QuerySet):

    def unlinked(self):
        return self.filter(input__isnull=True)

    def needing_input(self):
        """Unlinked items with received quantity waiting to be posted."""
        return self.filter(input__isnull=True, pending_quantity__gt=0)

    def outstanding(self):
        return self.filter(quantity_received__lt=F('quantity_ordered'))


class RemittanceItem(models.Model):
    """
    One line of a remittance.

    quantity_received is cumulative across receipt passes. When the item is
    not linked to an Input, received deltas accumulate in pending_quantity
    until link_input_to_item() posts them to the ledger.
    """

    remittance = models.ForeignKey(
        Remittance,
        on_delete=models.CASCADE,
        related_name='items',
        verbose_name=_('Remito'),
    )
    line = models.PositiveIntegerField(
        default=0,
        verbose_name=_('Renglón'),
    )
    description = models.CharField(
        max_length=200,
        verbose_name=_('Descripción'),
    )
    unit = models.CharField(
        max_length=20,
        verbose_name=_('Unidad'),
    )
    category = models.CharField(
        max_length=50,
        blank=True,
        default='',
        verbose_name=_('Categoría'),
    )

    quantity_ordered = models.DecimalField(
        max_digits=14,
        decimal_places=3,
        verbose_name=_('Cantidad remitida'),
    )
    quantity_received = models.DecimalField(
        max_digits=14,
        decimal_places=3,
        default=Decimal('0'),
        verbose_name=_('Cantidad recibida'),
        help_text=_('Acumulada entre recepciones'),
    )
    pending_quantity = models.DecimalField(
        max_digits=14,
        decimal_places=3,
        default=Decimal('0'),
        verbose_name=_('Pendiente de imputar'),
        help_text=_('Recibido sin insumo vinculado; se registra al vincular'),
    )

    input = models.ForeignKey(
        'agrostock.Input',
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name='remittance_items',
        verbose_name=_('Insumo'),
    )

    batch_number = models.CharField(
        max_length=50,
        blank=True,
        default='',
        verbose_name=_('Número de lote'),
    )
    batch_expiry_date = models.DateField(
        null=True,
        blank=True,
        verbose_name=_('Vencimiento del lote'),
    )
    condition = models.CharField(
        max_length=20,
        choices=ItemCondition.choices,
        default=ItemCondition.GOOD,
        verbose_name=_('Estado'),
    )
    notes = models.TextField(
        blank=True,
        default='',
        verbose_name=_('Observaciones'),
    )

    objects = RemittanceItemQuerySet.as_manager()

    class Meta:
        verbose_name = _('Ítem de remito')
        verbose_name_plural = _('Ítems de remito')
        ordering = ['remittance', 'line', 'pk']

    @property
    def linkage(self) -> Linkage:
        if self.input_id is None:
            return UNLINKED
        return Linked(self.input_id)

    @property
    def outstanding_quantity(self) -> Decimal:
        return max(self.quantity_ordered - self.quantity_received, Decimal('0'))

    def __str__(self) -> str:
        return f"{self.description}: {self.quantity_received}/{self.quantity_ordered} {self.unit}"
