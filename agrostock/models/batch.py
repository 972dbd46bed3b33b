"""
Batch model — lot traceability for inputs with expiry.

Inputs like agrochemicals, vaccines and seed carry a supplier lot number
and their own expiry date. Batches are created from receipt metadata
(RemittanceItem.batch_number / batch_expiry_date) and link the entry
Movements they originated.

Usage:
    batch = Batch.objects.create(
        input=glifosato,
        code="L-2026-118",
        expiry_date=date(2027, 3, 31),
        supplier="Agroquímica del Sur",
    )

    stock.register_movement(glifosato, 'entry', 200, reference='Compra', batch=batch)
"""

from datetime import date

from django.db import models
from django.utils.translation import gettext_lazy as _


class BatchQuerySet(models.QuerySet):
    """Custom QuerySet for Batch with convenience filters."""

    def expiring_before(self, day):
        """Batches expiring on or before the given date."""
        return self.filter(expiry_date__lte=day, expiry_date__isnull=False)

    def expired(self):
        """Batches past their expiry date."""
        return self.expiring_before(date.today())

    def for_input(self, input):
        return self.filter(input=input)


class Batch(models.Model):
    """
    Supplier lot of an Input.

    Key use cases:
    - Track expiry dates per lot (not just per input)
    - Trace which supplier delivered which lot
    - Support recalls: "find all movements of lot X"
    """

    input = models.ForeignKey(
        'agrostock.Input',
        on_delete=models.PROTECT,
        related_name='batches',
        verbose_name=_('Insumo'),
    )
    code = models.CharField(
        max_length=50,
        verbose_name=_('Número de lote'),
    )
    expiry_date = models.DateField(
        null=True,
        blank=True,
        db_index=True,
        verbose_name=_('Fecha de vencimiento'),
        help_text=_('Último día en que el lote puede utilizarse'),
    )
    supplier = models.CharField(
        max_length=200,
        blank=True,
        default='',
        verbose_name=_('Proveedor'),
    )
    notes = models.TextField(
        blank=True,
        default='',
        verbose_name=_('Observaciones'),
    )

    created_at = models.DateTimeField(auto_now_add=True, verbose_name=_('Creado'))

    objects = BatchQuerySet.as_manager()

    class Meta:
        verbose_name = _('Lote de insumo')
        verbose_name_plural = _('Lotes de insumo')
        ordering = ['expiry_date', 'code']
        constraints = [
            models.UniqueConstraint(
                fields=['input', 'code'],
                name='unique_batch_code_per_input',
            ),
        ]

    @property
    def is_expired(self) -> bool:
        """Is this batch past its expiry date?"""
        if self.expiry_date is None:
            return False
        return date.today() >= self.expiry_date

    def __str__(self) -> str:
        expiry = f" (vto:{self.expiry_date})" if self.expiry_date else ""
        return f"Lote {self.code}{expiry}"
