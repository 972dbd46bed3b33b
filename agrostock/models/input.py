"""
Input model — a stock-keeping unit held at one depot, with its balance cache.
"""

import logging
from datetime import date
from decimal import Decimal

from django.db import models
from django.db.models import Sum
from django.db.models.functions import Coalesce
from django.utils.translation import gettext_lazy as _

logger = logging.getLogger('agrostock')


class InputQuerySet(models.QuerySet):
    """Helper filters for Input queries."""

    def for_firm(self, firm_id):
        return self.filter(depot__firm_id=firm_id)

    def at_depot(self, depot):
        return self.filter(depot=depot)

    def with_identity(self, name, unit, category):
        """Same product identity (used to find the counterpart at another depot)."""
        return self.filter(name=name, unit=unit, category=category)

    def below_minimum(self):
        """Inputs with a configured minimum whose balance reached it."""
        return self.filter(min_stock__gt=0, _balance__lte=models.F('min_stock'))

    def expiring_before(self, day: date):
        return self.filter(expiration_date__isnull=False, expiration_date__lte=day)

    def in_stock(self):
        return self.filter(_balance__gt=0)


class Input(models.Model):
    """
    A consumable input (fertilizer, seed, feed, fuel...) at a depot.

    Performance:
    - _balance is a cache updated atomically by Movement.save()
    - Read is O(1), not O(N)
    - Use recalculate() for audit/correction

    The ledger (Movement rows) is the source of truth; the cache must
    always equal the signed sum of this input's movements.
    """

    depot = models.ForeignKey(
        'agrostock.Plot',
        on_delete=models.PROTECT,
        related_name='inputs',
        limit_choices_to={'is_depot': True},
        verbose_name=_('Depósito'),
    )
    name = models.CharField(
        max_length=200,
        verbose_name=_('Nombre'),
    )
    unit = models.CharField(
        max_length=20,
        verbose_name=_('Unidad'),
        help_text=_('kg, lt, un, bolsa...'),
    )
    category = models.CharField(
        max_length=50,
        blank=True,
        default='',
        verbose_name=_('Categoría'),
    )
    description = models.TextField(
        blank=True,
        default='',
        verbose_name=_('Descripción'),
    )
    expiration_date = models.DateField(
        null=True,
        blank=True,
        db_index=True,
        verbose_name=_('Fecha de vencimiento'),
    )
    min_stock = models.DecimalField(
        max_digits=14,
        decimal_places=3,
        null=True,
        blank=True,
        verbose_name=_('Stock mínimo'),
        help_text=_('Alerta cuando el stock llega a este valor. Vacío = sin alerta.'),
    )
    cost_per_unit = models.DecimalField(
        max_digits=14,
        decimal_places=4,
        null=True,
        blank=True,
        verbose_name=_('Costo unitario'),
    )

    # Balance cache (updated atomically by Movement)
    _balance = models.DecimalField(
        max_digits=14,
        decimal_places=3,
        default=Decimal('0'),
        verbose_name=_('Stock actual'),
    )

    metadata = models.JSONField(default=dict, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = InputQuerySet.as_manager()

    class Meta:
        verbose_name = _('Insumo')
        verbose_name_plural = _('Insumos')
        ordering = ['name']
        constraints = [
            models.UniqueConstraint(
                fields=['depot', 'name', 'unit', 'category'],
                name='unique_input_identity_per_depot',
            ),
        ]
        indexes = [
            models.Index(fields=['depot', 'name'], name='agrostock_input_depot_name_idx'),
        ]

    # ══════════════════════════════════════════════════════════════
    # PROPERTIES
    # ══════════════════════════════════════════════════════════════

    @property
    def balance(self) -> Decimal:
        """Current stock — O(1) cache read."""
        return self._balance

    @property
    def firm_id(self) -> int:
        return self.depot.firm_id

    @property
    def is_below_minimum(self) -> bool:
        if not self.min_stock:
            return False
        return self._balance <= self.min_stock

    @property
    def is_expired(self) -> bool:
        if self.expiration_date is None:
            return False
        return date.today() >= self.expiration_date

    # ══════════════════════════════════════════════════════════════
    # METHODS
    # ══════════════════════════════════════════════════════════════

    def ledger_balance(self) -> Decimal:
        """Signed sum of all movements of this input."""
        return self.movements.aggregate(
            t=Coalesce(Sum('quantity'), Decimal('0'))
        )['t']

    def recalculate(self) -> Decimal:
        """
        Recalculate balance from Movements.

        Use for:
        - Integrity audit
        - Correction after detected inconsistency

        Returns:
            New calculated balance
        """
        total = self.ledger_balance()

        if total != self._balance:
            old = self._balance
            self._balance = total
            self.save(update_fields=['_balance', 'updated_at'])

            logger.warning(
                f"Input {self.pk} recalculated: {old} → {total} "
                f"(diff: {total - old})"
            )

        return total

    def __str__(self) -> str:
        return f"{self.name} [{self.depot.code}]: {self._balance} {self.unit}"
