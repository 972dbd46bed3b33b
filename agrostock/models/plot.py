"""
Plot model — land units of a firm; depots are plots flagged as storage.
"""

from django.db import models
from django.utils.translation import gettext_lazy as _

from agrostock.models.enums import LandUse


class Plot(models.Model):
    """
    A plot (lote) of a premise.

    Plots are maintained by the host application's plot CRUD; Agrostock
    reads them as stock locations (is_depot=True) and as monitored
    entities for the alert rules (pasture and vegetation fields).

    Firm and premise are opaque references: Agrostock does not model them.

    Examples:
        Plot.objects.create(code='galpon-1', name='Galpón 1', firm_id=1, is_depot=True)
        Plot.objects.create(code='potrero-4', name='Potrero 4', firm_id=1,
                            land_use=LandUse.LIVESTOCK, target_remnant_cm=5)
    """

    code = models.SlugField(
        max_length=50,
        verbose_name=_('Código'),
        help_text=_('Identificador único dentro de la firma (ej: galpon-1)'),
    )
    name = models.CharField(
        max_length=100,
        verbose_name=_('Nombre'),
    )
    firm_id = models.PositiveIntegerField(
        db_index=True,
        verbose_name=_('Firma'),
    )
    premise_id = models.PositiveIntegerField(
        null=True,
        blank=True,
        db_index=True,
        verbose_name=_('Predio'),
    )
    land_use = models.CharField(
        max_length=20,
        choices=LandUse.choices,
        default=LandUse.OTHER,
        verbose_name=_('Uso de suelo'),
    )
    is_depot = models.BooleanField(
        default=False,
        verbose_name=_('Funciona como depósito'),
        help_text=_('Si True, el lote almacena insumos.'),
    )

    # Pasture monitoring
    pasture_height_cm = models.DecimalField(
        max_digits=6,
        decimal_places=1,
        null=True,
        blank=True,
        verbose_name=_('Altura de pastura (cm)'),
    )
    target_remnant_cm = models.DecimalField(
        max_digits=6,
        decimal_places=1,
        null=True,
        blank=True,
        verbose_name=_('Remanente objetivo (cm)'),
    )
    pasture_measured_at = models.DateField(
        null=True,
        blank=True,
        verbose_name=_('Última medición de pastura'),
    )

    # Vegetation index (fed by the satellite integration)
    ndvi_value = models.DecimalField(
        max_digits=4,
        decimal_places=3,
        null=True,
        blank=True,
        verbose_name=_('NDVI'),
    )
    ndvi_updated_at = models.DateField(
        null=True,
        blank=True,
        verbose_name=_('Fecha NDVI'),
    )

    metadata = models.JSONField(
        default=dict,
        blank=True,
        verbose_name=_('Metadatos'),
    )

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = _('Lote')
        verbose_name_plural = _('Lotes')
        ordering = ['firm_id', 'code']
        constraints = [
            models.UniqueConstraint(
                fields=['firm_id', 'code'],
                name='unique_plot_code_per_firm',
            ),
        ]

    def __str__(self) -> str:
        return self.name


class DepotManager(models.Manager):
    """Only plots flagged as depots."""

    def get_queryset(self):
        return super().get_queryset().filter(is_depot=True)


class Depot(Plot):
    """
    Storage location: a Plot with is_depot=True.

    Creating through this proxy always sets the flag.
    """

    objects = DepotManager()

    class Meta:
        proxy = True
        verbose_name = _('Depósito')
        verbose_name_plural = _('Depósitos')

    def save(self, *args, **kwargs):
        self.is_depot = True
        super().save(*args, **kwargs)
