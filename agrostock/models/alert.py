"""
Alert model — deduplicated operational alerts raised by rules.

Usage:
    # Automatic alerts come from the rule engine
    stock.evaluate_alerts(firm_id=1)

    # Manual alerts from upstream collaborators
    stock.create_manual_alert(firm_id=1, entity=plot, rule_id='inspection',
                              title='Revisar alambrado')
"""

from django.contrib.contenttypes.fields import GenericForeignKey
from django.contrib.contenttypes.models import ContentType
from django.db import models
from django.db.models import Q
from django.utils.translation import gettext_lazy as _

from agrostock.models.enums import AlertOrigin, AlertPriority, AlertStatus


class AlertQuerySet(models.QuerySet):

    def for_firm(self, firm_id):
        return self.filter(firm_id=firm_id)

    def pending(self):
        return self.filter(status=AlertStatus.PENDING)

    def for_entity(self, entity):
        ct = ContentType.objects.get_for_model(entity)
        return self.filter(content_type=ct, object_id=entity.pk)


class Alert(models.Model):
    """
    Alert about one entity (input or plot) raised by one rule.

    At most one PENDING alert exists per (entity, rule_id); the database
    enforces it with a partial unique constraint. Completed or cancelled
    alerts are history: a new PENDING alert may be created afterwards.
    """

    firm_id = models.PositiveIntegerField(
        db_index=True,
        verbose_name=_('Firma'),
    )

    # Entity reference (input or plot)
    content_type = models.ForeignKey(
        ContentType,
        on_delete=models.CASCADE,
        verbose_name=_('Tipo de entidad'),
    )
    object_id = models.PositiveIntegerField(verbose_name=_('ID de entidad'))
    entity = GenericForeignKey('content_type', 'object_id')

    rule_id = models.CharField(
        max_length=50,
        db_index=True,
        verbose_name=_('Regla'),
    )
    priority = models.CharField(
        max_length=10,
        choices=AlertPriority.choices,
        default=AlertPriority.MEDIUM,
        verbose_name=_('Prioridad'),
    )
    status = models.CharField(
        max_length=10,
        choices=AlertStatus.choices,
        default=AlertStatus.PENDING,
        db_index=True,
        verbose_name=_('Estado'),
    )
    origin = models.CharField(
        max_length=10,
        choices=AlertOrigin.choices,
        default=AlertOrigin.AUTOMATIC,
        verbose_name=_('Origen'),
    )

    title = models.CharField(max_length=200, verbose_name=_('Título'))
    description = models.TextField(blank=True, default='', verbose_name=_('Descripción'))
    metadata = models.JSONField(default=dict, blank=True, verbose_name=_('Metadatos'))

    created_at = models.DateTimeField(auto_now_add=True, verbose_name=_('Creada'))
    resolved_at = models.DateTimeField(null=True, blank=True, verbose_name=_('Cerrada'))

    objects = AlertQuerySet.as_manager()

    class Meta:
        verbose_name = _('Alerta')
        verbose_name_plural = _('Alertas')
        ordering = ['-created_at', '-pk']
        constraints = [
            models.UniqueConstraint(
                fields=['content_type', 'object_id', 'rule_id'],
                condition=Q(status='pending'),
                name='unique_pending_alert_per_entity_rule',
            ),
        ]
        indexes = [
            models.Index(fields=['content_type', 'object_id'], name='agrostock_alert_entity_idx'),
            models.Index(fields=['firm_id', 'status'], name='agrostock_alert_firm_st_idx'),
        ]

    @property
    def is_pending(self) -> bool:
        return self.status == AlertStatus.PENDING

    def __str__(self) -> str:
        return f"[{self.get_priority_display()}] {self.title}"
