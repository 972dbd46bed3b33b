"""
Admin actions shared by the plain and the Unfold admin.

Every action goes through the stock service so that state transitions
keep their validation, locking and logging.
"""

import logging

from django.contrib import admin, messages
from django.utils.translation import gettext_lazy as _

from agrostock.exceptions import StockError
from agrostock.models.enums import AlertStatus

logger = logging.getLogger(__name__)

ADMIN_CANCEL_REASON = 'Cancelado desde el administrador'


def _report(modeladmin, request, done, failed, done_message):
    modeladmin.message_user(request, done_message.format(count=done))
    if failed:
        modeladmin.message_user(
            request,
            _('{count} registro(s) no se pudieron procesar.').format(count=failed),
            level=messages.WARNING,
        )


@admin.action(description=_('Cancelar remitos seleccionados'))
def cancel_remittances(modeladmin, request, queryset):
    from agrostock import stock

    done = failed = 0
    for remittance in queryset:
        try:
            stock.cancel_remittance(remittance, ADMIN_CANCEL_REASON)
            done += 1
        except StockError as exc:
            failed += 1
            logger.warning("cancel_remittances: %s: %s", remittance.pk, exc)
    _report(modeladmin, request, done, failed, _('{count} remito(s) cancelado(s).'))


@admin.action(description=_('Marcar alertas como completadas'))
def resolve_alerts(modeladmin, request, queryset):
    from agrostock import stock

    done = 0
    for alert in queryset.filter(status=AlertStatus.PENDING):
        stock.resolve_alert(alert)
        done += 1
    _report(modeladmin, request, done, 0, _('{count} alerta(s) completada(s).'))


@admin.action(description=_('Descartar alertas seleccionadas'))
def cancel_alerts(modeladmin, request, queryset):
    from agrostock import stock

    done = 0
    for alert in queryset.filter(status=AlertStatus.PENDING):
        stock.cancel_alert(alert)
        done += 1
    _report(modeladmin, request, done, 0, _('{count} alerta(s) descartada(s).'))
