"""
Agrostock Admin with Unfold theme.

This module provides Unfold-styled admin classes for Agrostock models.
To use, add 'agrostock.contrib.admin_unfold' to INSTALLED_APPS after 'agrostock'.

The admins will automatically register the Unfold versions.
"""

from django.contrib import admin
from django.utils.translation import gettext_lazy as _
from unfold.decorators import display

from agrostock.admin_actions import cancel_alerts, cancel_remittances, resolve_alerts
from agrostock.contrib.admin_unfold.base import (
    BaseModelAdmin,
    BaseTabularInline,
    ReadOnlyAdminMixin,
    format_quantity,
)
from agrostock.models import (
    Alert,
    AlertPriority,
    AlertStatus,
    Batch,
    Input,
    Movement,
    Plot,
    Remittance,
    RemittanceItem,
    RemittanceStatus,
)


# =============================================================================
# HELPERS
# =============================================================================


def _format_datetime(dt):
    """Format datetime as DD/MM/AA · HH:MM."""
    if dt:
        return dt.strftime('%d/%m/%y · %H:%M')
    return '-'


def _format_date(d):
    """Format date as DD/MM/AA."""
    if d:
        return d.strftime('%d/%m/%y')
    return '-'


# =============================================================================
# PLOT ADMIN
# =============================================================================


@admin.register(Plot)
class PlotAdmin(BaseModelAdmin):
    """Plots are editable; depots are plots with is_depot set."""

    list_display = ['code', 'name', 'firm_id', 'land_use', 'is_depot',
                    'pasture_height_cm', 'ndvi_value']
    list_filter = ['land_use', 'is_depot']
    search_fields = ['code', 'name']
    readonly_fields = ['created_at', 'updated_at']
    warn_unsaved_form = True


# =============================================================================
# INPUT ADMIN
# =============================================================================


class BatchInline(ReadOnlyAdminMixin, BaseTabularInline):
    model = Batch
    extra = 0
    fields = ['code', 'expiry_date', 'supplier']
    readonly_fields = fields


@admin.register(Input)
class InputAdmin(BaseModelAdmin):
    """
    Input admin — editable except the balance.

    The balance only changes through movements (stock.register_movement).
    """

    list_display = ['name', 'depot', 'category', 'balance_display',
                    'min_stock', 'expiration_date_display']
    list_filter = ['depot', 'category']
    search_fields = ['name', 'category']
    readonly_fields = ['_balance', 'created_at', 'updated_at']
    inlines = [BatchInline]
    warn_unsaved_form = True

    @display(description=_('Stock actual'), label={'low': 'danger', 'ok': 'success'})
    def balance_display(self, obj):
        state = 'low' if obj.is_below_minimum else 'ok'
        return state, format_quantity(obj.balance, obj.unit)

    @display(description=_('Vencimiento'))
    def expiration_date_display(self, obj):
        return _format_date(obj.expiration_date)


# =============================================================================
# MOVEMENT ADMIN (read-only ledger)
# =============================================================================


@admin.register(Movement)
class MovementAdmin(ReadOnlyAdminMixin, BaseModelAdmin):
    """Movement admin — read-only. Immutable ledger."""

    list_display = ['timestamp_display', 'input', 'type', 'quantity_display',
                    'depot', 'destination_depot', 'reference', 'user']
    list_filter = ['type', 'depot', 'timestamp']
    search_fields = ['reference', 'input__name']
    readonly_fields = ['input', 'type', 'quantity', 'depot', 'destination_depot',
                       'reference', 'remittance', 'remittance_item', 'batch',
                       'unit_cost', 'transfer_group', 'metadata', 'timestamp', 'user']
    date_hierarchy = 'timestamp'

    @display(description=_('Fecha y hora'))
    def timestamp_display(self, obj):
        return _format_datetime(obj.timestamp)

    @display(description=_('Cantidad'), label={'in': 'success', 'out': 'danger'})
    def quantity_display(self, obj):
        formatted = format_quantity(abs(obj.quantity), obj.input.unit)
        if obj.quantity > 0:
            return 'in', f'+{formatted}'
        return 'out', f'-{formatted}'


# =============================================================================
# BATCH ADMIN
# =============================================================================


@admin.register(Batch)
class BatchAdmin(BaseModelAdmin):
    """Batch admin — lot traceability."""

    list_display = ['code', 'input', 'expiry_date_display', 'supplier', 'is_expired_display']
    list_filter = ['expiry_date']
    search_fields = ['code', 'supplier', 'input__name']
    readonly_fields = ['created_at']

    @display(description=_('Vencimiento'))
    def expiry_date_display(self, obj):
        return _format_date(obj.expiry_date)

    @display(description=_('Vencido'), label={True: 'danger', False: 'success'})
    def is_expired_display(self, obj):
        return obj.is_expired, _('VENCIDO') if obj.is_expired else _('VIGENTE')


# =============================================================================
# REMITTANCE ADMIN (read-only with cancel action)
# =============================================================================


class RemittanceItemInline(ReadOnlyAdminMixin, BaseTabularInline):
    model = RemittanceItem
    extra = 0
    fields = ['line', 'description', 'unit', 'quantity_ordered', 'quantity_received',
              'pending_quantity', 'input', 'batch_number', 'batch_expiry_date', 'condition']
    readonly_fields = fields


@admin.register(Remittance)
class RemittanceAdmin(ReadOnlyAdminMixin, BaseModelAdmin):
    """
    Remittance admin — read-only.

    Receipts go through stock.receive(); the admin only offers cancellation.
    """

    list_display = ['document_number', 'date_display', 'supplier_name', 'depot',
                    'status_display', 'received_by']
    list_filter = ['status', 'depot']
    search_fields = ['document_number', 'supplier_name', 'supplier_tax_id']
    readonly_fields = ['firm_id', 'document_number', 'date', 'supplier_name',
                       'supplier_tax_id', 'depot', 'status', 'received_by', 'received_at',
                       'cancellation_reason', 'cancelled_at', 'purchase_order_ref',
                       'notes', 'version']
    inlines = [RemittanceItemInline]
    actions = [cancel_remittances]

    @display(description=_('Fecha'))
    def date_display(self, obj):
        return _format_date(obj.date)

    @display(
        description=_('Estado'),
        label={
            RemittanceStatus.IN_TRANSIT: 'info',
            RemittanceStatus.PARTIALLY_RECEIVED: 'warning',
            RemittanceStatus.RECEIVED: 'success',
            RemittanceStatus.CANCELLED: 'danger',
        },
    )
    def status_display(self, obj):
        return obj.status, obj.get_status_display()


# =============================================================================
# ALERT ADMIN (read-only with resolve/cancel actions)
# =============================================================================


@admin.register(Alert)
class AlertAdmin(ReadOnlyAdminMixin, BaseModelAdmin):
    """Alert admin — read-only; status changes through the alert engine."""

    list_display = ['title', 'rule_id', 'priority_display', 'status_display',
                    'origin', 'created_at_display']
    list_filter = ['status', 'priority', 'origin', 'rule_id']
    search_fields = ['title', 'description']
    readonly_fields = ['firm_id', 'content_type', 'object_id', 'rule_id', 'priority',
                       'status', 'origin', 'title', 'description', 'metadata',
                       'created_at', 'resolved_at']
    actions = [resolve_alerts, cancel_alerts]

    @display(
        description=_('Prioridad'),
        label={
            AlertPriority.HIGH: 'danger',
            AlertPriority.MEDIUM: 'warning',
            AlertPriority.LOW: 'info',
        },
    )
    def priority_display(self, obj):
        return obj.priority, obj.get_priority_display()

    @display(
        description=_('Estado'),
        label={
            AlertStatus.PENDING: 'warning',
            AlertStatus.COMPLETED: 'success',
            AlertStatus.CANCELLED: 'info',
        },
    )
    def status_display(self, obj):
        return obj.status, obj.get_status_display()

    @display(description=_('Creada'))
    def created_at_display(self, obj):
        return _format_datetime(obj.created_at)
