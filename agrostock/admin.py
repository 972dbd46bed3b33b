"""
Agrostock Admin — basic fallback (works without Unfold).

For the Unfold-styled version, add 'agrostock.contrib.admin_unfold' to INSTALLED_APPS.
When the Unfold contrib is loaded, this module does nothing (avoids double registration).

Provides views for operations and debugging:
- Plot: list + edit
- Input: edit (balance read-only)
- Movement: read-only ledger
- Batch: lot traceability
- Remittance: read-only with "cancel" action
- Alert: read-only with "resolve" and "cancel" actions
"""

from django.apps import apps
from django.contrib import admin
from django.utils.translation import gettext_lazy as _

# Skip registration if the Unfold contrib is installed (it will register its own admins)
if not apps.is_installed('agrostock.contrib.admin_unfold'):
    from agrostock.admin_actions import cancel_alerts, cancel_remittances, resolve_alerts
    from agrostock.models import Alert, Batch, Input, Movement, Plot, Remittance, RemittanceItem

    class ReadOnlyMixin:
        def has_add_permission(self, request, obj=None):
            return False

        def has_change_permission(self, request, obj=None):
            return False

        def has_delete_permission(self, request, obj=None):
            return False

    # =========================================================================
    # PLOT ADMIN
    # =========================================================================

    @admin.register(Plot)
    class PlotAdmin(admin.ModelAdmin):
        """Plot admin — editable."""

        list_display = ['code', 'name', 'firm_id', 'land_use', 'is_depot']
        list_filter = ['land_use', 'is_depot']
        search_fields = ['code', 'name']
        readonly_fields = ['created_at', 'updated_at']

    # =========================================================================
    # INPUT ADMIN
    # =========================================================================

    @admin.register(Input)
    class InputAdmin(admin.ModelAdmin):
        """Input admin — balance only changes via the stock service."""

        list_display = ['name', 'depot', 'category', 'balance_display', 'min_stock',
                        'expiration_date']
        list_filter = ['depot', 'category']
        search_fields = ['name', 'category']
        readonly_fields = ['_balance', 'created_at', 'updated_at']

        @admin.display(description=_('Stock actual'))
        def balance_display(self, obj):
            return f'{obj.balance} {obj.unit}'

    # =========================================================================
    # MOVEMENT ADMIN (read-only ledger)
    # =========================================================================

    @admin.register(Movement)
    class MovementAdmin(ReadOnlyMixin, admin.ModelAdmin):
        """Movement admin — read-only. Immutable audit trail."""

        list_display = ['timestamp', 'input', 'type', 'quantity', 'depot', 'reference', 'user']
        list_filter = ['type', 'depot', 'timestamp']
        search_fields = ['reference', 'input__name']
        date_hierarchy = 'timestamp'

    # =========================================================================
    # BATCH ADMIN
    # =========================================================================

    @admin.register(Batch)
    class BatchAdmin(admin.ModelAdmin):
        """Batch admin — lot traceability."""

        list_display = ['code', 'input', 'expiry_date', 'supplier', 'is_expired_display']
        list_filter = ['expiry_date']
        search_fields = ['code', 'supplier']
        readonly_fields = ['created_at']

        @admin.display(description=_('¿Vencido?'), boolean=True)
        def is_expired_display(self, obj):
            return obj.is_expired

    # =========================================================================
    # REMITTANCE ADMIN (read-only with cancel action)
    # =========================================================================

    class RemittanceItemInline(ReadOnlyMixin, admin.TabularInline):
        model = RemittanceItem
        extra = 0
        fields = ['line', 'description', 'unit', 'quantity_ordered', 'quantity_received',
                  'pending_quantity', 'input', 'condition']
        readonly_fields = fields

    @admin.register(Remittance)
    class RemittanceAdmin(ReadOnlyMixin, admin.ModelAdmin):
        """Remittance admin — read-only with cancel action."""

        list_display = ['document_number', 'date', 'supplier_name', 'depot', 'status']
        list_filter = ['status', 'depot']
        search_fields = ['document_number', 'supplier_name']
        inlines = [RemittanceItemInline]
        actions = [cancel_remittances]

    # =========================================================================
    # ALERT ADMIN (read-only with resolve/cancel actions)
    # =========================================================================

    @admin.register(Alert)
    class AlertAdmin(ReadOnlyMixin, admin.ModelAdmin):
        """Alert admin — status changes through the alert engine."""

        list_display = ['title', 'rule_id', 'priority', 'status', 'origin', 'created_at']
        list_filter = ['status', 'priority', 'origin', 'rule_id']
        search_fields = ['title']
        actions = [resolve_alerts, cancel_alerts]
