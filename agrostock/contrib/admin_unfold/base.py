"""
Base classes for Unfold admin in Agrostock.

Provides BaseModelAdmin, BaseTabularInline and ReadOnlyAdminMixin with
compact textareas (notes, descriptions, metadata) and quantity formatting.
"""

from decimal import Decimal

from django import forms
from django.contrib.admin.widgets import AdminTextareaWidget
from unfold.admin import ModelAdmin, TabularInline
from unfold.widgets import UnfoldAdminTextareaWidget

TEXTAREA_WIDGETS = (forms.Textarea, AdminTextareaWidget, UnfoldAdminTextareaWidget)


def format_quantity(value: Decimal | None, unit: str = '', decimal_places: int = 2) -> str:
    """
    Format a quantity for list displays.

    Examples:
        format_quantity(Decimal('12.500'), 'kg')  # "12.50 kg"
        format_quantity(None)                      # "-"
    """
    if value is None:
        return "-"
    formatted = f"{value:.{decimal_places}f}"
    return f"{formatted} {unit}" if unit else formatted


def _halve_rows(widget):
    try:
        widget.attrs["rows"] = max(1, int(widget.attrs.get("rows", 4)) // 2)
    except (ValueError, TypeError):
        widget.attrs["rows"] = 2


class ReadOnlyAdminMixin:
    """Ledger-owned models: rows change only through the stock service."""

    def has_add_permission(self, request, obj=None):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


class BaseTabularInline(TabularInline):
    """TabularInline with half-height textareas."""

    def get_formset(self, request, obj=None, **kwargs):
        formset = super().get_formset(request, obj, **kwargs)
        for field in formset.form.base_fields.values():
            if isinstance(field.widget, TEXTAREA_WIDGETS):
                _halve_rows(field.widget)
        return formset


class BaseModelAdmin(ModelAdmin):
    """
    ModelAdmin with compact textareas.

    Textareas get half their rows and the same max width as other inputs,
    so observation fields do not dominate the form.
    """

    compressed_fields = True

    def get_form(self, request, obj=None, **kwargs):
        form = super().get_form(request, obj, **kwargs)
        for field in form.base_fields.values():
            widget = field.widget
            if not isinstance(widget, TEXTAREA_WIDGETS):
                continue
            style = [
                s.strip() for s in widget.attrs.get("style", "").split(";")
                if s.strip() and "height" not in s.lower() and "width" not in s.lower()
            ]
            style.append("width: 100%; max-width: 42rem")
            widget.attrs["style"] = "; ".join(style)
            _halve_rows(widget)
        return form
