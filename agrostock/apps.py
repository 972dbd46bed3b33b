"""Django app configuration for Agrostock."""

from django.apps import AppConfig
from django.utils.translation import gettext_lazy as _


class AgrostockConfig(AppConfig):
    """Configuration for Agrostock app."""

    default_auto_field = "django.db.models.BigAutoField"
    name = "agrostock"
    verbose_name = _("Insumos y Depósitos")

    def ready(self):
        # Built-in alert rules register themselves on import
        from agrostock import rules  # noqa: F401
