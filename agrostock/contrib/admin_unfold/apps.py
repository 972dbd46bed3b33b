"""Django app configuration for the Unfold-themed Agrostock admin."""

from django.apps import AppConfig
from django.utils.translation import gettext_lazy as _


class AgrostockAdminUnfoldConfig(AppConfig):
    name = "agrostock.contrib.admin_unfold"
    label = "agrostock_admin_unfold"
    verbose_name = _("Insumos y Depósitos (Unfold)")
