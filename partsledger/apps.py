"""Django app configuration for Partsledger."""

from django.apps import AppConfig
from django.utils.translation import gettext_lazy as _


class PartsledgerConfig(AppConfig):
    """Configuration for Partsledger app."""

    default_auto_field = "django.db.models.BigAutoField"
    name = "partsledger"
    verbose_name = _("Parts Inventory Ledger")
