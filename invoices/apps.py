"""Invoices app configuration and signal registration."""

from django.apps import AppConfig


class InvoicesConfig(AppConfig):
    """Renders invoices after order creation and receipts after payments."""

    default_auto_field = 'django.db.models.BigAutoField'
    name = 'invoices'

    def ready(self):
        import invoices.signals  # noqa: F401
