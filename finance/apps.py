"""Finance app configuration and signal registration."""

from django.apps import AppConfig


class FinanceConfig(AppConfig):
    """Django app config for payments; exposes the ``payment_recorded`` signal."""

    default_auto_field = 'django.db.models.BigAutoField'
    name = 'finance'

    def ready(self):
        import finance.signals  # noqa: F401
