"""Clients app configuration."""

from django.apps import AppConfig


class ClientsConfig(AppConfig):
    """Django app config for the customer directory."""

    default_auto_field = 'django.db.models.BigAutoField'
    name = 'clients'
