"""Signals published by the finance app.

``payment_recorded`` is sent inside the payment transaction with ``payment``,
``order`` and ``user`` keyword arguments.
"""

from django.dispatch import Signal

payment_recorded = Signal()
