"""Signals published by the orders app.

``order_changed`` is sent inside the transaction that changed the order, with
``order``, ``action`` (created, updated, deleted, restored, validated) and
``user`` keyword arguments.
"""

from django.dispatch import Signal

order_changed = Signal()
