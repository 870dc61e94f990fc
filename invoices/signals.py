"""Document rendering triggered by order and payment events.

Rendering runs after the triggering transaction commits; a failure is
logged and never undoes the order or payment. Documents can be produced
again on demand from the download endpoints.
"""

import logging

from django.db import transaction
from django.dispatch import receiver

from core.exceptions import RenderError
from finance.signals import payment_recorded
from orders.signals import order_changed

from .models import Invoice
from .services import generate_invoice, generate_receipt

logger = logging.getLogger(__name__)


@receiver(order_changed, dispatch_uid='invoices_render_invoice')
def render_invoice_on_create(sender, order, action, **kwargs):
    if action != 'created':
        return
    order_id = order.pk

    def _render():
        try:
            generate_invoice(order_id)
        except (RenderError, OSError):
            logger.exception('Invoice rendering failed for order %s', order_id)

    transaction.on_commit(_render)


@receiver(payment_recorded, dispatch_uid='invoices_render_receipt')
def render_receipt_on_payment(sender, payment, order, **kwargs):
    order_id = order.pk

    def _render():
        try:
            generate_receipt(payment)
            # Refresh the invoice so its totals panel shows the new balance.
            if Invoice.objects.filter(order_id=order_id).exists():
                generate_invoice(order_id)
        except (RenderError, OSError):
            logger.exception('Document rendering failed for payment %s', payment.pk)

    transaction.on_commit(_render)
