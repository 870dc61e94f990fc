"""Turn order and payment events into notification rows."""

import logging

from django.conf import settings
from django.dispatch import receiver

from finance.signals import payment_recorded
from orders.signals import order_changed

from .models import Notification

logger = logging.getLogger(__name__)

ORDER_MESSAGES = {
    'created': 'Nouvelle commande {code}',
    'updated': 'Commande {code} modifiée',
    'deleted': 'Commande {code} supprimée',
    'restored': 'Commande {code} restaurée',
    'validated': 'Commande {code} validée',
}


@receiver(order_changed, dispatch_uid='dashboard_order_notification')
def notify_order_changed(sender, order, action, **kwargs):
    template = ORDER_MESSAGES.get(action)
    if template is None:
        return
    Notification.objects.create(
        kind=Notification.KIND_ORDER,
        action=action,
        order=order,
        message=template.format(code=order.code or order.pk),
    )


@receiver(payment_recorded, dispatch_uid='dashboard_payment_notification')
def notify_payment_recorded(sender, payment, order, **kwargs):
    Notification.objects.create(
        kind=Notification.KIND_PAYMENT,
        action='paid',
        order=order,
        message=f"Paiement de {payment.amount:.2f} {settings.CURRENCY_LABEL} reçu pour la commande {order.code}",
    )
