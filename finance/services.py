"""Payment application.

The caller declares the intended outcome (fully or partially paid) and the
amount is checked against it, but the order's ``payment_status`` is always
derived from ``amount_paid`` versus ``total``.
"""

import logging
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

from django.db import transaction
from rest_framework.exceptions import NotFound, ValidationError

from orders.models import Order

from .models import Payment
from .signals import payment_recorded

logger = logging.getLogger(__name__)

# Amounts are stored in cents; half a cent absorbs client-side float noise.
TOLERANCE = Decimal('0.005')

TARGET_STATUSES = (Order.PAYMENT_PAID, Order.PAYMENT_PARTIAL)

# Labels sent by the payment dialog, mapped onto stored modes.
MODE_ALIASES = {
    'cash': Payment.MODE_CASH,
    'especes': Payment.MODE_CASH,
    'espèces': Payment.MODE_CASH,
    'mobile_money': Payment.MODE_MOBILE_MONEY,
    'mobile-money': Payment.MODE_MOBILE_MONEY,
    'card': Payment.MODE_CARD,
    'carte': Payment.MODE_CARD,
    'check': Payment.MODE_CHECK,
    'cheque': Payment.MODE_CHECK,
    'chèque': Payment.MODE_CHECK,
    'transfer': Payment.MODE_TRANSFER,
    'virement': Payment.MODE_TRANSFER,
}


def normalize_mode(mode) -> str:
    key = str(mode or '').strip().lower()
    if key not in MODE_ALIASES:
        raise ValidationError({'mode': f'Mode de paiement invalide : {mode}.'})
    return MODE_ALIASES[key]


def parse_amount(value) -> Decimal:
    try:
        amount = Decimal(str(value).strip())
    except (InvalidOperation, TypeError, ValueError):
        raise ValidationError({'amount': 'Montant invalide.'})
    if not amount.is_finite():
        raise ValidationError({'amount': 'Montant invalide.'})
    return amount.quantize(Decimal('0.01'), rounding=ROUND_HALF_UP)


def derive_payment_status(amount_paid, total) -> str:
    amount_paid = Decimal(amount_paid or 0)
    total = Decimal(total or 0)
    if amount_paid <= 0:
        return Order.PAYMENT_UNPAID
    if amount_paid + TOLERANCE >= total:
        return Order.PAYMENT_PAID
    return Order.PAYMENT_PARTIAL


def check_payment(amount: Decimal, outstanding: Decimal, target_status: str) -> None:
    """Raise ``ValidationError`` unless ``amount`` fits the declared outcome."""

    if amount <= 0:
        raise ValidationError({'amount': 'Le montant doit être supérieur à 0.'})
    if outstanding <= 0:
        raise ValidationError({'amount': 'Cette commande est déjà entièrement payée.'})
    if amount > outstanding + TOLERANCE:
        raise ValidationError({'amount': f'Le montant dépasse le reste à payer ({outstanding}).'})
    if target_status == Order.PAYMENT_PAID and abs(amount - outstanding) > TOLERANCE:
        raise ValidationError({'amount': f'Un paiement total doit être égal au reste à payer ({outstanding}).'})
    if target_status == Order.PAYMENT_PARTIAL and amount >= outstanding - TOLERANCE:
        raise ValidationError({'amount': f'Un paiement partiel doit être inférieur au reste à payer ({outstanding}).'})


def apply_payment(order_id, *, amount, mode, target_status, user=None) -> Payment:
    """Record a payment and update the order's paid amount and status."""

    amount = parse_amount(amount)
    mode = normalize_mode(mode)
    target_status = str(target_status or '').strip().upper()
    if target_status not in TARGET_STATUSES:
        raise ValidationError({'target_status': 'Le statut visé doit être PAYEE ou PARTIELLE.'})

    with transaction.atomic():
        order = Order.objects.select_for_update().filter(pk=order_id).first()
        if order is None:
            raise NotFound('Commande introuvable.')
        if order.is_deleted or order.status == Order.STATUS_CANCELLED:
            raise ValidationError({'detail': 'Impossible de payer une commande annulée.'})

        try:
            check_payment(amount, order.outstanding, target_status)
        except ValidationError:
            logger.warning('Refused payment of %s on order %s (outstanding %s, target %s)',
                           amount, order.code, order.outstanding, target_status)
            raise

        payment = Payment.objects.create(
            order=order,
            amount=amount,
            mode=mode,
            recorded_by=user if getattr(user, 'is_authenticated', False) else None,
        )
        order.amount_paid = Decimal(order.amount_paid or 0) + amount
        order.payment_status = derive_payment_status(order.amount_paid, order.total)
        order.save(update_fields=['amount_paid', 'payment_status', 'updated_at'])
        payment_recorded.send(sender=Payment, payment=payment, order=order, user=user)

    logger.info('Payment %s of %s (%s) recorded on order %s, status %s',
                payment.pk, amount, mode, order.code, order.payment_status)
    return payment
