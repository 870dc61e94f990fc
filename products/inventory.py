"""Stock bookkeeping.

``debit_stock``/``credit_stock`` expect the product row to be locked by the
caller (``select_for_update`` inside ``transaction.atomic``); the public
entry points below take the lock themselves.
"""

import logging

from django.db import transaction
from rest_framework.exceptions import NotFound, ValidationError

from core.exceptions import StockExceededError

from .models import Product, StockMovement

logger = logging.getLogger(__name__)


def lock_products(product_ids) -> dict[int, Product]:
    """Lock and return products by id (ordered by id to avoid deadlocks)."""
    ids = sorted({int(pid) for pid in product_ids})
    if not ids:
        return {}
    return {p.id: p for p in Product.objects.select_for_update().filter(id__in=ids).order_by('id')}


def debit_stock(product: Product, quantity: int, *, source=StockMovement.SOURCE_MANUAL, order=None, user=None, note=''):
    """Remove ``quantity`` units; refuses to go below zero."""
    quantity = int(quantity)
    if quantity <= 0:
        return None
    available = int(product.stock_quantity or 0)
    if quantity > available:
        raise StockExceededError(product.id, quantity, available, product_name=product.name)

    product.stock_quantity = available - quantity
    product.save(update_fields=['stock_quantity', 'updated_at'])
    return StockMovement.objects.create(
        product=product,
        movement_type=StockMovement.TYPE_OUT,
        quantity=quantity,
        source=source,
        order=order,
        user=_real_user(user),
        note=note,
    )


def credit_stock(product: Product, quantity: int, *, source=StockMovement.SOURCE_MANUAL, order=None, user=None, note=''):
    """Return ``quantity`` units to stock."""
    quantity = int(quantity)
    if quantity <= 0:
        return None
    product.stock_quantity = int(product.stock_quantity or 0) + quantity
    product.save(update_fields=['stock_quantity', 'updated_at'])
    return StockMovement.objects.create(
        product=product,
        movement_type=StockMovement.TYPE_IN,
        quantity=quantity,
        source=source,
        order=order,
        user=_real_user(user),
        note=note,
    )


def record_manual_movement(*, product_id, movement_type, quantity, user=None, note=''):
    """Manual IN/OUT from the inventory screen.

    An OUT larger than the current stock fails with ``StockExceededError``.
    """

    try:
        quantity = int(quantity)
    except (TypeError, ValueError):
        raise ValidationError({'quantity': 'La quantité doit être un entier.'})
    if quantity < 1:
        raise ValidationError({'quantity': 'La quantité doit être supérieure à 0.'})
    if movement_type not in {StockMovement.TYPE_IN, StockMovement.TYPE_OUT}:
        raise ValidationError({'movement_type': 'Type de mouvement invalide (IN ou OUT).'})

    with transaction.atomic():
        product = Product.objects.select_for_update().filter(pk=product_id).first()
        if product is None:
            raise NotFound('Produit introuvable.')
        if movement_type == StockMovement.TYPE_OUT:
            movement = debit_stock(product, quantity, user=user, note=note)
        else:
            movement = credit_stock(product, quantity, user=user, note=note)

    logger.info(
        'Manual stock %s of %s for product %s (now %s)',
        movement_type, quantity, product.pk, product.stock_quantity,
    )
    return movement


def set_stock_level(product: Product, new_quantity: int, *, user=None, note='Ajustement manuel'):
    """Bring a product to an absolute stock level, journaling the difference."""
    try:
        new_quantity = int(new_quantity)
    except (TypeError, ValueError):
        raise ValidationError({'stock_quantity': 'Le stock doit être un entier.'})
    if new_quantity < 0:
        raise ValidationError({'stock_quantity': 'Le stock ne peut pas être négatif.'})

    with transaction.atomic():
        locked = Product.objects.select_for_update().get(pk=product.pk)
        delta = new_quantity - int(locked.stock_quantity or 0)
        if delta > 0:
            credit_stock(locked, delta, user=user, note=note)
        elif delta < 0:
            debit_stock(locked, -delta, user=user, note=note)
    product.stock_quantity = locked.stock_quantity
    return delta


def _real_user(user):
    if user is None or not getattr(user, 'is_authenticated', False):
        return None
    return user
