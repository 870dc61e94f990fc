"""Transactional order operations.

Every public function runs in one ``transaction.atomic()`` block with the
order row (and the products whose stock moves) locked, so a failure at any
step leaves the order, its lines and the stock untouched.
"""

import logging
from decimal import Decimal

from django.db import transaction
from django.db.models import Sum
from django.utils import timezone
from rest_framework.exceptions import NotFound, ValidationError

from clients.models import Client
from core.exceptions import LockedOrderError
from products.inventory import credit_stock, debit_stock, lock_products
from products.models import Product, Service, StockMovement

from .models import Order, OrderProductLine, OrderServiceLine
from .reconciliation import (
    PRODUCTS,
    SERVICES,
    UNCHANGED,
    CatalogEntry,
    EditedLine,
    PersistedLine,
    ensure_editable,
    plan_reconciliation,
)
from .signals import order_changed

logger = logging.getLogger(__name__)

LINE_MODELS = {PRODUCTS: OrderProductLine, SERVICES: OrderServiceLine}
REF_FIELDS = {PRODUCTS: 'product_id', SERVICES: 'service_id'}


def has_payments(order: Order) -> bool:
    """True once any money has been recorded against the order."""
    if Decimal(order.amount_paid or 0) > 0:
        return True
    if order.payment_status in {Order.PAYMENT_PARTIAL, Order.PAYMENT_PAID}:
        return True
    return order.payments.exists()


def lock_order(order_id, *, deleted=False) -> Order:
    qs = Order.objects.select_for_update()
    qs = qs.deleted() if deleted else qs.alive()
    order = qs.filter(pk=order_id).first()
    if order is None:
        raise NotFound('Commande introuvable.')
    return order


def persisted_lines(order: Order, *, for_update=False) -> dict:
    result = {}
    for kind, model in LINE_MODELS.items():
        qs = model.objects.filter(order=order).order_by('id')
        if for_update:
            qs = qs.select_for_update()
        result[kind] = [
            PersistedLine(
                line_id=line.pk,
                ref_id=getattr(line, REF_FIELDS[kind]),
                quantity=line.quantity,
                unit_price=line.unit_price,
                total=line.total,
            )
            for line in qs
        ]
    return result


def build_catalog(persisted: dict, edited: dict, *, lock=False) -> tuple[dict, dict]:
    """Catalog entries for every referenced product/service.

    Returns ``(catalog, locked_products)``; products are row-locked when
    ``lock`` is set so the stock read here is the stock debited later.
    """

    refs = {kind: set() for kind in (PRODUCTS, SERVICES)}
    for source in (persisted, edited):
        for kind, lines in (source or {}).items():
            for line in lines or []:
                if line.ref_id is not None:
                    refs[kind].add(int(line.ref_id))

    if lock:
        products = lock_products(refs[PRODUCTS])
    else:
        products = {p.id: p for p in Product.objects.filter(id__in=refs[PRODUCTS])}
    services = {s.id: s for s in Service.objects.filter(id__in=refs[SERVICES])}

    catalog = {
        PRODUCTS: {
            pid: CatalogEntry(ref_id=pid, price=p.price, stock=p.stock_quantity, name=p.name, is_active=p.is_active)
            for pid, p in products.items()
        },
        SERVICES: {
            sid: CatalogEntry(ref_id=sid, price=s.price, stock=None, name=s.name, is_active=s.is_active)
            for sid, s in services.items()
        },
    }
    return catalog, products


def recompute_total(order: Order) -> Decimal:
    total = Decimal('0.00')
    for model in LINE_MODELS.values():
        total += model.objects.filter(order=order).aggregate(s=Sum('total'))['s'] or Decimal('0.00')
    order.total = total.quantize(Decimal('0.01'))
    return order.total


def _resolve_client(client_id):
    if client_id is None:
        return None
    client = Client.objects.filter(pk=client_id).first()
    if client is None:
        raise NotFound('Client introuvable.')
    if not client.is_active:
        raise ValidationError({'client': 'Ce client est désactivé.'})
    return client


def _apply_plan(order, plan, locked_products, user):
    """Write a plan: client, then deletions, updates and additions across both kinds, then the total."""

    note = f'Commande {order.code or order.pk}'
    kinds = [(kind, plan.for_kind(kind), LINE_MODELS[kind]) for kind in (PRODUCTS, SERVICES)]

    if plan.client_changed:
        order.client = _resolve_client(plan.client_id)

    for kind, kind_plan, model in kinds:
        if not kind_plan.deletions:
            continue
        lines = model.objects.filter(order=order, pk__in=kind_plan.deletions)
        for line in lines:
            if kind == PRODUCTS:
                credit_stock(locked_products[line.product_id], line.quantity,
                             source=StockMovement.SOURCE_ORDER, order=order, user=user, note=note)
        lines.delete()

    for kind, kind_plan, model in kinds:
        # Shrinking lines first frees units for the growing ones.
        for update in sorted(kind_plan.updates, key=lambda u: u.delta):
            line = model.objects.get(order=order, pk=update.line_id)
            if kind == PRODUCTS:
                product = locked_products[line.product_id]
                if update.delta > 0:
                    debit_stock(product, update.delta, source=StockMovement.SOURCE_ORDER, order=order, user=user, note=note)
                elif update.delta < 0:
                    credit_stock(product, -update.delta, source=StockMovement.SOURCE_ORDER, order=order, user=user, note=note)
            line.quantity = update.quantity
            line.unit_price = update.unit_price
            line.save()

    for kind, kind_plan, model in kinds:
        for addition in kind_plan.additions:
            if kind == PRODUCTS:
                debit_stock(locked_products[addition.ref_id], addition.quantity,
                            source=StockMovement.SOURCE_ORDER, order=order, user=user, note=note)
            model.objects.create(
                order=order,
                quantity=addition.quantity,
                unit_price=addition.unit_price,
                **{REF_FIELDS[kind]: addition.ref_id},
            )

    recompute_total(order)
    order.save()


def create_order(*, client_id=None, products=(), services=(), user=None) -> Order:
    """Create an order from ``{id, quantity}`` product and service requests."""

    edited = {
        PRODUCTS: [EditedLine(ref_id=int(p['id']), quantity=p['quantity']) for p in products or []],
        SERVICES: [EditedLine(ref_id=int(s['id']), quantity=s['quantity']) for s in services or []],
    }
    if not edited[PRODUCTS] and not edited[SERVICES]:
        raise ValidationError({'detail': 'La commande doit contenir au moins un produit ou un service.'})

    with transaction.atomic():
        client = _resolve_client(client_id)
        catalog, locked = build_catalog({}, edited, lock=True)
        plan = plan_reconciliation({PRODUCTS: [], SERVICES: []}, edited, catalog)

        order = Order.objects.create(
            client=client,
            created_by=user if getattr(user, 'is_authenticated', False) else None,
        )
        order.assign_reference()
        _apply_plan(order, plan, locked, order.created_by)
        order_changed.send(sender=Order, order=order, action='created', user=user)

    logger.info('Order %s created (%s product lines, %s service lines, total %s)',
                order.code, len(plan.products.additions), len(plan.services.additions), order.total)
    return order


def preview_reconciliation(order_id, *, edited, client_id=UNCHANGED):
    """Plan an edit without writing anything."""
    order = Order.objects.alive().filter(pk=order_id).first()
    if order is None:
        raise NotFound('Commande introuvable.')
    ensure_editable(order)
    persisted = persisted_lines(order)
    catalog, _ = build_catalog(persisted, edited)
    return plan_reconciliation(persisted, edited, catalog, order.client_id, client_id)


def apply_reconciliation(order_id, *, edited, client_id=UNCHANGED, user=None):
    """Plan and apply an edit atomically; returns ``(order, plan)``.

    The order is re-fetched after the writes so the caller gets the
    authoritative state.
    """

    with transaction.atomic():
        order = lock_order(order_id)
        try:
            ensure_editable(order)
        except LockedOrderError:
            logger.warning('Refused edit of locked order %s', order.code)
            raise
        persisted = persisted_lines(order, for_update=True)
        catalog, locked = build_catalog(persisted, edited, lock=True)
        plan = plan_reconciliation(persisted, edited, catalog, order.client_id, client_id)
        if not plan.is_empty:
            _apply_plan(order, plan, locked, user)
            order_changed.send(sender=Order, order=order, action='updated', user=user)

    if not plan.is_empty:
        logger.info('Order %s reconciled: %s', order.code, plan.summary().replace('\n', '; '))
    return Order.objects.get(pk=order.pk), plan


def _edited_from_persisted(persisted: dict) -> dict:
    return {
        kind: [EditedLine(ref_id=p.ref_id, quantity=p.quantity, line_id=p.line_id) for p in lines]
        for kind, lines in persisted.items()
    }


def add_line(order_id, kind, *, ref_id, quantity, user=None):
    """Add one product/service line to an order."""
    order = Order.objects.alive().filter(pk=order_id).first()
    if order is None:
        raise NotFound('Commande introuvable.')
    edited = _edited_from_persisted(persisted_lines(order))
    edited[kind].append(EditedLine(ref_id=int(ref_id), quantity=quantity))
    return apply_reconciliation(order_id, edited={kind: edited[kind]}, user=user)


def update_line(order_id, kind, line_id, *, quantity, user=None):
    """Change the quantity of one line; its unit price is refreshed from the catalog."""
    order = Order.objects.alive().filter(pk=order_id).first()
    if order is None:
        raise NotFound('Commande introuvable.')
    persisted = persisted_lines(order)
    if not any(p.line_id == int(line_id) for p in persisted[kind]):
        raise NotFound('Ligne introuvable.')
    lines = [
        EditedLine(ref_id=p.ref_id, quantity=quantity if p.line_id == int(line_id) else p.quantity, line_id=p.line_id)
        for p in persisted[kind]
    ]
    return apply_reconciliation(order_id, edited={kind: lines}, user=user)


def remove_line(order_id, kind, line_id, *, user=None):
    order = Order.objects.alive().filter(pk=order_id).first()
    if order is None:
        raise NotFound('Commande introuvable.')
    persisted = persisted_lines(order)
    if not any(p.line_id == int(line_id) for p in persisted[kind]):
        raise NotFound('Ligne introuvable.')
    lines = [
        EditedLine(ref_id=p.ref_id, quantity=p.quantity, line_id=p.line_id)
        for p in persisted[kind] if p.line_id != int(line_id)
    ]
    return apply_reconciliation(order_id, edited={kind: lines}, user=user)


def soft_delete_order(order_id, *, user=None) -> Order:
    """Cancel an order: mark it deleted and release its reserved stock."""
    with transaction.atomic():
        order = lock_order(order_id)
        if has_payments(order):
            logger.warning('Refused deletion of paid order %s', order.code)
            raise LockedOrderError(detail='Impossible de supprimer une commande ayant un paiement.')

        lines = list(order.product_lines.all())
        locked = lock_products(line.product_id for line in lines)
        for line in lines:
            credit_stock(locked[line.product_id], line.quantity, source=StockMovement.SOURCE_ORDER,
                         order=order, user=user, note=f'Annulation commande {order.code}')

        order.deleted_at = timezone.now()
        order.status = Order.STATUS_CANCELLED
        order.save(update_fields=['deleted_at', 'status', 'updated_at'])
        order_changed.send(sender=Order, order=order, action='deleted', user=user)

    logger.info('Order %s soft-deleted', order.code)
    return order


def restore_order(order_id, *, user=None) -> Order:
    """Undo a soft delete; the lines reserve their stock again."""
    with transaction.atomic():
        order = lock_order(order_id, deleted=True)
        lines = list(order.product_lines.all())
        locked = lock_products(line.product_id for line in lines)
        for line in lines:
            debit_stock(locked[line.product_id], line.quantity, source=StockMovement.SOURCE_ORDER,
                        order=order, user=user, note=f'Restauration commande {order.code}')

        order.deleted_at = None
        order.status = Order.STATUS_PENDING
        order.save(update_fields=['deleted_at', 'status', 'updated_at'])
        order_changed.send(sender=Order, order=order, action='restored', user=user)

    logger.info('Order %s restored', order.code)
    return order


def validate_order(order_id, *, user=None) -> Order:
    """PENDING -> VALIDATED. A validated order is final and edit-locked."""
    with transaction.atomic():
        order = lock_order(order_id)
        if order.status != Order.STATUS_PENDING:
            raise ValidationError({'status': f'Seule une commande en attente peut être validée (statut actuel : {order.status}).'})
        if not order.product_lines.exists() and not order.service_lines.exists():
            raise ValidationError({'detail': 'Impossible de valider une commande vide.'})
        order.status = Order.STATUS_VALIDATED
        order.save(update_fields=['status', 'updated_at'])
        order_changed.send(sender=Order, order=order, action='validated', user=user)

    logger.info('Order %s validated', order.code)
    return order
