"""Order line reconciliation.

Computes the create/update/delete operations that bring an order's persisted
product and service lines to an edited line set, enforcing the payment lock
and the stock ceilings. Nothing in this module touches the database: callers
feed it plain values (see ``orders.services``) and apply the resulting plan.
"""

import unicodedata
from collections import defaultdict
from dataclasses import dataclass, field
from decimal import Decimal

from rest_framework.exceptions import NotFound, ValidationError

from core.exceptions import LockedOrderError, StockExceededError

PRODUCTS = 'products'
SERVICES = 'services'
KINDS = (PRODUCTS, SERVICES)

# Sentinel: the edit does not mention the client at all.
UNCHANGED = object()

# Statuses after which an order is final (matched case- and accent-insensitively).
TERMINAL_STATUS_MARKERS = frozenset({
    'validated', 'valide', 'validee',
    'confirmed', 'confirme', 'confirmee',
    'completed', 'complete', 'terminee',
    'delivered', 'livree',
    'finished', 'fini', 'finie',
})

_CENT = Decimal('0.01')


def _normalize_status_key(label) -> str:
    s = str(label or '').strip().lower()
    s = unicodedata.normalize('NFKD', s)
    return ''.join(ch for ch in s if not unicodedata.combining(ch))


def is_terminal_status(status) -> bool:
    return _normalize_status_key(status) in TERMINAL_STATUS_MARKERS


def ensure_editable(order) -> None:
    """Raise ``LockedOrderError`` unless the order's lines may still change."""
    if Decimal(order.amount_paid or 0) > 0:
        raise LockedOrderError()
    if is_terminal_status(order.status):
        raise LockedOrderError(
            detail=f"La commande est au statut {order.status} : elle ne peut plus être modifiée."
        )


@dataclass(frozen=True)
class PersistedLine:
    line_id: int
    ref_id: int
    quantity: int
    unit_price: Decimal | None = None
    total: Decimal | None = None


@dataclass(frozen=True)
class EditedLine:
    """A line of the edited set; ``line_id`` is None for a new (unsaved) line."""

    ref_id: int
    quantity: int
    line_id: int | None = None


@dataclass(frozen=True)
class CatalogEntry:
    """Current catalog state of a product or service.

    ``stock`` is None for services (no stock constraint).
    """

    ref_id: int
    price: Decimal | None
    stock: int | None = None
    name: str = ''
    is_active: bool = True


@dataclass(frozen=True)
class LineAddition:
    ref_id: int
    quantity: int
    unit_price: Decimal
    total: Decimal


@dataclass(frozen=True)
class LineUpdate:
    line_id: int
    ref_id: int
    previous_quantity: int
    quantity: int
    unit_price: Decimal
    total: Decimal

    @property
    def delta(self) -> int:
        return self.quantity - self.previous_quantity


@dataclass
class KindPlan:
    additions: list[LineAddition] = field(default_factory=list)
    updates: list[LineUpdate] = field(default_factory=list)
    deletions: list[int] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not (self.additions or self.updates or self.deletions)

    def as_dict(self) -> dict:
        return {
            'additions': [
                {'id': a.ref_id, 'quantity': a.quantity, 'unit_price': a.unit_price, 'total': a.total}
                for a in self.additions
            ],
            'updates': [
                {'line_id': u.line_id, 'id': u.ref_id, 'previous_quantity': u.previous_quantity,
                 'quantity': u.quantity, 'unit_price': u.unit_price, 'total': u.total}
                for u in self.updates
            ],
            'deletions': list(self.deletions),
        }


@dataclass
class ReconciliationPlan:
    products: KindPlan = field(default_factory=KindPlan)
    services: KindPlan = field(default_factory=KindPlan)
    client_changed: bool = False
    client_id: int | None = None

    def for_kind(self, kind) -> KindPlan:
        return self.products if kind == PRODUCTS else self.services

    @property
    def is_empty(self) -> bool:
        return self.products.is_empty and self.services.is_empty and not self.client_changed

    def summary(self) -> str:
        """Human-readable diff shown before the user confirms."""
        if self.is_empty:
            return 'Aucune modification.'
        parts = []
        for label, plan in (('Produits', self.products), ('Services', self.services)):
            if plan.is_empty:
                continue
            parts.append(
                f"{label} : {len(plan.additions)} ajout(s), "
                f"{len(plan.updates)} modification(s), {len(plan.deletions)} suppression(s)"
            )
        if self.client_changed:
            parts.append('Client : modifié')
        return '\n'.join(parts)

    def as_dict(self) -> dict:
        return {
            'products': self.products.as_dict(),
            'services': self.services.as_dict(),
            'client_changed': self.client_changed,
            'client_id': self.client_id,
            'summary': self.summary(),
            'is_empty': self.is_empty,
        }


def resolve_unit_price(catalog_price, stored_unit_price, stored_total, quantity) -> Decimal:
    """Current catalog price, else the stored unit price, else ``total / quantity``."""
    if catalog_price is not None:
        return Decimal(catalog_price).quantize(_CENT)
    if stored_unit_price is not None:
        return Decimal(stored_unit_price).quantize(_CENT)
    if stored_total is not None and quantity:
        return (Decimal(stored_total) / Decimal(int(quantity))).quantize(_CENT)
    return Decimal('0.00')


def _line_total(unit_price: Decimal, quantity: int) -> Decimal:
    return (unit_price * int(quantity)).quantize(_CENT)


def _check_quantity(quantity, kind):
    if isinstance(quantity, bool) or (isinstance(quantity, float) and not quantity.is_integer()):
        raise ValidationError({kind: 'La quantité doit être un entier.'})
    try:
        qty = int(quantity)
    except (TypeError, ValueError):
        raise ValidationError({kind: 'La quantité doit être un entier.'})
    if qty < 1:
        raise ValidationError({kind: 'La quantité doit être au moins égale à 1.'})
    return qty


def plan_lines(kind, persisted, edited, catalog) -> KindPlan:
    """Plan one kind of lines (products or services).

    For products, the units reserved by this order's persisted lines are
    released before checking demand, so an existing line can grow up to
    ``stock + its own reserved quantity`` and new lines only get what is left.
    """

    persisted_by_id = {p.line_id: p for p in persisted}
    plan = KindPlan()

    seen = set()
    kept, added = [], []
    for line in edited:
        qty = _check_quantity(line.quantity, kind)
        if line.line_id is None:
            added.append((line, qty))
            continue
        if line.line_id in seen:
            raise ValidationError({kind: f'La ligne {line.line_id} apparaît plusieurs fois.'})
        seen.add(line.line_id)
        original = persisted_by_id.get(line.line_id)
        if original is None:
            raise ValidationError({kind: f"La ligne {line.line_id} n'appartient pas à cette commande."})
        if line.ref_id is not None and int(line.ref_id) != int(original.ref_id):
            raise ValidationError({kind: f"La ligne {line.line_id} ne peut pas changer d'article."})
        kept.append((original, qty))

    for line, _ in added:
        if line.ref_id not in catalog:
            label = 'Produit' if kind == PRODUCTS else 'Service'
            raise NotFound(f'{label} {line.ref_id} introuvable.')
        if not catalog[line.ref_id].is_active:
            raise ValidationError({kind: f"{catalog[line.ref_id].name or line.ref_id} n'est plus disponible."})

    # Stock headroom per product: current stock plus everything this order already holds.
    headroom = {}
    if kind == PRODUCTS:
        reserved = defaultdict(int)
        for p in persisted:
            reserved[p.ref_id] += int(p.quantity)
        for ref_id, entry in catalog.items():
            if entry.stock is not None:
                headroom[ref_id] = int(entry.stock) + reserved.get(ref_id, 0)

    def consume(ref_id, qty):
        if ref_id not in headroom:
            return
        available = headroom[ref_id]
        if qty > available:
            entry = catalog.get(ref_id)
            raise StockExceededError(ref_id, qty, available, product_name=entry.name if entry else None)
        headroom[ref_id] = available - qty

    for original, qty in kept:
        consume(original.ref_id, qty)
        if qty == int(original.quantity):
            continue
        entry = catalog.get(original.ref_id)
        unit_price = resolve_unit_price(
            entry.price if entry else None, original.unit_price, original.total, original.quantity,
        )
        plan.updates.append(LineUpdate(
            line_id=original.line_id,
            ref_id=original.ref_id,
            previous_quantity=int(original.quantity),
            quantity=qty,
            unit_price=unit_price,
            total=_line_total(unit_price, qty),
        ))

    for line, qty in added:
        consume(line.ref_id, qty)
        unit_price = resolve_unit_price(catalog[line.ref_id].price, None, None, qty)
        plan.additions.append(LineAddition(
            ref_id=line.ref_id, quantity=qty, unit_price=unit_price, total=_line_total(unit_price, qty),
        ))

    kept_ids = {original.line_id for original, _ in kept}
    plan.deletions = [p.line_id for p in persisted if p.line_id not in kept_ids]
    return plan


def plan_reconciliation(persisted, edited, catalog, current_client_id=None, edited_client_id=UNCHANGED) -> ReconciliationPlan:
    """Diff the persisted lines against the edited ones.

    ``persisted``, ``edited`` and ``catalog`` are mappings keyed by
    ``PRODUCTS``/``SERVICES``. A kind absent from ``edited`` is left as is.
    An edited set identical to the persisted one yields an empty plan.
    """

    plan = ReconciliationPlan()
    for kind in KINDS:
        if kind not in edited or edited[kind] is None:
            continue
        kind_plan = plan_lines(kind, persisted.get(kind, []), edited[kind], catalog.get(kind, {}))
        if kind == PRODUCTS:
            plan.products = kind_plan
        else:
            plan.services = kind_plan

    plan.client_id = current_client_id
    if edited_client_id is not UNCHANGED and edited_client_id != current_client_id:
        plan.client_changed = True
        plan.client_id = edited_client_id
    return plan
