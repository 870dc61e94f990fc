"""Invoice and receipt generation for orders and payments."""

import base64
import binascii
import io
import json
import logging
import os
import tempfile
from pathlib import Path

from django.conf import settings
from django.db import transaction
from django.utils import timezone
from PIL import Image, UnidentifiedImageError
from rest_framework.exceptions import NotFound, ValidationError

from orders.models import Order

from .models import Invoice, Receipt
from .rendering import (
    DocumentLine,
    DocumentParty,
    InvoiceData,
    ReceiptData,
    png_to_pdf,
    render_invoice_png,
    render_receipt_png,
)

logger = logging.getLogger(__name__)

COMPANY_FIELDS = ('name', 'address', 'phone', 'email', 'tax_number')
COMPANY_FILE = 'company.json'
MAX_LOGO_BYTES = 2 * 1024 * 1024


def upload_root() -> Path:
    return Path(settings.MEDIA_ROOT)


def load_company() -> dict:
    """Company details from ``company.json``; empty fields when absent."""

    company = {key: '' for key in COMPANY_FIELDS}
    path = upload_root() / COMPANY_FILE
    try:
        with open(path, encoding='utf-8') as fh:
            stored = json.load(fh)
    except FileNotFoundError:
        return company
    except (OSError, ValueError) as exc:
        logger.warning('Unreadable company settings %s: %s', path, exc)
        return company
    if isinstance(stored, dict):
        for key in COMPANY_FIELDS:
            if stored.get(key) is not None:
                company[key] = str(stored[key])
    return company


def save_company(values: dict) -> dict:
    company = load_company()
    for key in COMPANY_FIELDS:
        if key in values:
            company[key] = str(values[key] or '').strip()

    root = upload_root()
    root.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(dir=root, prefix='.tmp-', suffix='.json')
    try:
        with os.fdopen(fd, 'w', encoding='utf-8') as fh:
            json.dump(company, fh, ensure_ascii=False, indent=2)
        os.replace(tmp_name, root / COMPANY_FILE)
    except OSError:
        if os.path.exists(tmp_name):
            os.remove(tmp_name)
        raise
    logger.info('Company settings updated')
    return company


def save_logo(encoded: str) -> Path:
    """Store a base64 image (raw or ``data:`` URI) as ``logo.png``."""

    raw = str(encoded or '').strip()
    if raw.startswith('data:'):
        _, _, raw = raw.partition(',')
    try:
        content = base64.b64decode(raw, validate=True)
    except (binascii.Error, ValueError):
        raise ValidationError({'logo': 'Image base64 invalide.'})
    if not content:
        raise ValidationError({'logo': 'Image vide.'})
    if len(content) > MAX_LOGO_BYTES:
        raise ValidationError({'logo': 'Image trop volumineuse (2 Mo maximum).'})

    try:
        with Image.open(io.BytesIO(content)) as img:
            img.load()
            logo = img.convert('RGBA')
    except (UnidentifiedImageError, OSError):
        raise ValidationError({'logo': "Le fichier n'est pas une image reconnue."})

    root = upload_root()
    root.mkdir(parents=True, exist_ok=True)
    path = root / 'logo.png'
    logo.save(path, format='PNG')
    # Only one logo file is kept.
    stale = root / 'logo.jpg'
    if stale.exists():
        stale.unlink()
    logger.info('Logo updated: %s', path)
    return path


def format_invoice_number(issued_on, sequence: int) -> str:
    return f"{issued_on.strftime('%d-%m-%Y')}-{sequence:04d}"


def allocate_invoice_number(issued_on):
    """Next ``(number, year, sequence)`` for ``issued_on``; call inside a transaction."""

    last = (
        Invoice.objects.select_for_update()
        .filter(year=issued_on.year)
        .order_by('-sequence')
        .first()
    )
    sequence = (last.sequence if last else 0) + 1
    return format_invoice_number(issued_on, sequence), issued_on.year, sequence


def _party_for_client(client):
    if client is None:
        return DocumentParty(name='Client occasionnel')
    return DocumentParty(name=client.full_name, address=client.address, phone=client.phone, email=client.email)


def build_invoice_data(order, *, number, issued_on) -> InvoiceData:
    company = load_company()
    lines = [
        DocumentLine(name=line.product.name, quantity=line.quantity, unit_price=line.unit_price,
                     total=line.total, kind='product')
        for line in order.product_lines.select_related('product').order_by('id')
    ]
    lines += [
        DocumentLine(name=line.service.name, quantity=line.quantity, unit_price=line.unit_price,
                     total=line.total, kind='service')
        for line in order.service_lines.select_related('service').order_by('id')
    ]
    return InvoiceData(
        number=number,
        issued_on=issued_on,
        issuer=DocumentParty(**company),
        client=_party_for_client(order.client),
        lines=lines,
        tax_rate=settings.DEFAULT_TAX_RATE,
        tax_included=True,
        total=order.total,
        paid=order.amount_paid,
    )


def build_receipt_data(payment, *, number) -> ReceiptData:
    order = payment.order
    return ReceiptData(
        number=number,
        issued_on=timezone.localtime(payment.created_at).date() if payment.created_at else timezone.localdate(),
        amount=payment.amount,
        order_number=order.number or order.code or str(order.pk),
        client_name=order.client.full_name if order.client_id else '',
        issuer_name=load_company()['name'],
    )


def _relative(path: Path) -> str:
    return str(Path(path).relative_to(upload_root()))


def generate_invoice(order_id) -> Invoice:
    """Render (or re-render) the invoice of an order.

    The number is allocated once; later calls refresh the files so the
    amounts paid stay current.
    """

    with transaction.atomic():
        order = (
            Order.objects.alive().select_for_update()
            .filter(pk=order_id)
            .first()
        )
        if order is None:
            raise NotFound('Commande introuvable.')
        if not (order.product_lines.exists() or order.service_lines.exists()):
            raise ValidationError({'detail': 'Impossible de facturer une commande vide.'})

        invoice = Invoice.objects.filter(order=order).first()
        if invoice is None:
            issued_on = timezone.localdate()
            number, year, sequence = allocate_invoice_number(issued_on)
            invoice = Invoice.objects.create(order=order, number=number, year=year, sequence=sequence)
            logger.info('Invoice %s allocated for order %s', number, order.code)
        else:
            issued_on = timezone.localtime(invoice.issued_at).date()

        data = build_invoice_data(order, number=invoice.number, issued_on=issued_on)
        folder = upload_root() / 'invoices' / invoice.number
        png = render_invoice_png(data, folder, upload_root=upload_root())
        pdf = png_to_pdf(png, folder / f"facture-{invoice.number}.pdf", document_number=invoice.number)

        invoice.png_path = _relative(png)
        invoice.pdf_path = _relative(pdf)
        invoice.save(update_fields=['png_path', 'pdf_path', 'updated_at'])

    logger.info('Invoice %s generated for order %s', invoice.number, order.code)
    return invoice


def receipt_number(payment) -> str:
    return f"REC-{payment.pk:06d}"


def generate_receipt(payment) -> Receipt:
    number = receipt_number(payment)
    folder = upload_root() / 'receipts' / number
    data = build_receipt_data(payment, number=number)
    png = render_receipt_png(data, folder, upload_root=upload_root())
    pdf = png_to_pdf(png, folder / f"recu-{number}.pdf", document_number=number)

    receipt, _ = Receipt.objects.update_or_create(
        payment=payment,
        defaults={'number': number, 'png_path': _relative(png), 'pdf_path': _relative(pdf)},
    )
    logger.info('Receipt %s generated for payment %s', number, payment.pk)
    return receipt


def document_file(relative_path) -> Path | None:
    if not relative_path:
        return None
    path = upload_root() / relative_path
    return path if path.is_file() else None
