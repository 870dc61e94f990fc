"""Invoice and receipt rendering.

Documents are drawn as fixed-layout PNG images with Pillow, then wrapped in
a one-page PDF (raster only) with reportlab. Files are written to a
temporary name in the target folder and renamed once complete.
"""

import logging
import os
import tempfile
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from pathlib import Path

from django.conf import settings
from PIL import Image, ImageDraw, ImageFont
from reportlab.lib.utils import ImageReader
from reportlab.pdfgen import canvas

from core.exceptions import RenderError

logger = logging.getLogger(__name__)

INVOICE_SIZE = (1000, 1400)
RECEIPT_SIZE = (600, 400)

# Column anchors of the item table, as fractions of the table width.
COL_QTY = 0.45
COL_UNIT = 0.6
COL_TAX = 0.78

DARK = '#0f172a'
INK = '#111827'
MUTED = '#6b7280'
GREEN = '#10b981'


@dataclass
class DocumentParty:
    name: str = ''
    address: str = ''
    phone: str = ''
    email: str = ''
    tax_number: str = ''


@dataclass
class DocumentLine:
    name: str
    quantity: int
    unit_price: Decimal
    total: Decimal | None = None
    kind: str = ''
    tax_percent: Decimal | None = None


@dataclass
class InvoiceData:
    number: str
    issued_on: date
    issuer: DocumentParty | None = None
    client: DocumentParty | None = None
    lines: list[DocumentLine] = field(default_factory=list)
    discount: Decimal = Decimal('0')
    tax_rate: Decimal = Decimal('0')
    total: Decimal | None = None
    paid: Decimal = Decimal('0')
    tax_included: bool = False


@dataclass
class ReceiptData:
    number: str
    issued_on: date
    amount: Decimal
    order_number: str = ''
    client_name: str = ''
    issuer_name: str = ''


@dataclass(frozen=True)
class Totals:
    subtotal: Decimal
    discount: Decimal
    tax_rate: Decimal
    tax: Decimal
    total: Decimal
    paid: Decimal
    due: Decimal
    tax_included: bool = False


def compute_totals(lines, discount=0, tax_rate=0, total=None, paid=0, *, tax_included=False) -> Totals:
    """Totals panel arithmetic.

    The subtotal sums line totals (``quantity * unit_price`` when a line has
    none); tax applies to the discounted subtotal; an explicit ``total``
    wins over the computed one; the amount due is never negative.

    With ``tax_included`` the line prices already carry the tax: the tax is
    the share of the discounted subtotal and is not added to the total.
    """

    subtotal = Decimal('0')
    for line in lines:
        if line.total is not None:
            subtotal += Decimal(line.total)
        else:
            subtotal += Decimal(line.unit_price or 0) * int(line.quantity or 0)

    discount = Decimal(discount or 0)
    tax_rate = Decimal(tax_rate or 0)
    if tax_included:
        tax = (subtotal - discount) * tax_rate / (Decimal(100) + tax_rate)
        computed = subtotal - discount
    else:
        tax = (subtotal - discount) * tax_rate / Decimal(100)
        computed = subtotal - discount + tax
    final_total = Decimal(total) if total is not None else computed
    paid = Decimal(paid or 0)
    due = max(final_total - paid, Decimal('0'))
    return Totals(subtotal, discount, tax_rate, tax, final_total, paid, due, tax_included)


def _pick_font(size: int, *, bold: bool = False):
    # Configured TrueType files first; Pillow's bundled font as last resort.
    candidates = settings.DOCUMENT_BOLD_FONTS if bold else settings.DOCUMENT_FONTS
    for name in candidates:
        try:
            return ImageFont.truetype(name, int(size))
        except OSError:
            continue
    return ImageFont.load_default(size=int(size))


def _money(value) -> str:
    return f"{Decimal(value):.2f}"


def _percent(value) -> str:
    return f"{Decimal(value):.0f}%"


def _fr_date(value) -> str:
    if isinstance(value, datetime):
        value = value.date()
    return value.strftime('%d/%m/%Y')


def _text(draw, x, baseline, text, font, fill, align='left'):
    """Draw ``text`` with its baseline at ``baseline`` (canvas-style anchoring)."""
    text = str(text)
    width = draw.textlength(text, font=font)
    if align == 'right':
        x -= width
    elif align == 'center':
        x -= width / 2
    size = getattr(font, 'size', 11)
    draw.text((x, baseline - int(size * 0.8)), text, font=font, fill=fill)


def find_logo(upload_root=None):
    """``logo.png`` then ``logo.jpg`` in the upload root; None when absent."""
    root = Path(upload_root or settings.MEDIA_ROOT)
    for name in ('logo.png', 'logo.jpg'):
        path = root / name
        if path.is_file():
            return path
    return None


def _paste_logo(img, logo_path, x, y, height):
    try:
        with Image.open(logo_path) as logo:
            logo = logo.convert('RGBA')
            width = max(int(logo.width * height / logo.height), 1)
            logo = logo.resize((width, height))
            img.paste(logo, (x, y), logo)
        return True
    except (OSError, ValueError) as exc:
        logger.warning('Unable to load logo image %s: %s', logo_path, exc)
        return False


def _atomic_save(folder: Path, final_name: str, writer, document_number: str) -> Path:
    """Run ``writer(tmp_path)`` then move the file into place."""
    final_path = folder / final_name
    tmp_name = None
    try:
        folder.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(dir=folder, prefix='.tmp-', suffix=final_path.suffix)
        os.close(fd)
        writer(tmp_name)
        os.replace(tmp_name, final_path)
    except Exception as exc:
        if tmp_name and os.path.exists(tmp_name):
            os.remove(tmp_name)
        logger.exception('Error writing %s for document %s', final_name, document_number)
        raise RenderError(document_number) from exc
    return final_path


def render_invoice_png(data: InvoiceData, folder, *, upload_root=None) -> Path:
    """Draw the invoice and write ``facture-<number>.png`` into ``folder``."""

    issuer = data.issuer or DocumentParty()
    company_name = issuer.name
    default_name = settings.COMPANY_DEFAULT_NAME
    tagline = settings.COMPANY_DEFAULT_TAGLINE
    currency = settings.CURRENCY_LABEL

    try:
        width, height = INVOICE_SIZE
        img = Image.new('RGB', INVOICE_SIZE, '#ffffff')
        draw = ImageDraw.Draw(img)

        # Header band
        draw.rectangle((0, 0, width, 140), fill=DARK)
        logo_path = find_logo(upload_root)
        if not (logo_path and _paste_logo(img, logo_path, 40, 25, 90)):
            _text(draw, 40, 70, company_name or default_name, _pick_font(28, bold=True), '#ffffff')

        _text(draw, width - 40, 60, 'FACTURE', _pick_font(34, bold=True), '#ffffff', align='right')
        small = _pick_font(16)
        _text(draw, width - 40, 90, f"N° {data.number}", small, '#ffffff', align='right')
        _text(draw, width - 40, 112, f"Date: {_fr_date(data.issued_on)}", small, '#ffffff', align='right')

        # Issuer block
        body = _pick_font(14)
        y = 170
        _text(draw, 40, y, 'Facturé par', _pick_font(16, bold=True), INK)
        y += 22
        if company_name:
            rows = [company_name]
            if issuer.address:
                rows.append(issuer.address)
            if issuer.phone:
                rows.append(f"Tél: {issuer.phone}")
            if issuer.email:
                rows.append(issuer.email)
            if issuer.tax_number:
                rows.append(f"N° TVA: {issuer.tax_number}")
        else:
            rows = [tagline]
        for row in rows:
            _text(draw, 40, y, row, body, INK)
            y += 18

        # Recipient block
        client_x = width - 360
        client_y = 170
        draw.rectangle((client_x, client_y - 18, client_x + 320, client_y - 18 + 110), fill='#f3f4f6')
        _text(draw, client_x + 14, client_y, 'Facturé à', _pick_font(14, bold=True), INK)
        client_y += 24
        if data.client is not None:
            for row in (data.client.name, data.client.address, data.client.email, data.client.phone):
                if row:
                    _text(draw, client_x + 14, client_y, row, body, INK)
                    client_y += 18

        # Item table
        table_x, table_y = 40, 320
        table_w = width - 80
        head = _pick_font(12, bold=True)
        draw.rectangle((table_x, table_y - 20, table_x + table_w, table_y + 8), fill=INK)
        _text(draw, table_x + 10, table_y, 'Désignation', head, '#ffffff')
        _text(draw, table_x + int(table_w * COL_QTY), table_y, 'Qté', head, '#ffffff', align='center')
        _text(draw, table_x + int(table_w * COL_UNIT), table_y, f'PU ({currency})', head, '#ffffff', align='center')
        _text(draw, table_x + int(table_w * COL_TAX), table_y, 'TVA', head, '#ffffff', align='center')
        _text(draw, table_x + table_w - 10, table_y, f'Total ({currency})', head, '#ffffff', align='right')

        table_y += 28
        for line in data.lines:
            base = table_y + 18
            line_total = line.total if line.total is not None else Decimal(line.unit_price or 0) * int(line.quantity or 0)
            if line.tax_percent is not None:
                tax_label = _percent(line.tax_percent)
            elif data.tax_rate:
                tax_label = _percent(data.tax_rate)
            else:
                tax_label = '0%'
            _text(draw, table_x + 10, base, str(line.name)[:60], body, '#000000')
            _text(draw, table_x + int(table_w * COL_QTY), base, line.quantity, body, '#000000', align='center')
            _text(draw, table_x + int(table_w * COL_UNIT), base, _money(line.unit_price or 0), body, '#000000', align='center')
            _text(draw, table_x + int(table_w * COL_TAX), base, tax_label, body, '#000000', align='center')
            _text(draw, table_x + table_w - 10, base, _money(line_total), body, '#000000', align='right')
            table_y += 28

        table_y += 8
        draw.line((table_x, table_y, table_x + table_w, table_y), fill='#e5e7eb', width=1)

        # Totals panel
        totals = compute_totals(
            data.lines, data.discount, data.tax_rate, data.total, data.paid, tax_included=data.tax_included,
        )
        box_w = 360
        box_x = width - box_w - 40
        right = box_x + box_w - 14
        ty = table_y + 20
        draw.rectangle((box_x, ty - 10, box_x + box_w, ty - 10 + 160), fill='#f8fafc')
        _text(draw, right, ty + 12, f"Sous-total: {_money(totals.subtotal)} {currency}", body, INK, align='right')
        ty += 26
        if totals.discount > 0:
            _text(draw, right, ty + 12, f"Remise: -{_money(totals.discount)} {currency}", body, INK, align='right')
            ty += 26
        if totals.tax_rate > 0:
            label = 'dont TVA' if totals.tax_included else 'TVA'
            _text(draw, right, ty + 12, f"{label} ({_percent(totals.tax_rate)}): {_money(totals.tax)} {currency}", body, INK, align='right')
            ty += 26
        bold = _pick_font(16, bold=True)
        _text(draw, right, ty + 14, f"Total facture: {_money(totals.total)} {currency}", bold, DARK, align='right')
        ty += 36
        _text(draw, right, ty + 12, f"Payé: {_money(totals.paid)} {currency}", body, INK, align='right')
        ty += 26
        if totals.due == 0:
            _text(draw, right, ty + 14, 'PAYÉ', bold, '#059669', align='right')
        else:
            _text(draw, right, ty + 14, f"Montant dû: {_money(totals.due)} {currency}", bold, '#b91c1c', align='right')

        # Status badge
        badge_x, badge_y = box_x + 10, table_y - 10
        if totals.due == 0:
            draw.rectangle((badge_x, badge_y, badge_x + 120, badge_y + 28), fill='#d1fae5')
            _text(draw, badge_x + 60, badge_y + 20, 'PAYÉ', head, '#065f46', align='center')
        else:
            draw.rectangle((badge_x, badge_y, badge_x + 160, badge_y + 28), fill='#fee2e2')
            _text(draw, badge_x + 80, badge_y + 20, 'MONTANT DÛ', head, '#991b1b', align='center')

        # Footer
        footer = _pick_font(12)
        if company_name:
            footer_text = ' | '.join(p for p in (company_name, issuer.email, issuer.phone) if p)
        else:
            footer_text = tagline
        _text(draw, width / 2, height - 60, footer_text, footer, MUTED, align='center')
        _text(draw, width / 2, height - 40, 'Merci de votre confiance !', footer, MUTED, align='center')
    except (OSError, ValueError) as exc:
        logger.exception('Error drawing invoice %s', data.number)
        raise RenderError(data.number) from exc

    path = _atomic_save(Path(folder), f"facture-{data.number}.png", lambda tmp: img.save(tmp, format='PNG'), data.number)
    logger.info('Invoice PNG generated: %s', path)
    return path


def render_receipt_png(data: ReceiptData, folder, *, upload_root=None) -> Path:
    """Draw a payment receipt and write ``recu-<number>.png`` into ``folder``."""

    currency = settings.CURRENCY_LABEL
    try:
        img = Image.new('RGB', RECEIPT_SIZE, '#ffffff')
        draw = ImageDraw.Draw(img)

        draw.rectangle((0, 0, 600, 80), fill=GREEN)
        logo_path = find_logo(upload_root)
        if not (logo_path and _paste_logo(img, logo_path, 20, 15, 50)):
            _text(draw, 300, 50, data.issuer_name or settings.COMPANY_DEFAULT_NAME,
                  _pick_font(24, bold=True), '#ffffff', align='center')

        _text(draw, 300, 120, 'REÇU DE PAIEMENT', _pick_font(24, bold=True), '#000000', align='center')
        detail = _pick_font(16)
        _text(draw, 300, 150, f"Numéro: {data.number}", detail, '#000000', align='center')
        _text(draw, 300, 170, f"Date: {_fr_date(data.issued_on)}", detail, '#000000', align='center')

        draw.rectangle((150, 200, 450, 260), fill=GREEN)
        _text(draw, 300, 240, f"{_money(data.amount)} {currency}", _pick_font(28, bold=True), '#ffffff', align='center')

        info = _pick_font(14)
        _text(draw, 300, 280, f"Commande: {data.order_number}", info, '#000000', align='center')
        if data.client_name:
            _text(draw, 300, 300, f"Client: {data.client_name}", info, '#000000', align='center')

        _text(draw, 300, 350, 'Merci de votre paiement !', _pick_font(12), MUTED, align='center')
    except (OSError, ValueError) as exc:
        logger.exception('Error drawing receipt %s', data.number)
        raise RenderError(data.number) from exc

    path = _atomic_save(Path(folder), f"recu-{data.number}.png", lambda tmp: img.save(tmp, format='PNG'), data.number)
    logger.info('Receipt PNG generated: %s', path)
    return path


def png_to_pdf(png_path, pdf_path, *, document_number='') -> Path:
    """Embed a PNG as the single full page of a PDF sized to the image."""

    png_path, pdf_path = Path(png_path), Path(pdf_path)

    def write(tmp):
        image = ImageReader(str(png_path))
        img_w, img_h = image.getSize()
        pdf = canvas.Canvas(tmp, pagesize=(img_w, img_h))
        pdf.drawImage(image, 0, 0, width=img_w, height=img_h)
        pdf.showPage()
        pdf.save()

    return _atomic_save(pdf_path.parent, pdf_path.name, write, document_number or png_path.stem)
