"""Invoices app tests: totals arithmetic, rendering, numbering and settings."""

import base64
import io
import json
import os
import tempfile
from datetime import date
from decimal import Decimal
from pathlib import Path

from django.contrib.auth import get_user_model
from django.test import SimpleTestCase, TestCase, override_settings
from PIL import Image
from rest_framework.test import APIClient

from core.exceptions import RenderError
from invoices.models import Invoice
from invoices.rendering import (
	DocumentLine,
	DocumentParty,
	InvoiceData,
	ReceiptData,
	compute_totals,
	png_to_pdf,
	render_invoice_png,
	render_receipt_png,
)
from finance.services import apply_payment
from invoices.services import allocate_invoice_number, build_invoice_data, load_company, save_company
from orders.services import create_order
from products.inventory import set_stock_level
from products.models import Product

PAID_BADGE = (209, 250, 229)
DUE_BADGE = (254, 226, 226)


def _png_bytes(color='#1d4ed8', size=(60, 30)):
	buf = io.BytesIO()
	Image.new('RGB', size, color).save(buf, format='PNG')
	return buf.getvalue()


class ComputeTotalsTests(SimpleTestCase):

	def test_discount_and_tax(self):
		lines = [DocumentLine(name='Lot', quantity=1, unit_price=Decimal('50000'))]
		totals = compute_totals(lines, discount=Decimal('5000'), tax_rate=Decimal('19.25'))
		self.assertEqual(totals.subtotal, Decimal('50000'))
		self.assertEqual(totals.tax, Decimal('8662.5'))
		self.assertEqual(totals.total, Decimal('53662.5'))
		self.assertEqual(totals.due, Decimal('53662.5'))

	def test_explicit_total_wins_and_due_is_never_negative(self):
		lines = [DocumentLine(name='Lot', quantity=1, unit_price=Decimal('50000'))]
		totals = compute_totals(lines, discount=Decimal('5000'), tax_rate=Decimal('19.25'), total=Decimal('50000'), paid=Decimal('60000'))
		self.assertEqual(totals.total, Decimal('50000'))
		self.assertEqual(totals.due, Decimal('0'))

	def test_line_total_preferred_over_quantity_times_price(self):
		lines = [
			DocumentLine(name='A', quantity=2, unit_price=Decimal('100'), total=Decimal('150')),
			DocumentLine(name='B', quantity=3, unit_price=Decimal('10')),
		]
		self.assertEqual(compute_totals(lines).subtotal, Decimal('180'))

	def test_included_tax_is_a_share_of_the_total(self):
		lines = [DocumentLine(name='Lot', quantity=1, unit_price=Decimal('11925'))]
		totals = compute_totals(lines, tax_rate=Decimal('19.25'), paid=Decimal('11925'), tax_included=True)
		self.assertEqual(totals.tax, Decimal('1925'))
		self.assertEqual(totals.total, Decimal('11925'))
		self.assertEqual(totals.due, Decimal('0'))


@override_settings(DOCUMENT_FONTS=[], DOCUMENT_BOLD_FONTS=[])
class RenderingTests(SimpleTestCase):

	def setUp(self):
		tmp = tempfile.TemporaryDirectory()
		self.addCleanup(tmp.cleanup)
		self.root = Path(tmp.name)

	def _invoice(self, paid):
		return InvoiceData(
			number='05-03-2026-0001',
			issued_on=date(2026, 3, 5),
			issuer=DocumentParty(name='RealTech Holding', phone='+237699000000', email='contact@realtech.cm'),
			client=DocumentParty(name='Mbarga Paul', address='Akwa, Douala'),
			lines=[DocumentLine(name='Ordinateur portable', quantity=1, unit_price=Decimal('50000'))],
			paid=paid,
		)

	def test_invoice_png_layout_and_paid_badge(self):
		png = render_invoice_png(self._invoice(Decimal('50000')), self.root / 'inv', upload_root=self.root)
		self.assertEqual(png.name, 'facture-05-03-2026-0001.png')
		with Image.open(png) as img:
			self.assertEqual(img.size, (1000, 1400))
			rgb = img.convert('RGB')
			self.assertEqual(rgb.getpixel((5, 5)), (15, 23, 42))
			self.assertEqual(rgb.getpixel((612, 376)), PAID_BADGE)
		self.assertEqual([p.name for p in png.parent.iterdir()], [png.name])

	def test_invoice_with_balance_shows_due_badge(self):
		png = render_invoice_png(self._invoice(Decimal('10000')), self.root / 'inv', upload_root=self.root)
		with Image.open(png) as img:
			self.assertEqual(img.convert('RGB').getpixel((612, 376)), DUE_BADGE)

	def test_logo_replaces_company_name(self):
		(self.root / 'logo.png').write_bytes(_png_bytes('#ff0000'))
		png = render_invoice_png(self._invoice(Decimal('0')), self.root / 'inv', upload_root=self.root)
		with Image.open(png) as img:
			self.assertEqual(img.convert('RGB').getpixel((45, 30)), (255, 0, 0))

	def test_receipt_and_pdf(self):
		data = ReceiptData(number='REC-000012', issued_on=date(2026, 3, 5), amount=Decimal('60000'), order_number='000042')
		png = render_receipt_png(data, self.root / 'rec', upload_root=self.root)
		with Image.open(png) as img:
			self.assertEqual(img.size, (600, 400))

		pdf = png_to_pdf(png, self.root / 'rec' / 'recu-REC-000012.pdf')
		self.assertTrue(pdf.read_bytes().startswith(b'%PDF'))

	def test_unwritable_folder_raises_render_error(self):
		blocker = self.root / 'blocker'
		blocker.write_text('not a folder')
		data = ReceiptData(number='REC-000013', issued_on=date(2026, 3, 5), amount=Decimal('1'))
		with self.assertRaises(RenderError) as ctx:
			render_receipt_png(data, blocker / 'rec', upload_root=self.root)
		self.assertIn('REC-000013', str(ctx.exception.detail))


class InvoiceNumberingTests(TestCase):

	@classmethod
	def setUpTestData(cls):
		product = Product.objects.create(name='Câble HDMI', price=Decimal('3000'))
		set_stock_level(product, 5)
		cls.order = create_order(products=[{'id': product.pk, 'quantity': 1}])

	def test_sequence_increments_within_a_year_and_resets_next_year(self):
		Invoice.objects.create(order=self.order, number='10-06-2025-0007', year=2025, sequence=7)
		self.assertEqual(allocate_invoice_number(date(2025, 12, 31)), ('31-12-2025-0008', 2025, 8))
		self.assertEqual(allocate_invoice_number(date(2026, 1, 2)), ('02-01-2026-0001', 2026, 1))


@override_settings(ALLOWED_HOSTS=['testserver', 'localhost', '127.0.0.1'])
class CompanySettingsApiTests(TestCase):

	@classmethod
	def setUpTestData(cls):
		User = get_user_model()
		cls.admin = User.objects.create_user(username='patron', password='12345678', role='ADMIN')
		cls.employee = User.objects.create_user(username='employe', password='12345678', role='EMPLOYE')

	def setUp(self):
		tmp = tempfile.TemporaryDirectory()
		self.addCleanup(tmp.cleanup)
		self.media = tmp.name
		override = override_settings(MEDIA_ROOT=self.media)
		override.enable()
		self.addCleanup(override.disable)
		self.api = APIClient()
		self.api.force_authenticate(user=self.admin)

	def test_company_defaults_then_update(self):
		res = self.api.get('/api/settings/company/')
		self.assertEqual(res.status_code, 200)
		self.assertEqual(res.data['name'], '')

		res = self.api.put(
			'/api/settings/company/',
			{'name': 'RealTech Holding', 'phone': '699 00 00 00', 'email': 'contact@realtech.cm'},
			format='json',
		)
		self.assertEqual(res.status_code, 200, res.data)
		self.assertEqual(res.data['phone'], '+237699000000')
		with open(os.path.join(self.media, 'company.json'), encoding='utf-8') as fh:
			self.assertEqual(json.load(fh)['name'], 'RealTech Holding')
		self.assertEqual(load_company()['email'], 'contact@realtech.cm')

	def test_partial_update_keeps_other_fields(self):
		save_company({'name': 'RealTech', 'address': 'Douala'})
		res = self.api.put('/api/settings/company/', {'address': 'Yaoundé'}, format='json')
		self.assertEqual(res.data['name'], 'RealTech')
		self.assertEqual(res.data['address'], 'Yaoundé')

	def test_employee_can_read_but_not_write(self):
		self.api.force_authenticate(user=self.employee)
		self.assertEqual(self.api.get('/api/settings/company/').status_code, 200)
		self.assertEqual(self.api.put('/api/settings/company/', {'name': 'X'}, format='json').status_code, 403)
		self.assertEqual(self.api.post('/api/settings/logo/', {'logo': 'x'}, format='json').status_code, 403)

	def test_logo_upload(self):
		encoded = 'data:image/png;base64,' + base64.b64encode(_png_bytes()).decode('ascii')
		res = self.api.post('/api/settings/logo/', {'logo': encoded}, format='json')
		self.assertEqual(res.status_code, 201, res.data)
		self.assertTrue(os.path.isfile(os.path.join(self.media, 'logo.png')))

		res = self.api.post('/api/settings/logo/', {'logo': 'pas-une-image'}, format='json')
		self.assertEqual(res.status_code, 400)


@override_settings(DEFAULT_TAX_RATE=Decimal('19.25'))
class InvoiceDataTests(TestCase):

	@classmethod
	def setUpTestData(cls):
		product = Product.objects.create(name='Ordinateur portable', price=Decimal('50000'))
		set_stock_level(product, 3)
		cls.order = create_order(products=[{'id': product.pk, 'quantity': 1}])

	def test_paid_order_invoice_has_nothing_due_with_tax(self):
		apply_payment(self.order.pk, amount='50000', mode='cash', target_status='PAYEE')
		self.order.refresh_from_db()
		data = build_invoice_data(self.order, number='05-03-2026-0001', issued_on=date(2026, 3, 5))
		totals = compute_totals(data.lines, data.discount, data.tax_rate, data.total, data.paid, tax_included=data.tax_included)
		self.assertEqual(totals.total, Decimal('50000.00'))
		self.assertEqual(totals.due, Decimal('0'))
		self.assertEqual(totals.tax.quantize(Decimal('0.01')), Decimal('8071.28'))

	def test_unpaid_order_owes_its_order_total(self):
		data = build_invoice_data(self.order, number='05-03-2026-0002', issued_on=date(2026, 3, 5))
		totals = compute_totals(data.lines, data.discount, data.tax_rate, data.total, data.paid, tax_included=data.tax_included)
		self.assertEqual(totals.due, self.order.total)
