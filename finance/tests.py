"""Finance app tests: payment application and the sales endpoints."""

import os
import tempfile
from decimal import Decimal

from django.contrib.auth import get_user_model
from django.test import SimpleTestCase, TestCase, override_settings
from rest_framework.exceptions import ValidationError
from rest_framework.test import APIClient

from core.exceptions import LockedOrderError
from finance.models import Payment
from finance.services import apply_payment, derive_payment_status, normalize_mode
from invoices.models import Receipt
from orders.models import Order
from orders.reconciliation import ensure_editable
from orders.services import create_order, soft_delete_order
from products.inventory import set_stock_level
from products.models import Product


class PaymentRulesTests(SimpleTestCase):

	def test_status_is_derived_from_amounts(self):
		self.assertEqual(derive_payment_status(Decimal('0'), Decimal('100')), Order.PAYMENT_UNPAID)
		self.assertEqual(derive_payment_status(Decimal('60'), Decimal('100')), Order.PAYMENT_PARTIAL)
		self.assertEqual(derive_payment_status(Decimal('100'), Decimal('100')), Order.PAYMENT_PAID)
		self.assertEqual(derive_payment_status(Decimal('99.996'), Decimal('100')), Order.PAYMENT_PAID)

	def test_mode_aliases(self):
		self.assertEqual(normalize_mode('Espèces'), Payment.MODE_CASH)
		self.assertEqual(normalize_mode(' VIREMENT '), Payment.MODE_TRANSFER)
		self.assertEqual(normalize_mode('mobile_money'), Payment.MODE_MOBILE_MONEY)
		with self.assertRaises(ValidationError):
			normalize_mode('bitcoin')


class ApplyPaymentTests(TestCase):
	"""Payment application against an order of 100,000."""

	@classmethod
	def setUpTestData(cls):
		User = get_user_model()
		cls.user = User.objects.create_user(username='caisse', password='12345678')
		cls.product = Product.objects.create(name='Ordinateur portable', price=Decimal('100000.00'))
		set_stock_level(cls.product, 10)

	def setUp(self):
		self.order = create_order(products=[{'id': self.product.pk, 'quantity': 1}], user=self.user)
		self.assertEqual(self.order.total, Decimal('100000.00'))

	def _pay(self, amount, target):
		return apply_payment(self.order.pk, amount=amount, mode='cash', target_status=target, user=self.user)

	def test_full_payment_settles_and_locks_the_order(self):
		self._pay('100000', Order.PAYMENT_PAID)
		self.order.refresh_from_db()
		self.assertEqual(self.order.amount_paid, Decimal('100000.00'))
		self.assertEqual(self.order.payment_status, Order.PAYMENT_PAID)
		with self.assertRaises(LockedOrderError):
			ensure_editable(self.order)

	def test_partial_payment_then_overpayment_is_refused(self):
		self._pay('60000', Order.PAYMENT_PARTIAL)
		self.order.refresh_from_db()
		self.assertEqual(self.order.outstanding, Decimal('40000.00'))
		self.assertEqual(self.order.payment_status, Order.PAYMENT_PARTIAL)

		with self.assertRaises(ValidationError):
			self._pay('50000', Order.PAYMENT_PARTIAL)
		with self.assertRaises(ValidationError):
			self._pay('50000', Order.PAYMENT_PAID)
		self.order.refresh_from_db()
		self.assertEqual(self.order.amount_paid, Decimal('60000.00'))
		self.assertEqual(Payment.objects.filter(order=self.order).count(), 1)

	def test_full_target_requires_exact_outstanding(self):
		for amount in ('99999.99', '50000', '100000.01'):
			with self.subTest(amount=amount):
				with self.assertRaises(ValidationError):
					self._pay(amount, Order.PAYMENT_PAID)
		self.assertFalse(Payment.objects.exists())

	def test_partial_target_requires_amount_below_outstanding(self):
		for amount in ('0', '-10', '100000'):
			with self.subTest(amount=amount):
				with self.assertRaises(ValidationError):
					self._pay(amount, Order.PAYMENT_PARTIAL)
		self._pay('0.01', Order.PAYMENT_PARTIAL)
		self.assertEqual(Payment.objects.count(), 1)

	def test_declared_status_is_not_trusted(self):
		self._pay('40000', Order.PAYMENT_PARTIAL)
		self._pay('60000', Order.PAYMENT_PAID)
		self.order.refresh_from_db()
		self.assertEqual(self.order.payment_status, Order.PAYMENT_PAID)
		with self.assertRaises(ValidationError):
			self._pay('1', Order.PAYMENT_PARTIAL)

	def test_unknown_target_status_and_deleted_order(self):
		with self.assertRaises(ValidationError):
			self._pay('100', 'NON_PAYEE')
		soft_delete_order(self.order.pk, user=self.user)
		with self.assertRaises(ValidationError):
			self._pay('100', Order.PAYMENT_PARTIAL)


@override_settings(ALLOWED_HOSTS=['testserver', 'localhost', '127.0.0.1'])
class PaymentApiTests(TestCase):

	@classmethod
	def setUpTestData(cls):
		User = get_user_model()
		cls.user = User.objects.create_user(username='vendeur', password='12345678')
		cls.product = Product.objects.create(name='Imprimante', price=Decimal('75000.00'))
		set_stock_level(cls.product, 4)

	def setUp(self):
		self.media = tempfile.TemporaryDirectory()
		self.addCleanup(self.media.cleanup)
		override = override_settings(MEDIA_ROOT=self.media.name, DOCUMENT_FONTS=[], DOCUMENT_BOLD_FONTS=[])
		override.enable()
		self.addCleanup(override.disable)
		self.api = APIClient()
		self.api.force_authenticate(user=self.user)
		self.order = create_order(products=[{'id': self.product.pk, 'quantity': 1}], user=self.user)

	def test_pay_endpoint_records_payment_and_renders_receipt(self):
		with self.captureOnCommitCallbacks(execute=True):
			res = self.api.post(
				f'/api/orders/{self.order.pk}/pay/',
				{'amount': '75000', 'mode': 'Mobile-Money', 'target_status': 'PAYEE'},
				format='json',
			)
		self.assertEqual(res.status_code, 201, res.data)
		self.assertEqual(res.data['order']['payment_status'], Order.PAYMENT_PAID)
		self.assertEqual(res.data['payment']['mode'], Payment.MODE_MOBILE_MONEY)

		payment = Payment.objects.get(pk=res.data['payment']['id'])
		receipt = Receipt.objects.get(payment=payment)
		self.assertEqual(receipt.number, f'REC-{payment.pk:06d}')
		self.assertTrue(os.path.isfile(os.path.join(self.media.name, receipt.pdf_path)))
		self.assertTrue(os.path.isfile(os.path.join(self.media.name, receipt.png_path)))

	def test_refused_payment_leaves_no_trace(self):
		res = self.api.post(
			f'/api/orders/{self.order.pk}/pay/',
			{'amount': '80000', 'mode': 'cash', 'target_status': 'PARTIELLE'},
			format='json',
		)
		self.assertEqual(res.status_code, 400)
		self.assertFalse(Payment.objects.exists())
		self.order.refresh_from_db()
		self.assertEqual(self.order.amount_paid, Decimal('0.00'))

	def test_sales_list_and_receipt_download(self):
		apply_payment(self.order.pk, amount='25000', mode='cash', target_status='PARTIELLE', user=self.user)
		apply_payment(self.order.pk, amount='50000', mode='card', target_status='PAYEE', user=self.user)

		res = self.api.get(f'/api/orders/{self.order.pk}/payments/')
		self.assertEqual([p['amount'] for p in res.data], [Decimal('25000.00'), Decimal('50000.00')])

		res = self.api.get('/api/payments/', {'mode': 'card'})
		self.assertEqual(res.data['count'], 1)
		payment_id = res.data['results'][0]['id']

		res = self.api.get(f'/api/payments/{payment_id}/receipt/')
		self.assertEqual(res.status_code, 200)
		self.assertEqual(res['Content-Type'], 'application/pdf')
		self.assertIn(f'recu-REC-{payment_id:06d}.pdf', res['Content-Disposition'])

	def test_payments_are_append_only(self):
		payment = apply_payment(self.order.pk, amount='1000', mode='cash', target_status='PARTIELLE', user=self.user)
		self.assertEqual(self.api.delete(f'/api/payments/{payment.pk}/').status_code, 405)
		self.assertEqual(self.api.put(f'/api/payments/{payment.pk}/', {'amount': '1'}, format='json').status_code, 405)
