"""Orders app tests."""

import re
import tempfile
from decimal import Decimal
from types import SimpleNamespace

from django.contrib.auth import get_user_model
from django.db import connection
from django.test import SimpleTestCase, TestCase, override_settings
from django.test.utils import CaptureQueriesContext
from rest_framework.exceptions import NotFound, ValidationError
from rest_framework.test import APIClient

from clients.models import Client
from core.exceptions import LockedOrderError, StockExceededError
from finance.services import apply_payment
from orders.models import Order
from orders.reconciliation import (
	PRODUCTS,
	SERVICES,
	CatalogEntry,
	EditedLine,
	PersistedLine,
	ensure_editable,
	plan_reconciliation,
	resolve_unit_price,
)
from orders.services import apply_reconciliation, create_order
from products.inventory import set_stock_level
from products.models import Product, Service, StockMovement


def _catalog(products=None, services=None):
	return {PRODUCTS: products or {}, SERVICES: services or {}}


class EnsureEditableTests(SimpleTestCase):

	def test_unpaid_pending_order_is_editable(self):
		ensure_editable(SimpleNamespace(amount_paid=Decimal('0'), status='PENDING'))

	def test_any_payment_locks_the_order(self):
		with self.assertRaises(LockedOrderError):
			ensure_editable(SimpleNamespace(amount_paid=Decimal('0.01'), status='PENDING'))

	def test_terminal_status_locks_regardless_of_case_and_accents(self):
		for label in ('VALIDATED', 'Validée', 'terminée', 'Livrée', 'confirmed', 'FINI'):
			with self.subTest(label=label):
				with self.assertRaises(LockedOrderError):
					ensure_editable(SimpleNamespace(amount_paid=Decimal('0'), status=label))


class ReconciliationPlanTests(SimpleTestCase):
	"""Pure diff between persisted and edited line sets."""

	def setUp(self):
		self.persisted = {
			PRODUCTS: [PersistedLine(line_id=10, ref_id=1, quantity=2, unit_price=Decimal('1000.00'), total=Decimal('2000.00'))],
			SERVICES: [PersistedLine(line_id=20, ref_id=7, quantity=1, unit_price=Decimal('5000.00'), total=Decimal('5000.00'))],
		}
		self.catalog = _catalog(
			products={
				1: CatalogEntry(ref_id=1, price=Decimal('1000.00'), stock=5, name='Souris'),
				2: CatalogEntry(ref_id=2, price=Decimal('250.00'), stock=4, name='Câble'),
			},
			services={7: CatalogEntry(ref_id=7, price=Decimal('5000.00'), name='Installation')},
		)

	def test_unchanged_line_set_yields_empty_plan(self):
		edited = {
			PRODUCTS: [EditedLine(ref_id=1, quantity=2, line_id=10)],
			SERVICES: [EditedLine(ref_id=7, quantity=1, line_id=20)],
		}
		plan = plan_reconciliation(self.persisted, edited, self.catalog, current_client_id=3, edited_client_id=3)
		self.assertTrue(plan.is_empty)
		self.assertEqual(plan.summary(), 'Aucune modification.')

	def test_add_update_delete_are_detected(self):
		edited = {
			PRODUCTS: [EditedLine(ref_id=1, quantity=3, line_id=10), EditedLine(ref_id=2, quantity=4)],
			SERVICES: [],
		}
		plan = plan_reconciliation(self.persisted, edited, self.catalog, current_client_id=3, edited_client_id=4)

		self.assertEqual(len(plan.products.updates), 1)
		update = plan.products.updates[0]
		self.assertEqual((update.line_id, update.quantity, update.delta), (10, 3, 1))
		self.assertEqual(update.total, Decimal('3000.00'))

		self.assertEqual(len(plan.products.additions), 1)
		self.assertEqual(plan.products.additions[0].total, Decimal('1000.00'))
		self.assertEqual(plan.services.deletions, [20])
		self.assertTrue(plan.client_changed)
		self.assertEqual(plan.client_id, 4)
		self.assertEqual(
			plan.summary(),
			'Produits : 1 ajout(s), 1 modification(s), 0 suppression(s)\n'
			'Services : 0 ajout(s), 0 modification(s), 1 suppression(s)\n'
			'Client : modifié',
		)

	def test_kind_left_out_of_the_edit_is_untouched(self):
		plan = plan_reconciliation(self.persisted, {PRODUCTS: []}, self.catalog)
		self.assertEqual(plan.products.deletions, [10])
		self.assertTrue(plan.services.is_empty)

	def test_new_line_above_stock_is_rejected_with_max_quantity(self):
		edited = {PRODUCTS: [EditedLine(ref_id=1, quantity=2, line_id=10), EditedLine(ref_id=2, quantity=5)]}
		with self.assertRaises(StockExceededError) as ctx:
			plan_reconciliation(self.persisted, edited, self.catalog)
		self.assertEqual(ctx.exception.max_quantity, 4)
		self.assertEqual(ctx.exception.product_id, 2)

	def test_existing_line_may_grow_up_to_stock_plus_reserved(self):
		# stock 5 + reserved 2 = 7
		plan = plan_reconciliation(self.persisted, {PRODUCTS: [EditedLine(ref_id=1, quantity=7, line_id=10)]}, self.catalog)
		self.assertEqual(plan.products.updates[0].quantity, 7)

		with self.assertRaises(StockExceededError) as ctx:
			plan_reconciliation(self.persisted, {PRODUCTS: [EditedLine(ref_id=1, quantity=8, line_id=10)]}, self.catalog)
		self.assertEqual(ctx.exception.max_quantity, 7)

	def test_product_fully_reserved_by_its_line(self):
		# Stock 3 all taken by this order's line: the product shows 0 left.
		persisted = {PRODUCTS: [PersistedLine(line_id=10, ref_id=1, quantity=3, unit_price=Decimal('1000.00'))]}
		catalog = _catalog(products={1: CatalogEntry(ref_id=1, price=Decimal('1000.00'), stock=0, name='Souris')})

		with self.assertRaises(StockExceededError) as ctx:
			plan_reconciliation(persisted, {PRODUCTS: [
				EditedLine(ref_id=1, quantity=3, line_id=10),
				EditedLine(ref_id=1, quantity=1),
			]}, catalog)
		self.assertEqual(ctx.exception.max_quantity, 0)

		with self.assertRaises(StockExceededError) as ctx:
			plan_reconciliation(persisted, {PRODUCTS: [EditedLine(ref_id=1, quantity=4, line_id=10)]}, catalog)
		self.assertEqual(ctx.exception.max_quantity, 3)

	def test_invalid_inputs(self):
		with self.assertRaises(ValidationError):
			plan_reconciliation(self.persisted, {PRODUCTS: [EditedLine(ref_id=1, quantity=0, line_id=10)]}, self.catalog)
		with self.assertRaises(ValidationError):
			plan_reconciliation(self.persisted, {PRODUCTS: [
				EditedLine(ref_id=1, quantity=1, line_id=10),
				EditedLine(ref_id=1, quantity=1, line_id=10),
			]}, self.catalog)
		with self.assertRaises(ValidationError):
			plan_reconciliation(self.persisted, {PRODUCTS: [EditedLine(ref_id=1, quantity=1, line_id=99)]}, self.catalog)
		with self.assertRaises(NotFound):
			plan_reconciliation(self.persisted, {PRODUCTS: [EditedLine(ref_id=42, quantity=1)]}, self.catalog)

	def test_unit_price_resolution_order(self):
		self.assertEqual(resolve_unit_price(Decimal('12'), Decimal('10'), None, 2), Decimal('12.00'))
		self.assertEqual(resolve_unit_price(None, Decimal('10'), Decimal('99'), 2), Decimal('10.00'))
		self.assertEqual(resolve_unit_price(None, None, Decimal('45'), 3), Decimal('15.00'))
		self.assertEqual(resolve_unit_price(None, None, None, 3), Decimal('0.00'))


@override_settings(ALLOWED_HOSTS=['testserver', 'localhost', '127.0.0.1'])
class OrderApiTests(TestCase):
	"""Order endpoints: create, reconciled edits, locks, soft delete."""

	@classmethod
	def setUpTestData(cls):
		User = get_user_model()
		cls.user = User.objects.create_user(username='employe', password='12345678', role='EMPLOYE')
		cls.client_row = Client.objects.create(last_name='Mbarga', first_name='Paul')
		cls.other_client = Client.objects.create(last_name='Ndiaye', first_name='Awa')
		cls.product = Product.objects.create(name='Souris', price=Decimal('1000.00'))
		set_stock_level(cls.product, 10)
		cls.service = Service.objects.create(name='Installation', price=Decimal('5000.00'))

	def setUp(self):
		self.api = APIClient()
		self.api.force_authenticate(user=self.user)

	def _create(self, quantity=2, services=1):
		payload = {
			'client': self.client_row.pk,
			'products': [{'id': self.product.pk, 'quantity': quantity}],
			'services': [{'id': self.service.pk, 'quantity': services}] if services else [],
		}
		res = self.api.post('/api/orders/', payload, format='json')
		self.assertEqual(res.status_code, 201, res.data)
		return res.data

	def _stock(self):
		self.product.refresh_from_db()
		return self.product.stock_quantity

	def test_create_order_freezes_prices_and_debits_stock(self):
		data = self._create()
		self.assertEqual(data['total'], Decimal('7000.00'))
		self.assertTrue(data['code'].startswith('CMD-'))
		self.assertEqual(data['client_name'], 'Paul Mbarga')
		self.assertFalse(data['is_locked'])
		self.assertEqual(self._stock(), 8)
		self.assertTrue(StockMovement.objects.filter(
			order_id=data['id'], movement_type=StockMovement.TYPE_OUT, quantity=2,
		).exists())

	def test_create_order_above_stock_is_rejected_without_writes(self):
		res = self.api.post('/api/orders/', {'products': [{'id': self.product.pk, 'quantity': 11}]}, format='json')
		self.assertEqual(res.status_code, 400)
		self.assertEqual(res.data['code'], 'stock_exceeded')
		self.assertEqual(res.data['max_quantity'], 10)
		self.assertEqual(Order.objects.count(), 0)
		self.assertEqual(self._stock(), 10)

	def test_create_empty_order_is_rejected(self):
		res = self.api.post('/api/orders/', {'client': self.client_row.pk}, format='json')
		self.assertEqual(res.status_code, 400)

	def test_edit_requires_confirmation_then_applies(self):
		order = self._create()
		line = order['product_lines'][0]
		payload = {
			'client': self.other_client.pk,
			'products': [{'id': self.product.pk, 'quantity': 5, 'line_id': line['id']}],
			'services': [],
		}

		res = self.api.put(f"/api/orders/{order['id']}/", payload, format='json')
		self.assertEqual(res.status_code, 400)
		self.assertEqual(res.data['code'], 'confirmation_required')
		self.assertIn('Produits : 0 ajout(s), 1 modification(s)', res.data['summary'])
		self.assertEqual(self._stock(), 8)

		res = self.api.put(f"/api/orders/{order['id']}/", {**payload, 'confirm': True}, format='json')
		self.assertEqual(res.status_code, 200, res.data)
		self.assertEqual(res.data['total'], Decimal('5000.00'))
		self.assertEqual(res.data['client'], self.other_client.pk)
		self.assertEqual(res.data['service_lines'], [])
		self.assertEqual(self._stock(), 5)

	def test_unchanged_edit_needs_no_confirmation(self):
		order = self._create()
		line = order['product_lines'][0]
		res = self.api.patch(
			f"/api/orders/{order['id']}/",
			{'products': [{'id': self.product.pk, 'quantity': 2, 'line_id': line['id']}]},
			format='json',
		)
		self.assertEqual(res.status_code, 200)
		self.assertEqual(res.data['total'], Decimal('7000.00'))

	def test_preview_changes_does_not_write(self):
		order = self._create()
		res = self.api.post(
			f"/api/orders/{order['id']}/preview-changes/",
			{'products': [{'id': self.product.pk, 'quantity': 1}]},
			format='json',
		)
		self.assertEqual(res.status_code, 200)
		self.assertEqual(len(res.data['products']['additions']), 1)
		self.assertEqual(res.data['products']['deletions'], [order['product_lines'][0]['id']])
		self.assertEqual(self._stock(), 8)

	def test_line_sub_routes(self):
		order = self._create(services=0)
		res = self.api.post(f"/api/orders/{order['id']}/services/", {'id': self.service.pk, 'quantity': 2}, format='json')
		self.assertEqual(res.status_code, 201, res.data)
		self.assertEqual(res.data['total'], Decimal('12000.00'))

		line_id = order['product_lines'][0]['id']
		res = self.api.put(f"/api/orders/{order['id']}/products/{line_id}/", {'quantity': 4}, format='json')
		self.assertEqual(res.status_code, 200, res.data)
		self.assertEqual(self._stock(), 6)

		res = self.api.delete(f"/api/orders/{order['id']}/products/{line_id}/")
		self.assertEqual(res.status_code, 200)
		self.assertEqual(res.data['product_lines'], [])
		self.assertEqual(self._stock(), 10)

		res = self.api.delete(f"/api/orders/{order['id']}/products/{line_id}/")
		self.assertEqual(res.status_code, 404)

	def test_paid_order_rejects_every_line_operation(self):
		order = self._create()
		apply_payment(order['id'], amount='1000', mode='cash', target_status='PARTIELLE', user=self.user)
		line_id = order['product_lines'][0]['id']

		attempts = [
			self.api.put(f"/api/orders/{order['id']}/", {'products': [], 'confirm': True}, format='json'),
			self.api.post(f"/api/orders/{order['id']}/products/", {'id': self.product.pk, 'quantity': 1}, format='json'),
			self.api.put(f"/api/orders/{order['id']}/products/{line_id}/", {'quantity': 1}, format='json'),
			self.api.delete(f"/api/orders/{order['id']}/products/{line_id}/"),
			self.api.delete(f"/api/orders/{order['id']}/"),
		]
		for res in attempts:
			self.assertEqual(res.status_code, 409)
			self.assertEqual(res.data['code'], 'order_locked')
		self.assertEqual(self._stock(), 8)

	def test_validated_order_is_locked(self):
		order = self._create()
		res = self.api.post(f"/api/orders/{order['id']}/validate/")
		self.assertEqual(res.status_code, 200)
		self.assertEqual(res.data['status'], Order.STATUS_VALIDATED)
		self.assertTrue(res.data['is_locked'])

		res = self.api.post(f"/api/orders/{order['id']}/products/", {'id': self.product.pk, 'quantity': 1}, format='json')
		self.assertEqual(res.status_code, 409)

	def test_soft_delete_releases_stock_and_restore_reserves_it(self):
		order = self._create(quantity=3)
		self.assertEqual(self._stock(), 7)

		res = self.api.delete(f"/api/orders/{order['id']}/")
		self.assertEqual(res.status_code, 204)
		self.assertEqual(self._stock(), 10)
		deleted = Order.objects.get(pk=order['id'])
		self.assertEqual(deleted.status, Order.STATUS_CANCELLED)
		self.assertIsNotNone(deleted.deleted_at)

		self.assertEqual(self.api.get(f"/api/orders/{order['id']}/").status_code, 404)
		res = self.api.get('/api/orders/deleted/')
		self.assertEqual([o['id'] for o in res.data['results']], [order['id']])

		res = self.api.post(f"/api/orders/{order['id']}/restore/")
		self.assertEqual(res.status_code, 200)
		self.assertEqual(res.data['status'], Order.STATUS_PENDING)
		self.assertIsNone(res.data['deleted_at'])
		self.assertEqual(self._stock(), 7)

	def test_list_filters_and_ordering(self):
		small = self._create(quantity=1, services=0)
		big = self._create(quantity=2)

		res = self.api.get('/api/orders/', {'ordering': 'total'})
		self.assertEqual([o['id'] for o in res.data['results']], [small['id'], big['id']])

		res = self.api.get('/api/orders/', {'ordering': '-total'})
		self.assertEqual(res.data['results'][0]['id'], big['id'])

		res = self.api.get('/api/orders/', {'client': self.other_client.pk})
		self.assertEqual(res.data['count'], 0)

		res = self.api.get('/api/orders/', {'search': 'Mbarga'})
		self.assertEqual(res.data['count'], 2)

	def test_unauthenticated_access_is_refused(self):
		self.assertEqual(APIClient().get('/api/orders/').status_code, 401)


class ApplyReconciliationTests(TestCase):

	@classmethod
	def setUpTestData(cls):
		cls.product = Product.objects.create(name='Onduleur', price=Decimal('45000'))
		set_stock_level(cls.product, 4)
		cls.service = Service.objects.create(name='Maintenance', price=Decimal('15000'))

	def test_all_deletions_run_before_any_addition(self):
		order = create_order(services=[{'id': self.service.pk, 'quantity': 1}])
		edited = {PRODUCTS: [EditedLine(ref_id=self.product.pk, quantity=2)], SERVICES: []}

		with CaptureQueriesContext(connection) as ctx:
			order, plan = apply_reconciliation(order.pk, edited=edited)

		sql = [q['sql'].lower() for q in ctx.captured_queries]
		service_delete = next(i for i, s in enumerate(sql) if s.startswith('delete') and 'orders_orderserviceline' in s)
		product_insert = next(i for i, s in enumerate(sql) if s.startswith('insert') and 'orders_orderproductline' in s)
		self.assertLess(service_delete, product_insert)
		self.assertEqual(order.total, Decimal('90000.00'))
		self.assertFalse(order.service_lines.exists())


@override_settings(ALLOWED_HOSTS=['testserver', 'localhost', '127.0.0.1'])
class OrderInvoiceApiTests(TestCase):

	@classmethod
	def setUpTestData(cls):
		User = get_user_model()
		cls.user = User.objects.create_user(username='caissier', password='12345678')
		cls.product = Product.objects.create(name='Clavier', price=Decimal('2500.00'))
		set_stock_level(cls.product, 5)

	def setUp(self):
		self.media = tempfile.TemporaryDirectory()
		self.addCleanup(self.media.cleanup)
		override = override_settings(MEDIA_ROOT=self.media.name, DOCUMENT_FONTS=[], DOCUMENT_BOLD_FONTS=[])
		override.enable()
		self.addCleanup(override.disable)
		self.api = APIClient()
		self.api.force_authenticate(user=self.user)

	def test_invoice_generation_and_download(self):
		res = self.api.post('/api/orders/', {'products': [{'id': self.product.pk, 'quantity': 2}]}, format='json')
		order_id = res.data['id']

		res = self.api.post(f'/api/orders/{order_id}/invoice/')
		self.assertEqual(res.status_code, 201, res.data)
		self.assertRegex(res.data['number'], r'^\d{2}-\d{2}-\d{4}-0001$')
		number = res.data['number']

		res = self.api.get(f'/api/orders/{order_id}/invoice/download/', {'inline': 'true'})
		self.assertEqual(res.status_code, 200)
		self.assertEqual(res['Content-Type'], 'application/pdf')
		self.assertTrue(res['Content-Disposition'].startswith('inline'))
		self.assertIn(f'facture-{number}.pdf', res['Content-Disposition'])
		self.assertTrue(b''.join(res.streaming_content).startswith(b'%PDF'))

		# Regenerating keeps the number.
		res = self.api.post(f'/api/orders/{order_id}/invoice/')
		self.assertEqual(res.data['number'], number)
		self.assertEqual(self.api.get(f'/api/orders/{order_id}/').data['invoice_number'], number)

	def test_download_renders_on_demand_as_attachment(self):
		res = self.api.post('/api/orders/', {'products': [{'id': self.product.pk, 'quantity': 1}]}, format='json')
		res = self.api.get(f"/api/orders/{res.data['id']}/invoice/download/")
		self.assertEqual(res.status_code, 200)
		self.assertTrue(res['Content-Disposition'].startswith('attachment'))
		self.assertTrue(re.search(r'facture-\d{2}-\d{2}-\d{4}-\d{4}\.pdf', res['Content-Disposition']))
