from decimal import Decimal

from django.contrib.auth import get_user_model
from django.test import TestCase, override_settings
from rest_framework.test import APIClient

from core.exceptions import StockExceededError
from orders.services import create_order
from products.inventory import record_manual_movement, set_stock_level
from products.models import Product, Service, StockMovement


class InventoryTests(TestCase):

	@classmethod
	def setUpTestData(cls):
		cls.product = Product.objects.create(name='Souris sans fil', price=Decimal('6500'))

	def test_set_stock_level_journals_the_difference(self):
		self.assertEqual(set_stock_level(self.product, 12), 12)
		self.assertEqual(set_stock_level(self.product, 9), -3)
		self.assertEqual(set_stock_level(self.product, 9), 0)
		self.product.refresh_from_db()
		self.assertEqual(self.product.stock_quantity, 9)
		self.assertEqual(
			list(self.product.movements.order_by('id').values_list('movement_type', 'quantity')),
			[('IN', 12), ('OUT', 3)],
		)

	def test_manual_out_beyond_stock_is_refused(self):
		set_stock_level(self.product, 2)
		with self.assertRaises(StockExceededError) as ctx:
			record_manual_movement(product_id=self.product.pk, movement_type='OUT', quantity=3)
		self.assertEqual(ctx.exception.max_quantity, 2)
		self.product.refresh_from_db()
		self.assertEqual(self.product.stock_quantity, 2)


@override_settings(ALLOWED_HOSTS=['testserver', 'localhost', '127.0.0.1'])
class CatalogApiTests(TestCase):

	@classmethod
	def setUpTestData(cls):
		User = get_user_model()
		cls.user = User.objects.create_user(username='magasin', password='Douala-2026!')

	def setUp(self):
		self.api = APIClient()
		self.api.force_authenticate(user=self.user)

	def test_create_product_with_initial_stock(self):
		res = self.api.post('/api/products/', {
			'name': 'Écran 24 pouces',
			'code': 'ECR-24',
			'price': '95000',
			'stock_quantity': 5,
		}, format='json')
		self.assertEqual(res.status_code, 201, res.data)
		self.assertEqual(res.data['stock_quantity'], 5)
		movement = StockMovement.objects.get(product_id=res.data['id'])
		self.assertEqual((movement.movement_type, movement.quantity, movement.source), ('IN', 5, 'MANUAL'))
		self.assertEqual(movement.user, self.user)

	def test_update_stock_is_journaled(self):
		product = Product.objects.create(name='Routeur', price=Decimal('30000'))
		set_stock_level(product, 10)
		res = self.api.patch(f'/api/products/{product.pk}/', {'stock_quantity': 4}, format='json')
		self.assertEqual(res.status_code, 200, res.data)
		product.refresh_from_db()
		self.assertEqual(product.stock_quantity, 4)
		self.assertEqual(product.movements.filter(movement_type='OUT').get().quantity, 6)

	def test_invalid_product_payloads(self):
		for payload, field in (
			({'name': ' ', 'price': '10'}, 'name'),
			({'name': 'Câble', 'price': '-1'}, 'price'),
			({'name': 'Câble', 'price': '10', 'stock_quantity': -2}, 'stock_quantity'),
		):
			with self.subTest(field=field):
				res = self.api.post('/api/products/', payload, format='json')
				self.assertEqual(res.status_code, 400)
				self.assertIn(field, res.data)

	def test_delete_unused_removes_and_referenced_deactivates(self):
		unused = Product.objects.create(name='Adaptateur', price=Decimal('1500'))
		self.assertEqual(self.api.delete(f'/api/products/{unused.pk}/').status_code, 204)
		self.assertFalse(Product.objects.filter(pk=unused.pk).exists())

		used = Service.objects.create(name='Installation', price=Decimal('10000'))
		create_order(services=[{'id': used.pk, 'quantity': 1}])
		res = self.api.delete(f'/api/services/{used.pk}/')
		self.assertEqual(res.status_code, 200)
		self.assertFalse(res.data['is_active'])
		used.refresh_from_db()
		self.assertFalse(used.is_active)

	def test_inventory_manual_movements(self):
		product = Product.objects.create(name='Disque SSD', price=Decimal('40000'))
		res = self.api.post('/api/inventory/', {'product': product.pk, 'movement_type': 'IN', 'quantity': 7, 'note': 'Arrivage'}, format='json')
		self.assertEqual(res.status_code, 201, res.data)
		self.assertEqual(res.data['user_name'], 'magasin')

		res = self.api.post('/api/inventory/', {'product': product.pk, 'movement_type': 'OUT', 'quantity': 8}, format='json')
		self.assertEqual(res.status_code, 400)
		self.assertEqual(res.data['code'], 'stock_exceeded')
		self.assertEqual(res.data['max_quantity'], 7)
		self.assertEqual(res.data['product_id'], product.pk)

		res = self.api.get('/api/inventory/', {'product': product.pk, 'type': 'IN'})
		self.assertEqual(res.data['count'], 1)
		self.assertEqual(res.data['results'][0]['note'], 'Arrivage')

	def test_search_and_ordering(self):
		Product.objects.create(name='Imprimante laser', price=Decimal('120000'))
		Product.objects.create(name='Imprimante jet', price=Decimal('60000'))
		Product.objects.create(name='Scanner', price=Decimal('45000'))
		res = self.api.get('/api/products/', {'search': 'imprimante', 'ordering': 'price'})
		self.assertEqual([p['name'] for p in res.data['results']], ['Imprimante jet', 'Imprimante laser'])
