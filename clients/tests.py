from decimal import Decimal

from django.contrib.auth import get_user_model
from django.test import TestCase, override_settings
from rest_framework.test import APIClient

from clients.models import Client
from orders.services import create_order, soft_delete_order
from products.models import Product
from products.inventory import set_stock_level


@override_settings(ALLOWED_HOSTS=['testserver', 'localhost', '127.0.0.1'])
class ClientApiTests(TestCase):

	@classmethod
	def setUpTestData(cls):
		User = get_user_model()
		cls.user = User.objects.create_user(username='commercial', password='Douala-2026!')
		cls.client_obj = Client.objects.create(last_name='Mbarga', first_name='Paul', phone='+237699000000')
		product = Product.objects.create(name='Clavier', price=Decimal('8000'))
		set_stock_level(product, 10)
		cls.kept_order = create_order(client_id=cls.client_obj.pk, products=[{'id': product.pk, 'quantity': 1}])
		cls.dropped_order = create_order(client_id=cls.client_obj.pk, products=[{'id': product.pk, 'quantity': 1}])
		soft_delete_order(cls.dropped_order.pk)

	def setUp(self):
		self.api = APIClient()
		self.api.force_authenticate(user=self.user)

	def test_create_normalizes_contact_fields(self):
		res = self.api.post('/api/clients/', {
			'last_name': '  Ngono ',
			'first_name': 'Marie',
			'email': 'Marie.Ngono@Mail.CM',
			'phone': '6 99 00 00 00',
		}, format='json')
		self.assertEqual(res.status_code, 201, res.data)
		self.assertEqual(res.data['last_name'], 'Ngono')
		self.assertEqual(res.data['full_name'], 'Marie Ngono')
		self.assertEqual(res.data['email'], 'marie.ngono@mail.cm')
		self.assertEqual(res.data['phone'], '+237699000000')
		self.assertEqual(res.data['orders_count'], 0)

	def test_invalid_payloads(self):
		res = self.api.post('/api/clients/', {'last_name': '   '}, format='json')
		self.assertEqual(res.status_code, 400)
		self.assertIn('last_name', res.data)

		res = self.api.post('/api/clients/', {'last_name': 'Fotso', 'phone': '123'}, format='json')
		self.assertEqual(res.status_code, 400)
		self.assertIn('phone', res.data)

	def test_orders_count_ignores_deleted_orders(self):
		res = self.api.get(f'/api/clients/{self.client_obj.pk}/')
		self.assertEqual(res.status_code, 200)
		self.assertEqual(res.data['orders_count'], 1)

	def test_delete_deactivates_and_hides_from_list(self):
		res = self.api.delete(f'/api/clients/{self.client_obj.pk}/')
		self.assertEqual(res.status_code, 204)
		self.client_obj.refresh_from_db()
		self.assertFalse(self.client_obj.is_active)

		self.kept_order.refresh_from_db()
		self.assertEqual(self.kept_order.client_id, self.client_obj.pk)

		self.assertEqual(self.api.get('/api/clients/').data['count'], 0)
		res = self.api.get('/api/clients/', {'include_inactive': 'true'})
		self.assertEqual([c['id'] for c in res.data['results']], [self.client_obj.pk])
		self.assertEqual(self.api.get('/api/clients/', {'is_active': 'false'}).data['count'], 1)

	def test_search(self):
		Client.objects.create(last_name='Essomba', first_name='Jeanne')
		res = self.api.get('/api/clients/', {'search': 'esso'})
		self.assertEqual([c['last_name'] for c in res.data['results']], ['Essomba'])

	def test_requires_authentication(self):
		self.assertEqual(APIClient().get('/api/clients/').status_code, 401)
