from decimal import Decimal

from django.contrib.auth import get_user_model
from django.test import TestCase, override_settings
from rest_framework.test import APIClient

from dashboard.models import Notification
from finance.services import apply_payment
from orders.services import create_order, soft_delete_order
from products.inventory import set_stock_level
from products.models import Product
from tasks.models import Task


@override_settings(ALLOWED_HOSTS=['testserver', 'localhost', '127.0.0.1'])
class DashboardApiTests(TestCase):

	@classmethod
	def setUpTestData(cls):
		User = get_user_model()
		cls.user = User.objects.create_user(username='gerant', password='Douala-2026!')
		cls.laptop = Product.objects.create(name='Ordinateur portable', price=Decimal('100000'))
		cls.mouse = Product.objects.create(name='Souris', price=Decimal('5000'))
		Product.objects.create(name='Épuisé', price=Decimal('1000'))
		set_stock_level(cls.laptop, 5)
		set_stock_level(cls.mouse, 20)

	def setUp(self):
		self.api = APIClient()
		self.api.force_authenticate(user=self.user)

	def test_signals_feed_notifications(self):
		order = create_order(products=[{'id': self.laptop.pk, 'quantity': 1}], user=self.user)
		apply_payment(order.pk, amount='40000', mode='cash', target_status='PARTIELLE', user=self.user)

		res = self.api.get('/api/notifications/')
		self.assertEqual(res.status_code, 200)
		self.assertEqual(res.data['unread'], 2)
		messages = [n['message'] for n in res.data['results']]
		self.assertEqual(messages[0], f'Paiement de 40000.00 F CFA reçu pour la commande {order.code}')
		self.assertEqual(messages[1], f'Nouvelle commande {order.code}')
		self.assertEqual(res.data['results'][1]['order_code'], order.code)

	def test_limit_read_and_read_all(self):
		for _ in range(3):
			create_order(products=[{'id': self.mouse.pk, 'quantity': 1}])
		res = self.api.get('/api/notifications/', {'limit': 2})
		self.assertEqual(len(res.data['results']), 2)
		self.assertEqual(res.data['unread'], 3)

		first = res.data['results'][0]['id']
		res = self.api.post(f'/api/notifications/{first}/read/')
		self.assertTrue(res.data['is_read'])
		self.assertEqual(len(self.api.get('/api/notifications/', {'unread': 'true'}).data['results']), 2)

		res = self.api.post('/api/notifications/read-all/')
		self.assertEqual(res.data['updated'], 2)
		self.assertFalse(Notification.objects.filter(is_read=False).exists())

	def test_stats(self):
		paid = create_order(products=[{'id': self.mouse.pk, 'quantity': 2}])
		apply_payment(paid.pk, amount='10000', mode='cash', target_status='PAYEE')
		create_order(products=[{'id': self.laptop.pk, 'quantity': 1}])
		dropped = create_order(products=[{'id': self.mouse.pk, 'quantity': 1}])
		soft_delete_order(dropped.pk)
		Task.objects.create(name='Préparer la livraison')

		res = self.api.get('/api/dashboard/stats/')
		self.assertEqual(res.status_code, 200)
		self.assertEqual(res.data['revenue']['total'], Decimal('10000.00'))
		self.assertEqual(res.data['revenue']['outstanding'], Decimal('100000.00'))
		self.assertEqual(res.data['orders']['total'], 2)
		self.assertEqual(res.data['orders']['unpaid'], 1)
		self.assertEqual(res.data['products'], {'total': 3, 'out_of_stock': 1})
		self.assertEqual(res.data['employees']['total'], 1)
		self.assertEqual(len(res.data['monthlyRevenueSeries']), 6)
		self.assertEqual(res.data['monthlyRevenueSeries'][-1]['total'], Decimal('10000.00'))
		self.assertEqual(len(res.data['recentOrders']), 2)
		self.assertEqual([t['name'] for t in res.data['recentTasks']], ['Préparer la livraison'])

	def test_top_products_and_recent_activity(self):
		first = create_order(products=[{'id': self.mouse.pk, 'quantity': 3}, {'id': self.laptop.pk, 'quantity': 1}])
		create_order(products=[{'id': self.mouse.pk, 'quantity': 2}])
		apply_payment(first.pk, amount='1000', mode='cash', target_status='PARTIELLE')

		res = self.api.get('/api/dashboard/top-products/', {'limit': 1})
		self.assertEqual(res.status_code, 200)
		self.assertEqual(len(res.data), 1)
		self.assertEqual(res.data[0]['name'], 'Souris')
		self.assertEqual(res.data[0]['quantity'], 5)
		self.assertEqual(res.data[0]['orders'], 2)

		res = self.api.get('/api/dashboard/recent-activity/')
		self.assertEqual(res.status_code, 200)
		self.assertEqual(sorted(e['type'] for e in res.data), ['order', 'order', 'payment'])
		self.assertEqual(res.data[0]['type'], 'payment')
