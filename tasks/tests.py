from datetime import date

from django.contrib.auth import get_user_model
from django.test import TestCase, override_settings
from rest_framework.test import APIClient

from tasks.models import Task


@override_settings(ALLOWED_HOSTS=['testserver', 'localhost', '127.0.0.1'])
class TaskApiTests(TestCase):

	@classmethod
	def setUpTestData(cls):
		User = get_user_model()
		cls.admin = User.objects.create_user(username='patron', password='Douala-2026!', role=User.ROLE_ADMIN)
		cls.alice = User.objects.create_user(username='alice', password='Douala-2026!', first_name='Alice', last_name='Njoya')
		cls.bob = User.objects.create_user(username='bob', password='Douala-2026!')

	def setUp(self):
		self.api = APIClient()
		self.api.force_authenticate(user=self.alice)

	def test_create_and_filter(self):
		res = self.api.post('/api/tasks/', {
			'name': 'Inventaire mensuel',
			'assignee': self.alice.pk,
			'start_date': '2026-03-01',
			'end_date': '2026-03-05',
			'frequency': 'MENSUELLE',
			'importance': 'HAUTE',
		}, format='json')
		self.assertEqual(res.status_code, 201, res.data)
		self.assertEqual(res.data['assignee_name'], 'Alice Njoya')
		self.assertEqual(res.data['status'], Task.STATUS_PENDING)

		Task.objects.create(name='Relance clients', importance='BASSE')
		res = self.api.get('/api/tasks/', {'importance': 'HAUTE'})
		self.assertEqual([t['name'] for t in res.data['results']], ['Inventaire mensuel'])

	def test_end_date_before_start_date_is_refused(self):
		res = self.api.post('/api/tasks/', {'name': 'X', 'start_date': '2026-03-05', 'end_date': '2026-03-01'}, format='json')
		self.assertEqual(res.status_code, 400)
		self.assertIn('end_date', res.data)

		task = Task.objects.create(name='Y', start_date=date(2026, 3, 5))
		res = self.api.patch(f'/api/tasks/{task.pk}/', {'end_date': '2026-03-04'}, format='json')
		self.assertEqual(res.status_code, 400)

	def test_my_lists_only_own_tasks(self):
		Task.objects.create(name='Pour Alice', assignee=self.alice)
		Task.objects.create(name='Pour Bob', assignee=self.bob)
		res = self.api.get('/api/tasks/my/')
		self.assertEqual(res.status_code, 200)
		self.assertEqual([t['name'] for t in res.data['results']], ['Pour Alice'])

	def test_complete_rules(self):
		task = Task.objects.create(name='Caisse', assignee=self.bob)
		res = self.api.post(f'/api/tasks/{task.pk}/complete/')
		self.assertEqual(res.status_code, 403)

		self.api.force_authenticate(user=self.admin)
		res = self.api.post(f'/api/tasks/{task.pk}/complete/')
		self.assertEqual(res.status_code, 200)
		self.assertEqual(res.data['status'], Task.STATUS_DONE)
		self.assertIsNotNone(res.data['completed_at'])

		cancelled = Task.objects.create(name='Annulée', assignee=self.alice, status=Task.STATUS_CANCELLED)
		self.api.force_authenticate(user=self.alice)
		self.assertEqual(self.api.post(f'/api/tasks/{cancelled.pk}/complete/').status_code, 400)
