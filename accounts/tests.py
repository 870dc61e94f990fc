from django.contrib.auth import get_user_model
from django.test import TestCase, override_settings
from rest_framework.test import APIClient


@override_settings(ALLOWED_HOSTS=['testserver', 'localhost', '127.0.0.1'])
class AuthApiTests(TestCase):

	@classmethod
	def setUpTestData(cls):
		User = get_user_model()
		cls.user = User.objects.create_user(username='awa', password='Douala-2026!', email='awa@realtech.cm')

	def setUp(self):
		self.api = APIClient()

	def test_login_returns_token_pair_and_profile(self):
		res = self.api.post('/api/auth/login/', {'username': 'awa', 'password': 'Douala-2026!'}, format='json')
		self.assertEqual(res.status_code, 200, res.data)
		self.assertIn('access', res.data)
		self.assertIn('refresh', res.data)
		self.assertEqual(res.data['user']['username'], 'awa')
		self.assertNotIn('password', res.data['user'])

		self.api.credentials(HTTP_AUTHORIZATION=f"Bearer {res.data['access']}")
		me = self.api.get('/api/auth/me/')
		self.assertEqual(me.status_code, 200)
		self.assertEqual(me.data['email'], 'awa@realtech.cm')

	def test_bad_credentials_are_rejected(self):
		res = self.api.post('/api/auth/login/', {'username': 'awa', 'password': 'faux'}, format='json')
		self.assertEqual(res.status_code, 401)

	def test_me_requires_authentication(self):
		self.assertEqual(self.api.get('/api/auth/me/').status_code, 401)

	def test_me_cannot_promote_itself(self):
		self.api.force_authenticate(user=self.user)
		res = self.api.patch('/api/auth/me/', {'role': 'ADMIN', 'first_name': 'Awa'}, format='json')
		self.assertEqual(res.status_code, 200, res.data)
		self.user.refresh_from_db()
		self.assertEqual(self.user.first_name, 'Awa')
		self.assertEqual(self.user.role, 'EMPLOYE')


@override_settings(ALLOWED_HOSTS=['testserver', 'localhost', '127.0.0.1'])
class UserManagementApiTests(TestCase):

	@classmethod
	def setUpTestData(cls):
		User = get_user_model()
		cls.admin = User.objects.create_user(username='patron', password='Douala-2026!', role=User.ROLE_ADMIN)
		cls.employee = User.objects.create_user(username='employe', password='Douala-2026!')

	def setUp(self):
		self.api = APIClient()
		self.api.force_authenticate(user=self.admin)

	def test_admin_creates_user_with_normalized_phone(self):
		res = self.api.post('/api/users/', {
			'username': 'nouveau',
			'password': 'Yaounde-2026!',
			'email': ' Nouveau@RealTech.cm ',
			'phone_number': '00237 699 00 00 00',
		}, format='json')
		self.assertEqual(res.status_code, 201, res.data)
		self.assertEqual(res.data['phone_number'], '+237699000000')
		self.assertEqual(res.data['email'], 'nouveau@realtech.cm')
		self.assertEqual(res.data['role'], 'EMPLOYE')
		self.assertTrue(get_user_model().objects.get(username='nouveau').check_password('Yaounde-2026!'))

	def test_create_requires_password_and_valid_phone(self):
		res = self.api.post('/api/users/', {'username': 'sansmdp'}, format='json')
		self.assertEqual(res.status_code, 400)
		self.assertIn('password', res.data)

		res = self.api.post('/api/users/', {'username': 'badphone', 'password': 'Yaounde-2026!', 'phone_number': '12'}, format='json')
		self.assertEqual(res.status_code, 400)
		self.assertIn('phone_number', res.data)

	def test_employee_reads_but_cannot_write(self):
		self.api.force_authenticate(user=self.employee)
		self.assertEqual(self.api.get('/api/users/').status_code, 200)
		res = self.api.post('/api/users/', {'username': 'intrus', 'password': 'Yaounde-2026!'}, format='json')
		self.assertEqual(res.status_code, 403)
		self.assertEqual(self.api.get('/api/users/stats/').status_code, 403)

	def test_role_filter_and_stats(self):
		res = self.api.get('/api/users/', {'role': 'admin'})
		self.assertEqual([u['username'] for u in res.data['results']], ['patron'])

		res = self.api.get('/api/users/stats/')
		self.assertEqual(res.status_code, 200)
		self.assertEqual(res.data, {'total': 2, 'active': 2, 'admins': 1, 'employees': 1, 'inactive': 0})

	def test_admin_cannot_delete_own_account(self):
		res = self.api.delete(f'/api/users/{self.admin.pk}/')
		self.assertEqual(res.status_code, 400)
		self.assertEqual(self.api.delete(f'/api/users/{self.employee.pk}/').status_code, 204)
		self.assertFalse(get_user_model().objects.filter(pk=self.employee.pk).exists())
