import os
import subprocess
import sys

from django.conf import settings
from django.test import SimpleTestCase
from django.urls import resolve
from rest_framework.settings import api_settings

from core.pagination import StandardResultsSetPagination


class ApiSettingsTests(SimpleTestCase):

	def test_default_pagination_is_the_shared_paginator(self):
		self.assertIs(api_settings.DEFAULT_PAGINATION_CLASS, StandardResultsSetPagination)

	def test_fresh_interpreter_loads_viewsets_and_urls(self):
		# DRF resolves DEFAULT_PAGINATION_CLASS while rest_framework.viewsets is
		# still importing; only a new process sees that order.
		script = (
			'import django; django.setup(); '
			'import rest_framework.viewsets; '
			'from django.urls import resolve; '
			'print(resolve("/api/orders/").func.cls.__name__)'
		)
		env = dict(os.environ, DJANGO_SETTINGS_MODULE='core.settings')
		result = subprocess.run(
			[sys.executable, '-c', script],
			cwd=str(settings.BASE_DIR),
			env=env,
			capture_output=True,
			text=True,
			timeout=120,
		)
		self.assertEqual(result.returncode, 0, result.stderr)
		self.assertIn('OrderViewSet', result.stdout)


class UrlRoutingTests(SimpleTestCase):

	def test_router_exposes_every_resource(self):
		for url in ('/api/users/', '/api/clients/', '/api/products/', '/api/services/', '/api/inventory/',
				'/api/orders/', '/api/payments/', '/api/tasks/', '/api/notifications/'):
			with self.subTest(url=url):
				self.assertEqual(resolve(url).url_name.split('-')[-1], 'list')
