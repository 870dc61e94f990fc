"""Seed realistic demo data for the management backend.

Creates:
- An administrator and a few employees
- Clients (Cameroonian locale)
- Products with initial stock, and services
- Orders built through the order service (stock journaled), some paid
- Tasks assigned to employees

Usage:
  python manage.py seed_demo
  python manage.py seed_demo --clients 30 --orders 40 --seed 7
"""

import random
from datetime import timedelta
from decimal import ROUND_HALF_UP, Decimal

from django.contrib.auth import get_user_model
from django.core.management.base import BaseCommand, CommandError
from django.db import transaction
from django.utils import timezone
from faker import Faker

from clients.models import Client
from finance.services import apply_payment
from orders.models import Order
from orders.services import create_order
from products.inventory import set_stock_level
from products.models import Product, Service
from tasks.models import Task

User = get_user_model()

PRODUCT_NAMES = [
    'Ordinateur portable HP 250 G9', 'Souris sans fil Logitech M185', 'Clavier USB Dell KB216',
    'Écran Samsung 24"', 'Disque SSD Kingston 480 Go', 'Clé USB SanDisk 64 Go',
    'Imprimante Canon Pixma G3411', 'Routeur TP-Link Archer C6', 'Onduleur APC 650VA',
    'Casque Bluetooth JBL Tune 510', 'Câble HDMI 2 m', 'Barrette RAM DDR4 8 Go',
]
SERVICE_NAMES = [
    'Installation Windows', 'Maintenance préventive', 'Récupération de données',
    'Configuration réseau', 'Nettoyage ordinateur', 'Formation bureautique',
]
TASK_NAMES = [
    'Inventaire du magasin', 'Relance clients impayés', 'Mise à jour des prix',
    'Nettoyage de la vitrine', 'Sauvegarde des données', 'Commande fournisseur',
]


def _money(value) -> Decimal:
    return Decimal(str(value)).quantize(Decimal('0.01'), rounding=ROUND_HALF_UP)


class Command(BaseCommand):
    help = 'Seed demo users, clients, catalog, orders, payments and tasks.'

    def add_arguments(self, parser):
        parser.add_argument('--clients', type=int, default=20, help='Number of clients to create.')
        parser.add_argument('--orders', type=int, default=25, help='Number of orders to create.')
        parser.add_argument('--seed', type=int, default=None, help='Random seed for reproducible data.')
        parser.add_argument('--password', default='demo12345', help='Password set on every demo account.')

    def handle(self, *args, **options):
        if options['seed'] is not None:
            random.seed(int(options['seed']))
            Faker.seed(int(options['seed']))
        if options['clients'] < 1 or options['orders'] < 0:
            raise CommandError('--clients must be >= 1 and --orders >= 0')

        fake = Faker('fr_FR')
        password = options['password']

        with transaction.atomic():
            admin, created = User.objects.get_or_create(
                username='admin',
                defaults={'email': 'admin@example.com', 'role': User.ROLE_ADMIN, 'is_staff': True},
            )
            if created:
                admin.set_password(password)
                admin.save()

            employees = []
            for i in range(1, 4):
                user, created = User.objects.get_or_create(
                    username=f'employe{i}',
                    defaults={
                        'first_name': fake.first_name(),
                        'last_name': fake.last_name(),
                        'email': f'employe{i}@example.com',
                        'role': User.ROLE_EMPLOYE,
                    },
                )
                if created:
                    user.set_password(password)
                    user.save()
                employees.append(user)

            clients = [
                Client.objects.create(
                    last_name=fake.last_name(),
                    first_name=fake.first_name(),
                    email=fake.email(),
                    phone=f"+2376{random.randint(50, 99)}{random.randint(0, 999999):06d}",
                    address=f"{fake.street_address()}, Douala",
                )
                for _ in range(options['clients'])
            ]

            products = []
            for name in PRODUCT_NAMES:
                product, created = Product.objects.get_or_create(
                    name=name,
                    defaults={'price': _money(random.randint(3, 450) * 1000), 'code': f"P{len(products) + 1:04d}"},
                )
                if created:
                    set_stock_level(product, random.randint(20, 80), user=admin, note='Stock initial')
                products.append(product)

            services = [
                Service.objects.get_or_create(name=name, defaults={'price': _money(random.randint(5, 60) * 1000)})[0]
                for name in SERVICE_NAMES
            ]

        orders = []
        for _ in range(options['orders']):
            lines = random.sample(products, k=random.randint(1, 3))
            client = random.choice(clients) if random.random() > 0.1 else None
            order = create_order(
                client_id=client.pk if client else None,
                products=[{'id': p.pk, 'quantity': random.randint(1, 3)} for p in lines],
                services=[{'id': s.pk, 'quantity': 1} for s in random.sample(services, k=random.randint(0, 1))],
                user=random.choice(employees),
            )
            orders.append(order)

        paid = 0
        for order in orders:
            roll = random.random()
            if roll < 0.4:
                apply_payment(order.pk, amount=order.total, mode=random.choice(['cash', 'mobile_money', 'card']),
                              target_status=Order.PAYMENT_PAID, user=admin)
                paid += 1
            elif roll < 0.6 and order.total > 1:
                apply_payment(order.pk, amount=_money(order.total / 2), mode='cash',
                              target_status=Order.PAYMENT_PARTIAL, user=admin)
                paid += 1

        today = timezone.localdate()
        for name in TASK_NAMES:
            Task.objects.create(
                name=name,
                description=fake.sentence(),
                assignee=random.choice(employees),
                start_date=today,
                end_date=today + timedelta(days=random.randint(1, 14)),
                importance=random.choice(['BASSE', 'MOYENNE', 'HAUTE']),
                frequency=random.choice(['UNIQUE', 'HEBDOMADAIRE', 'MENSUELLE']),
            )

        self.stdout.write(self.style.SUCCESS(
            f"Seeded {len(clients)} clients, {len(products)} products, {len(services)} services, "
            f"{len(orders)} orders ({paid} with payments), {len(TASK_NAMES)} tasks."
        ))
