"""Database models for the catalog (products, services) and stock movements."""

from django.conf import settings
from django.db import models


class Product(models.Model):
    """Stock-tracked article sold through order product lines."""

    name = models.CharField(max_length=255)
    code = models.CharField(max_length=64, unique=True, null=True, blank=True)
    description = models.TextField(blank=True)
    price = models.DecimalField(max_digits=14, decimal_places=2)
    stock_quantity = models.IntegerField(default=0)
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['id']
        indexes = [
            models.Index(fields=['is_active', 'name'], name='product_active_name_idx'),
        ]

    def __str__(self):
        return self.name


class Service(models.Model):
    """Billable service; services have no stock constraint."""

    name = models.CharField(max_length=255)
    description = models.TextField(blank=True)
    price = models.DecimalField(max_digits=14, decimal_places=2)
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['id']

    def __str__(self):
        return self.name


class StockMovement(models.Model):
    """One entry of the inventory journal.

    Every change of ``Product.stock_quantity`` is recorded here, whether it
    comes from a manual adjustment or from an order line reserving/releasing
    units.
    """

    TYPE_IN = 'IN'
    TYPE_OUT = 'OUT'
    TYPE_CHOICES = (
        (TYPE_IN, 'Entrée'),
        (TYPE_OUT, 'Sortie'),
    )

    SOURCE_MANUAL = 'MANUAL'
    SOURCE_ORDER = 'ORDER'
    SOURCE_CHOICES = (
        (SOURCE_MANUAL, 'Manuel'),
        (SOURCE_ORDER, 'Commande'),
    )

    product = models.ForeignKey(Product, on_delete=models.CASCADE, related_name='movements')
    movement_type = models.CharField(max_length=3, choices=TYPE_CHOICES)
    quantity = models.PositiveIntegerField()
    source = models.CharField(max_length=10, choices=SOURCE_CHOICES, default=SOURCE_MANUAL)
    order = models.ForeignKey(
        'orders.Order',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='stock_movements',
    )
    note = models.CharField(max_length=255, blank=True)
    user = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['-created_at', '-id']
        indexes = [
            models.Index(fields=['product', 'created_at'], name='movement_product_date_idx'),
        ]

    def __str__(self):
        sign = '+' if self.movement_type == self.TYPE_IN else '-'
        return f"{self.product} {sign}{self.quantity}"
