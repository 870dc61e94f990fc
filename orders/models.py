"""Database models for orders and their product/service lines."""

from decimal import Decimal

from django.conf import settings
from django.db import models


class OrderQuerySet(models.QuerySet):
    def alive(self):
        return self.filter(deleted_at__isnull=True)

    def deleted(self):
        return self.filter(deleted_at__isnull=False)


class Order(models.Model):
    """Customer order (commande).

    ``amount_paid`` accumulates the order's payments and never exceeds
    ``total``; once it is positive the order is edit-locked.
    """

    STATUS_PENDING = 'PENDING'
    STATUS_VALIDATED = 'VALIDATED'
    STATUS_COMPLETED = 'COMPLETED'
    STATUS_CANCELLED = 'CANCELLED'
    STATUS_CHOICES = (
        (STATUS_PENDING, 'En attente'),
        (STATUS_VALIDATED, 'Validée'),
        (STATUS_COMPLETED, 'Terminée'),
        (STATUS_CANCELLED, 'Annulée'),
    )

    PAYMENT_UNPAID = 'NON_PAYEE'
    PAYMENT_PARTIAL = 'PARTIELLE'
    PAYMENT_PAID = 'PAYEE'
    PAYMENT_STATUS_CHOICES = (
        (PAYMENT_UNPAID, 'Non payée'),
        (PAYMENT_PARTIAL, 'Partiellement payée'),
        (PAYMENT_PAID, 'Payée'),
    )

    code = models.CharField(max_length=32, unique=True, null=True, blank=True)
    number = models.CharField(max_length=32, blank=True)
    client = models.ForeignKey(
        'clients.Client',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='orders',
    )
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='orders',
    )
    total = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal('0.00'))
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default=STATUS_PENDING)
    payment_status = models.CharField(max_length=20, choices=PAYMENT_STATUS_CHOICES, default=PAYMENT_UNPAID)
    amount_paid = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal('0.00'))
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)
    deleted_at = models.DateTimeField(null=True, blank=True)

    objects = OrderQuerySet.as_manager()

    class Meta:
        ordering = ['-created_at', '-id']
        indexes = [
            models.Index(fields=['status', 'created_at'], name='order_status_date_idx'),
            models.Index(fields=['client', 'created_at'], name='order_client_date_idx'),
            models.Index(fields=['deleted_at'], name='order_deleted_idx'),
        ]

    @property
    def outstanding(self) -> Decimal:
        return max(Decimal(self.total or 0) - Decimal(self.amount_paid or 0), Decimal('0.00'))

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None

    def assign_reference(self):
        """Set ``code`` (CMD-YYYYMMDD-NNNN) and ``number`` from the primary key."""
        day = self.created_at.strftime('%Y%m%d')
        self.code = f"CMD-{day}-{self.pk:04d}"
        self.number = f"{self.pk:06d}"

    def __str__(self):
        return self.code or f"Order #{self.pk}"


class OrderLineBase(models.Model):
    """Shared shape of product and service lines.

    ``unit_price`` is frozen when the line is created or its quantity is
    updated; ``total`` is always ``unit_price * quantity``.
    """

    quantity = models.PositiveIntegerField(default=1)
    unit_price = models.DecimalField(max_digits=14, decimal_places=2)
    total = models.DecimalField(max_digits=14, decimal_places=2)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        abstract = True
        ordering = ['id']

    def save(self, *args, **kwargs):
        self.total = (Decimal(self.unit_price or 0) * int(self.quantity or 0)).quantize(Decimal('0.01'))
        super().save(*args, **kwargs)


class OrderProductLine(OrderLineBase):
    order = models.ForeignKey(Order, on_delete=models.CASCADE, related_name='product_lines')
    product = models.ForeignKey('products.Product', on_delete=models.PROTECT, related_name='order_lines')

    class Meta(OrderLineBase.Meta):
        verbose_name = 'Order product line'

    def __str__(self):
        return f"{self.product} x{self.quantity} ({self.order})"


class OrderServiceLine(OrderLineBase):
    order = models.ForeignKey(Order, on_delete=models.CASCADE, related_name='service_lines')
    service = models.ForeignKey('products.Service', on_delete=models.PROTECT, related_name='order_lines')

    class Meta(OrderLineBase.Meta):
        verbose_name = 'Order service line'

    def __str__(self):
        return f"{self.service} x{self.quantity} ({self.order})"
