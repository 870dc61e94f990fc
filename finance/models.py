"""Database model for payments (sales)."""

from django.conf import settings
from django.db import models


class Payment(models.Model):
    """Money received against an order. Payments are append-only."""

    MODE_CASH = 'cash'
    MODE_MOBILE_MONEY = 'mobile_money'
    MODE_CARD = 'card'
    MODE_CHECK = 'check'
    MODE_TRANSFER = 'transfer'
    MODE_CHOICES = (
        (MODE_CASH, 'Espèces'),
        (MODE_MOBILE_MONEY, 'Mobile Money'),
        (MODE_CARD, 'Carte bancaire'),
        (MODE_CHECK, 'Chèque'),
        (MODE_TRANSFER, 'Virement'),
    )

    order = models.ForeignKey('orders.Order', on_delete=models.PROTECT, related_name='payments')
    amount = models.DecimalField(max_digits=14, decimal_places=2)
    mode = models.CharField(max_length=20, choices=MODE_CHOICES)
    recorded_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='payments',
    )
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['-created_at', '-id']
        indexes = [
            models.Index(fields=['order', 'created_at'], name='payment_order_date_idx'),
        ]

    def __str__(self):
        return f"Payment #{self.pk} - {self.amount} ({self.get_mode_display()})"
