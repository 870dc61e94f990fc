"""Notification feed shown in the application header."""

from django.db import models


class Notification(models.Model):
    KIND_ORDER = 'order'
    KIND_PAYMENT = 'payment'
    KIND_CHOICES = (
        (KIND_ORDER, 'Commande'),
        (KIND_PAYMENT, 'Paiement'),
    )

    message = models.CharField(max_length=255)
    kind = models.CharField(max_length=20, choices=KIND_CHOICES)
    action = models.CharField(max_length=20, blank=True)
    order = models.ForeignKey(
        'orders.Order',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='notifications',
    )
    is_read = models.BooleanField(default=False)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['-created_at', '-id']
        indexes = [
            models.Index(fields=['is_read', 'created_at'], name='notif_read_date_idx'),
        ]

    def __str__(self):
        return self.message
