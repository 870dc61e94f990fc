"""Database model for customers."""

from django.db import models


class Client(models.Model):
    """A customer that orders can be attached to.

    Clients are never hard-deleted through the API: deactivating keeps the
    reference intact on historical orders.
    """

    last_name = models.CharField(max_length=120)
    first_name = models.CharField(max_length=120, blank=True)
    email = models.EmailField(blank=True)
    phone = models.CharField(max_length=20, blank=True)
    address = models.CharField(max_length=255, blank=True)
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['last_name', 'first_name', 'id']
        indexes = [
            models.Index(fields=['is_active', 'last_name'], name='client_active_name_idx'),
        ]

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    def __str__(self):
        return self.full_name or f"Client #{self.pk}"
