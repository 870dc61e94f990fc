"""Database models for invoices and payment receipts."""

from django.db import models


class Invoice(models.Model):
    """Invoice issued for an order.

    The number is ``DD-MM-YYYY-NNNN`` where ``NNNN`` restarts at 0001 every
    calendar year; ``year`` and ``sequence`` keep that counter queryable.
    """

    order = models.OneToOneField('orders.Order', on_delete=models.CASCADE, related_name='invoice')
    number = models.CharField(max_length=32, unique=True)
    year = models.PositiveIntegerField()
    sequence = models.PositiveIntegerField()
    png_path = models.CharField(max_length=255, blank=True)
    pdf_path = models.CharField(max_length=255, blank=True)
    issued_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-issued_at', '-id']
        constraints = [
            models.UniqueConstraint(fields=['year', 'sequence'], name='invoice_year_sequence_uniq'),
        ]

    def __str__(self):
        return f"Facture {self.number}"


class Receipt(models.Model):
    """Receipt rendered for a single payment."""

    payment = models.OneToOneField('finance.Payment', on_delete=models.CASCADE, related_name='receipt')
    number = models.CharField(max_length=32, unique=True)
    png_path = models.CharField(max_length=255, blank=True)
    pdf_path = models.CharField(max_length=255, blank=True)
    issued_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['-issued_at', '-id']

    def __str__(self):
        return f"Reçu {self.number}"
