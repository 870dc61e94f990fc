"""Database model for staff tasks."""

from django.conf import settings
from django.db import models


class Task(models.Model):
    FREQUENCY_CHOICES = (
        ('UNIQUE', 'Unique'),
        ('QUOTIDIENNE', 'Quotidienne'),
        ('HEBDOMADAIRE', 'Hebdomadaire'),
        ('MENSUELLE', 'Mensuelle'),
        ('TRIMESTRIELLE', 'Trimestrielle'),
        ('ANNUELLE', 'Annuelle'),
    )
    IMPORTANCE_CHOICES = (
        ('BASSE', 'Basse'),
        ('MOYENNE', 'Moyenne'),
        ('HAUTE', 'Haute'),
    )

    STATUS_PENDING = 'EN_ATTENTE'
    STATUS_IN_PROGRESS = 'EN_COURS'
    STATUS_DONE = 'TERMINEE'
    STATUS_CANCELLED = 'ANNULEE'
    STATUS_CHOICES = (
        (STATUS_PENDING, 'En attente'),
        (STATUS_IN_PROGRESS, 'En cours'),
        (STATUS_DONE, 'Terminée'),
        (STATUS_CANCELLED, 'Annulée'),
    )

    name = models.CharField(max_length=200)
    description = models.TextField(blank=True)
    assignee = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='tasks',
    )
    start_date = models.DateField(null=True, blank=True)
    end_date = models.DateField(null=True, blank=True)
    frequency = models.CharField(max_length=20, choices=FREQUENCY_CHOICES, default='UNIQUE')
    importance = models.CharField(max_length=10, choices=IMPORTANCE_CHOICES, default='MOYENNE')
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default=STATUS_PENDING)
    completed_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-created_at', '-id']
        indexes = [
            models.Index(fields=['assignee', 'status'], name='task_assignee_status_idx'),
        ]

    def __str__(self):
        return self.name
