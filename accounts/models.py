"""Database model for application users."""

from django.contrib.auth.models import AbstractUser
from django.db import models


class User(AbstractUser):
    """Custom user model.

    Extends Django's :class:`~django.contrib.auth.models.AbstractUser` with:
    - ``role`` separating administrators from employees
    - optional ``phone_number``
    """

    ROLE_ADMIN = 'ADMIN'
    ROLE_EMPLOYE = 'EMPLOYE'
    ROLE_CHOICES = (
        (ROLE_ADMIN, 'Administrateur'),
        (ROLE_EMPLOYE, 'Employé'),
    )

    phone_number = models.CharField(max_length=20, null=True, blank=True)
    role = models.CharField(max_length=10, choices=ROLE_CHOICES, default=ROLE_EMPLOYE)

    @property
    def is_admin_role(self) -> bool:
        return self.is_superuser or self.role == self.ROLE_ADMIN

    def __str__(self):
        return self.username
