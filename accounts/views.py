"""Accounts app views.

Contains:
- JWT login (token pair + user payload)
- The authenticated user's own profile (``me``)
- User management for administrators, with headcount stats

Kept intentionally simple and DRF-native.
"""

import logging

from django.contrib.auth import get_user_model
from django.db.models import Count, Q
from rest_framework import filters, generics, viewsets
from rest_framework.decorators import action
from rest_framework.exceptions import ValidationError
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework_simplejwt.views import TokenObtainPairView

from core.pagination import StandardResultsSetPagination

from .permissions import IsAdminRole, IsAdminRoleOrReadOnly
from .serializers import LoginSerializer, MeSerializer, UserSerializer

logger = logging.getLogger(__name__)

User = get_user_model()


class LoginView(TokenObtainPairView):
    """Exchange username/password for an access/refresh pair."""

    serializer_class = LoginSerializer


class MeView(generics.RetrieveUpdateAPIView):
    """Get or update the authenticated user's profile."""

    permission_classes = [IsAuthenticated]
    serializer_class = MeSerializer

    def get_object(self):
        return self.request.user


class UserViewSet(viewsets.ModelViewSet):
    """Users CRUD.

    - Any authenticated user can list/read users (assignee pickers).
    - Only administrators can create, update or delete.
    """

    queryset = User.objects.all().order_by('id')
    serializer_class = UserSerializer
    permission_classes = [IsAdminRoleOrReadOnly]
    pagination_class = StandardResultsSetPagination
    filter_backends = [filters.SearchFilter, filters.OrderingFilter]
    search_fields = ['username', 'email', 'first_name', 'last_name']
    ordering_fields = ['id', 'username', 'date_joined', 'role']

    def get_queryset(self):
        qs = super().get_queryset()
        role = (self.request.query_params.get('role') or '').strip().upper()
        if role:
            qs = qs.filter(role=role)
        return qs

    def perform_create(self, serializer):
        user = serializer.save()
        logger.info('User %s created by %s', user.username, self.request.user.username)

    def perform_destroy(self, instance):
        if instance.pk == self.request.user.pk:
            raise ValidationError({'detail': 'Vous ne pouvez pas supprimer votre propre compte.'})
        logger.info('User %s deleted by %s', instance.username, self.request.user.username)
        instance.delete()

    @action(detail=False, methods=['get'], permission_classes=[IsAdminRole])
    def stats(self, request):
        """Headcount by role and activity."""
        data = User.objects.aggregate(
            total=Count('id'),
            active=Count('id', filter=Q(is_active=True)),
            admins=Count('id', filter=Q(role=User.ROLE_ADMIN)),
            employees=Count('id', filter=Q(role=User.ROLE_EMPLOYE)),
        )
        data['inactive'] = data['total'] - data['active']
        return Response(data)
