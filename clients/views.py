"""Clients API views."""

import logging

from django.db.models import Count, Q
from django_filters.rest_framework import DjangoFilterBackend
from rest_framework import filters, status, viewsets
from rest_framework.response import Response

from core.pagination import StandardResultsSetPagination

from .models import Client
from .serializers import ClientSerializer

logger = logging.getLogger(__name__)


class ClientViewSet(viewsets.ModelViewSet):
    """Clients CRUD.

    Lists only active clients unless ``?include_inactive=true``;
    DELETE deactivates instead of removing the row.
    """

    serializer_class = ClientSerializer
    pagination_class = StandardResultsSetPagination
    filter_backends = [DjangoFilterBackend, filters.SearchFilter, filters.OrderingFilter]
    filterset_fields = ['is_active']
    search_fields = ['last_name', 'first_name', 'email', 'phone']
    ordering_fields = ['id', 'last_name', 'first_name', 'created_at']

    def get_queryset(self):
        qs = Client.objects.annotate(
            orders_count=Count('orders', filter=Q(orders__deleted_at__isnull=True))
        )
        include_inactive = str(self.request.query_params.get('include_inactive') or '').lower() in {'1', 'true', 'yes'}
        if self.action == 'list' and not include_inactive and 'is_active' not in self.request.query_params:
            qs = qs.filter(is_active=True)
        return qs

    def destroy(self, request, *args, **kwargs):
        client = self.get_object()
        if client.is_active:
            client.is_active = False
            client.save(update_fields=['is_active', 'updated_at'])
            logger.info('Client %s deactivated by %s', client.pk, request.user.username)
        return Response(status=status.HTTP_204_NO_CONTENT)
