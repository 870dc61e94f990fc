"""Catalog and inventory API views.

Includes CRUD for products and services and the inventory journal.
Filtering/search/ordering/pagination are provided for list endpoints.
"""

import logging

import django_filters
from django.db.models import ProtectedError
from django_filters.rest_framework import DjangoFilterBackend
from rest_framework import filters, mixins, status, viewsets
from rest_framework.response import Response

from core.pagination import StandardResultsSetPagination

from .inventory import record_manual_movement, set_stock_level
from .models import Product, Service, StockMovement
from .serializers import ProductSerializer, ServiceSerializer, StockMovementSerializer

logger = logging.getLogger(__name__)


class _DeactivateOnProtectedMixin:
    """DELETE removes unused rows and deactivates rows still referenced by orders."""

    def destroy(self, request, *args, **kwargs):
        instance = self.get_object()
        try:
            instance.delete()
        except ProtectedError:
            instance.is_active = False
            instance.save(update_fields=['is_active', 'updated_at'])
            logger.info('%s %s referenced by orders, deactivated instead of deleted', type(instance).__name__, instance.pk)
            return Response(
                {'detail': 'Élément utilisé dans des commandes : il a été désactivé.', 'is_active': False},
                status=status.HTTP_200_OK,
            )
        return Response(status=status.HTTP_204_NO_CONTENT)


class ProductViewSet(_DeactivateOnProtectedMixin, viewsets.ModelViewSet):
    """Products CRUD.

    Stock changes made through create/update are journaled as manual
    movements so the inventory history stays complete.
    """

    queryset = Product.objects.all()
    serializer_class = ProductSerializer
    pagination_class = StandardResultsSetPagination

    filter_backends = [DjangoFilterBackend, filters.SearchFilter, filters.OrderingFilter]
    filterset_fields = ['is_active']
    search_fields = ['name', 'code', 'description']
    ordering_fields = ['id', 'name', 'price', 'stock_quantity', 'created_at']

    def perform_create(self, serializer):
        initial_stock = serializer.validated_data.pop('stock_quantity', 0)
        product = serializer.save(stock_quantity=0)
        if initial_stock:
            set_stock_level(product, initial_stock, user=self.request.user, note='Stock initial')
        logger.info('Product %s created with stock %s', product.pk, product.stock_quantity)

    def perform_update(self, serializer):
        new_stock = serializer.validated_data.pop('stock_quantity', None)
        product = serializer.save()
        if new_stock is not None and new_stock != product.stock_quantity:
            set_stock_level(product, new_stock, user=self.request.user)


class ServiceViewSet(_DeactivateOnProtectedMixin, viewsets.ModelViewSet):
    """Services CRUD."""

    queryset = Service.objects.all()
    serializer_class = ServiceSerializer
    pagination_class = StandardResultsSetPagination

    filter_backends = [DjangoFilterBackend, filters.SearchFilter, filters.OrderingFilter]
    filterset_fields = ['is_active']
    search_fields = ['name', 'description']
    ordering_fields = ['id', 'name', 'price', 'created_at']


class StockMovementFilter(django_filters.FilterSet):
    type = django_filters.ChoiceFilter(field_name='movement_type', choices=StockMovement.TYPE_CHOICES)
    since = django_filters.DateFilter(field_name='created_at', lookup_expr='date__gte')
    until = django_filters.DateFilter(field_name='created_at', lookup_expr='date__lte')

    class Meta:
        model = StockMovement
        fields = ['product', 'source', 'order']


class StockMovementViewSet(mixins.ListModelMixin,
                           mixins.RetrieveModelMixin,
                           mixins.CreateModelMixin,
                           viewsets.GenericViewSet):
    """Inventory journal: list movements and record manual IN/OUT entries."""

    queryset = StockMovement.objects.select_related('product', 'user', 'order')
    serializer_class = StockMovementSerializer
    pagination_class = StandardResultsSetPagination
    filter_backends = [DjangoFilterBackend, filters.SearchFilter, filters.OrderingFilter]
    filterset_class = StockMovementFilter
    search_fields = ['product__name', 'product__code', 'note']
    ordering_fields = ['created_at', 'quantity']

    def create(self, request, *args, **kwargs):
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        movement = record_manual_movement(
            product_id=data['product'].pk,
            movement_type=data['movement_type'],
            quantity=data['quantity'],
            user=request.user,
            note=data.get('note', ''),
        )
        return Response(self.get_serializer(movement).data, status=status.HTTP_201_CREATED)
