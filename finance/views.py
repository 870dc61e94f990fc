"""Sales (payments) API views.

Payments are created through ``POST /api/orders/{id}/pay/``; this viewset
lists them and serves their receipts.
"""

import logging

import django_filters
from django_filters.rest_framework import DjangoFilterBackend
from rest_framework import filters, viewsets
from rest_framework.decorators import action

from core.pagination import StandardResultsSetPagination
from invoices.services import document_file, generate_receipt
from invoices.views import pdf_response

from .models import Payment
from .serializers import PaymentSerializer

logger = logging.getLogger(__name__)


class PaymentFilter(django_filters.FilterSet):
    order = django_filters.NumberFilter(field_name='order_id')
    mode = django_filters.ChoiceFilter(choices=Payment.MODE_CHOICES)
    since = django_filters.DateFilter(field_name='created_at', lookup_expr='date__gte')
    until = django_filters.DateFilter(field_name='created_at', lookup_expr='date__lte')
    client = django_filters.NumberFilter(field_name='order__client_id')

    class Meta:
        model = Payment
        fields = ['order', 'mode', 'since', 'until', 'client']


class PaymentViewSet(viewsets.ReadOnlyModelViewSet):
    """Sales list. Payments are append-only: no update or delete route."""

    queryset = Payment.objects.select_related('order', 'order__client', 'recorded_by', 'receipt')
    serializer_class = PaymentSerializer
    pagination_class = StandardResultsSetPagination

    filter_backends = [DjangoFilterBackend, filters.SearchFilter, filters.OrderingFilter]
    filterset_class = PaymentFilter
    search_fields = ['order__code', 'order__number', 'order__client__last_name', 'order__client__first_name']
    ordering_fields = ['id', 'amount', 'created_at']
    ordering = ['-created_at']

    @action(detail=True, methods=['get', 'head'])
    def receipt(self, request, pk=None):
        """Receipt PDF, rendered on first request if the on-commit run did not produce it."""
        payment = self.get_object()
        existing = getattr(payment, 'receipt', None)
        path = document_file(existing.pdf_path) if existing is not None else None
        if path is None:
            existing = generate_receipt(payment)
            path = document_file(existing.pdf_path)
        return pdf_response(request, path, f"recu-{existing.number}.pdf")
