"""Orders API views.

Includes creation, reconciled edits (with a confirmation step), soft
delete/restore, validation, line sub-routes, payments and invoices.
"""

import logging

import django_filters
from django.db.models import Q
from django_filters.rest_framework import DjangoFilterBackend
from rest_framework import filters, permissions, status, viewsets
from rest_framework.decorators import action
from rest_framework.response import Response

from core.pagination import StandardResultsSetPagination
from finance.models import Payment
from finance.serializers import PaymentRequestSerializer, PaymentSerializer
from finance.services import apply_payment
from invoices.serializers import InvoiceSerializer
from invoices.services import document_file, generate_invoice
from invoices.views import pdf_response

from .models import Order
from .reconciliation import PRODUCTS, SERVICES
from .serializers import (
    AddLineSerializer,
    LineQuantitySerializer,
    OrderCreateSerializer,
    OrderEditSerializer,
    OrderSerializer,
)
from .services import (
    add_line,
    apply_reconciliation,
    create_order,
    preview_reconciliation,
    remove_line,
    restore_order,
    soft_delete_order,
    update_line,
    validate_order,
)

logger = logging.getLogger(__name__)


class OrderFilter(django_filters.FilterSet):
    status = django_filters.ChoiceFilter(choices=Order.STATUS_CHOICES)
    payment_status = django_filters.ChoiceFilter(choices=Order.PAYMENT_STATUS_CHOICES)
    client = django_filters.NumberFilter(field_name='client_id')
    min_date = django_filters.DateFilter(field_name='created_at', lookup_expr='date__gte')
    max_date = django_filters.DateFilter(field_name='created_at', lookup_expr='date__lte')

    class Meta:
        model = Order
        fields = ['status', 'payment_status', 'client', 'min_date', 'max_date']


def _order_queryset(qs):
    return qs.select_related('client', 'created_by', 'invoice').prefetch_related(
        'product_lines__product', 'service_lines__service',
    )


class OrderViewSet(viewsets.ModelViewSet):
    """Order API endpoints.

    Lists exclude soft-deleted orders (see ``deleted/``). Edits go through
    the reconciliation service: a non-empty change is applied only when the
    payload carries ``confirm: true``.
    """

    permission_classes = [permissions.IsAuthenticated]
    serializer_class = OrderSerializer
    pagination_class = StandardResultsSetPagination
    lookup_value_regex = r'\d+'

    filter_backends = [DjangoFilterBackend, filters.SearchFilter, filters.OrderingFilter]
    filterset_class = OrderFilter
    search_fields = ['code', 'number', 'client__last_name', 'client__first_name', 'client__phone']
    ordering_fields = ['id', 'code', 'number', 'total', 'status', 'created_at', 'updated_at']
    ordering = ['-created_at']

    def get_queryset(self):
        return _order_queryset(Order.objects.alive())

    def _detail(self, order_id, http_status=status.HTTP_200_OK):
        order = _order_queryset(Order.objects.all()).get(pk=order_id)
        return Response(OrderSerializer(order, context=self.get_serializer_context()).data, status=http_status)

    def create(self, request, *args, **kwargs):
        serializer = OrderCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        order = create_order(
            client_id=data.get('client'),
            products=data.get('products') or [],
            services=data.get('services') or [],
            user=request.user,
        )
        return self._detail(order.pk, status.HTTP_201_CREATED)

    def update(self, request, *args, **kwargs):
        order = self.get_object()
        serializer = OrderEditSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        edited = serializer.edited_lines()
        client_id = serializer.edited_client()

        if not serializer.validated_data['confirm']:
            plan = preview_reconciliation(order.pk, edited=edited, client_id=client_id)
            if not plan.is_empty:
                return Response(
                    {
                        'detail': 'Confirmation requise avant d’appliquer les modifications.',
                        'code': 'confirmation_required',
                        'summary': plan.summary(),
                        'plan': plan.as_dict(),
                    },
                    status=status.HTTP_400_BAD_REQUEST,
                )

        order, _ = apply_reconciliation(order.pk, edited=edited, client_id=client_id, user=request.user)
        return self._detail(order.pk)

    def partial_update(self, request, *args, **kwargs):
        return self.update(request, *args, **kwargs)

    def destroy(self, request, *args, **kwargs):
        order = self.get_object()
        soft_delete_order(order.pk, user=request.user)
        return Response(status=status.HTTP_204_NO_CONTENT)

    @action(detail=False, methods=['get'])
    def deleted(self, request):
        """Soft-deleted orders, most recently deleted first."""
        orders = _order_queryset(Order.objects.deleted()).order_by('-deleted_at')
        search = (request.query_params.get('search') or '').strip()
        if search:
            orders = orders.filter(Q(code__icontains=search) | Q(client__last_name__icontains=search))

        page = self.paginate_queryset(orders)
        if page is not None:
            serializer = self.get_serializer(page, many=True)
            return self.get_paginated_response(serializer.data)
        serializer = self.get_serializer(orders, many=True)
        return Response(serializer.data)

    @action(detail=True, methods=['post'])
    def restore(self, request, pk=None):
        order = restore_order(pk, user=request.user)
        return self._detail(order.pk)

    @action(detail=True, methods=['post'])
    def validate(self, request, pk=None):
        order = validate_order(pk, user=request.user)
        return self._detail(order.pk)

    @action(detail=True, methods=['post'], url_path='preview-changes')
    def preview_changes(self, request, pk=None):
        """Plan and summary of an edit, without writing anything."""
        serializer = OrderEditSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        plan = preview_reconciliation(pk, edited=serializer.edited_lines(), client_id=serializer.edited_client())
        return Response(plan.as_dict())

    # Line sub-routes: /orders/{id}/products/ and /orders/{id}/products/{line_id}/ (same for services)

    def _add_line(self, request, pk, kind):
        serializer = AddLineSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        order, _ = add_line(
            pk, kind,
            ref_id=serializer.validated_data['id'],
            quantity=serializer.validated_data['quantity'],
            user=request.user,
        )
        return self._detail(order.pk, status.HTTP_201_CREATED)

    def _change_line(self, request, pk, kind, line_id):
        if request.method == 'DELETE':
            order, _ = remove_line(pk, kind, line_id, user=request.user)
            return self._detail(order.pk)
        serializer = LineQuantitySerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        order, _ = update_line(pk, kind, line_id, quantity=serializer.validated_data['quantity'], user=request.user)
        return self._detail(order.pk)

    @action(detail=True, methods=['post'], url_path='products')
    def add_product_line(self, request, pk=None):
        return self._add_line(request, pk, PRODUCTS)

    @action(detail=True, methods=['put', 'patch', 'delete'], url_path=r'products/(?P<line_id>\d+)')
    def product_line(self, request, pk=None, line_id=None):
        return self._change_line(request, pk, PRODUCTS, line_id)

    @action(detail=True, methods=['post'], url_path='services')
    def add_service_line(self, request, pk=None):
        return self._add_line(request, pk, SERVICES)

    @action(detail=True, methods=['put', 'patch', 'delete'], url_path=r'services/(?P<line_id>\d+)')
    def service_line(self, request, pk=None, line_id=None):
        return self._change_line(request, pk, SERVICES, line_id)

    # Payments

    @action(detail=True, methods=['post'])
    def pay(self, request, pk=None):
        serializer = PaymentRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        payment = apply_payment(
            pk,
            amount=serializer.validated_data['amount'],
            mode=serializer.validated_data['mode'],
            target_status=serializer.validated_data['target_status'],
            user=request.user,
        )
        payment = Payment.objects.select_related('order__client', 'recorded_by').get(pk=payment.pk)
        order = _order_queryset(Order.objects.all()).get(pk=payment.order_id)
        context = self.get_serializer_context()
        return Response(
            {
                'payment': PaymentSerializer(payment, context=context).data,
                'order': OrderSerializer(order, context=context).data,
            },
            status=status.HTTP_201_CREATED,
        )

    @action(detail=True, methods=['get'])
    def payments(self, request, pk=None):
        order = self.get_object()
        payments = order.payments.select_related('order__client', 'recorded_by').order_by('created_at', 'id')
        return Response(PaymentSerializer(payments, many=True, context=self.get_serializer_context()).data)

    # Invoice

    @action(detail=True, methods=['post'])
    def invoice(self, request, pk=None):
        """Render (or refresh) the invoice PNG and PDF of the order."""
        invoice = generate_invoice(pk)
        return Response(InvoiceSerializer(invoice).data, status=status.HTTP_201_CREATED)

    @action(detail=True, methods=['get', 'head'], url_path='invoice/download')
    def invoice_download(self, request, pk=None):
        order = self.get_object()
        invoice = getattr(order, 'invoice', None)
        path = document_file(invoice.pdf_path) if invoice is not None else None
        if path is None:
            invoice = generate_invoice(order.pk)
            path = document_file(invoice.pdf_path)
        return pdf_response(request, path, f"facture-{invoice.number}.pdf")
