"""Dashboard aggregates and the notification feed."""

import logging
from datetime import timedelta
from decimal import Decimal

from django.contrib.auth import get_user_model
from django.db.models import Count, Q, Sum
from django.db.models.functions import TruncMonth
from django.utils import timezone
from rest_framework import mixins, permissions, viewsets
from rest_framework.decorators import action
from rest_framework.response import Response
from rest_framework.views import APIView

from clients.models import Client
from finance.models import Payment
from orders.models import Order, OrderProductLine
from orders.serializers import OrderSerializer
from products.models import Product
from tasks.models import Task
from tasks.serializers import TaskSerializer

from .models import Notification
from .serializers import NotificationSerializer

logger = logging.getLogger(__name__)

User = get_user_model()

DEFAULT_LIMIT = 10
MAX_LIMIT = 100


def _limit(request, default=DEFAULT_LIMIT):
    try:
        value = int(request.query_params.get('limit', default))
    except (TypeError, ValueError):
        return default
    return max(1, min(value, MAX_LIMIT))


def _month_start(day):
    return day.replace(day=1)


def _monthly_revenue(months=6):
    """Payments summed per calendar month, oldest first, empty months as 0."""
    today = timezone.localdate()
    start = _month_start(today)
    for _ in range(months - 1):
        start = _month_start(start - timedelta(days=1))

    rows = (
        Payment.objects.filter(created_at__date__gte=start)
        .annotate(month=TruncMonth('created_at'))
        .values('month')
        .annotate(total=Sum('amount'))
    )
    by_month = {}
    for row in rows:
        month = row['month']
        if hasattr(month, 'date'):
            month = month.date()
        by_month[month.strftime('%Y-%m')] = row['total']

    series = []
    cursor = start
    for _ in range(months):
        key = cursor.strftime('%Y-%m')
        series.append({'month': key, 'total': by_month.get(key) or Decimal('0.00')})
        cursor = _month_start(cursor + timedelta(days=32))
    return series


class DashboardStatsView(APIView):
    """Headline figures for the dashboard cards."""

    permission_classes = [permissions.IsAuthenticated]

    def get(self, request):
        orders = Order.objects.alive()
        order_counts = orders.aggregate(
            total=Count('id'),
            pending=Count('id', filter=Q(status=Order.STATUS_PENDING)),
            unpaid=Count('id', filter=~Q(payment_status=Order.PAYMENT_PAID)),
        )
        revenue = Payment.objects.aggregate(total=Sum('amount'))['total'] or Decimal('0.00')
        outstanding = orders.exclude(status=Order.STATUS_CANCELLED).aggregate(
            total=Sum('total'), paid=Sum('amount_paid'),
        )
        due = (outstanding['total'] or Decimal('0')) - (outstanding['paid'] or Decimal('0'))

        context = {'request': request}
        recent_orders = (
            orders.select_related('client', 'created_by', 'invoice')
            .prefetch_related('product_lines__product', 'service_lines__service')
            .order_by('-created_at')[:6]
        )
        recent_tasks = (
            Task.objects.select_related('assignee')
            .filter(status__in=[Task.STATUS_PENDING, Task.STATUS_IN_PROGRESS])
            .order_by('end_date', '-created_at')[:5]
        )

        return Response({
            'revenue': {'total': revenue, 'outstanding': max(due, Decimal('0.00'))},
            'orders': order_counts,
            'clients': {'total': Client.objects.filter(is_active=True).count()},
            'products': {
                'total': Product.objects.filter(is_active=True).count(),
                'out_of_stock': Product.objects.filter(is_active=True, stock_quantity=0).count(),
            },
            'employees': {'total': User.objects.filter(is_active=True).count()},
            'monthlyRevenueSeries': _monthly_revenue(),
            'recentOrders': OrderSerializer(recent_orders, many=True, context=context).data,
            'recentTasks': TaskSerializer(recent_tasks, many=True, context=context).data,
        })


class TopProductsView(APIView):
    """Best sellers by quantity over live orders (``?limit=``, default 5)."""

    permission_classes = [permissions.IsAuthenticated]

    def get(self, request):
        rows = (
            OrderProductLine.objects.filter(order__deleted_at__isnull=True)
            .exclude(order__status=Order.STATUS_CANCELLED)
            .values('product_id', 'product__name', 'product__code')
            .annotate(quantity=Sum('quantity'), revenue=Sum('total'), orders=Count('order', distinct=True))
            .order_by('-quantity', 'product__name')[:_limit(request, default=5)]
        )
        return Response([
            {
                'product': row['product_id'],
                'name': row['product__name'],
                'code': row['product__code'],
                'quantity': row['quantity'],
                'revenue': row['revenue'],
                'orders': row['orders'],
            }
            for row in rows
        ])


class RecentActivityView(APIView):
    """Latest orders and payments merged into one timeline (``?limit=``)."""

    permission_classes = [permissions.IsAuthenticated]

    def get(self, request):
        limit = _limit(request)
        events = []
        for order in Order.objects.alive().select_related('client').order_by('-created_at')[:limit]:
            events.append({
                'type': 'order',
                'order': order.pk,
                'label': f"Commande {order.code}",
                'client': order.client.full_name if order.client_id else 'Client occasionnel',
                'amount': order.total,
                'created_at': order.created_at,
            })
        for payment in Payment.objects.select_related('order__client').order_by('-created_at')[:limit]:
            events.append({
                'type': 'payment',
                'order': payment.order_id,
                'label': f"Paiement {payment.get_mode_display()} - {payment.order.code}",
                'client': payment.order.client.full_name if payment.order.client_id else 'Client occasionnel',
                'amount': payment.amount,
                'created_at': payment.created_at,
            })
        events.sort(key=lambda e: e['created_at'], reverse=True)
        return Response(events[:limit])


class NotificationViewSet(mixins.ListModelMixin, viewsets.GenericViewSet):
    """Notification feed: ``GET ?limit=`` and ``POST {id}/read/``."""

    queryset = Notification.objects.select_related('order')
    serializer_class = NotificationSerializer
    permission_classes = [permissions.IsAuthenticated]

    def list(self, request, *args, **kwargs):
        qs = self.get_queryset()
        if (request.query_params.get('unread') or '').lower() in {'1', 'true'}:
            qs = qs.filter(is_read=False)
        items = qs[:_limit(request)]
        return Response({
            'results': self.get_serializer(items, many=True).data,
            'unread': Notification.objects.filter(is_read=False).count(),
        })

    @action(detail=True, methods=['post'])
    def read(self, request, pk=None):
        notification = self.get_object()
        if not notification.is_read:
            notification.is_read = True
            notification.save(update_fields=['is_read'])
        return Response(self.get_serializer(notification).data)

    @action(detail=False, methods=['post'], url_path='read-all')
    def read_all(self, request):
        updated = Notification.objects.filter(is_read=False).update(is_read=True)
        return Response({'updated': updated})

    @action(detail=False, methods=['post'], url_path='read-all')
    def read_all(self, request):
        updated = Notification.objects.filter(is_read=False).update(is_read=True)
        logger.info('%s notifications marked read by %s', updated, request.user.username)
        return Response({'updated': updated, 'unread': 0})
