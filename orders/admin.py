"""Django admin configuration for orders and their lines."""

from django.contrib import admin

from finance.models import Payment

from .models import Order, OrderProductLine, OrderServiceLine


# Lines are read-only here: edits must go through the reconciliation API.
class OrderProductLineInline(admin.TabularInline):
    model = OrderProductLine
    extra = 0
    can_delete = False
    readonly_fields = ('product', 'quantity', 'unit_price', 'total')


class OrderServiceLineInline(admin.TabularInline):
    model = OrderServiceLine
    extra = 0
    can_delete = False
    readonly_fields = ('service', 'quantity', 'unit_price', 'total')


class PaymentInline(admin.TabularInline):
    """Payments recorded against the order."""

    model = Payment
    extra = 0
    can_delete = False
    max_num = 0
    readonly_fields = ('amount', 'mode', 'recorded_by', 'created_at')


@admin.register(Order)
class OrderAdmin(admin.ModelAdmin):
    list_display = ('code', 'get_client', 'total', 'amount_paid', 'status', 'payment_status', 'created_at', 'deleted_at')
    list_filter = ('status', 'payment_status', 'created_at')
    search_fields = ('code', 'number', 'client__last_name', 'client__first_name')
    readonly_fields = ('code', 'number', 'total', 'amount_paid', 'payment_status', 'created_by', 'created_at', 'updated_at', 'deleted_at')
    inlines = [OrderProductLineInline, OrderServiceLineInline, PaymentInline]

    def get_client(self, obj):
        return obj.client.full_name if obj.client_id else 'Client occasionnel'
    get_client.short_description = 'Client'
