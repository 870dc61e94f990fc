"""Django admin configuration for payments."""

from django.contrib import admin

from .models import Payment


@admin.register(Payment)
class PaymentAdmin(admin.ModelAdmin):
    """Read-only view of payments: they are recorded through the API only."""

    list_display = ('id', 'get_order_code', 'amount', 'mode', 'recorded_by', 'created_at')
    list_filter = ('mode', 'created_at')
    search_fields = ('order__code', 'order__client__last_name')
    readonly_fields = ('order', 'amount', 'mode', 'recorded_by', 'created_at')

    def get_order_code(self, obj):
        return obj.order.code
    get_order_code.short_description = 'Commande'

    def has_add_permission(self, request):
        return False

    def has_delete_permission(self, request, obj=None):
        return False
