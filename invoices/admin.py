"""Django admin configuration for invoices and receipts."""

from django.contrib import admin

from .models import Invoice, Receipt


@admin.register(Invoice)
class InvoiceAdmin(admin.ModelAdmin):
    list_display = ('number', 'get_order_code', 'get_client', 'get_total', 'issued_at')
    list_filter = ('year', 'issued_at')
    search_fields = ('number', 'order__code', 'order__client__last_name')
    readonly_fields = ('number', 'year', 'sequence', 'order', 'png_path', 'pdf_path', 'issued_at', 'updated_at')

    def get_order_code(self, obj):
        return obj.order.code
    get_order_code.short_description = 'Commande'

    def get_client(self, obj):
        return obj.order.client.full_name if obj.order.client_id else 'Client occasionnel'
    get_client.short_description = 'Client'

    def get_total(self, obj):
        return obj.order.total
    get_total.short_description = 'Total'


@admin.register(Receipt)
class ReceiptAdmin(admin.ModelAdmin):
    list_display = ('number', 'payment', 'issued_at')
    search_fields = ('number',)
    readonly_fields = ('number', 'payment', 'png_path', 'pdf_path', 'issued_at')
