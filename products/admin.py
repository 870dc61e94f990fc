"""Django admin configuration for the catalog and inventory."""

from django.contrib import admin

from .models import Product, Service, StockMovement


class StockMovementInline(admin.TabularInline):
    model = StockMovement
    extra = 0
    can_delete = False
    fields = ('movement_type', 'quantity', 'source', 'order', 'note', 'user', 'created_at')
    readonly_fields = fields


@admin.register(Product)
class ProductAdmin(admin.ModelAdmin):
    list_display = ('id', 'name', 'code', 'price', 'stock_quantity', 'is_active')
    list_filter = ('is_active',)
    search_fields = ('name', 'code')
    # Stock is changed through movements only.
    readonly_fields = ('stock_quantity',)
    inlines = [StockMovementInline]


@admin.register(Service)
class ServiceAdmin(admin.ModelAdmin):
    list_display = ('id', 'name', 'price', 'is_active')
    list_filter = ('is_active',)
    search_fields = ('name',)


@admin.register(StockMovement)
class StockMovementAdmin(admin.ModelAdmin):
    list_display = ('id', 'product', 'movement_type', 'quantity', 'source', 'get_order', 'user', 'created_at')
    list_filter = ('movement_type', 'source', 'created_at')
    search_fields = ('product__name', 'note')
    readonly_fields = ('created_at',)

    def get_order(self, obj):
        return obj.order.code if obj.order_id else '-'
    get_order.short_description = 'Commande'
