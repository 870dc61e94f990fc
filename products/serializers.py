"""Serializers for the catalog and the inventory journal."""

from decimal import Decimal

from rest_framework import serializers

from .models import Product, Service, StockMovement


class ProductSerializer(serializers.ModelSerializer):
    """Product serializer.

    ``stock_quantity`` is writable: changes are journaled as manual
    movements by the view, never written directly.
    """

    class Meta:
        model = Product
        fields = [
            'id', 'name', 'code', 'description', 'price', 'stock_quantity',
            'is_active', 'created_at', 'updated_at',
        ]
        read_only_fields = ['created_at', 'updated_at']

    def validate_name(self, value):
        value = (value or '').strip()
        if not value:
            raise serializers.ValidationError('Le nom du produit est obligatoire.')
        return value

    def validate_code(self, value):
        # Empty codes are stored as NULL so the unique constraint ignores them.
        value = (value or '').strip()
        return value or None

    def validate_price(self, value):
        if value is None or value < Decimal('0'):
            raise serializers.ValidationError('Le prix doit être positif ou nul.')
        return value

    def validate_stock_quantity(self, value):
        if value is None or int(value) < 0:
            raise serializers.ValidationError('Le stock ne peut pas être négatif.')
        return int(value)


class ServiceSerializer(serializers.ModelSerializer):
    """Service serializer."""

    class Meta:
        model = Service
        fields = ['id', 'name', 'description', 'price', 'is_active', 'created_at', 'updated_at']
        read_only_fields = ['created_at', 'updated_at']

    def validate_name(self, value):
        value = (value or '').strip()
        if not value:
            raise serializers.ValidationError('Le nom du service est obligatoire.')
        return value

    def validate_price(self, value):
        if value is None or value < Decimal('0'):
            raise serializers.ValidationError('Le prix doit être positif ou nul.')
        return value


class StockMovementSerializer(serializers.ModelSerializer):
    """Inventory journal entry; only manual entries are created through the API."""

    product_name = serializers.ReadOnlyField(source='product.name')
    user_name = serializers.ReadOnlyField(source='user.username')
    order_code = serializers.ReadOnlyField(source='order.code')

    class Meta:
        model = StockMovement
        fields = [
            'id', 'product', 'product_name', 'movement_type', 'quantity', 'source',
            'order', 'order_code', 'note', 'user', 'user_name', 'created_at',
        ]
        read_only_fields = ['source', 'order', 'user', 'created_at']
