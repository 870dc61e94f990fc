"""Serializers for orders, their lines, and the edit payloads."""

from rest_framework import serializers

from core.exceptions import LockedOrderError

from .models import Order, OrderProductLine, OrderServiceLine
from .reconciliation import PRODUCTS, SERVICES, UNCHANGED, EditedLine, ensure_editable


class OrderProductLineSerializer(serializers.ModelSerializer):
    product_name = serializers.ReadOnlyField(source='product.name')
    product_code = serializers.ReadOnlyField(source='product.code')

    class Meta:
        model = OrderProductLine
        fields = ['id', 'product', 'product_name', 'product_code', 'quantity', 'unit_price', 'total']
        read_only_fields = fields


class OrderServiceLineSerializer(serializers.ModelSerializer):
    service_name = serializers.ReadOnlyField(source='service.name')

    class Meta:
        model = OrderServiceLine
        fields = ['id', 'service', 'service_name', 'quantity', 'unit_price', 'total']
        read_only_fields = fields


class OrderSerializer(serializers.ModelSerializer):
    """Read representation of an order with its lines."""

    client_name = serializers.SerializerMethodField()
    created_by_name = serializers.ReadOnlyField(source='created_by.username')
    outstanding = serializers.DecimalField(max_digits=14, decimal_places=2, read_only=True)
    is_locked = serializers.SerializerMethodField()
    product_lines = OrderProductLineSerializer(many=True, read_only=True)
    service_lines = OrderServiceLineSerializer(many=True, read_only=True)
    invoice_number = serializers.SerializerMethodField()

    class Meta:
        model = Order
        fields = [
            'id', 'code', 'number', 'client', 'client_name', 'created_by', 'created_by_name',
            'total', 'status', 'payment_status', 'amount_paid', 'outstanding', 'is_locked',
            'product_lines', 'service_lines', 'invoice_number',
            'created_at', 'updated_at', 'deleted_at',
        ]
        read_only_fields = fields

    def get_client_name(self, obj):
        if obj.client_id is None:
            return 'Client occasionnel'
        return obj.client.full_name

    def get_is_locked(self, obj):
        try:
            ensure_editable(obj)
        except LockedOrderError:
            return True
        return False

    def get_invoice_number(self, obj):
        invoice = getattr(obj, 'invoice', None)
        return invoice.number if invoice is not None else None


class LineRequestSerializer(serializers.Serializer):
    """``{id, quantity}`` with an optional ``line_id`` for lines already saved."""

    id = serializers.IntegerField(min_value=1, required=False)
    quantity = serializers.IntegerField(min_value=1)
    line_id = serializers.IntegerField(min_value=1, required=False, allow_null=True)

    def validate(self, attrs):
        if attrs.get('line_id') is None and attrs.get('id') is None:
            raise serializers.ValidationError({'id': 'Identifiant requis pour une nouvelle ligne.'})
        return attrs


def _to_edited(lines):
    return [EditedLine(ref_id=line.get('id'), quantity=line['quantity'], line_id=line.get('line_id')) for line in lines]


class OrderCreateSerializer(serializers.Serializer):
    client = serializers.IntegerField(required=False, allow_null=True)
    products = LineRequestSerializer(many=True, required=False)
    services = LineRequestSerializer(many=True, required=False)


class OrderEditSerializer(serializers.Serializer):
    """Edit payload for PUT/PATCH and preview-changes.

    A key left out (``client``, ``products`` or ``services``) is not touched.
    """

    client = serializers.IntegerField(required=False, allow_null=True)
    products = LineRequestSerializer(many=True, required=False)
    services = LineRequestSerializer(many=True, required=False)
    confirm = serializers.BooleanField(required=False, default=False)

    def edited_lines(self) -> dict:
        data = self.validated_data
        edited = {}
        if 'products' in data:
            edited[PRODUCTS] = _to_edited(data['products'])
        if 'services' in data:
            edited[SERVICES] = _to_edited(data['services'])
        return edited

    def edited_client(self):
        return self.validated_data['client'] if 'client' in self.validated_data else UNCHANGED


class LineQuantitySerializer(serializers.Serializer):
    quantity = serializers.IntegerField(min_value=1)


class AddLineSerializer(LineQuantitySerializer):
    id = serializers.IntegerField(min_value=1)
