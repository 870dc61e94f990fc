"""DRF serializers for finance APIs."""

from rest_framework import serializers

from .models import Payment


class PaymentSerializer(serializers.ModelSerializer):
    """Payment (sale) as listed in the sales screen."""

    order_code = serializers.ReadOnlyField(source='order.code')
    client_name = serializers.SerializerMethodField()
    recorded_by_name = serializers.ReadOnlyField(source='recorded_by.username')
    receipt_number = serializers.SerializerMethodField()

    class Meta:
        model = Payment
        fields = [
            'id', 'order', 'order_code', 'client_name', 'amount', 'mode',
            'recorded_by', 'recorded_by_name', 'receipt_number', 'created_at',
        ]
        read_only_fields = fields

    def get_client_name(self, obj):
        client = obj.order.client
        return client.full_name if client is not None else 'Client occasionnel'

    def get_receipt_number(self, obj):
        receipt = getattr(obj, 'receipt', None)
        return receipt.number if receipt is not None else None


class PaymentRequestSerializer(serializers.Serializer):
    """Body of ``POST /orders/{id}/pay/``; business checks live in ``apply_payment``."""

    amount = serializers.DecimalField(max_digits=14, decimal_places=2)
    mode = serializers.CharField(max_length=20)
    target_status = serializers.CharField(max_length=20)
