from rest_framework import serializers

from .models import Notification


class NotificationSerializer(serializers.ModelSerializer):
    order_code = serializers.ReadOnlyField(source='order.code')

    class Meta:
        model = Notification
        fields = ['id', 'message', 'kind', 'action', 'order', 'order_code', 'is_read', 'created_at']
        read_only_fields = fields
