"""Serializers for the clients app."""

from rest_framework import serializers

from accounts.serializers import normalize_phone_number

from .models import Client


class ClientSerializer(serializers.ModelSerializer):
    """Client payload; phone numbers are stored in E.164 form."""

    full_name = serializers.ReadOnlyField()
    orders_count = serializers.SerializerMethodField()

    class Meta:
        model = Client
        fields = [
            'id', 'last_name', 'first_name', 'full_name', 'email', 'phone',
            'address', 'is_active', 'orders_count', 'created_at', 'updated_at',
        ]
        read_only_fields = ['created_at', 'updated_at']

    def get_orders_count(self, obj):
        annotated = getattr(obj, 'orders_count', None)
        if annotated is not None:
            return annotated
        return obj.orders.filter(deleted_at__isnull=True).count()

    def validate_last_name(self, value):
        value = (value or '').strip()
        if not value:
            raise serializers.ValidationError('Le nom du client est obligatoire.')
        return value

    def validate_email(self, value):
        return (value or '').lower().strip()

    def validate_phone(self, value):
        if not value:
            return ''
        return normalize_phone_number(value, field_name='phone')
