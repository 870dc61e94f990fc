"""Serializers for company settings and document metadata."""

from rest_framework import serializers

from accounts.serializers import normalize_phone_number

from .models import Invoice, Receipt


class CompanySerializer(serializers.Serializer):
    """Company identity printed on invoices and receipts."""

    name = serializers.CharField(max_length=150, required=False, allow_blank=True)
    address = serializers.CharField(max_length=255, required=False, allow_blank=True)
    phone = serializers.CharField(max_length=30, required=False, allow_blank=True)
    email = serializers.EmailField(required=False, allow_blank=True)
    tax_number = serializers.CharField(max_length=50, required=False, allow_blank=True)

    def validate_phone(self, value):
        return normalize_phone_number(value, field_name='phone') or ''


class LogoUploadSerializer(serializers.Serializer):
    logo = serializers.CharField(help_text='Image encodée en base64 (data URI accepté).')


class InvoiceSerializer(serializers.ModelSerializer):
    order_code = serializers.ReadOnlyField(source='order.code')

    class Meta:
        model = Invoice
        fields = ['id', 'order', 'order_code', 'number', 'png_path', 'pdf_path', 'issued_at', 'updated_at']
        read_only_fields = fields


class ReceiptSerializer(serializers.ModelSerializer):
    class Meta:
        model = Receipt
        fields = ['id', 'payment', 'number', 'png_path', 'pdf_path', 'issued_at']
        read_only_fields = fields
