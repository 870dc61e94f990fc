"""Serializers for the accounts app.

Includes:
- JWT login enriched with the user payload
- User management (admin) and self-service profile
- Shared phone number validation (also used by clients)
"""

import re

import phonenumbers
from django.conf import settings
from django.contrib.auth import get_user_model
from django.contrib.auth.password_validation import validate_password
from rest_framework import serializers
from rest_framework_simplejwt.serializers import TokenObtainPairSerializer


User = get_user_model()


def normalize_phone_number(phone, field_name='phone_number'):
    """Validate a phone number and return it in E.164 form.

    Numbers without a country code are parsed against
    ``settings.PHONE_DEFAULT_REGION``; ``00`` prefixes are treated as ``+``.
    """

    phone_input = str(phone or '').strip()
    if not phone_input:
        return None

    # Keep digits and a single leading '+': "+237 6-71" -> "+23767 1"
    clean_phone = re.sub(r'(?<!^)\+|[^\d+]', '', phone_input)
    if clean_phone.startswith('00'):
        clean_phone = '+' + clean_phone[2:]

    try:
        if clean_phone.startswith('+'):
            parsed_phone = phonenumbers.parse(clean_phone, None)
        else:
            parsed_phone = phonenumbers.parse(clean_phone, settings.PHONE_DEFAULT_REGION)
        if not phonenumbers.is_valid_number(parsed_phone):
            raise ValueError
    except (phonenumbers.NumberParseException, ValueError):
        raise serializers.ValidationError({
            field_name: f"Le numéro de téléphone {phone_input} est invalide. Indiquez l'indicatif du pays (ex. +237)."
        })

    return phonenumbers.format_number(parsed_phone, phonenumbers.PhoneNumberFormat.E164)


class UserSerializer(serializers.ModelSerializer):
    """User management payload (administrators).

    ``password`` is write-only; it is required on create and optional on update.
    """

    password = serializers.CharField(write_only=True, required=False, allow_blank=False)
    full_name = serializers.SerializerMethodField()

    class Meta:
        model = User
        fields = (
            'id', 'username', 'email', 'first_name', 'last_name', 'full_name',
            'phone_number', 'role', 'is_active', 'date_joined', 'last_login', 'password',
        )
        read_only_fields = ('date_joined', 'last_login')

    def get_full_name(self, obj):
        return obj.get_full_name() or obj.username

    def validate_username(self, value):
        if not re.match(r'^[a-zA-Z0-9._@+-]+$', value):
            raise serializers.ValidationError("Le nom d'utilisateur ne peut contenir que des lettres, chiffres et . _ @ + -")
        if len(value) < 3:
            raise serializers.ValidationError("Le nom d'utilisateur doit contenir au moins 3 caractères.")
        return value

    def validate_email(self, value):
        return (value or '').lower().strip()

    def validate(self, attrs):
        if 'phone_number' in attrs:
            attrs['phone_number'] = normalize_phone_number(attrs.get('phone_number'))
        if self.instance is None and not attrs.get('password'):
            raise serializers.ValidationError({'password': 'Le mot de passe est obligatoire.'})
        if attrs.get('password'):
            validate_password(attrs['password'], user=self.instance)
        return attrs

    def create(self, validated_data):
        password = validated_data.pop('password')
        user = User(**validated_data)
        user.set_password(password)
        user.save()
        return user

    def update(self, instance, validated_data):
        password = validated_data.pop('password', None)
        for field, value in validated_data.items():
            setattr(instance, field, value)
        if password:
            instance.set_password(password)
        instance.save()
        return instance


class MeSerializer(UserSerializer):
    """Self-service profile: the role and active flag cannot be self-assigned."""

    class Meta(UserSerializer.Meta):
        read_only_fields = ('username', 'role', 'is_active', 'date_joined', 'last_login')


class LoginSerializer(TokenObtainPairSerializer):
    """JWT pair plus the authenticated user's profile."""

    def validate(self, attrs):
        data = super().validate(attrs)
        data['user'] = UserSerializer(self.user).data
        return data
