from django.contrib import admin
from django.contrib.auth.admin import UserAdmin

from .models import User

if admin.site.is_registered(User):
    admin.site.unregister(User)


class CustomUserAdmin(UserAdmin):
    model = User
    list_display = ['username', 'email', 'role', 'is_active', 'is_staff', 'phone_number']
    list_filter = ['role', 'is_active', 'is_staff']

    fieldsets = UserAdmin.fieldsets + (
        ('Role & Contact', {'fields': ('role', 'phone_number')}),
    )
    add_fieldsets = UserAdmin.add_fieldsets + (
        ('Role & Contact', {'fields': ('role', 'phone_number')}),
    )


admin.site.register(User, CustomUserAdmin)
