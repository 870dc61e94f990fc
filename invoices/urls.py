"""URL routes for company settings (``/api/settings/``)."""

from django.urls import path

from .views import CompanySettingsView, LogoUploadView

urlpatterns = [
    path('company/', CompanySettingsView.as_view(), name='company_settings'),
    path('logo/', LogoUploadView.as_view(), name='company_logo'),
]
