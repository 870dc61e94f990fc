"""
URL configuration for the core project.

Every resource lives under ``/api/``; the router builds the CRUD routes and
the ``include`` entries hold the non-resource endpoints (auth, company
settings, dashboard aggregates).
"""
from django.conf import settings
from django.conf.urls.static import static
from django.contrib import admin
from django.urls import include, path
from drf_spectacular.views import SpectacularAPIView, SpectacularRedocView, SpectacularSwaggerView
from drf_yasg import openapi
from drf_yasg.views import get_schema_view
from rest_framework import permissions
from rest_framework.routers import DefaultRouter

from accounts.views import UserViewSet
from clients.views import ClientViewSet
from dashboard.views import NotificationViewSet
from finance.views import PaymentViewSet
from orders.views import OrderViewSet
from products.views import ProductViewSet, ServiceViewSet, StockMovementViewSet
from tasks.views import TaskViewSet


router = DefaultRouter()
router.register(r'users', UserViewSet, basename='user')
router.register(r'clients', ClientViewSet, basename='client')
router.register(r'products', ProductViewSet, basename='product')
router.register(r'services', ServiceViewSet, basename='service')
router.register(r'inventory', StockMovementViewSet, basename='inventory')
router.register(r'orders', OrderViewSet, basename='order')
router.register(r'payments', PaymentViewSet, basename='payment')
router.register(r'tasks', TaskViewSet, basename='task')
router.register(r'notifications', NotificationViewSet, basename='notification')


schema_view = get_schema_view(
   openapi.Info(title="RealTech Gestion API", default_version='v1'),
   public=True,
   permission_classes=[permissions.AllowAny],
)

urlpatterns = [
    path('admin/', admin.site.urls),
    path('api/', include(router.urls)),
    path('api/auth/', include('accounts.urls')),
    path('api/settings/', include('invoices.urls')),
    path('api/dashboard/', include('dashboard.urls')),
    # Swagger Documentation
    path('swagger/', schema_view.with_ui('swagger', cache_timeout=0)),
    path('api/schema/', SpectacularAPIView.as_view(), name='schema'),
    path('api/docs/', SpectacularSwaggerView.as_view(url_name='schema'), name='swagger-ui'),
    path('api/redoc/', SpectacularRedocView.as_view(url_name='schema'), name='redoc'),
] + static(settings.MEDIA_URL, document_root=settings.MEDIA_ROOT)
