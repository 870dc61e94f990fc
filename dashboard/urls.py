"""URL routes for dashboard aggregates (``/api/dashboard/``)."""

from django.urls import path

from .views import DashboardStatsView, RecentActivityView, TopProductsView

urlpatterns = [
    path('stats/', DashboardStatsView.as_view(), name='dashboard_stats'),
    path('top-products/', TopProductsView.as_view(), name='dashboard_top_products'),
    path('recent-activity/', RecentActivityView.as_view(), name='dashboard_recent_activity'),
]
