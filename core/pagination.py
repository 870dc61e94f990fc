"""Pagination shared by every list endpoint."""

from rest_framework.pagination import PageNumberPagination


class StandardResultsSetPagination(PageNumberPagination):
    """Default pagination used by every list endpoint."""
    page_size = 20
    page_size_query_param = 'page_size'
    max_page_size = 100
