"""Domain exceptions shared by the apps, and the DRF exception handler.

Every error raised by the service layers is an ``APIException`` so it is
recovered at the HTTP boundary only; nothing here retries.
"""

import logging

from django.core.exceptions import ObjectDoesNotExist
from django.db import DatabaseError
from django.http import Http404
from rest_framework import status
from rest_framework.exceptions import APIException, NotFound, ValidationError
from rest_framework.views import exception_handler

logger = logging.getLogger(__name__)

__all__ = [
    'LockedOrderError',
    'NotFound',
    'PersistenceError',
    'RenderError',
    'StockExceededError',
    'ValidationError',
    'api_exception_handler',
]


class LockedOrderError(APIException):
    """Structural edit attempted on an order that has a payment or a final status."""

    status_code = status.HTTP_409_CONFLICT
    default_detail = 'Cette commande est verrouillée : un paiement a déjà été enregistré.'
    default_code = 'order_locked'


class StockExceededError(APIException):
    """Requested quantity is above the stock headroom available for the line."""

    status_code = status.HTTP_400_BAD_REQUEST
    default_code = 'stock_exceeded'

    def __init__(self, product_id, requested, max_quantity, product_name=None):
        self.product_id = product_id
        self.requested = int(requested)
        self.max_quantity = max(int(max_quantity), 0)
        label = product_name or f'#{product_id}'
        super().__init__(
            detail=f'Stock insuffisant pour {label} : {self.requested} demandé(s), maximum {self.max_quantity}.',
            code=self.default_code,
        )


class PersistenceError(APIException):
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    default_detail = 'Erreur de base de données. Veuillez réessayer plus tard.'
    default_code = 'persistence_error'


class RenderError(APIException):
    """Invoice/receipt drawing or file output failed."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_code = 'render_error'

    def __init__(self, document_number, detail=None):
        self.document_number = document_number
        super().__init__(
            detail=detail or f'Impossible de générer le document {document_number}.',
            code=self.default_code,
        )


def api_exception_handler(exc, context):
    """DRF exception handler adding domain payloads and DB error mapping."""

    if isinstance(exc, DatabaseError):
        logger.error('Database error in %s', _view_name(context), exc_info=exc)
        exc = PersistenceError()
    elif isinstance(exc, ObjectDoesNotExist) and not isinstance(exc, Http404):
        exc = NotFound()

    response = exception_handler(exc, context)
    if response is None:
        return None

    if isinstance(exc, (LockedOrderError, StockExceededError, RenderError, PersistenceError)):
        response.data['code'] = exc.default_code
    if isinstance(exc, StockExceededError):
        response.data['product_id'] = exc.product_id
        response.data['max_quantity'] = exc.max_quantity
    if isinstance(exc, RenderError):
        logger.error('Document generation failed for %s', exc.document_number)

    return response


def _view_name(context) -> str:
    view = (context or {}).get('view')
    return type(view).__name__ if view is not None else 'unknown view'
