"""Company settings endpoints and PDF download helper."""

import logging

from django.http import FileResponse
from rest_framework import status
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from accounts.permissions import IsAdminRole, IsAdminRoleOrReadOnly

from .serializers import CompanySerializer, LogoUploadSerializer
from .services import load_company, save_company, save_logo

logger = logging.getLogger(__name__)


def _truthy(value) -> bool:
    return str(value or '').strip().lower() in {'1', 'true', 'yes', 'on'}


def pdf_response(request, path, filename):
    """Stream a generated PDF; ``?inline=true`` opens it in the browser."""

    inline = _truthy(request.query_params.get('inline'))
    return FileResponse(
        open(path, 'rb'),
        as_attachment=not inline,
        filename=filename,
        content_type='application/pdf',
    )


class CompanySettingsView(APIView):
    """GET/PUT ``/api/settings/company/`` (stored as ``company.json``)."""

    permission_classes = [IsAdminRoleOrReadOnly]

    def get(self, request):
        return Response(load_company())

    def put(self, request):
        serializer = CompanySerializer(data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        company = save_company(serializer.validated_data)
        logger.info('Company settings saved by %s', request.user.username)
        return Response(company)


class LogoUploadView(APIView):
    """POST a base64 logo; it replaces ``logo.png`` in the upload root."""

    permission_classes = [IsAuthenticated, IsAdminRole]

    def post(self, request):
        serializer = LogoUploadSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        path = save_logo(serializer.validated_data['logo'])
        return Response({'detail': 'Logo enregistré.', 'file': path.name}, status=status.HTTP_201_CREATED)
