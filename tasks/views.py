"""Tasks API: CRUD, the caller's own tasks, and completion."""

import logging

from django.utils import timezone
from django_filters.rest_framework import DjangoFilterBackend
from rest_framework import filters, permissions, viewsets
from rest_framework.decorators import action
from rest_framework.exceptions import PermissionDenied, ValidationError
from rest_framework.response import Response

from core.pagination import StandardResultsSetPagination

from .models import Task
from .serializers import TaskSerializer

logger = logging.getLogger(__name__)


class TaskViewSet(viewsets.ModelViewSet):
    queryset = Task.objects.select_related('assignee')
    serializer_class = TaskSerializer
    permission_classes = [permissions.IsAuthenticated]
    pagination_class = StandardResultsSetPagination

    filter_backends = [DjangoFilterBackend, filters.SearchFilter, filters.OrderingFilter]
    filterset_fields = ['status', 'importance', 'frequency', 'assignee']
    search_fields = ['name', 'description']
    ordering_fields = ['id', 'name', 'start_date', 'end_date', 'importance', 'status', 'created_at']

    @action(detail=False, methods=['get'])
    def my(self, request):
        """Tasks assigned to the authenticated user."""
        tasks = self.filter_queryset(self.get_queryset().filter(assignee=request.user))
        page = self.paginate_queryset(tasks)
        if page is not None:
            serializer = self.get_serializer(page, many=True)
            return self.get_paginated_response(serializer.data)
        serializer = self.get_serializer(tasks, many=True)
        return Response(serializer.data)

    @action(detail=True, methods=['post'])
    def complete(self, request, pk=None):
        task = self.get_object()
        user = request.user
        if task.assignee_id not in (None, user.pk) and not getattr(user, 'is_admin_role', False):
            raise PermissionDenied('Seul le responsable de la tâche peut la terminer.')
        if task.status == Task.STATUS_CANCELLED:
            raise ValidationError({'status': 'Une tâche annulée ne peut pas être terminée.'})
        if task.status != Task.STATUS_DONE:
            task.status = Task.STATUS_DONE
            task.completed_at = timezone.now()
            task.save(update_fields=['status', 'completed_at', 'updated_at'])
            logger.info('Task %s completed by %s', task.pk, user.username)
        return Response(self.get_serializer(task).data)
