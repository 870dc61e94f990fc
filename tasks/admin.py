from django.contrib import admin

from .models import Task


@admin.register(Task)
class TaskAdmin(admin.ModelAdmin):
    list_display = ('name', 'assignee', 'importance', 'status', 'start_date', 'end_date')
    list_filter = ('status', 'importance', 'frequency')
    search_fields = ('name', 'description')
