from rest_framework import serializers

from .models import Task


class TaskSerializer(serializers.ModelSerializer):
    assignee_name = serializers.SerializerMethodField()

    class Meta:
        model = Task
        fields = [
            'id', 'name', 'description', 'assignee', 'assignee_name', 'start_date', 'end_date',
            'frequency', 'importance', 'status', 'completed_at', 'created_at', 'updated_at',
        ]
        read_only_fields = ['completed_at', 'created_at', 'updated_at']

    def get_assignee_name(self, obj):
        if obj.assignee is None:
            return None
        return obj.assignee.get_full_name() or obj.assignee.username

    def validate(self, attrs):
        start = attrs.get('start_date', getattr(self.instance, 'start_date', None))
        end = attrs.get('end_date', getattr(self.instance, 'end_date', None))
        if start and end and end < start:
            raise serializers.ValidationError({'end_date': 'La date de fin doit suivre la date de début.'})
        return attrs
