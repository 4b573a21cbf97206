"""
Activity Views
"""

import logging

from django.db.models import Q
from django.utils import timezone
from django_filters import rest_framework as filters
from rest_framework import viewsets
from rest_framework.decorators import action
from rest_framework.response import Response

from apps.core.models import Activity
from apps.core.services import ActivityService
from apps.api.serializers import ActivitySerializer, ProgressSnapshotSerializer
from .base import PilotContextMixin, ServiceExceptionMixin, parse_uuid

logger = logging.getLogger(__name__)


class ActivityFilter(filters.FilterSet):
    """Filter for activities."""

    activity_type = filters.ChoiceFilter(choices=Activity.ActivityType.choices)
    title = filters.CharFilter(lookup_expr='icontains')
    open = filters.BooleanFilter(method='filter_open')

    class Meta:
        model = Activity
        fields = ['activity_type', 'title', 'legs_in_order']

    def filter_open(self, queryset, name, value):
        now = timezone.now()
        window = (
            (Q(start_date__isnull=True) | Q(start_date__lte=now)) &
            (Q(end_date__isnull=True) | Q(end_date__gte=now))
        )
        if value:
            return queryset.filter(window)
        return queryset.exclude(window)


class ActivityViewSet(PilotContextMixin, ServiceExceptionMixin, viewsets.ReadOnlyModelViewSet):
    """
    ViewSet for activities.

    list: Active activities
    retrieve: Activity with its legs
    progress: The caller's progress (admins may pass ?pilot_id=)
    """

    queryset = Activity.objects.filter(active=True).prefetch_related('legs').select_related('min_rank', 'reward_award')
    serializer_class = ActivitySerializer
    filterset_class = ActivityFilter

    @action(detail=True, methods=['get'])
    def progress(self, request, pk=None):
        """
        GET /api/v1/pireps/activities/{id}/progress/
        """
        snapshot = ActivityService.get_activity_progress(self.get_target_pilot_id(), parse_uuid(pk))
        return Response(ProgressSnapshotSerializer(snapshot.to_dict()).data)
