"""
Tour Views
"""

import logging

from rest_framework import status
from rest_framework.decorators import action
from rest_framework.response import Response

from apps.core.services import TourService
from apps.api.serializers import TourSerializer, TourProgressSerializer
from .base import BasePirepViewSet, parse_uuid

logger = logging.getLogger(__name__)


class TourViewSet(BasePirepViewSet):
    """
    ViewSet for tours.

    list: Active tours with the caller's progress
    start: Start (or restart an abandoned) tour
    abandon: Abandon a tour in progress
    """

    def list(self, request):
        """
        GET /api/v1/pireps/tours/
        """
        entries = TourService.list_tours(self.get_pilot_id())
        return Response([
            {
                **TourSerializer(entry['tour']).data,
                'progress': TourProgressSerializer(entry['progress']).data if entry['progress'] else None,
            }
            for entry in entries
        ])

    @action(detail=True, methods=['post'])
    def start(self, request, pk=None):
        """
        POST /api/v1/pireps/tours/{id}/start/
        """
        progress = TourService.start_tour(self.get_pilot_id(), parse_uuid(pk))
        return Response(TourProgressSerializer(progress).data, status=status.HTTP_201_CREATED)

    @action(detail=True, methods=['post'])
    def abandon(self, request, pk=None):
        """
        POST /api/v1/pireps/tours/{id}/abandon/
        """
        progress = TourService.abandon_tour(self.get_pilot_id(), parse_uuid(pk))
        return Response(TourProgressSerializer(progress).data)
