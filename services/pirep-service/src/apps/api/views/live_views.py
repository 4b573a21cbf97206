"""
Live Flight Views

Telemetry ingestion and the live flight map.
"""

import logging

from rest_framework import status
from rest_framework.decorators import action
from rest_framework.response import Response

from apps.core.services import FlightRegistry
from apps.api.serializers import (
    TelemetrySerializer,
    EndFlightSerializer,
    ActiveFlightSessionSerializer,
)
from .base import BasePirepViewSet

logger = logging.getLogger(__name__)


class LiveFlightViewSet(BasePirepViewSet):
    """
    ViewSet for live flight sessions.

    list: Sessions updated within the TTL
    start: Open a session for a callsign
    telemetry: Record a position report
    end: Close the caller's session(s)
    """

    def list(self, request):
        """
        GET /api/v1/pireps/live/
        """
        sessions = FlightRegistry.active_flights()
        return Response(ActiveFlightSessionSerializer(sessions, many=True).data)

    @action(detail=False, methods=['post'])
    def start(self, request):
        """
        POST /api/v1/pireps/live/start/
        """
        serializer = TelemetrySerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        session = FlightRegistry.start_flight(self.get_pilot_id(), serializer.validated_data)
        return Response(ActiveFlightSessionSerializer(session).data, status=status.HTTP_201_CREATED)

    @action(detail=False, methods=['post'])
    def telemetry(self, request):
        """
        POST /api/v1/pireps/live/telemetry/
        """
        serializer = TelemetrySerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        session = FlightRegistry.record_telemetry(self.get_pilot_id(), serializer.validated_data)
        return Response(ActiveFlightSessionSerializer(session).data)

    @action(detail=False, methods=['post'])
    def end(self, request):
        """
        POST /api/v1/pireps/live/end/
        """
        serializer = EndFlightSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        removed = FlightRegistry.end_flight(
            self.get_pilot_id(),
            callsign=serializer.validated_data.get('callsign')
        )
        return Response({'ended': removed})
