"""
Bid Views
"""

import logging

from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import APIView

from apps.core.services import FlightRegistry
from apps.api.serializers import BidSerializer, BidCreateSerializer
from .base import PilotContextMixin, ServiceExceptionMixin


logger = logging.getLogger(__name__)


class BidView(PilotContextMixin, ServiceExceptionMixin, APIView):
    """
    The caller's route reservation.

    GET: Active unexpired bid, or null
    POST: Place a bid, cancelling the previous one
    DELETE: Cancel the active bid
    """

    def get(self, request):
        bid = FlightRegistry.get_active_bid(self.get_pilot_id())
        return Response({'bid': BidSerializer(bid).data if bid else None})

    def post(self, request):
        serializer = BidCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        bid = FlightRegistry.create_bid(self.get_pilot_id(), serializer.validated_data)
        return Response(BidSerializer(bid).data, status=status.HTTP_201_CREATED)

    def delete(self, request):
        FlightRegistry.cancel_bid(self.get_pilot_id())
        return Response(status=status.HTTP_204_NO_CONTENT)
