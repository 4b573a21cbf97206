"""
Credit and Store Views
"""

import logging

from django_filters import rest_framework as filters
from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.response import Response

from apps.core.models import StoreItem
from apps.core.services import CreditLedger
from apps.api.serializers import (
    CreditAdjustSerializer,
    JumpseatSerializer,
    PurchaseRequestSerializer,
    CreditTransactionSerializer,
    StoreItemSerializer,
    PurchaseSerializer,
)
from shared.common.permissions import IsAuthenticatedPilot, IsPortalAdmin
from .base import BasePirepViewSet, PilotContextMixin, ServiceExceptionMixin

logger = logging.getLogger(__name__)


class CreditViewSet(BasePirepViewSet):
    """
    ViewSet for pilot credits.

    list: Balance and recent transactions
    adjust: Admin balance adjustment
    jumpseat: Buy a reposition to another airport
    purchase: Buy a store item
    """

    def get_permissions(self):
        if self.action == 'adjust':
            return [IsPortalAdmin()]
        return [IsAuthenticatedPilot()]

    def list(self, request):
        """
        GET /api/v1/pireps/credits/
        """
        pilot_id = self.get_target_pilot_id()
        return Response({
            'pilot_id': str(pilot_id),
            'balance': CreditLedger.balance(pilot_id),
            'transactions': CreditTransactionSerializer(CreditLedger.history(pilot_id), many=True).data,
        })

    @action(detail=False, methods=['post'])
    def adjust(self, request):
        """
        POST /api/v1/pireps/credits/adjust/
        """
        serializer = CreditAdjustSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        balance = CreditLedger.adjust_credits(
            data['pilot_id'],
            data['delta'],
            data.get('reason'),
            self.get_identity()
        )
        return Response({'pilot_id': str(data['pilot_id']), 'balance': balance})

    @action(detail=False, methods=['post'])
    def jumpseat(self, request):
        """
        POST /api/v1/pireps/credits/jumpseat/
        """
        serializer = JumpseatSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        result = CreditLedger.jumpseat(self.get_pilot_id(), serializer.validated_data['destination_icao'])
        return Response(result)

    @action(detail=False, methods=['post'])
    def purchase(self, request):
        """
        POST /api/v1/pireps/credits/purchase/
        """
        serializer = PurchaseRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        purchase = CreditLedger.purchase(self.get_pilot_id(), serializer.validated_data['item_id'])
        return Response(PurchaseSerializer(purchase).data, status=status.HTTP_201_CREATED)


class StoreItemFilter(filters.FilterSet):
    """Filter for store items."""

    name = filters.CharFilter(lookup_expr='icontains')
    max_price = filters.NumberFilter(field_name='price', lookup_expr='lte')

    class Meta:
        model = StoreItem
        fields = ['category', 'name']


class StoreItemViewSet(PilotContextMixin, ServiceExceptionMixin, viewsets.ReadOnlyModelViewSet):
    """Active store catalogue."""

    queryset = StoreItem.objects.filter(active=True).order_by('category', 'price')
    serializer_class = StoreItemSerializer
    filterset_class = StoreItemFilter
