"""
Flight Report Views

REST API views for report submission, review and propagation.
"""

import logging

from rest_framework import status
from rest_framework.decorators import action
from rest_framework.response import Response

from apps.core.services import ApprovalService, IntakeService, APPROVE, REJECT
from apps.api.serializers import (
    FlightReportListSerializer,
    FlightReportDetailSerializer,
    FlightReportSubmitSerializer,
    ReportDecisionSerializer,
    ReportCorrectionSerializer,
    ReportFilterSerializer,
    PropagationSummarySerializer,
)
from shared.common.permissions import IsAuthenticatedPilot, IsPortalAdmin
from .base import BasePirepViewSet, PaginationMixin, FilterMixin, parse_uuid

logger = logging.getLogger(__name__)


class ReportViewSet(BasePirepViewSet, PaginationMixin, FilterMixin):
    """
    ViewSet for flight reports.

    Pilots file and read their own reports; admins review all of them.
    """

    ADMIN_ACTIONS = ('approve', 'reject', 'reopen', 'redrive', 'partial_update')

    def get_permissions(self):
        if self.action in self.ADMIN_ACTIONS:
            return [IsPortalAdmin()]
        return [IsAuthenticatedPilot()]

    # ==========================================================================
    # List, Retrieve, Submit
    # ==========================================================================

    def list(self, request):
        """
        List reports with filtering and pagination.

        GET /api/v1/pireps/reports/
        """
        page, page_size = self.get_pagination_params()
        filters = self.get_filters(ReportFilterSerializer)

        if not self.is_admin():
            filters['pilot_id'] = self.get_pilot_id()

        result = ApprovalService.list_reports(
            status=filters.get('status'),
            pilot_id=filters.get('pilot_id'),
            search=filters.get('search'),
            page=page,
            page_size=page_size,
        )

        serializer = FlightReportListSerializer(result['reports'], many=True)
        return Response({
            'results': serializer.data,
            'total': result['total'],
            'page': result['page'],
            'page_size': result['page_size'],
            'total_pages': result['total_pages'],
            'has_next': result['has_next'],
            'has_previous': result['has_previous'],
        })

    def retrieve(self, request, pk=None):
        """
        Get report details.

        GET /api/v1/pireps/reports/{id}/
        """
        report = ApprovalService.get_report(parse_uuid(pk), identity=self.get_identity())
        return Response(FlightReportDetailSerializer(report).data)

    def create(self, request):
        """
        Submit a flight report.

        POST /api/v1/pireps/reports/
        """
        serializer = FlightReportSubmitSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        report = IntakeService.submit_report(self.get_pilot_id(), serializer.validated_data)

        return Response(
            FlightReportDetailSerializer(report).data,
            status=status.HTTP_201_CREATED
        )

    def partial_update(self, request, pk=None):
        """
        Administrative correction.

        PATCH /api/v1/pireps/reports/{id}/
        """
        serializer = ReportCorrectionSerializer(data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)

        report = ApprovalService.correct_report(
            parse_uuid(pk),
            self.get_identity(),
            serializer.validated_data
        )
        return Response(FlightReportDetailSerializer(report).data)

    # ==========================================================================
    # Review
    # ==========================================================================

    @action(detail=True, methods=['post'])
    def approve(self, request, pk=None):
        """
        Approve a pending report and propagate it.

        POST /api/v1/pireps/reports/{id}/approve/
        """
        return self._decide(request, pk, APPROVE)

    @action(detail=True, methods=['post'])
    def reject(self, request, pk=None):
        """
        Reject a pending report.

        POST /api/v1/pireps/reports/{id}/reject/
        """
        return self._decide(request, pk, REJECT)

    def _decide(self, request, pk, decision):
        serializer = ReportDecisionSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        summary = ApprovalService.decide_report(
            parse_uuid(pk),
            self.get_identity(),
            decision,
            comments=serializer.validated_data.get('comments')
        )
        return Response(PropagationSummarySerializer(summary.to_dict()).data)

    @action(detail=True, methods=['post'])
    def reopen(self, request, pk=None):
        """
        Move a rejected report back to pending.

        POST /api/v1/pireps/reports/{id}/reopen/
        """
        report = ApprovalService.reopen_report(parse_uuid(pk), self.get_identity())
        return Response(FlightReportDetailSerializer(report).data)

    @action(detail=True, methods=['post'])
    def redrive(self, request, pk=None):
        """
        Re-run missing propagation steps.

        POST /api/v1/pireps/reports/{id}/redrive/
        """
        summary = ApprovalService.redrive(parse_uuid(pk), self.get_identity())
        return Response(PropagationSummarySerializer(summary.to_dict()).data)
