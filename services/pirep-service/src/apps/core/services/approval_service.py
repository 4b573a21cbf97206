"""
Approval Service

Owns the report lifecycle:

    pending -> approved     (runs propagation)
    pending -> rejected
    rejected -> pending     (reopen, no side effects)

Decisions are conditional updates on ``approval_status = pending``. Only
the caller whose update matched a row goes on to propagate, so concurrent
approvals of one report propagate once. Reopening and approving again
finds every step already marked and applies nothing twice.
"""

import uuid
import logging
from typing import Any, Dict, Optional

from django.core.paginator import Paginator
from django.db.models import Q
from django.utils import timezone

from ..events import EventType, notify_on_commit
from ..models import FlightReport
from .exceptions import (
    ConflictError,
    NotFoundError,
    PermissionDeniedError,
    ValidationError,
)
from .intake_service import IntakeService
from .propagation import PropagationPipeline, PropagationSummary

logger = logging.getLogger(__name__)

APPROVE = 'approve'
REJECT = 'reject'

DECISION_TARGETS = {
    APPROVE: FlightReport.ApprovalStatus.APPROVED,
    REJECT: FlightReport.ApprovalStatus.REJECTED,
}


def require_admin(identity, operation: str) -> None:
    if not getattr(identity, 'is_admin', False):
        raise PermissionDeniedError(operation, pilot_id=getattr(identity, 'pilot_id', None))


class ApprovalService:
    """
    Service class for the report approval state machine.

    Handles decisions, reopening, admin corrections, listing and re-driving
    unfinished propagation.
    """

    # ==========================================================================
    # Queries
    # ==========================================================================

    @classmethod
    def get_report(cls, report_id: uuid.UUID, identity=None) -> FlightReport:
        """
        Get a report. Pilots only see their own reports.

        Raises:
            NotFoundError: If the report is missing or not visible to the caller
        """
        report = FlightReport.objects.select_related('pilot').filter(id=report_id).first()
        if report is None:
            raise NotFoundError('FlightReport', report_id)
        if identity is not None and not identity.is_admin and str(report.pilot_id) != str(identity.pilot_id):
            raise NotFoundError('FlightReport', report_id)
        return report

    @classmethod
    def list_reports(
        cls,
        status: str = None,
        pilot_id: uuid.UUID = None,
        search: str = None,
        page: int = 1,
        page_size: int = 20
    ) -> Dict[str, Any]:
        """
        List reports with filtering and pagination.

        Returns:
            Dictionary with reports and pagination info
        """
        queryset = FlightReport.objects.select_related('pilot')
        if status:
            queryset = queryset.filter(approval_status=status)
        if pilot_id:
            queryset = queryset.filter(pilot_id=pilot_id)
        if search:
            queryset = queryset.filter(
                Q(flight_number__icontains=search) |
                Q(callsign__icontains=search) |
                Q(pilot_name__icontains=search) |
                Q(pilot__pilot_code__icontains=search) |
                Q(departure_icao__iexact=search) |
                Q(arrival_icao__iexact=search)
            )
        queryset = queryset.order_by('-submitted_at')

        paginator = Paginator(queryset, page_size)
        page_obj = paginator.get_page(page)

        return {
            'reports': list(page_obj.object_list),
            'total': paginator.count,
            'page': page_obj.number,
            'page_size': page_size,
            'total_pages': paginator.num_pages,
            'has_next': page_obj.has_next(),
            'has_previous': page_obj.has_previous(),
        }

    @staticmethod
    def pending_propagation(limit: int = 100):
        """Approved reports whose propagation has not finished."""
        return FlightReport.objects.filter(
            approval_status=FlightReport.ApprovalStatus.APPROVED,
            propagated_at__isnull=True
        ).order_by('reviewed_at')[:limit]

    # ==========================================================================
    # State Transitions
    # ==========================================================================

    @classmethod
    def decide_report(
        cls,
        report_id: uuid.UUID,
        identity,
        decision: str,
        comments: str = None
    ) -> PropagationSummary:
        """
        Approve or reject a pending report.

        Args:
            report_id: Report UUID
            identity: Caller identity, must be an admin
            decision: ``approve`` or ``reject``
            comments: Optional admin comments

        Returns:
            PropagationSummary (empty for rejections)

        Raises:
            PermissionDeniedError: If the caller is not an admin
            ValidationError: If the decision is unknown
            NotFoundError: If the report does not exist
            ConflictError: If the report is not pending
        """
        require_admin(identity, 'decide_report')

        decision = str(decision or '').lower()
        if decision not in DECISION_TARGETS:
            raise ValidationError(f"Unknown decision: {decision}", field='decision')
        target = DECISION_TARGETS[decision]

        updates = {
            'approval_status': target,
            'reviewed_at': timezone.now(),
            'reviewed_by': identity.pilot_id,
        }
        if comments is not None:
            updates['admin_comments'] = comments

        updated = FlightReport.objects.filter(
            id=report_id,
            approval_status=FlightReport.ApprovalStatus.PENDING
        ).update(**updates)

        if not updated:
            cls._raise_transition_failure(report_id, target)

        report = FlightReport.objects.get(id=report_id)
        logger.info(
            f"Report {report.id} {target} by admin {identity.pilot_id}",
            extra={
                'report_id': str(report.id),
                'pilot_id': str(report.pilot_id),
                'reviewed_by': str(identity.pilot_id),
                'decision': decision,
            }
        )

        if target == FlightReport.ApprovalStatus.REJECTED:
            notify_on_commit(EventType.REPORT_REJECTED, report.pilot_id, {
                'report_id': str(report.id),
                'comments': report.admin_comments,
            })
            return PropagationSummary(report_id=str(report.id), approval_status=report.approval_status)

        summary = PropagationPipeline.run(report)
        notify_on_commit(EventType.REPORT_APPROVED, report.pilot_id, {
            'report_id': str(report.id),
            'credits_earned': summary.credits_earned,
        })
        return summary

    @classmethod
    def reopen_report(cls, report_id: uuid.UUID, identity) -> FlightReport:
        """
        Move a rejected report back to pending.

        Has no other effect; propagation markers from an earlier approval
        stay in place.

        Raises:
            PermissionDeniedError: If the caller is not an admin
            NotFoundError: If the report does not exist
            ConflictError: If the report is not rejected
        """
        require_admin(identity, 'reopen_report')

        updated = FlightReport.objects.filter(
            id=report_id,
            approval_status=FlightReport.ApprovalStatus.REJECTED
        ).update(
            approval_status=FlightReport.ApprovalStatus.PENDING,
            reviewed_at=None,
            reviewed_by=None,
        )
        if not updated:
            cls._raise_transition_failure(report_id, FlightReport.ApprovalStatus.PENDING)

        logger.info(
            f"Report {report_id} reopened by admin {identity.pilot_id}",
            extra={'report_id': str(report_id), 'reviewed_by': str(identity.pilot_id)}
        )
        return FlightReport.objects.get(id=report_id)

    @staticmethod
    def _raise_transition_failure(report_id: uuid.UUID, target: str):
        current = FlightReport.objects.filter(id=report_id).values_list('approval_status', flat=True).first()
        if current is None:
            raise NotFoundError('FlightReport', report_id)
        raise ConflictError(
            f"Report is {current}, cannot move to {target}",
            current_state=current,
            target_state=target
        )

    # ==========================================================================
    # Corrections & Re-drive
    # ==========================================================================

    @classmethod
    def correct_report(cls, report_id: uuid.UUID, identity, fields: Dict[str, Any]) -> FlightReport:
        """
        Administrative correction of a report.

        Comment, route and alternate fields may always be edited. Flight
        metadata may only change while the report is not approved; the
        landing score is recomputed when the landing rate changes.

        Raises:
            PermissionDeniedError: If the caller is not an admin
            ValidationError: If a field is unknown or invalid
            ConflictError: If metadata of an approved report is edited
        """
        require_admin(identity, 'correct_report')
        report = cls.get_report(report_id)

        allowed = FlightReport.ADMIN_CORRECTION_FIELDS + FlightReport.METADATA_FIELDS
        unknown = set(fields) - set(allowed)
        if unknown:
            raise ValidationError(f"Fields cannot be corrected: {', '.join(sorted(unknown))}", field=sorted(unknown)[0])

        metadata = {name: value for name, value in fields.items() if name in FlightReport.METADATA_FIELDS}
        if metadata and report.approval_status == FlightReport.ApprovalStatus.APPROVED:
            raise ConflictError(
                "Flight data of an approved report cannot be changed",
                current_state=report.approval_status
            )

        changes: Dict[str, Any] = {}
        if metadata:
            merged = {name: getattr(report, name) for name in FlightReport.METADATA_FIELDS}
            merged.update(metadata)
            cleaned = IntakeService.validate(report.pilot, merged, check_session=False)
            for name in FlightReport.METADATA_FIELDS:
                if name in cleaned and getattr(report, name) != cleaned[name]:
                    changes[name] = cleaned[name]
            if 'landing_rate' in changes:
                changes['score'] = IntakeService.calculate_score(changes['landing_rate'])
        flight_data_changed = bool(changes)

        for name in FlightReport.ADMIN_CORRECTION_FIELDS:
            if name not in fields:
                continue
            value = fields[name] or ''
            if name == 'alternate_icao' and value:
                value = IntakeService.airport_field(value, 'alternate_icao')
            if getattr(report, name) != value:
                changes[name] = value

        changed = list(changes)
        if changes:
            rows = FlightReport.objects.filter(id=report.id)
            if flight_data_changed:
                # Flight data only changes while the report is still undecided or rejected.
                rows = rows.exclude(approval_status=FlightReport.ApprovalStatus.APPROVED)
            updated = rows.update(updated_at=timezone.now(), **changes)
            if not updated:
                current = (
                    FlightReport.objects.filter(id=report.id)
                    .values_list('approval_status', flat=True).first()
                )
                raise ConflictError(
                    "Flight data of an approved report cannot be changed",
                    current_state=current
                )
            report.refresh_from_db()
            logger.info(
                f"Report {report.id} corrected by admin {identity.pilot_id}",
                extra={'report_id': str(report.id), 'fields': changed}
            )
        return report

    @classmethod
    def redrive(cls, report_id: uuid.UUID, identity=None) -> PropagationSummary:
        """
        Re-run the missing propagation steps of an approved report.

        Raises:
            ConflictError: If the report is not approved
        """
        if identity is not None:
            require_admin(identity, 'redrive')
        report = cls.get_report(report_id)
        if report.approval_status != FlightReport.ApprovalStatus.APPROVED:
            raise ConflictError(
                "Only approved reports can be re-driven",
                current_state=report.approval_status
            )
        return PropagationPipeline.run(report)
