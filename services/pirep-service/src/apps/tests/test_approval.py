# services/pirep-service/src/apps/tests/test_approval.py
"""
Approval Tests

Tests for the report state machine and once-only propagation.
"""

import random
import uuid
from unittest import mock

import pytest

from apps.core.events import EventType
from apps.core.models import CreditTransaction, FlightReport, Pilot, PropagationStep
from apps.core.services import (
    ApprovalService,
    IntakeService,
    ConflictError,
    NotFoundError,
    PermissionDeniedError,
    ValidationError,
    APPROVE,
    REJECT,
    STEPS,
)
from apps.core.services.stats_service import StatsService


def totals(pilot):
    pilot.refresh_from_db()
    return (pilot.total_hours, pilot.total_flights, pilot.total_credits, pilot.landing_avg)


# =============================================================================
# Decisions
# =============================================================================

@pytest.mark.django_db
class TestDecideReport:
    """Tests for ApprovalService.decide_report."""

    def test_approve_propagates(self, pilot, pending_report, admin_identity, approve):
        summary = approve(pending_report, admin_identity, comments='Nice flight')

        pending_report.refresh_from_db()
        pilot.refresh_from_db()
        assert pending_report.approval_status == FlightReport.ApprovalStatus.APPROVED
        assert str(pending_report.reviewed_by) == admin_identity.pilot_id
        assert pending_report.admin_comments == 'Nice flight'
        assert pending_report.propagated_at is not None
        assert summary.propagated is True
        assert summary.applied_steps == list(STEPS)
        assert summary.failed_steps == []

        assert pilot.total_flights == 1
        assert pilot.total_hours == pytest.approx(1.5)
        assert pilot.landing_avg == pytest.approx(-180)
        assert pilot.current_location == 'OMDB'

    def test_reward_credited(self, pilot, pending_report, admin_identity, approve):
        summary = approve(pending_report, admin_identity)

        # 90 min * 10 + 300 nm * 5, full landing score
        assert summary.credits_earned == 2400
        pending_report.refresh_from_db()
        pilot.refresh_from_db()
        assert pending_report.credits_earned == 2400
        assert pilot.total_credits == 2400
        entry = CreditTransaction.objects.get(pilot=pilot)
        assert entry.kind == CreditTransaction.Kind.FLIGHT_REWARD
        assert entry.reference == f'report:{pending_report.id}:flight_reward'
        assert entry.balance_after == 2400

    def test_reject_has_no_side_effects(self, pilot, pending_report, admin_identity):
        before = totals(pilot)

        summary = ApprovalService.decide_report(pending_report.id, admin_identity, REJECT, comments='Wrong route')

        pending_report.refresh_from_db()
        assert pending_report.approval_status == FlightReport.ApprovalStatus.REJECTED
        assert pending_report.admin_comments == 'Wrong route'
        assert summary.applied_steps == []
        assert totals(pilot) == before
        assert not PropagationStep.objects.exists()

    def test_pilot_cannot_decide(self, pilot_identity, pending_report):
        with pytest.raises(PermissionDeniedError):
            ApprovalService.decide_report(pending_report.id, pilot_identity, APPROVE)

        pending_report.refresh_from_db()
        assert pending_report.approval_status == FlightReport.ApprovalStatus.PENDING

    def test_unknown_decision(self, pending_report, admin_identity):
        with pytest.raises(ValidationError):
            ApprovalService.decide_report(pending_report.id, admin_identity, 'maybe')

    def test_unknown_report(self, admin_identity):
        with pytest.raises(NotFoundError):
            ApprovalService.decide_report(uuid.uuid4(), admin_identity, APPROVE)

    def test_second_approval_conflicts_and_changes_nothing(self, pilot, pending_report, admin_identity, approve):
        approve(pending_report, admin_identity)
        after_first = totals(pilot)

        with pytest.raises(ConflictError) as exc_info:
            approve(pending_report, admin_identity)

        assert exc_info.value.details['current_state'] == FlightReport.ApprovalStatus.APPROVED
        assert totals(pilot) == after_first
        assert CreditTransaction.objects.filter(pilot=pilot).count() == 1

    def test_reject_after_approve_conflicts(self, pending_report, admin_identity, approve):
        approve(pending_report, admin_identity)

        with pytest.raises(ConflictError):
            ApprovalService.decide_report(pending_report.id, admin_identity, REJECT)

    def test_approval_events(
        self, pilot, pending_report, admin_identity, approve, published_events,
        django_capture_on_commit_callbacks
    ):
        with django_capture_on_commit_callbacks(execute=True):
            approve(pending_report, admin_identity)

        events = published_events.events_of(EventType.REPORT_APPROVED)
        assert len(events) == 1
        assert events[0].pilot_id == str(pilot.id)
        assert events[0].payload['credits_earned'] == 2400

    def test_publish_failure_does_not_undo_approval(
        self, pending_report, admin_identity, approve, published_events,
        django_capture_on_commit_callbacks
    ):
        with mock.patch.object(published_events, 'published') as published:
            published.append.side_effect = RuntimeError('broker down')
            with django_capture_on_commit_callbacks(execute=True):
                summary = approve(pending_report, admin_identity)

        pending_report.refresh_from_db()
        assert summary.propagated is True
        assert pending_report.approval_status == FlightReport.ApprovalStatus.APPROVED


# =============================================================================
# Reopen
# =============================================================================

@pytest.mark.django_db
class TestReopenReport:
    """Tests for ApprovalService.reopen_report."""

    def test_reopen_rejected(self, pending_report, admin_identity):
        ApprovalService.decide_report(pending_report.id, admin_identity, REJECT)

        report = ApprovalService.reopen_report(pending_report.id, admin_identity)

        assert report.approval_status == FlightReport.ApprovalStatus.PENDING
        assert report.reviewed_at is None

    def test_reopen_pending_conflicts(self, pending_report, admin_identity):
        with pytest.raises(ConflictError):
            ApprovalService.reopen_report(pending_report.id, admin_identity)

    def test_reopen_approved_conflicts(self, pending_report, admin_identity, approve):
        approve(pending_report, admin_identity)

        with pytest.raises(ConflictError):
            ApprovalService.reopen_report(pending_report.id, admin_identity)

    def test_reject_reopen_approve(self, pilot, pending_report, admin_identity, approve):
        ApprovalService.decide_report(pending_report.id, admin_identity, REJECT)
        ApprovalService.reopen_report(pending_report.id, admin_identity)

        summary = approve(pending_report, admin_identity)

        assert summary.propagated is True
        assert totals(pilot)[1] == 1

    def test_approved_report_cannot_be_propagated_twice(self, pilot, pending_report, admin_identity, approve):
        """Even if a report is forced back to pending, markers stop a second propagation."""
        approve(pending_report, admin_identity)
        after_first = totals(pilot)

        FlightReport.objects.filter(id=pending_report.id).update(
            approval_status=FlightReport.ApprovalStatus.PENDING
        )
        summary = approve(pending_report, admin_identity)

        assert summary.applied_steps == []
        assert summary.skipped_steps == list(STEPS)
        assert totals(pilot) == after_first


# =============================================================================
# Random Transition Sequences
# =============================================================================

@pytest.mark.django_db
class TestTransitionSequences:
    """Random decision sequences never apply a report more than once."""

    @pytest.mark.parametrize('seed', range(8))
    def test_random_sequence(self, seed, pilot, submit_report, admin_identity):
        rng = random.Random(seed)
        reports = [submit_report(flight_number=f'VA{100 + i}') for i in range(3)]
        operations = ('approve', 'reject', 'reopen')

        for _ in range(25):
            report = rng.choice(reports)
            operation = rng.choice(operations)
            try:
                if operation == 'reopen':
                    ApprovalService.reopen_report(report.id, admin_identity)
                else:
                    ApprovalService.decide_report(report.id, admin_identity, operation)
            except ConflictError:
                pass

        approved = FlightReport.objects.filter(
            id__in=[r.id for r in reports],
            approval_status=FlightReport.ApprovalStatus.APPROVED
        ).count()
        pilot.refresh_from_db()

        assert pilot.total_flights == approved
        assert pilot.total_hours == pytest.approx(1.5 * approved)
        assert pilot.total_credits == 2400 * approved
        for report in reports:
            assert PropagationStep.objects.filter(report=report).count() in (0, len(STEPS))


# =============================================================================
# Corrections
# =============================================================================

@pytest.mark.django_db
class TestCorrectReport:
    """Tests for ApprovalService.correct_report."""

    def test_correct_pending_metadata_rescores(self, pending_report, admin_identity):
        report = ApprovalService.correct_report(
            pending_report.id, admin_identity, {'landing_rate': -450, 'flight_time': 120}
        )

        assert report.landing_rate == -450
        assert report.score == 60
        assert report.flight_time == 120

    def test_correct_validates(self, pending_report, admin_identity):
        with pytest.raises(ValidationError) as exc_info:
            ApprovalService.correct_report(pending_report.id, admin_identity, {'arrival_icao': 'ZZZZ'})

        assert exc_info.value.field == 'arrival_icao'

    def test_unknown_field(self, pending_report, admin_identity):
        with pytest.raises(ValidationError):
            ApprovalService.correct_report(pending_report.id, admin_identity, {'score': 100})

    def test_approved_metadata_is_frozen(self, pending_report, admin_identity, approve):
        approve(pending_report, admin_identity)

        with pytest.raises(ConflictError):
            ApprovalService.correct_report(pending_report.id, admin_identity, {'flight_time': 500})

    def test_approval_during_correction_keeps_flight_data(self, pilot, pending_report, admin_identity, approve):
        validate = IntakeService.validate

        def approve_then_validate(*args, **kwargs):
            approve(pending_report, admin_identity)
            return validate(*args, **kwargs)

        with mock.patch.object(IntakeService, 'validate', side_effect=approve_then_validate):
            with pytest.raises(ConflictError) as exc_info:
                ApprovalService.correct_report(pending_report.id, admin_identity, {'flight_time': 600})

        pending_report.refresh_from_db()
        pilot.refresh_from_db()
        assert exc_info.value.details['current_state'] == FlightReport.ApprovalStatus.APPROVED
        assert pending_report.flight_time == 90
        assert pilot.total_hours == pytest.approx(1.5)

    def test_rejected_metadata_editable(self, pending_report, admin_identity):
        ApprovalService.decide_report(pending_report.id, admin_identity, REJECT)

        report = ApprovalService.correct_report(pending_report.id, admin_identity, {'flight_time': 95})

        assert report.flight_time == 95

    def test_approved_comments_editable(self, pending_report, admin_identity, approve):
        approve(pending_report, admin_identity)

        report = ApprovalService.correct_report(
            pending_report.id, admin_identity, {'admin_comments': 'Checked', 'alternate_icao': 'oerk'}
        )

        assert report.admin_comments == 'Checked'
        assert report.alternate_icao == 'OERK'

    def test_pilot_cannot_correct(self, pending_report, pilot_identity):
        with pytest.raises(PermissionDeniedError):
            ApprovalService.correct_report(pending_report.id, pilot_identity, {'comments': 'x'})


# =============================================================================
# Visibility & Listing
# =============================================================================

@pytest.mark.django_db
class TestReportQueries:

    def test_pilot_sees_own_report(self, pending_report, pilot_identity):
        assert ApprovalService.get_report(pending_report.id, pilot_identity).id == pending_report.id

    def test_pilot_cannot_see_other_report(self, pending_report, other_pilot):
        from shared.common.authentication import PilotIdentity

        with pytest.raises(NotFoundError):
            ApprovalService.get_report(pending_report.id, PilotIdentity(other_pilot.id))

    def test_list_filters(self, submit_report, other_pilot, admin_identity):
        submit_report(flight_number='VA200')
        submit_report(flight_number='VA201')
        submit_report(for_pilot=other_pilot, flight_number='VA300')

        everything = ApprovalService.list_reports()
        own = ApprovalService.list_reports(pilot_id=other_pilot.id)
        searched = ApprovalService.list_reports(search='VA20')

        assert everything['total'] == 3
        assert own['total'] == 1
        assert searched['total'] == 2

    def test_list_pagination(self, submit_report):
        for i in range(5):
            submit_report(flight_number=f'VA{400 + i}')

        result = ApprovalService.list_reports(page=2, page_size=2)

        assert result['total'] == 5
        assert result['total_pages'] == 3
        assert len(result['reports']) == 2
        assert result['has_next'] and result['has_previous']


# =============================================================================
# Failed Steps & Re-drive
# =============================================================================

@pytest.mark.django_db
class TestRedrive:
    """A failing step is logged and finished later without repeating the others."""

    def test_failed_step_then_redrive(self, pilot, pending_report, admin_identity, approve):
        with mock.patch.object(StatsService, 'apply_flight_reward', side_effect=RuntimeError('ledger down')):
            summary = approve(pending_report, admin_identity)

        pending_report.refresh_from_db()
        pilot.refresh_from_db()
        assert pending_report.approval_status == FlightReport.ApprovalStatus.APPROVED
        assert pending_report.propagated_at is None
        assert summary.failed_steps == ['flight_reward']
        assert summary.propagated is False
        assert pilot.total_flights == 1
        assert pilot.total_credits == 0

        redriven = ApprovalService.redrive(pending_report.id, admin_identity)

        pending_report.refresh_from_db()
        pilot.refresh_from_db()
        assert redriven.applied_steps == ['flight_reward']
        assert 'pilot_stats' in redriven.skipped_steps
        assert redriven.propagated is True
        assert pending_report.propagated_at is not None
        assert pilot.total_flights == 1
        assert pilot.total_credits == 2400

    def test_rank_waits_for_stats(self, pilot, pending_report, admin_identity, approve):
        with mock.patch.object(StatsService, 'apply_report', side_effect=RuntimeError('db hiccup')):
            summary = approve(pending_report, admin_identity)

        assert 'pilot_stats' in summary.failed_steps
        assert 'rank' in summary.failed_steps
        assert not PropagationStep.objects.filter(report=pending_report, step='rank').exists()

        redriven = ApprovalService.redrive(pending_report.id)

        assert redriven.applied_steps == ['pilot_stats', 'rank']
        assert redriven.propagated is True
        assert Pilot.objects.get(id=pilot.id).total_flights == 1

    def test_redrive_pending_conflicts(self, pending_report, admin_identity):
        with pytest.raises(ConflictError):
            ApprovalService.redrive(pending_report.id, admin_identity)

    def test_redrive_complete_report_is_noop(self, pilot, pending_report, admin_identity, approve):
        approve(pending_report, admin_identity)
        before = totals(pilot)

        summary = ApprovalService.redrive(pending_report.id, admin_identity)

        assert summary.applied_steps == []
        assert totals(pilot) == before
