# services/pirep-service/src/apps/tests/test_progress.py
"""
Activity and Tour Progress Tests
"""

import uuid
from datetime import timedelta

import pytest
from django.utils import timezone

from apps.core.events import EventType
from apps.core.models import (
    ActivityProgress,
    CreditTransaction,
    FlightReport,
    PilotAward,
    TourLeg,
    TourProgress,
)
from apps.core.services import (
    ActivityService,
    ConflictError,
    NotFoundError,
    TourService,
)


def approved(report):
    """Mark a report approved without running propagation."""
    FlightReport.objects.filter(id=report.id).update(approval_status=FlightReport.ApprovalStatus.APPROVED)
    report.refresh_from_db()
    return report


# =============================================================================
# Activity Matching
# =============================================================================

@pytest.mark.django_db
class TestActivityMatching:
    """Tests for ActivityService.match_report."""

    def test_leg_advances_progress(self, pilot, submit_report, create_activity):
        activity = create_activity([
            {'departure_icao': 'OLBA', 'arrival_icao': 'OMDB'},
            {'departure_icao': 'OMDB', 'arrival_icao': 'OLBA'},
        ])

        advanced = ActivityService.match_report(approved(submit_report()))

        progress = ActivityProgress.objects.get(pilot=pilot, activity=activity)
        assert advanced == [str(activity.id)]
        assert progress.legs_complete == 1
        assert progress.percent_complete == pytest.approx(50)
        assert progress.date_complete is None

    def test_unset_leg_fields_match_anything(self, pilot, submit_report, create_activity):
        activity = create_activity([{'arrival_icao': 'OMDB'}])

        advanced = ActivityService.match_report(approved(submit_report(departure_icao='HECA')))

        assert advanced == [str(activity.id)]

    def test_flight_number_and_aircraft_must_match(self, submit_report, create_activity):
        create_activity([{'flight_number': 'VA999', 'aircraft': 'B738'}])

        assert ActivityService.match_report(approved(submit_report())) == []
        assert ActivityService.match_report(
            approved(submit_report(flight_number='va999', aircraft_type='B738'))
        ) != []

    def test_same_leg_counts_once(self, pilot, submit_report, create_activity):
        activity = create_activity([
            {'departure_icao': 'OLBA', 'arrival_icao': 'OMDB'},
            {'departure_icao': 'OMDB', 'arrival_icao': 'OLBA'},
        ])

        ActivityService.match_report(approved(submit_report()))
        second = ActivityService.match_report(approved(submit_report()))

        assert second == []
        assert ActivityProgress.objects.get(pilot=pilot, activity=activity).legs_complete == 1

    def test_in_order_requires_next_leg(self, pilot, submit_report, create_activity):
        activity = create_activity(
            [
                {'departure_icao': 'OLBA', 'arrival_icao': 'OMDB'},
                {'departure_icao': 'OMDB', 'arrival_icao': 'HECA'},
            ],
            legs_in_order=True,
        )

        out_of_order = ActivityService.match_report(
            approved(submit_report(departure_icao='OMDB', arrival_icao='HECA'))
        )
        assert out_of_order == []
        assert not ActivityProgress.objects.filter(pilot=pilot, activity=activity).exists()

        ActivityService.match_report(approved(submit_report()))
        ActivityService.match_report(approved(submit_report(departure_icao='OMDB', arrival_icao='HECA')))

        progress = ActivityProgress.objects.get(pilot=pilot, activity=activity)
        assert progress.legs_complete == 2
        assert progress.date_complete is not None

    def test_any_order_accepts_later_leg_first(self, pilot, submit_report, create_activity):
        activity = create_activity([
            {'departure_icao': 'OLBA', 'arrival_icao': 'OMDB'},
            {'departure_icao': 'OMDB', 'arrival_icao': 'HECA'},
        ])

        advanced = ActivityService.match_report(
            approved(submit_report(departure_icao='OMDB', arrival_icao='HECA'))
        )

        progress = ActivityProgress.objects.get(pilot=pilot, activity=activity)
        assert advanced == [str(activity.id)]
        assert progress.legs_complete == 1
        assert list(progress.completions.values_list('leg__leg_number', flat=True)) == [2]

        ActivityService.match_report(approved(submit_report()))

        progress.refresh_from_db()
        assert progress.legs_complete == 2
        assert progress.date_complete is not None

    def test_three_legs_in_order_complete_and_replay(self, pilot, submit_report, create_activity, award):
        legs = [('OLBA', 'OMDB'), ('OMDB', 'HECA'), ('HECA', 'OLBA')]
        activity = create_activity(
            [{'departure_icao': departure, 'arrival_icao': arrival} for departure, arrival in legs],
            legs_in_order=True,
            reward_award=award,
        )

        percents = []
        for departure, arrival in legs:
            ActivityService.match_report(approved(submit_report(departure_icao=departure, arrival_icao=arrival)))
            percents.append(ActivityProgress.objects.get(pilot=pilot, activity=activity).percent_complete)

        replayed = [
            ActivityService.match_report(approved(submit_report(departure_icao=departure, arrival_icao=arrival)))
            for departure, arrival in legs
        ]

        progress = ActivityProgress.objects.get(pilot=pilot, activity=activity)
        assert percents == [pytest.approx(100 / 3), pytest.approx(200 / 3), pytest.approx(100)]
        assert replayed == [[], [], []]
        assert progress.legs_complete == 3
        assert progress.date_complete is not None
        assert PilotAward.objects.filter(pilot=pilot, award=award).count() == 1
        assert CreditTransaction.objects.filter(kind=CreditTransaction.Kind.ACTIVITY_REWARD).count() == 1

    def test_completion_pays_once(self, pilot, submit_report, create_activity, award):
        activity = create_activity([{'arrival_icao': 'OMDB'}], reward_points=500, reward_award=award)

        ActivityService.match_report(approved(submit_report()))
        ActivityService.match_report(approved(submit_report()))

        pilot.refresh_from_db()
        activity.refresh_from_db()
        progress = ActivityProgress.objects.get(pilot=pilot, activity=activity)
        assert pilot.total_credits == 500
        assert CreditTransaction.objects.filter(kind=CreditTransaction.Kind.ACTIVITY_REWARD).count() == 1
        assert PilotAward.objects.filter(pilot=pilot, award=award).count() == 1
        assert progress.legs_complete == 1
        assert progress.percent_complete == 100
        assert progress.days_to_complete == 0
        assert activity.total_pilots_complete == 1
        assert activity.first_pilot_to_complete_id == pilot.id

    def test_completion_event(
        self, pilot, submit_report, create_activity, published_events,
        django_capture_on_commit_callbacks
    ):
        activity = create_activity([{'arrival_icao': 'OMDB'}])

        with django_capture_on_commit_callbacks(execute=True):
            ActivityService.match_report(approved(submit_report()))

        events = published_events.events_of(EventType.ACTIVITY_COMPLETED)
        assert len(events) == 1
        assert events[0].payload['activity_id'] == str(activity.id)

    def test_window_checked_at_submission(self, submit_report, create_activity):
        create_activity([{'arrival_icao': 'OMDB'}])
        report = submit_report()
        FlightReport.objects.filter(id=report.id).update(submitted_at=timezone.now() - timedelta(days=30))

        assert ActivityService.match_report(approved(report)) == []

    def test_closed_and_inactive_activities_ignored(self, submit_report, create_activity):
        create_activity([{'arrival_icao': 'OMDB'}], end_date=timezone.now() - timedelta(days=1))
        create_activity([{'arrival_icao': 'OMDB'}], active=False)

        assert ActivityService.match_report(approved(submit_report())) == []

    def test_min_rank(self, pilot, ranks, submit_report, create_activity, set_totals):
        activity = create_activity([{'arrival_icao': 'OMDB'}], min_rank=ranks['second_officer'])

        assert ActivityService.match_report(approved(submit_report())) == []

        set_totals(pilot, rank=ranks['first_officer'])
        assert ActivityService.match_report(approved(submit_report())) == [str(activity.id)]

    def test_activity_without_legs(self, submit_report, create_activity):
        create_activity([])

        assert ActivityService.match_report(approved(submit_report())) == []

    def test_propagation_runs_activity_step(self, pilot, pending_report, create_activity, admin_identity, approve):
        activity = create_activity([{'departure_icao': 'OLBA', 'arrival_icao': 'OMDB'}], reward_points=300)

        summary = approve(pending_report, admin_identity)

        pilot.refresh_from_db()
        assert summary.activities_advanced == [str(activity.id)]
        assert pilot.total_credits == 2400 + 300


# =============================================================================
# Activity Progress Query
# =============================================================================

@pytest.mark.django_db
class TestActivityProgress:
    """Tests for ActivityService.get_activity_progress."""

    def test_not_enrolled(self, pilot, create_activity):
        activity = create_activity([{'arrival_icao': 'OMDB'}, {'arrival_icao': 'OLBA'}])

        snapshot = ActivityService.get_activity_progress(pilot.id, activity.id)

        assert snapshot.enrolled is False
        assert snapshot.total_legs == 2
        assert snapshot.legs_complete == 0
        assert snapshot.next_leg_number == 1

    def test_partial(self, pilot, submit_report, create_activity):
        activity = create_activity([{'arrival_icao': 'HECA'}, {'arrival_icao': 'OMDB'}])
        ActivityService.match_report(approved(submit_report()))

        snapshot = ActivityService.get_activity_progress(pilot.id, activity.id)

        assert snapshot.enrolled is True
        assert snapshot.completed_leg_numbers == [2]
        assert snapshot.next_leg_number == 1
        assert snapshot.to_dict()['is_complete'] is False

    def test_unknown_activity(self, pilot):
        with pytest.raises(NotFoundError):
            ActivityService.get_activity_progress(pilot.id, uuid.uuid4())


# =============================================================================
# Tours
# =============================================================================

@pytest.mark.django_db
class TestTours:
    """Tests for TourService."""

    @pytest.fixture
    def tour(self, create_tour):
        return create_tour([('OLBA', 'OMDB'), ('OMDB', 'OBBI'), ('OBBI', 'OLBA')], reward_credits=1000)

    def test_start(self, pilot, tour):
        progress = TourService.start_tour(pilot.id, tour.id)

        assert progress.status == TourProgress.Status.IN_PROGRESS
        assert progress.current_leg == 1

    def test_start_twice_conflicts(self, pilot, tour):
        TourService.start_tour(pilot.id, tour.id)

        with pytest.raises(ConflictError):
            TourService.start_tour(pilot.id, tour.id)

    def test_start_unknown_tour(self, pilot):
        with pytest.raises(NotFoundError):
            TourService.start_tour(pilot.id, uuid.uuid4())

    def test_only_current_leg_matches(self, pilot, tour, submit_report):
        TourService.start_tour(pilot.id, tour.id)

        skipped = TourService.match_report(approved(submit_report(departure_icao='OMDB', arrival_icao='OBBI')))
        flown = TourService.match_report(approved(submit_report()))

        progress = TourProgress.objects.get(pilot=pilot, tour=tour)
        assert skipped == []
        assert flown == [str(tour.id)]
        assert progress.current_leg == 2

    def test_leg_numbers_with_gaps(self, pilot, create_tour, submit_report):
        tour = create_tour([])
        for number, (departure, arrival) in zip((0, 10, 20), (('OLBA', 'OMDB'), ('OMDB', 'OBBI'), ('OBBI', 'OLBA'))):
            TourLeg.objects.create(tour=tour, leg_number=number, departure_icao=departure, arrival_icao=arrival)
        TourService.start_tour(pilot.id, tour.id)

        for departure, arrival in (('OLBA', 'OMDB'), ('OMDB', 'OBBI'), ('OBBI', 'OLBA')):
            TourService.match_report(approved(submit_report(departure_icao=departure, arrival_icao=arrival)))

        progress = TourProgress.objects.get(pilot=pilot, tour=tour)
        assert progress.status == TourProgress.Status.COMPLETED
        assert list(progress.legs_completed.values_list('leg_number', flat=True)) == [0, 10, 20]

    def test_aircraft_restriction(self, pilot, create_tour, submit_report):
        tour = create_tour([('OLBA', 'OMDB')])
        tour.legs.update(aircraft_types=['AT76'])
        TourService.start_tour(pilot.id, tour.id)

        assert TourService.match_report(approved(submit_report())) == []
        assert TourService.match_report(approved(submit_report(aircraft_type='AT76'))) == [str(tour.id)]

    def test_completion_pays_once(self, pilot, tour, submit_report, published_events, django_capture_on_commit_callbacks):
        TourService.start_tour(pilot.id, tour.id)

        with django_capture_on_commit_callbacks(execute=True):
            for departure, arrival in (('OLBA', 'OMDB'), ('OMDB', 'OBBI'), ('OBBI', 'OLBA')):
                TourService.match_report(approved(submit_report(departure_icao=departure, arrival_icao=arrival)))
            again = TourService.match_report(approved(submit_report()))

        progress = TourProgress.objects.get(pilot=pilot, tour=tour)
        pilot.refresh_from_db()
        assert again == []
        assert progress.status == TourProgress.Status.COMPLETED
        assert progress.completed_at is not None
        assert pilot.total_credits == 1000
        assert len(published_events.events_of(EventType.TOUR_COMPLETED)) == 1

    def test_abandon_and_restart(self, pilot, tour, submit_report):
        TourService.start_tour(pilot.id, tour.id)
        TourService.match_report(approved(submit_report()))

        abandoned = TourService.abandon_tour(pilot.id, tour.id)
        assert abandoned.status == TourProgress.Status.ABANDONED
        assert TourService.match_report(approved(submit_report(departure_icao='OMDB', arrival_icao='OBBI'))) == []

        restarted = TourService.start_tour(pilot.id, tour.id)
        assert restarted.status == TourProgress.Status.IN_PROGRESS
        assert restarted.current_leg == 1
        assert restarted.legs_completed.count() == 0

    def test_abandon_not_started(self, pilot, tour):
        with pytest.raises(NotFoundError):
            TourService.abandon_tour(pilot.id, tour.id)

    def test_abandon_completed_conflicts(self, pilot, create_tour, submit_report):
        tour = create_tour([('OLBA', 'OMDB')])
        TourService.start_tour(pilot.id, tour.id)
        TourService.match_report(approved(submit_report()))

        with pytest.raises(ConflictError):
            TourService.abandon_tour(pilot.id, tour.id)

    def test_completed_tour_cannot_restart(self, pilot, create_tour, submit_report):
        tour = create_tour([('OLBA', 'OMDB')])
        TourService.start_tour(pilot.id, tour.id)
        TourService.match_report(approved(submit_report()))

        with pytest.raises(ConflictError):
            TourService.start_tour(pilot.id, tour.id)

    def test_list_tours(self, pilot, tour, create_tour):
        create_tour([('HECA', 'OJAI')], name='Nile Hop')
        TourService.start_tour(pilot.id, tour.id)

        entries = TourService.list_tours(pilot.id)

        by_name = {entry['tour'].name: entry['progress'] for entry in entries}
        assert by_name['Gulf Circuit'].current_leg == 1
        assert by_name['Nile Hop'] is None
