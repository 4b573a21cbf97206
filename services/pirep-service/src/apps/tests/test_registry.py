# services/pirep-service/src/apps/tests/test_registry.py
"""
Flight Registry Tests

Live sessions, bids and their expiry.
"""

import uuid
from datetime import timedelta

import pytest
from django.utils import timezone

from apps.core.models import ActiveFlightSession, Bid
from apps.core.services import FlightRegistry, LeaderboardService, NotFoundError, ValidationError


def age(session, minutes):
    ActiveFlightSession.objects.filter(id=session.id).update(
        last_update=timezone.now() - timedelta(minutes=minutes)
    )


# =============================================================================
# Live Sessions
# =============================================================================

@pytest.mark.django_db
class TestLiveSessions:
    """Tests for the live session registry."""

    def test_telemetry_upserts(self, pilot):
        FlightRegistry.record_telemetry(pilot.id, {'callsign': 'vaa101', 'altitude': 1000})
        session = FlightRegistry.record_telemetry(pilot.id, {'callsign': 'VAA101', 'altitude': 35000.4, 'heading': 92})

        assert ActiveFlightSession.objects.count() == 1
        assert session.altitude == 35000
        assert session.heading == 92

    def test_callsign_required(self, pilot):
        with pytest.raises(ValidationError):
            FlightRegistry.record_telemetry(pilot.id, {'altitude': 1000})

    def test_malformed_value(self, pilot):
        with pytest.raises(ValidationError) as exc_info:
            FlightRegistry.record_telemetry(pilot.id, {'callsign': 'VAA101', 'latitude': 'north'})

        assert exc_info.value.field == 'latitude'

    def test_unknown_pilot(self, db):
        with pytest.raises(NotFoundError):
            FlightRegistry.record_telemetry(uuid.uuid4(), {'callsign': 'VAA101'})

    def test_stale_session_not_listed(self, pilot, other_pilot):
        stale = FlightRegistry.start_flight(pilot.id, {'callsign': 'VAA101'})
        FlightRegistry.start_flight(other_pilot.id, {'callsign': 'VAA202'})
        age(stale, 11)

        active = FlightRegistry.active_flights()

        assert [session.callsign for session in active] == ['VAA202']
        assert FlightRegistry.get_session(pilot.id) is None
        assert not FlightRegistry.is_flying(pilot.id)
        assert FlightRegistry.flying_pilot_ids() == {other_pilot.id}

    def test_session_within_ttl_listed(self, pilot):
        session = FlightRegistry.start_flight(pilot.id, {'callsign': 'VAA101'})
        age(session, 9)

        assert FlightRegistry.is_flying(pilot.id, 'VAA101')

    def test_telemetry_after_expiry_starts_fresh(self, pilot):
        session = FlightRegistry.start_flight(pilot.id, {'callsign': 'VAA101', 'status': 'cruise'})
        age(session, 30)

        fresh = FlightRegistry.record_telemetry(pilot.id, {'callsign': 'VAA101'})

        assert fresh.id != session.id
        assert fresh.status == 'preflight'

    def test_end_flight(self, pilot):
        FlightRegistry.start_flight(pilot.id, {'callsign': 'VAA101'})

        assert FlightRegistry.end_flight(pilot.id, 'vaa101') == 1
        assert FlightRegistry.end_flight(pilot.id) == 0


# =============================================================================
# Bids
# =============================================================================

@pytest.mark.django_db
class TestBids:
    """Tests for route bids."""

    @pytest.fixture
    def bid_data(self):
        return {'callsign': 'VAA101', 'departure_icao': 'olba', 'arrival_icao': 'OMDB', 'aircraft_type': 'a320'}

    def test_create_bid(self, pilot, bid_data):
        bid = FlightRegistry.create_bid(pilot.id, bid_data)

        assert bid.departure_icao == 'OLBA'
        assert bid.aircraft_type == 'A320'
        assert bid.expires_at > timezone.now() + timedelta(hours=23)
        assert FlightRegistry.get_active_bid(pilot.id) == bid

    def test_new_bid_cancels_previous(self, pilot, bid_data):
        first = FlightRegistry.create_bid(pilot.id, bid_data)
        second = FlightRegistry.create_bid(pilot.id, {**bid_data, 'arrival_icao': 'HECA'})

        first.refresh_from_db()
        assert first.status == Bid.Status.CANCELLED
        assert FlightRegistry.get_active_bid(pilot.id) == second

    def test_unknown_airport(self, pilot, bid_data):
        with pytest.raises(ValidationError) as exc_info:
            FlightRegistry.create_bid(pilot.id, {**bid_data, 'arrival_icao': 'ZZZZ'})

        assert exc_info.value.field == 'arrival_icao'

    def test_expired_bid_hidden(self, pilot, bid_data):
        bid = FlightRegistry.create_bid(pilot.id, bid_data)
        Bid.objects.filter(id=bid.id).update(expires_at=timezone.now() - timedelta(seconds=1))

        assert FlightRegistry.get_active_bid(pilot.id) is None
        assert FlightRegistry.complete_bid(pilot.id, 'OLBA', 'OMDB') is False

    def test_cancel_bid(self, pilot, bid_data):
        FlightRegistry.create_bid(pilot.id, bid_data)

        assert FlightRegistry.cancel_bid(pilot.id) == 1
        assert FlightRegistry.get_active_bid(pilot.id) is None


# =============================================================================
# Sweeper
# =============================================================================

@pytest.mark.django_db
class TestSweepExpired:

    def test_sweep_removes_only_expired(self, pilot, other_pilot):
        stale = FlightRegistry.start_flight(pilot.id, {'callsign': 'VAA101'})
        FlightRegistry.start_flight(other_pilot.id, {'callsign': 'VAA202'})
        age(stale, 15)
        Bid.objects.create(
            pilot=pilot, callsign='VAA101', departure_icao='OLBA', arrival_icao='OMDB',
            expires_at=timezone.now() - timedelta(hours=1),
        )
        Bid.objects.create(pilot=other_pilot, callsign='VAA202', departure_icao='OLBA', arrival_icao='HECA')

        result = FlightRegistry.sweep_expired()

        assert result == {'sessions': 1, 'bids': 1}
        assert ActiveFlightSession.objects.count() == 1
        assert Bid.objects.count() == 1


# =============================================================================
# Leaderboard
# =============================================================================

@pytest.mark.django_db
class TestLeaderboard:

    def test_ordered_by_hours_with_live_flag(self, pilot, other_pilot, set_totals):
        set_totals(pilot, total_hours=12.34, total_flights=8, landing_avg=-212.6)
        set_totals(other_pilot, total_hours=40, total_flights=20)
        FlightRegistry.start_flight(pilot.id, {'callsign': 'VAA101'})

        board = LeaderboardService.top_pilots()

        assert [entry['pilot_code'] for entry in board] == ['VA002', 'VA001']
        assert board[0]['position'] == 1
        assert board[1]['total_hours'] == 12.3
        assert board[1]['landing_avg'] == -213
        assert board[1]['is_flying'] is True
        assert board[0]['is_flying'] is False

    def test_inactive_pilots_excluded(self, pilot, other_pilot, set_totals):
        set_totals(other_pilot, status='inactive', total_hours=99)

        board = LeaderboardService.top_pilots(limit=10)

        assert [entry['pilot_code'] for entry in board] == ['VA001']
