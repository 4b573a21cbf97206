# services/pirep-service/src/apps/tests/conftest.py
"""
Pytest Configuration and Fixtures

Shared fixtures for PIREP service tests.
"""

import uuid
from datetime import timedelta

import pytest
from django.utils import timezone


AIRPORTS = {
    'OLBA': 'Beirut Rafic Hariri International',
    'OERK': 'King Khalid International',
    'OMDB': 'Dubai International',
    'HECA': 'Cairo International',
    'OJAI': 'Queen Alia International',
    'OSDI': 'Damascus International',
    'LTFM': 'Istanbul Airport',
    'OBBI': 'Bahrain International',
}


# =============================================================================
# Event Capture
# =============================================================================

@pytest.fixture(autouse=True)
def published_events():
    """In-memory event publisher, emptied around each test."""
    from apps.core.events import event_publisher

    event_publisher.clear()
    yield event_publisher
    event_publisher.clear()


# =============================================================================
# Reference Data Fixtures
# =============================================================================

@pytest.fixture
def airports(db):
    """Create the airports used throughout the tests."""
    from apps.core.models import Airport

    return {
        icao: Airport.objects.create(icao=icao, name=name)
        for icao, name in AIRPORTS.items()
    }


@pytest.fixture
def ranks(db):
    """
    Rank ladder.

    Cadet is restricted to narrow-body and turboprop types; Senior Captain
    is a manual rank.
    """
    from apps.core.models import Rank

    return {
        'cadet': Rank.objects.create(
            name='Cadet', order=1,
            requirement_hours=0, requirement_flights=0,
            allowed_aircraft=['A320', 'B738', 'AT76'],
        ),
        'second_officer': Rank.objects.create(
            name='Second Officer', order=2,
            requirement_hours=50, requirement_flights=10,
        ),
        'first_officer': Rank.objects.create(
            name='First Officer', order=3,
            requirement_hours=150, requirement_flights=40,
        ),
        'captain': Rank.objects.create(
            name='Captain', order=4,
            requirement_hours=500, requirement_flights=150,
        ),
        'senior_captain': Rank.objects.create(
            name='Senior Captain', order=5,
            requirement_hours=1000, requirement_flights=300,
            auto_promote=False,
        ),
    }


# =============================================================================
# Pilot Fixtures
# =============================================================================

@pytest.fixture
def pilot(db, airports, ranks):
    """Active cadet pilot based at OLBA."""
    from apps.core.models import Pilot

    return Pilot.objects.create(
        pilot_code='VA001',
        first_name='Lina',
        last_name='Haddad',
        email='lina.haddad@example.com',
        rank=ranks['cadet'],
        current_location='OLBA',
        last_activity=timezone.now(),
    )


@pytest.fixture
def other_pilot(db, airports, ranks):
    from apps.core.models import Pilot

    return Pilot.objects.create(
        pilot_code='VA002',
        first_name='Omar',
        last_name='Khalil',
        email='omar.khalil@example.com',
        rank=ranks['cadet'],
        current_location='OLBA',
        last_activity=timezone.now(),
    )


@pytest.fixture
def admin_pilot(db, airports, ranks):
    from apps.core.models import Pilot

    return Pilot.objects.create(
        pilot_code='VA000',
        first_name='Sami',
        last_name='Nassar',
        email='ops@example.com',
        is_admin=True,
        rank=ranks['captain'],
        current_location='OLBA',
    )


@pytest.fixture
def pilot_identity(pilot):
    from shared.common.authentication import PilotIdentity
    return PilotIdentity(pilot.id, is_admin=False, pilot_code=pilot.pilot_code)


@pytest.fixture
def admin_identity(admin_pilot):
    from shared.common.authentication import PilotIdentity
    return PilotIdentity(admin_pilot.id, is_admin=True, pilot_code=admin_pilot.pilot_code)


@pytest.fixture
def set_totals():
    """Factory fixture for overwriting a pilot's cumulative statistics."""
    from apps.core.models import Pilot

    def _set_totals(pilot, **totals):
        Pilot.objects.filter(id=pilot.id).update(**totals)
        pilot.refresh_from_db()
        return pilot

    return _set_totals


# =============================================================================
# Report Fixtures
# =============================================================================

@pytest.fixture
def report_data():
    """Valid report payload: 90 minutes, 300 nm, smooth landing."""
    return {
        'flight_number': 'VA101',
        'callsign': 'VAA101',
        'departure_icao': 'OLBA',
        'arrival_icao': 'OMDB',
        'aircraft_type': 'A320',
        'flight_time': 90,
        'distance': 300,
        'fuel_used': 4200,
        'landing_rate': -180,
        'pax': 150,
        'cargo': 0,
        'route': 'KALDE UL620 ALPET',
    }


@pytest.fixture
def submit_report(pilot, report_data):
    """Factory fixture for filing reports through the intake service."""
    from apps.core.services import IntakeService

    def _submit(for_pilot=None, **overrides):
        return IntakeService.submit_report(
            (for_pilot or pilot).id,
            {**report_data, **overrides}
        )

    return _submit


@pytest.fixture
def pending_report(submit_report):
    return submit_report()


@pytest.fixture
def approve():
    """Approve a report as the given admin and return the summary."""
    from apps.core.services import ApprovalService, APPROVE

    def _approve(report, identity, comments=None):
        return ApprovalService.decide_report(report.id, identity, APPROVE, comments=comments)

    return _approve


# =============================================================================
# Progression Fixtures
# =============================================================================

@pytest.fixture
def award(db):
    from apps.core.models import Award
    return Award.objects.create(name='Levant Explorer', category='activity')


@pytest.fixture
def create_activity(db):
    """Factory fixture for activities with legs."""
    from apps.core.models import Activity, ActivityLeg

    def _create(legs, **overrides):
        now = timezone.now()
        fields = {
            'title': 'Levant Explorer',
            'start_date': now - timedelta(days=7),
            'end_date': now + timedelta(days=7),
            'reward_points': 500,
        }
        fields.update(overrides)
        activity = Activity.objects.create(**fields)
        for number, leg in enumerate(legs, start=1):
            ActivityLeg.objects.create(activity=activity, leg_number=number, **leg)
        return activity

    return _create


@pytest.fixture
def create_tour(db):
    """Factory fixture for tours with legs."""
    from apps.core.models import Tour, TourLeg

    def _create(legs, **overrides):
        fields = {'name': 'Gulf Circuit', 'reward_credits': 1000}
        fields.update(overrides)
        tour = Tour.objects.create(**fields)
        for number, (departure, arrival) in enumerate(legs, start=1):
            TourLeg.objects.create(
                tour=tour,
                leg_number=number,
                departure_icao=departure,
                arrival_icao=arrival,
            )
        return tour

    return _create


# =============================================================================
# API Client Fixtures
# =============================================================================

@pytest.fixture
def api_client():
    """Get DRF API test client."""
    from rest_framework.test import APIClient
    return APIClient()


def _client_for(pilot_id, is_admin=False, pilot_code=None):
    from rest_framework.test import APIClient
    from shared.common.authentication import JWTTokenGenerator

    client = APIClient()
    token = JWTTokenGenerator.generate_access_token(pilot_id, is_admin=is_admin, pilot_code=pilot_code)
    client.credentials(HTTP_AUTHORIZATION=f'Bearer {token}')
    return client


@pytest.fixture
def pilot_client(pilot):
    """API client authenticated as the pilot."""
    return _client_for(pilot.id, pilot_code=pilot.pilot_code)


@pytest.fixture
def other_pilot_client(other_pilot):
    return _client_for(other_pilot.id, pilot_code=other_pilot.pilot_code)


@pytest.fixture
def admin_client(admin_pilot):
    """API client authenticated as an administrator."""
    return _client_for(admin_pilot.id, is_admin=True, pilot_code=admin_pilot.pilot_code)


@pytest.fixture
def unknown_pilot_id():
    return uuid.uuid4()
