"""
Intake Service

Validates submitted flight metrics and stores the report as pending.
"""

import math
import uuid
import logging
from typing import Any, Dict

from django.utils import timezone

from ..conf import pirep_setting
from ..events import EventType, notify_on_commit
from ..models import FlightReport, Pilot
from .exceptions import NotFoundError, ValidationError
from .reference import ReferenceLookup
from .registry_service import FlightRegistry

logger = logging.getLogger(__name__)


class IntakeService:
    """PIREP intake and validation."""

    @staticmethod
    def calculate_score(landing_rate: float) -> int:
        """
        Landing score from touchdown rate.

        100 up to the soft threshold, then a quadratic penalty on the excess,
        never below zero.
        """
        excess = abs(landing_rate) - pirep_setting('LANDING_SOFT_THRESHOLD_FPM')
        if excess <= 0:
            return 100
        penalty = excess ** 2 / pirep_setting('LANDING_PENALTY_DIVISOR')
        return max(0, int(round(100 - penalty)))

    @classmethod
    def submit_report(cls, pilot_id: uuid.UUID, data: Dict[str, Any]) -> FlightReport:
        """
        Validate and store a flight report.

        Args:
            pilot_id: Filing pilot
            data: Flight metadata and metrics

        Returns:
            The pending FlightReport

        Raises:
            NotFoundError: If the pilot does not exist
            ValidationError: Naming the first field that failed
        """
        pilot = Pilot.objects.select_related('rank').filter(id=pilot_id).first()
        if pilot is None:
            raise NotFoundError('Pilot', pilot_id)

        cleaned = cls.validate(pilot, data)
        cleaned['score'] = cls.calculate_score(cleaned['landing_rate'])

        report = FlightReport.objects.create(
            pilot=pilot,
            pilot_name=pilot.full_name,
            **cleaned
        )

        # The flight is over: drop the live session and close the bid.
        FlightRegistry.end_flight(pilot.id, report.callsign)
        FlightRegistry.complete_bid(pilot.id, report.departure_icao, report.arrival_icao)
        Pilot.objects.filter(id=pilot.id).update(last_activity=timezone.now())

        logger.info(
            f"Report {report.id} submitted by pilot {pilot.pilot_code}",
            extra={
                'report_id': str(report.id),
                'pilot_id': str(pilot.id),
                'flight_number': report.flight_number,
                'score': report.score,
            }
        )
        notify_on_commit(EventType.REPORT_SUBMITTED, pilot.id, {
            'report_id': str(report.id),
            'flight_number': report.flight_number,
        })
        return report

    @classmethod
    def validate(cls, pilot: Pilot, data: Dict[str, Any], check_session: bool = True) -> Dict[str, Any]:
        """Return cleaned report fields or raise on the first failing one."""
        cleaned: Dict[str, Any] = {}

        for name in ('flight_number', 'callsign'):
            value = str(data.get(name) or '').strip().upper()
            if not value:
                raise ValidationError(f"{name} is required", field=name)
            cleaned[name] = value

        flight_time = cls._number(data, 'flight_time')
        if flight_time is None or flight_time <= 0:
            raise ValidationError("Flight time must be greater than zero", field='flight_time')
        cleaned['flight_time'] = int(round(flight_time))
        if cleaned['flight_time'] <= 0:
            raise ValidationError("Flight time must be at least one minute", field='flight_time')

        landing_rate = cls._number(data, 'landing_rate')
        if landing_rate is None:
            raise ValidationError("Landing rate is required", field='landing_rate')
        cleaned['landing_rate'] = landing_rate

        for name in ('departure_icao', 'arrival_icao'):
            cleaned[name] = cls.airport_field(data.get(name), name)
        if data.get('alternate_icao'):
            cleaned['alternate_icao'] = cls.airport_field(data.get('alternate_icao'), 'alternate_icao')

        aircraft_type = str(data.get('aircraft_type') or '').strip().upper()
        if not aircraft_type:
            raise ValidationError("Aircraft type is required", field='aircraft_type')
        if pilot.rank is not None and not pilot.rank.permits_aircraft(aircraft_type):
            raise ValidationError(
                f"Aircraft {aircraft_type} is not permitted for rank {pilot.rank.name}",
                field='aircraft_type'
            )
        cleaned['aircraft_type'] = aircraft_type

        session_required = check_session and pirep_setting('REQUIRE_ACTIVE_SESSION')
        if session_required and not FlightRegistry.is_flying(pilot.id, cleaned['callsign']):
            raise ValidationError("No live flight found for this callsign", field='callsign')

        for name in ('fuel_used', 'distance'):
            value = cls._number(data, name)
            if value is not None:
                if value < 0:
                    raise ValidationError(f"{name} must not be negative", field=name)
                cleaned[name] = value
        for name in ('pax', 'cargo'):
            value = cls._number(data, name)
            if value is not None:
                if value < 0:
                    raise ValidationError(f"{name} must not be negative", field=name)
                cleaned[name] = int(value)

        for name in ('route', 'comments'):
            if data.get(name):
                cleaned[name] = str(data[name])

        return cleaned

    @staticmethod
    def _number(data: Dict[str, Any], name: str):
        value = data.get(name)
        if value is None or value == '':
            return None
        if isinstance(value, bool):
            raise ValidationError(f"{name} must be a number", field=name)
        try:
            number = float(value)
        except (TypeError, ValueError):
            raise ValidationError(f"{name} must be a number", field=name)
        if not math.isfinite(number):
            raise ValidationError(f"{name} must be a finite number", field=name)
        return number

    @staticmethod
    def airport_field(icao: Any, field_name: str) -> str:
        code = ReferenceLookup.normalize_icao(icao if isinstance(icao, str) else None)
        if not code:
            raise ValidationError(f"{field_name} is required", field=field_name)
        if not ReferenceLookup.airport_exists(code):
            raise ValidationError(f"Unknown airport: {code}", field=field_name)
        return code
