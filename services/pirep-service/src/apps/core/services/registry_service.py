"""
Flight Registry

Ephemeral live-flight sessions and route bids. Sessions expire
ACTIVE_FLIGHT_TTL_SECONDS after their last telemetry tick and bids
BID_TTL_SECONDS after creation. Every read filters out expired rows; the
``live.sweep_expired`` task deletes them.
"""

import math
import uuid
import logging
from datetime import datetime
from typing import Any, Dict, List, Optional, Set

from django.db import IntegrityError, transaction
from django.utils import timezone

from ..models import ActiveFlightSession, Bid, Pilot
from .exceptions import NotFoundError, ValidationError
from .reference import ReferenceLookup

logger = logging.getLogger(__name__)

TELEMETRY_FLOAT_FIELDS = ('latitude', 'longitude')
TELEMETRY_INT_FIELDS = ('altitude', 'heading', 'ground_speed')
TELEMETRY_TEXT_FIELDS = ('flight_number', 'departure_icao', 'arrival_icao', 'aircraft_type', 'status')


class FlightRegistry:
    """Service class for live flights and bids."""

    # ==========================================================================
    # Live Sessions
    # ==========================================================================

    @classmethod
    def start_flight(cls, pilot_id: uuid.UUID, data: Dict[str, Any]) -> ActiveFlightSession:
        """Open (or restart) the live session for a callsign."""
        data = dict(data)
        data.setdefault('status', 'preflight')
        session = cls.record_telemetry(pilot_id, data, restart=True)
        logger.info(
            f"Flight {session.callsign} started by pilot {pilot_id}",
            extra={'pilot_id': str(pilot_id), 'callsign': session.callsign}
        )
        return session

    @classmethod
    def record_telemetry(
        cls,
        pilot_id: uuid.UUID,
        telemetry: Dict[str, Any],
        restart: bool = False
    ) -> ActiveFlightSession:
        """
        Upsert the live session for (pilot, callsign) with a telemetry tick.

        Raises:
            ValidationError: If the callsign is missing or a value is malformed
            NotFoundError: If the pilot does not exist
        """
        callsign = (telemetry.get('callsign') or '').strip().upper()
        if not callsign:
            raise ValidationError("Callsign is required", field='callsign')
        if not Pilot.objects.filter(id=pilot_id).exists():
            raise NotFoundError('Pilot', pilot_id)

        now = timezone.now()
        fields = cls._telemetry_fields(telemetry)
        fields['last_update'] = now

        sessions = ActiveFlightSession.objects.filter(pilot_id=pilot_id, callsign=callsign)
        # An expired session is gone even if the sweeper has not run yet.
        sessions.expired(now).delete()
        if restart:
            fields['started_at'] = now

        if not sessions.update(**fields):
            fields.setdefault('started_at', now)
            try:
                with transaction.atomic():
                    ActiveFlightSession.objects.create(pilot_id=pilot_id, callsign=callsign, **fields)
            except IntegrityError:
                sessions.update(**fields)

        return sessions.get()

    @staticmethod
    def _telemetry_fields(telemetry: Dict[str, Any]) -> Dict[str, Any]:
        fields = {}
        for name in TELEMETRY_FLOAT_FIELDS + TELEMETRY_INT_FIELDS:
            if telemetry.get(name) is None:
                continue
            try:
                value = float(telemetry[name])
            except (TypeError, ValueError):
                raise ValidationError(f"{name} must be a number", field=name)
            if not math.isfinite(value):
                raise ValidationError(f"{name} must be finite", field=name)
            fields[name] = int(round(value)) if name in TELEMETRY_INT_FIELDS else value

        for name in TELEMETRY_TEXT_FIELDS:
            if telemetry.get(name) is not None:
                fields[name] = str(telemetry[name]).strip()
        for name in ('departure_icao', 'arrival_icao', 'aircraft_type'):
            if name in fields:
                fields[name] = fields[name].upper()
        return fields

    @staticmethod
    def end_flight(pilot_id: uuid.UUID, callsign: str = None) -> int:
        """Drop the pilot's live session(s). Returns the number removed."""
        sessions = ActiveFlightSession.objects.filter(pilot_id=pilot_id)
        if callsign:
            sessions = sessions.filter(callsign=callsign.strip().upper())
        deleted, _ = sessions.delete()
        if deleted:
            logger.info(
                f"Live session ended for pilot {pilot_id}",
                extra={'pilot_id': str(pilot_id), 'callsign': callsign}
            )
        return deleted

    @staticmethod
    def get_session(pilot_id: uuid.UUID, callsign: str = None) -> Optional[ActiveFlightSession]:
        sessions = ActiveFlightSession.objects.live().filter(pilot_id=pilot_id)
        if callsign:
            sessions = sessions.filter(callsign=callsign.strip().upper())
        return sessions.first()

    @staticmethod
    def active_flights() -> List[ActiveFlightSession]:
        """All live sessions, for the map."""
        return list(ActiveFlightSession.objects.live().select_related('pilot', 'pilot__rank'))

    @classmethod
    def is_flying(cls, pilot_id: uuid.UUID, callsign: str = None) -> bool:
        return cls.get_session(pilot_id, callsign) is not None

    @staticmethod
    def flying_pilot_ids() -> Set[uuid.UUID]:
        return set(ActiveFlightSession.objects.live().values_list('pilot_id', flat=True))

    @staticmethod
    def sweep_expired(now: datetime = None) -> Dict[str, int]:
        """Delete expired sessions and bids."""
        now = now or timezone.now()
        sessions, _ = ActiveFlightSession.objects.expired(now).delete()
        bids, _ = Bid.objects.expired(now).delete()
        if sessions or bids:
            logger.info(
                f"Swept {sessions} expired sessions and {bids} expired bids",
                extra={'sessions': sessions, 'bids': bids}
            )
        return {'sessions': sessions, 'bids': bids}

    # ==========================================================================
    # Bids
    # ==========================================================================

    @classmethod
    @transaction.atomic
    def create_bid(cls, pilot_id: uuid.UUID, data: Dict[str, Any]) -> Bid:
        """
        Reserve a route. Any earlier active bid of the pilot is cancelled.

        Raises:
            ValidationError: If the callsign is missing or an airport is unknown
            NotFoundError: If the pilot does not exist
        """
        callsign = (data.get('callsign') or '').strip().upper()
        if not callsign:
            raise ValidationError("Callsign is required", field='callsign')

        airports = {}
        for name in ('departure_icao', 'arrival_icao'):
            icao = ReferenceLookup.normalize_icao(data.get(name))
            if not ReferenceLookup.airport_exists(icao):
                raise ValidationError(f"Unknown airport: {data.get(name)}", field=name)
            airports[name] = icao

        if not Pilot.objects.filter(id=pilot_id).exists():
            raise NotFoundError('Pilot', pilot_id)

        cancelled = Bid.objects.filter(
            pilot_id=pilot_id,
            status=Bid.Status.ACTIVE
        ).update(status=Bid.Status.CANCELLED)

        bid = Bid.objects.create(
            pilot_id=pilot_id,
            callsign=callsign,
            flight_number=(data.get('flight_number') or '').strip(),
            aircraft_type=(data.get('aircraft_type') or '').strip().upper(),
            route=data.get('route') or '',
            **airports
        )
        logger.info(
            f"Bid {bid.callsign} {bid.departure_icao}-{bid.arrival_icao} placed by pilot {pilot_id}",
            extra={'pilot_id': str(pilot_id), 'bid_id': str(bid.id), 'cancelled_previous': cancelled}
        )
        return bid

    @staticmethod
    def get_active_bid(pilot_id: uuid.UUID) -> Optional[Bid]:
        return Bid.objects.unexpired().filter(pilot_id=pilot_id, status=Bid.Status.ACTIVE).first()

    @staticmethod
    def cancel_bid(pilot_id: uuid.UUID, bid_id: uuid.UUID = None) -> int:
        bids = Bid.objects.filter(pilot_id=pilot_id, status=Bid.Status.ACTIVE)
        if bid_id:
            bids = bids.filter(id=bid_id)
        return bids.update(status=Bid.Status.CANCELLED)

    @staticmethod
    def complete_bid(pilot_id: uuid.UUID, departure_icao: str, arrival_icao: str) -> bool:
        """Mark the pilot's matching active bid as flown."""
        completed = Bid.objects.unexpired().filter(
            pilot_id=pilot_id,
            status=Bid.Status.ACTIVE,
            departure_icao=departure_icao,
            arrival_icao=arrival_icao,
        ).update(status=Bid.Status.COMPLETED)
        return completed > 0
