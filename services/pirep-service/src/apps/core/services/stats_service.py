"""
Stats Service

Folds an approved flight report into the pilot's cumulative totals and
computes the flight reward.
"""

import logging
from typing import Optional

from django.db.models import F, FloatField, Value
from django.db.models.functions import Cast
from django.utils import timezone

from ..conf import pirep_setting
from ..models import Pilot, FlightReport, CreditTransaction, DestinationOfTheMonth
from .credit_service import CreditLedger
from .exceptions import NotFoundError

logger = logging.getLogger(__name__)


class StatsService:
    """Pilot statistics accumulation."""

    @staticmethod
    def apply_report(report: FlightReport) -> None:
        """
        Add one approved report to the pilot's totals.

        All fields are set by a single UPDATE; every right-hand side refers
        to the row's values before the update, so the landing average is the
        running mean over the old flight count.

        Raises:
            NotFoundError: If the pilot no longer exists
        """
        old_flights = Cast(F('total_flights'), FloatField())
        landing_rate = Value(float(report.landing_rate), output_field=FloatField())

        updated = Pilot.objects.filter(id=report.pilot_id).update(
            total_hours=F('total_hours') + report.flight_hours,
            total_flights=F('total_flights') + 1,
            landing_avg=(F('landing_avg') * old_flights + landing_rate) / (old_flights + 1.0),
            current_location=report.arrival_icao,
            last_activity=timezone.now(),
        )
        if not updated:
            raise NotFoundError('Pilot', report.pilot_id)

        logger.info(
            f"Stats applied for report {report.id}",
            extra={
                'report_id': str(report.id),
                'pilot_id': str(report.pilot_id),
                'hours': report.flight_hours,
                'landing_rate': report.landing_rate,
            }
        )

    @staticmethod
    def dotm_bonus(report: FlightReport) -> int:
        """Bonus for touching the active Destination of the Month."""
        dotm: Optional[DestinationOfTheMonth] = (
            DestinationOfTheMonth.objects
            .filter(is_active=True)
            .order_by('-created_at')
            .first()
        )
        if dotm is None:
            return 0
        if dotm.airport_icao.upper() in (report.departure_icao.upper(), report.arrival_icao.upper()):
            return dotm.bonus_points
        return 0

    @classmethod
    def flight_reward(cls, report: FlightReport) -> int:
        """
        Credits earned by a report.

        ``(minutes * POINTS_PER_MINUTE + distance * POINTS_PER_NM)`` scaled by
        the landing score, plus any DOTM bonus.
        """
        base = (
            report.flight_time * pirep_setting('POINTS_PER_MINUTE') +
            report.distance * pirep_setting('POINTS_PER_NM')
        )
        return int(round(base * report.score / 100)) + cls.dotm_bonus(report)

    @classmethod
    def apply_flight_reward(cls, report: FlightReport) -> int:
        """Credit the flight reward once per report."""
        reward = cls.flight_reward(report)
        if reward > 0:
            CreditLedger.credit(
                report.pilot_id,
                reward,
                f"Flight {report.flight_number} {report.departure_icao}-{report.arrival_icao}",
                kind=CreditTransaction.Kind.FLIGHT_REWARD,
                reference=f"report:{report.id}:flight_reward",
            )
        FlightReport.objects.filter(id=report.id).update(credits_earned=reward)
        return reward
