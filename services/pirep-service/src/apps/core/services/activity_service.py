"""
Activity Service

Matches approved flight reports against open activities and advances the
pilot's progress. Each leg counts once per progress record (unique
completion rows), ``legs_complete`` is only ever incremented below the
activity's leg count, and completion is a conditional update on
``date_complete IS NULL`` so rewards are paid once.
"""

import uuid
import logging
from dataclasses import dataclass, field, asdict
from datetime import datetime
from typing import Any, Dict, List, Optional

from django.db import IntegrityError, transaction
from django.db.models import Avg, Count, F, FloatField, Q
from django.db.models.functions import Cast
from django.utils import timezone

from ..events import EventType, notify_on_commit
from ..models import (
    Activity,
    ActivityLeg,
    ActivityLegCompletion,
    ActivityProgress,
    CreditTransaction,
    FlightReport,
    Pilot,
)
from .award_service import AwardService
from .credit_service import CreditLedger
from .exceptions import NotFoundError

logger = logging.getLogger(__name__)


@dataclass
class ProgressSnapshot:
    """Read-only view of a pilot's progress through an activity."""

    activity_id: str
    pilot_id: str
    total_legs: int
    legs_complete: int = 0
    percent_complete: float = 0.0
    completed_leg_numbers: List[int] = field(default_factory=list)
    next_leg_number: Optional[int] = None
    enrolled: bool = False
    start_date: Optional[datetime] = None
    last_leg_flown_date: Optional[datetime] = None
    date_complete: Optional[datetime] = None
    days_to_complete: Optional[int] = None

    @property
    def is_complete(self) -> bool:
        return self.date_complete is not None

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data['is_complete'] = self.is_complete
        return data


class ActivityService:
    """Service class for activity progress."""

    # ==========================================================================
    # Queries
    # ==========================================================================

    @staticmethod
    def open_activities(at: datetime = None):
        """Active activities whose date window contains ``at``."""
        at = at or timezone.now()
        return (
            Activity.objects
            .filter(active=True)
            .filter(Q(start_date__isnull=True) | Q(start_date__lte=at))
            .filter(Q(end_date__isnull=True) | Q(end_date__gte=at))
            .select_related('min_rank', 'reward_award')
            .prefetch_related('legs')
        )

    @classmethod
    def get_activity_progress(cls, pilot_id: uuid.UUID, activity_id: uuid.UUID) -> ProgressSnapshot:
        """
        Progress of one pilot through one activity.

        A pilot who has not flown any leg yet gets an empty, not-enrolled snapshot.

        Raises:
            NotFoundError: If the activity does not exist
        """
        activity = Activity.objects.filter(id=activity_id).first()
        if activity is None:
            raise NotFoundError('Activity', activity_id)

        legs = list(activity.legs.order_by('leg_number'))
        snapshot = ProgressSnapshot(
            activity_id=str(activity.id),
            pilot_id=str(pilot_id),
            total_legs=len(legs),
            next_leg_number=legs[0].leg_number if legs else None,
        )

        progress = ActivityProgress.objects.filter(pilot_id=pilot_id, activity=activity).first()
        if progress is None:
            return snapshot

        completed = set(progress.completions.values_list('leg__leg_number', flat=True))
        snapshot.enrolled = True
        snapshot.legs_complete = progress.legs_complete
        snapshot.percent_complete = progress.percent_complete
        snapshot.completed_leg_numbers = sorted(completed)
        snapshot.start_date = progress.start_date
        snapshot.last_leg_flown_date = progress.last_leg_flown_date
        snapshot.date_complete = progress.date_complete
        snapshot.days_to_complete = progress.days_to_complete
        snapshot.next_leg_number = next(
            (leg.leg_number for leg in legs if leg.leg_number not in completed),
            None
        )
        return snapshot

    # ==========================================================================
    # Matching
    # ==========================================================================

    @classmethod
    def match_report(cls, report: FlightReport) -> List[str]:
        """
        Advance every open activity the report flies a leg of.

        Returns:
            IDs of the activities that advanced
        """
        pilot = Pilot.objects.select_related('rank').get(id=report.pilot_id)
        advanced = []

        for activity in cls.open_activities(report.submitted_at):
            if not cls._rank_allows(pilot, activity):
                continue

            legs = sorted(activity.legs.all(), key=lambda leg: leg.leg_number)
            if not legs:
                continue

            progress = ActivityProgress.objects.filter(pilot=pilot, activity=activity).first()
            if progress is not None and progress.is_complete:
                continue

            leg = cls._matching_leg(activity, legs, progress, report)
            if leg is None:
                continue

            if progress is None:
                progress = cls._enroll(pilot, activity)

            if cls._record_leg(progress, leg, report, len(legs)):
                advanced.append(str(activity.id))

        return advanced

    @staticmethod
    def _rank_allows(pilot: Pilot, activity: Activity) -> bool:
        if activity.min_rank is None:
            return True
        if pilot.rank is None:
            return False
        return pilot.rank.order >= activity.min_rank.order

    @staticmethod
    def _matching_leg(
        activity: Activity,
        legs: List[ActivityLeg],
        progress: Optional[ActivityProgress],
        report: FlightReport
    ) -> Optional[ActivityLeg]:
        """
        The leg this report completes, if any.

        In-order activities only accept the next leg; otherwise any leg not
        yet completed is eligible.
        """
        if activity.legs_in_order:
            legs_complete = progress.legs_complete if progress else 0
            if legs_complete >= len(legs):
                return None
            candidates = [legs[legs_complete]]
        else:
            done = set()
            if progress is not None:
                done = set(progress.completions.values_list('leg_id', flat=True))
            candidates = [leg for leg in legs if leg.id not in done]

        for leg in candidates:
            if leg.matches(report):
                return leg
        return None

    @staticmethod
    def _enroll(pilot: Pilot, activity: Activity) -> ActivityProgress:
        try:
            with transaction.atomic():
                progress = ActivityProgress.objects.create(pilot=pilot, activity=activity)
        except IntegrityError:
            return ActivityProgress.objects.get(pilot=pilot, activity=activity)

        logger.info(
            f"Pilot {pilot.pilot_code} enrolled in activity {activity.title}",
            extra={'pilot_id': str(pilot.id), 'activity_id': str(activity.id)}
        )
        return progress

    @classmethod
    def _record_leg(
        cls,
        progress: ActivityProgress,
        leg: ActivityLeg,
        report: FlightReport,
        total_legs: int
    ) -> bool:
        """Mark one leg complete. Returns False if it was already counted."""
        now = timezone.now()
        try:
            with transaction.atomic():
                ActivityLegCompletion.objects.create(progress=progress, leg=leg, report=report)
        except IntegrityError:
            logger.debug(
                f"Leg {leg.leg_number} already complete for progress {progress.id}",
                extra={'progress_id': str(progress.id), 'leg_id': str(leg.id)}
            )
            return False

        ActivityProgress.objects.filter(
            id=progress.id,
            legs_complete__lt=total_legs
        ).update(
            legs_complete=F('legs_complete') + 1,
            percent_complete=Cast(F('legs_complete') + 1, FloatField()) * (100.0 / total_legs),
            last_leg_flown_date=now,
        )
        progress.refresh_from_db()

        logger.info(
            f"Activity leg {leg.leg_number} flown by pilot {progress.pilot_id}",
            extra={
                'progress_id': str(progress.id),
                'activity_id': str(progress.activity_id),
                'report_id': str(report.id),
                'legs_complete': progress.legs_complete,
                'total_legs': total_legs,
            }
        )

        if progress.legs_complete >= total_legs:
            cls._complete(progress, total_legs, now)
        return True

    @classmethod
    def _complete(cls, progress: ActivityProgress, total_legs: int, now: datetime) -> bool:
        """Close the progress record and pay the reward once."""
        days = (now - progress.start_date).days
        updated = ActivityProgress.objects.filter(
            id=progress.id,
            date_complete__isnull=True,
            legs_complete__gte=total_legs
        ).update(
            date_complete=now,
            days_to_complete=max(days, 0),
            percent_complete=100.0,
        )
        if not updated:
            return False

        activity = progress.activity
        if activity.reward_points:
            CreditLedger.credit(
                progress.pilot_id,
                activity.reward_points,
                f"Activity completed: {activity.title}",
                kind=CreditTransaction.Kind.ACTIVITY_REWARD,
                reference=f"activity:{progress.id}",
            )
        if activity.reward_award_id:
            AwardService.grant(progress.pilot_id, activity.reward_award_id, source=f"activity:{activity.id}")

        cls.refresh_statistics(activity)

        logger.info(
            f"Activity {activity.title} completed by pilot {progress.pilot_id}",
            extra={
                'progress_id': str(progress.id),
                'activity_id': str(activity.id),
                'days_to_complete': days,
            }
        )
        notify_on_commit(EventType.ACTIVITY_COMPLETED, progress.pilot_id, {
            'activity_id': str(activity.id),
            'title': activity.title,
            'reward_points': activity.reward_points,
        })
        return True

    @staticmethod
    def refresh_statistics(activity: Activity) -> None:
        """Recompute the cached completion statistics."""
        completed = ActivityProgress.objects.filter(activity=activity, date_complete__isnull=False)
        stats = completed.aggregate(total=Count('id'), average=Avg('days_to_complete'))
        first_pilot = completed.order_by('date_complete').values_list('pilot_id', flat=True).first()
        Activity.objects.filter(id=activity.id).update(
            total_pilots_complete=stats['total'],
            average_days_to_complete=stats['average'],
            first_pilot_to_complete_id=first_pilot,
        )
