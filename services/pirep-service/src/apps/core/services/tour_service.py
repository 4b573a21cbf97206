"""
Tour Service

Tours are flown strictly in order. The ``current_leg`` pointer only moves
by a conditional update on its current value, so each leg is counted once.
"""

import uuid
import logging
from typing import Any, Dict, List, Optional

from django.db import IntegrityError, transaction
from django.db.models import F
from django.utils import timezone

from ..events import EventType, notify_on_commit
from ..models import (
    CreditTransaction,
    FlightReport,
    Tour,
    TourLeg,
    TourLegCompletion,
    TourProgress,
)
from .award_service import AwardService
from .credit_service import CreditLedger
from .exceptions import ConflictError, NotFoundError

logger = logging.getLogger(__name__)


class TourService:
    """Service class for tour progress."""

    @staticmethod
    def list_tours(pilot_id: uuid.UUID) -> List[Dict[str, Any]]:
        """Active tours with the pilot's progress on each."""
        tours = Tour.objects.filter(active=True).prefetch_related('legs').order_by('-created_at')
        progress = {
            p.tour_id: p
            for p in TourProgress.objects.filter(pilot_id=pilot_id)
        }
        return [{'tour': tour, 'progress': progress.get(tour.id)} for tour in tours]

    @staticmethod
    def get_tour(tour_id: uuid.UUID) -> Tour:
        tour = Tour.objects.filter(id=tour_id, active=True).first()
        if tour is None:
            raise NotFoundError('Tour', tour_id)
        return tour

    @classmethod
    def start_tour(cls, pilot_id: uuid.UUID, tour_id: uuid.UUID) -> TourProgress:
        """
        Start a tour, or restart one the pilot abandoned.

        Raises:
            NotFoundError: If the tour is unknown or inactive
            ConflictError: If the tour is already in progress or completed
        """
        tour = cls.get_tour(tour_id)

        try:
            with transaction.atomic():
                progress = TourProgress.objects.create(pilot_id=pilot_id, tour=tour)
        except IntegrityError:
            with transaction.atomic():
                restarted = TourProgress.objects.filter(
                    pilot_id=pilot_id,
                    tour=tour,
                    status=TourProgress.Status.ABANDONED
                ).update(
                    status=TourProgress.Status.IN_PROGRESS,
                    current_leg=1,
                    started_at=timezone.now(),
                    completed_at=None,
                )
                if not restarted:
                    raise ConflictError("Tour already started", target_state=TourProgress.Status.IN_PROGRESS)
                progress = TourProgress.objects.get(pilot_id=pilot_id, tour=tour)
                progress.legs_completed.all().delete()

        logger.info(
            f"Pilot {pilot_id} started tour {tour.name}",
            extra={'pilot_id': str(pilot_id), 'tour_id': str(tour.id)}
        )
        return progress

    @staticmethod
    def abandon_tour(pilot_id: uuid.UUID, tour_id: uuid.UUID) -> TourProgress:
        """
        Raises:
            NotFoundError: If the pilot never started the tour
            ConflictError: If the tour is not in progress
        """
        updated = TourProgress.objects.filter(
            pilot_id=pilot_id,
            tour_id=tour_id,
            status=TourProgress.Status.IN_PROGRESS
        ).update(status=TourProgress.Status.ABANDONED)

        progress = TourProgress.objects.filter(pilot_id=pilot_id, tour_id=tour_id).first()
        if progress is None:
            raise NotFoundError('TourProgress', tour_id)
        if not updated:
            raise ConflictError(
                f"Tour is {progress.status}",
                current_state=progress.status,
                target_state=TourProgress.Status.ABANDONED
            )

        logger.info(
            f"Pilot {pilot_id} abandoned tour {tour_id}",
            extra={'pilot_id': str(pilot_id), 'tour_id': str(tour_id)}
        )
        return progress

    @classmethod
    def match_report(cls, report: FlightReport) -> List[str]:
        """
        Advance every in-progress tour whose current leg the report flies.

        Returns:
            IDs of the tours that advanced
        """
        advanced = []
        running = (
            TourProgress.objects
            .filter(pilot_id=report.pilot_id, status=TourProgress.Status.IN_PROGRESS, tour__active=True)
            .select_related('tour')
        )

        for progress in running:
            legs = list(progress.tour.legs.order_by('leg_number'))
            position = progress.current_leg
            if not 1 <= position <= len(legs):
                continue
            leg = legs[position - 1]
            if not leg.matches(report):
                continue
            if cls._advance(progress, leg, report, total_legs=len(legs)):
                advanced.append(str(progress.tour_id))

        return advanced

    @classmethod
    def _advance(cls, progress: TourProgress, leg: TourLeg, report: FlightReport, total_legs: int) -> bool:
        position = progress.current_leg
        with transaction.atomic():
            moved = TourProgress.objects.filter(
                id=progress.id,
                current_leg=position,
                status=TourProgress.Status.IN_PROGRESS
            ).update(current_leg=F('current_leg') + 1)
            if not moved:
                return False
            TourLegCompletion.objects.create(progress=progress, leg_number=leg.leg_number, report=report)

        logger.info(
            f"Tour leg {leg.leg_number} flown by pilot {progress.pilot_id}",
            extra={
                'progress_id': str(progress.id),
                'tour_id': str(progress.tour_id),
                'report_id': str(report.id),
            }
        )

        if progress.legs_completed.count() >= total_legs:
            cls._complete(progress)
        return True

    @staticmethod
    def _complete(progress: TourProgress) -> Optional[TourProgress]:
        updated = TourProgress.objects.filter(
            id=progress.id,
            status=TourProgress.Status.IN_PROGRESS
        ).update(
            status=TourProgress.Status.COMPLETED,
            completed_at=timezone.now(),
        )
        if not updated:
            return None

        tour = progress.tour
        if tour.reward_credits:
            CreditLedger.credit(
                progress.pilot_id,
                tour.reward_credits,
                f"Tour completed: {tour.name}",
                kind=CreditTransaction.Kind.TOUR_REWARD,
                reference=f"tour:{progress.id}",
            )
        if tour.reward_award_id:
            AwardService.grant(progress.pilot_id, tour.reward_award_id, source=f"tour:{tour.id}")

        logger.info(
            f"Tour {tour.name} completed by pilot {progress.pilot_id}",
            extra={'progress_id': str(progress.id), 'tour_id': str(tour.id)}
        )
        notify_on_commit(EventType.TOUR_COMPLETED, progress.pilot_id, {
            'tour_id': str(tour.id),
            'name': tour.name,
            'reward_credits': tour.reward_credits,
        })
        return progress
