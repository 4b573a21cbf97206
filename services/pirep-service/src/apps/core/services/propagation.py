"""
Propagation Pipeline

Applies an approved report to the rest of the system as a chain of named
steps. Each step commits in its own transaction together with its
PropagationStep marker, so a step is applied at most once per report no
matter how often the pipeline is re-run. The chain itself is not one
transaction: a failing step is logged, reported and left for a later
re-drive while the others still apply. ``FlightReport.propagated_at`` is
set once every step has a marker.
"""

import logging
from dataclasses import dataclass, field, asdict
from typing import Any, Callable, Dict, List, Optional

from django.db import IntegrityError, transaction
from django.utils import timezone

from ..models import FlightReport, PropagationStep
from .activity_service import ActivityService
from .rank_service import RankService
from .stats_service import StatsService
from .tour_service import TourService

logger = logging.getLogger(__name__)

STEP_PILOT_STATS = 'pilot_stats'
STEP_FLIGHT_REWARD = 'flight_reward'
STEP_RANK = 'rank'
STEP_ACTIVITY_MATCH = 'activity_match'
STEP_TOUR_MATCH = 'tour_match'

STEPS = (
    STEP_PILOT_STATS,
    STEP_FLIGHT_REWARD,
    STEP_RANK,
    STEP_ACTIVITY_MATCH,
    STEP_TOUR_MATCH,
)

# A step only runs once the step it reads from has been applied.
DEPENDS_ON = {
    STEP_RANK: STEP_PILOT_STATS,
}


@dataclass
class PropagationSummary:
    """Outcome of a decision and any propagation it triggered."""

    report_id: str
    approval_status: str
    applied_steps: List[str] = field(default_factory=list)
    skipped_steps: List[str] = field(default_factory=list)
    failed_steps: List[str] = field(default_factory=list)
    propagated: bool = False
    credits_earned: int = 0
    new_rank: Optional[str] = None
    activities_advanced: List[str] = field(default_factory=list)
    tours_advanced: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


class PropagationPipeline:
    """Runs the propagation steps for approved reports."""

    @classmethod
    def run(cls, report: FlightReport) -> PropagationSummary:
        """
        Apply every step that has not been applied yet.

        Steps already marked are skipped. Failures are logged and listed in
        ``failed_steps``; they never undo the approval.
        """
        summary = PropagationSummary(report_id=str(report.id), approval_status=report.approval_status)
        done = set(PropagationStep.objects.filter(report=report).values_list('step', flat=True))

        for step in STEPS:
            if step in done:
                summary.skipped_steps.append(step)
                continue

            dependency = DEPENDS_ON.get(step)
            if dependency and dependency not in done:
                logger.warning(
                    f"Propagation step {step} deferred for report {report.id}: {dependency} not applied",
                    extra={'report_id': str(report.id), 'step': step}
                )
                summary.failed_steps.append(step)
                continue

            if cls._apply(report, step, summary):
                done.add(step)

        if not summary.failed_steps:
            FlightReport.objects.filter(
                id=report.id,
                propagated_at__isnull=True
            ).update(propagated_at=timezone.now())
            summary.propagated = True

        logger.info(
            f"Propagation for report {report.id}: applied={summary.applied_steps} "
            f"skipped={summary.skipped_steps} failed={summary.failed_steps}",
            extra={'report_id': str(report.id), 'propagated': summary.propagated}
        )
        return summary

    @classmethod
    def _apply(cls, report: FlightReport, step: str, summary: PropagationSummary) -> bool:
        """Run one step with its marker. Returns True if the step is now applied."""
        handler: Callable[[FlightReport, PropagationSummary], None] = getattr(cls, f'_step_{step}')
        try:
            with transaction.atomic():
                PropagationStep.objects.create(report=report, step=step)
                handler(report, summary)
        except IntegrityError:
            if PropagationStep.objects.filter(report=report, step=step).exists():
                summary.skipped_steps.append(step)
                return True
            logger.error(
                f"Propagation step {step} failed for report {report.id}",
                exc_info=True,
                extra={'report_id': str(report.id), 'step': step}
            )
            summary.failed_steps.append(step)
            return False
        except Exception:
            logger.error(
                f"Propagation step {step} failed for report {report.id}",
                exc_info=True,
                extra={'report_id': str(report.id), 'step': step}
            )
            summary.failed_steps.append(step)
            return False

        summary.applied_steps.append(step)
        return True

    # ==========================================================================
    # Steps
    # ==========================================================================

    @staticmethod
    def _step_pilot_stats(report: FlightReport, summary: PropagationSummary) -> None:
        StatsService.apply_report(report)

    @staticmethod
    def _step_flight_reward(report: FlightReport, summary: PropagationSummary) -> None:
        summary.credits_earned = StatsService.apply_flight_reward(report)

    @staticmethod
    def _step_rank(report: FlightReport, summary: PropagationSummary) -> None:
        rank = RankService.evaluate(report.pilot_id)
        summary.new_rank = rank.name if rank else None

    @staticmethod
    def _step_activity_match(report: FlightReport, summary: PropagationSummary) -> None:
        summary.activities_advanced = ActivityService.match_report(report)

    @staticmethod
    def _step_tour_match(report: FlightReport, summary: PropagationSummary) -> None:
        summary.tours_advanced = TourService.match_report(report)
