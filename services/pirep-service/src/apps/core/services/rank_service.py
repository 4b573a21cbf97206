"""
Rank Service

Recomputes a pilot's rank from their totals. Only auto-promote ranks are
ever assigned here. Pilots holding a manual rank keep it, and nobody is
moved down the ladder.
"""

import uuid
import logging
from typing import List, Optional

from ..events import EventType, notify_on_commit
from ..models import Pilot, Rank
from .exceptions import NotFoundError

logger = logging.getLogger(__name__)


class RankService:
    """Rank ladder evaluation."""

    @staticmethod
    def eligible_rank(total_hours: float, total_flights: int) -> Optional[Rank]:
        """Highest auto-promote rank whose hours AND flights requirements are met."""
        eligible = None
        for rank in Rank.objects.filter(auto_promote=True).order_by('order'):
            if rank.is_eligible(total_hours, total_flights):
                eligible = rank
        return eligible

    @classmethod
    def evaluate(cls, pilot_id: uuid.UUID) -> Optional[Rank]:
        """
        Promote the pilot if their totals qualify for a higher rank.

        Returns:
            The new rank, or None if the rank did not change

        Raises:
            NotFoundError: If the pilot does not exist
        """
        pilot = Pilot.objects.select_related('rank').filter(id=pilot_id).first()
        if pilot is None:
            raise NotFoundError('Pilot', pilot_id)

        if pilot.rank is not None and not pilot.rank.auto_promote:
            return None

        target = cls.eligible_rank(pilot.total_hours, pilot.total_flights)
        if target is None:
            return None
        if pilot.rank is not None and target.order <= pilot.rank.order:
            return None

        # Only move from the rank we read; a concurrent change wins.
        if pilot.rank_id is None:
            updated = Pilot.objects.filter(id=pilot.id, rank__isnull=True).update(rank=target)
        else:
            updated = Pilot.objects.filter(id=pilot.id, rank_id=pilot.rank_id).update(rank=target)

        if not updated:
            logger.info(f"Rank of pilot {pilot_id} changed concurrently, re-evaluating")
            return cls.evaluate(pilot_id)

        previous = pilot.rank.name if pilot.rank else None
        logger.info(
            f"Pilot {pilot.pilot_code} promoted to {target.name}",
            extra={
                'pilot_id': str(pilot.id),
                'previous_rank': previous,
                'new_rank': target.name,
                'total_hours': pilot.total_hours,
                'total_flights': pilot.total_flights,
            }
        )
        notify_on_commit(EventType.RANK_CHANGED, pilot.id, {
            'previous_rank': previous,
            'new_rank': target.name,
        })
        return target

    @staticmethod
    def allowed_aircraft_for(pilot: Pilot) -> List[str]:
        """Aircraft types the pilot's rank permits. Empty means unrestricted."""
        if pilot.rank is None:
            return []
        return [code.upper() for code in pilot.rank.allowed_aircraft]
