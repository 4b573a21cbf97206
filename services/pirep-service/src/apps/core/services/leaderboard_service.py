"""
Leaderboard Service
"""

import logging
from typing import Any, Dict, List

from ..conf import pirep_setting
from ..models import Pilot
from .registry_service import FlightRegistry

logger = logging.getLogger(__name__)


class LeaderboardService:

    @staticmethod
    def top_pilots(limit: int = None) -> List[Dict[str, Any]]:
        """
        Active pilots ranked by total hours.

        ``is_flying`` comes from the live registry; a missing or expired
        session simply means the pilot is not flying.
        """
        limit = limit or pirep_setting('LEADERBOARD_SIZE')
        pilots = (
            Pilot.objects
            .filter(status=Pilot.Status.ACTIVE)
            .select_related('rank')
            .order_by('-total_hours', '-total_flights', 'pilot_code')[:limit]
        )
        flying = FlightRegistry.flying_pilot_ids()

        return [
            {
                'position': position,
                'pilot_id': str(pilot.id),
                'pilot_code': pilot.pilot_code,
                'name': pilot.full_name,
                'rank': pilot.rank.name if pilot.rank else None,
                'total_hours': round(pilot.total_hours, 1),
                'total_flights': pilot.total_flights,
                'landing_avg': round(pilot.landing_avg),
                'current_location': pilot.current_location,
                'is_flying': pilot.id in flying,
            }
            for position, pilot in enumerate(pilots, start=1)
        ]
