"""
Service configuration access.

Values come from the ``PIREP_SETTINGS`` dict in Django settings, falling
back to the defaults below for any key that is not set.
"""

from typing import Any, Dict

from django.conf import settings

DEFAULTS: Dict[str, Any] = {
    'LANDING_SOFT_THRESHOLD_FPM': 250,
    'LANDING_PENALTY_DIVISOR': 1000,
    'POINTS_PER_MINUTE': 10,
    'POINTS_PER_NM': 5,
    'REQUIRE_ACTIVE_SESSION': False,
    'ACTIVE_FLIGHT_TTL_SECONDS': 600,
    'BID_TTL_SECONDS': 86400,
    'INACTIVITY_REMINDER_DAYS': 14,
    'INACTIVITY_DEACTIVATE_DAYS': 30,
    'DEFAULT_LOCATION': 'OLBA',
    'LEADERBOARD_SIZE': 20,
}


def pirep_setting(name: str) -> Any:
    """Return a single PIREP setting."""
    configured = getattr(settings, 'PIREP_SETTINGS', {})
    if name in configured:
        return configured[name]
    return DEFAULTS[name]


def jumpseat_destinations() -> Dict[str, int]:
    return dict(getattr(settings, 'JUMPSEAT_DESTINATIONS', {}))
