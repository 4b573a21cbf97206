"""
Reference Lookup

Airport validity checks against the airport table.
"""

import logging
from typing import Optional

from ..models import Airport

logger = logging.getLogger(__name__)


class ReferenceLookup:
    """Resolves ICAO codes to known airports."""

    @staticmethod
    def normalize_icao(icao: Optional[str]) -> str:
        return (icao or '').strip().upper()

    @classmethod
    def resolve_airport(cls, icao: str) -> Optional[Airport]:
        """Return the active airport for ``icao``, or None if it is unknown."""
        code = cls.normalize_icao(icao)
        if len(code) != 4:
            return None
        return Airport.objects.filter(icao=code, active=True).first()

    @classmethod
    def airport_exists(cls, icao: str) -> bool:
        return cls.resolve_airport(icao) is not None
