"""
Award Service

Idempotent badge issuance.
"""

import uuid
import logging

from django.db import IntegrityError, transaction

from ..models import PilotAward

logger = logging.getLogger(__name__)


class AwardService:
    """Grants awards. A pilot holds any award at most once."""

    @staticmethod
    def grant(pilot_id: uuid.UUID, award_id: uuid.UUID, source: str = '') -> bool:
        """
        Grant an award to a pilot.

        Returns:
            True if the award was granted now, False if the pilot already held it
        """
        try:
            with transaction.atomic():
                PilotAward.objects.create(pilot_id=pilot_id, award_id=award_id, source=source)
        except IntegrityError:
            logger.debug(
                f"Award {award_id} already held by pilot {pilot_id}",
                extra={'pilot_id': str(pilot_id), 'award_id': str(award_id), 'source': source}
            )
            return False

        logger.info(
            f"Award {award_id} granted to pilot {pilot_id}",
            extra={'pilot_id': str(pilot_id), 'award_id': str(award_id), 'source': source}
        )
        return True
