"""
Credit Ledger

Every change to a pilot's credit balance goes through this module. Balances
are changed with single conditional UPDATE statements; debits only apply
when the balance covers them, so ``total_credits`` never goes negative.
Each mutation appends a CreditTransaction row, and a mutation carrying a
``reference`` is applied at most once.
"""

import uuid
import logging
from typing import Any, Dict, List, Optional

from django.db import IntegrityError, transaction
from django.db.models import F
from django.utils import timezone

from ..conf import jumpseat_destinations
from ..models import Pilot, CreditTransaction, StoreItem, Purchase
from .award_service import AwardService
from .exceptions import (
    ValidationError,
    NotFoundError,
    ConflictError,
    InsufficientFundsError,
    PermissionDeniedError,
)

logger = logging.getLogger(__name__)


class CreditLedger:
    """
    Service class for credit balance operations.

    Handles rewards, jumpseat travel, store purchases and admin adjustments.
    """

    # ==========================================================================
    # Core Mutations
    # ==========================================================================

    @classmethod
    def credit(
        cls,
        pilot_id: uuid.UUID,
        amount: int,
        reason: str,
        kind: str = CreditTransaction.Kind.ADJUSTMENT,
        reference: str = None,
        created_by: uuid.UUID = None
    ) -> Optional[CreditTransaction]:
        """
        Add credits to a pilot's balance.

        Args:
            pilot_id: Pilot UUID
            amount: Credits to add (>= 0)
            reason: Human readable reason
            kind: Transaction kind
            reference: Optional idempotency key
            created_by: Admin UUID for manual adjustments

        Returns:
            The ledger row, or None if ``reference`` was already applied

        Raises:
            ValidationError: If amount is negative
            NotFoundError: If the pilot does not exist
        """
        if amount < 0:
            raise ValidationError("Credit amount must not be negative", field='amount')

        if reference and cls.is_applied(reference):
            logger.info(f"Credit {reference} already applied", extra={'reference': reference})
            return None

        try:
            with transaction.atomic():
                updated = Pilot.objects.filter(id=pilot_id).update(
                    total_credits=F('total_credits') + amount
                )
                if not updated:
                    raise NotFoundError('Pilot', pilot_id)
                return cls._record(pilot_id, amount, kind, reason, reference, created_by)
        except IntegrityError:
            if reference and cls.is_applied(reference):
                logger.info(f"Credit {reference} applied concurrently", extra={'reference': reference})
                return None
            raise

    @classmethod
    def debit(
        cls,
        pilot_id: uuid.UUID,
        amount: int,
        reason: str,
        kind: str = CreditTransaction.Kind.ADJUSTMENT,
        reference: str = None,
        created_by: uuid.UUID = None,
        extra_updates: Dict[str, Any] = None
    ) -> Optional[CreditTransaction]:
        """
        Remove credits from a pilot's balance if the balance covers them.

        ``extra_updates`` are applied to the pilot row in the same UPDATE, so
        they take effect only when the debit does.

        Raises:
            ValidationError: If amount is not positive
            NotFoundError: If the pilot does not exist
            InsufficientFundsError: If the balance is below ``amount``
        """
        if amount <= 0:
            raise ValidationError("Debit amount must be positive", field='amount')

        if reference and cls.is_applied(reference):
            logger.info(f"Debit {reference} already applied", extra={'reference': reference})
            return None

        updates = dict(extra_updates or {})
        updates['total_credits'] = F('total_credits') - amount

        try:
            with transaction.atomic():
                updated = Pilot.objects.filter(
                    id=pilot_id,
                    total_credits__gte=amount
                ).update(**updates)

                if not updated:
                    balance = cls._current_balance(pilot_id)
                    if balance is None:
                        raise NotFoundError('Pilot', pilot_id)
                    logger.warning(
                        f"Debit of {amount} refused for pilot {pilot_id}",
                        extra={'pilot_id': str(pilot_id), 'amount': amount, 'balance': balance}
                    )
                    raise InsufficientFundsError(pilot_id, amount, balance)

                return cls._record(pilot_id, -amount, kind, reason, reference, created_by)
        except IntegrityError:
            if reference and cls.is_applied(reference):
                logger.info(f"Debit {reference} applied concurrently", extra={'reference': reference})
                return None
            raise

    @staticmethod
    def is_applied(reference: str) -> bool:
        return CreditTransaction.objects.filter(reference=reference).exists()

    @staticmethod
    def _current_balance(pilot_id: uuid.UUID) -> Optional[int]:
        return Pilot.objects.filter(id=pilot_id).values_list('total_credits', flat=True).first()

    @classmethod
    def _record(
        cls,
        pilot_id: uuid.UUID,
        amount: int,
        kind: str,
        reason: str,
        reference: Optional[str],
        created_by: Optional[uuid.UUID]
    ) -> CreditTransaction:
        balance_after = cls._current_balance(pilot_id)
        entry = CreditTransaction.objects.create(
            pilot_id=pilot_id,
            amount=amount,
            kind=kind,
            reason=reason[:255],
            reference=reference,
            balance_after=balance_after,
            created_by=created_by,
        )
        logger.info(
            f"Credits {amount:+d} for pilot {pilot_id} ({kind})",
            extra={
                'pilot_id': str(pilot_id),
                'amount': amount,
                'kind': kind,
                'reference': reference,
                'balance_after': balance_after,
            }
        )
        return entry

    # ==========================================================================
    # Admin Adjustment
    # ==========================================================================

    @classmethod
    def adjust_credits(
        cls,
        pilot_id: uuid.UUID,
        delta: int,
        reason: str,
        identity
    ) -> int:
        """
        Administrative balance adjustment.

        Returns:
            The pilot's new balance

        Raises:
            PermissionDeniedError: If the caller is not an admin
            InsufficientFundsError: If a negative delta exceeds the balance
        """
        if not getattr(identity, 'is_admin', False):
            raise PermissionDeniedError('adjust_credits', pilot_id=getattr(identity, 'pilot_id', None))
        if not delta:
            raise ValidationError("Adjustment must be non-zero", field='delta')

        admin_id = identity.pilot_id
        reason = reason or 'Admin adjustment'
        if delta > 0:
            cls.credit(pilot_id, delta, reason, CreditTransaction.Kind.ADJUSTMENT, created_by=admin_id)
        else:
            cls.debit(pilot_id, -delta, reason, CreditTransaction.Kind.ADJUSTMENT, created_by=admin_id)

        return cls.balance(pilot_id)

    # ==========================================================================
    # Jumpseat & Store
    # ==========================================================================

    @classmethod
    def jumpseat(cls, pilot_id: uuid.UUID, destination_icao: str) -> Dict[str, Any]:
        """
        Move a pilot to another airport for a fixed credit cost.

        Location and balance change together in one conditional update.
        """
        destination = (destination_icao or '').strip().upper()
        destinations = jumpseat_destinations()
        if destination not in destinations:
            raise ValidationError(f"Invalid jumpseat destination: {destination_icao}", field='destination_icao')

        current = Pilot.objects.filter(id=pilot_id).values_list('current_location', flat=True).first()
        if current is None:
            raise NotFoundError('Pilot', pilot_id)
        if current == destination:
            raise ValidationError("Pilot is already at this location", field='destination_icao')

        cost = destinations[destination]
        cls.debit(
            pilot_id,
            cost,
            f"Jumpseat {current} -> {destination}",
            CreditTransaction.Kind.JUMPSEAT,
            extra_updates={'current_location': destination, 'last_activity': timezone.now()},
        )

        logger.info(
            f"Pilot {pilot_id} jumpseated to {destination}",
            extra={'pilot_id': str(pilot_id), 'from': current, 'to': destination, 'cost': cost}
        )
        return {
            'location': destination,
            'cost': cost,
            'balance': cls.balance(pilot_id),
        }

    @classmethod
    def purchase(cls, pilot_id: uuid.UUID, item_id: uuid.UUID) -> Purchase:
        """
        Buy a store item.

        Aircraft and badge items are one-time purchases.

        Raises:
            NotFoundError: If the item is unknown or inactive
            ConflictError: If a one-time item is already owned
            InsufficientFundsError: If the balance does not cover the price
        """
        item = StoreItem.objects.filter(id=item_id, active=True).first()
        if item is None:
            raise NotFoundError('StoreItem', item_id)

        ownership_key = f"{pilot_id}:{item.id}" if item.is_one_time else None
        if ownership_key and Purchase.objects.filter(ownership_key=ownership_key).exists():
            raise ConflictError(f"{item.name} is already owned")

        with transaction.atomic():
            cls.debit(pilot_id, item.price, f"Store: {item.name}", CreditTransaction.Kind.PURCHASE)
            try:
                with transaction.atomic():
                    purchase = Purchase.objects.create(
                        pilot_id=pilot_id,
                        item=item,
                        price_paid=item.price,
                        ownership_key=ownership_key,
                    )
            except IntegrityError:
                raise ConflictError(f"{item.name} is already owned")

            if item.award_id:
                AwardService.grant(pilot_id, item.award_id, source=f"store:{item.id}")

        logger.info(
            f"Pilot {pilot_id} purchased {item.name}",
            extra={'pilot_id': str(pilot_id), 'item_id': str(item.id), 'price': item.price}
        )
        return purchase

    # ==========================================================================
    # Queries
    # ==========================================================================

    @classmethod
    def balance(cls, pilot_id: uuid.UUID) -> int:
        balance = cls._current_balance(pilot_id)
        if balance is None:
            raise NotFoundError('Pilot', pilot_id)
        return balance

    @staticmethod
    def history(pilot_id: uuid.UUID, limit: int = 50) -> List[CreditTransaction]:
        return list(CreditTransaction.objects.filter(pilot_id=pilot_id).order_by('-created_at')[:limit])
