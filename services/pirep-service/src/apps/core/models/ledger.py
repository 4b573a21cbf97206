"""
Credit Ledger Models

``Pilot.total_credits`` holds the balance; every mutation of it appends a
CreditTransaction row.
"""

from django.db import models

from shared.common.mixins import UUIDPrimaryKeyMixin, TimestampMixin, ActiveMixin


class CreditTransaction(UUIDPrimaryKeyMixin, models.Model):
    """Append-only record of a balance change."""

    class Kind(models.TextChoices):
        FLIGHT_REWARD = 'flight_reward', 'Flight Reward'
        ACTIVITY_REWARD = 'activity_reward', 'Activity Reward'
        TOUR_REWARD = 'tour_reward', 'Tour Reward'
        JUMPSEAT = 'jumpseat', 'Jumpseat'
        PURCHASE = 'purchase', 'Store Purchase'
        ADJUSTMENT = 'adjustment', 'Admin Adjustment'

    pilot = models.ForeignKey('core.Pilot', on_delete=models.CASCADE, related_name='credit_transactions')
    amount = models.IntegerField(help_text="Signed delta")
    kind = models.CharField(max_length=20, choices=Kind.choices)
    reason = models.CharField(max_length=255, blank=True)
    # Idempotency key, e.g. report:<id>:flight_reward
    reference = models.CharField(max_length=120, unique=True, null=True, blank=True)
    balance_after = models.IntegerField()
    created_by = models.UUIDField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True, db_index=True)

    class Meta:
        db_table = 'credit_transactions'
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['pilot', 'created_at']),
        ]

    def __str__(self):
        return f"{self.pilot_id} {self.amount:+d} ({self.kind})"


class StoreItem(UUIDPrimaryKeyMixin, TimestampMixin, ActiveMixin, models.Model):
    """Item pilots can buy with credits."""

    class Category(models.TextChoices):
        AIRCRAFT = 'aircraft', 'Aircraft'
        BADGE = 'badge', 'Badge'
        PERK = 'perk', 'Perk'
        OTHER = 'other', 'Other'

    ONE_TIME_CATEGORIES = (Category.AIRCRAFT, Category.BADGE)

    name = models.CharField(max_length=200)
    description = models.TextField(blank=True)
    price = models.PositiveIntegerField()
    category = models.CharField(max_length=20, choices=Category.choices, default=Category.OTHER)
    image_url = models.URLField(blank=True)
    download_url = models.URLField(blank=True)
    award = models.ForeignKey(
        'core.Award',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='+',
        help_text="Badge granted on purchase"
    )

    class Meta:
        db_table = 'store_items'
        ordering = ['category', 'price']

    def __str__(self):
        return f"{self.name} ({self.price})"

    @property
    def is_one_time(self) -> bool:
        return self.category in self.ONE_TIME_CATEGORIES


class Purchase(UUIDPrimaryKeyMixin, models.Model):
    pilot = models.ForeignKey('core.Pilot', on_delete=models.CASCADE, related_name='purchases')
    item = models.ForeignKey(StoreItem, on_delete=models.PROTECT, related_name='purchases')
    price_paid = models.PositiveIntegerField()
    # "<pilot>:<item>" for one-time items, NULL otherwise
    ownership_key = models.CharField(max_length=80, unique=True, null=True, blank=True)
    purchased_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'purchases'
        ordering = ['-purchased_at']

    def __str__(self):
        return f"{self.pilot_id} bought {self.item_id}"
