"""
Pilot and Rank Models
"""

from django.db import models

from shared.common.mixins import UUIDPrimaryKeyMixin, TimestampMixin
from ..conf import pirep_setting


def default_location() -> str:
    return pirep_setting('DEFAULT_LOCATION')


class Rank(UUIDPrimaryKeyMixin, models.Model):
    """
    One step of the rank ladder.

    Ranks are ordered by ``order``. Only ranks with ``auto_promote`` set are
    ever assigned by the rank evaluator; the others are granted by hand.
    """

    name = models.CharField(max_length=100, unique=True)
    order = models.PositiveIntegerField(unique=True)
    requirement_hours = models.FloatField(default=0)
    requirement_flights = models.PositiveIntegerField(default=0)
    auto_promote = models.BooleanField(default=True)
    allowed_aircraft = models.JSONField(default=list, blank=True)  # ICAO type codes, empty = unrestricted
    image_url = models.URLField(blank=True)

    class Meta:
        db_table = 'ranks'
        ordering = ['order']

    def __str__(self):
        return self.name

    def is_eligible(self, total_hours: float, total_flights: int) -> bool:
        """Both requirements must be met."""
        return (
            total_hours >= self.requirement_hours and
            total_flights >= self.requirement_flights
        )

    def permits_aircraft(self, aircraft_type: str) -> bool:
        if not self.allowed_aircraft:
            return True
        allowed = {code.upper() for code in self.allowed_aircraft}
        return aircraft_type.upper() in allowed


class Pilot(UUIDPrimaryKeyMixin, TimestampMixin, models.Model):
    """Portal pilot with cumulative flying statistics."""

    class Status(models.TextChoices):
        ACTIVE = 'active', 'Active'
        INACTIVE = 'inactive', 'Inactive'
        ON_LEAVE = 'on_leave', 'On Leave'
        SUSPENDED = 'suspended', 'Suspended'

    pilot_code = models.CharField(max_length=10, unique=True)
    first_name = models.CharField(max_length=100)
    last_name = models.CharField(max_length=100)
    email = models.EmailField(unique=True)
    is_admin = models.BooleanField(default=False)
    status = models.CharField(max_length=20, choices=Status.choices, default=Status.ACTIVE)
    rank = models.ForeignKey(
        Rank,
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name='pilots'
    )

    # Cumulative statistics
    total_hours = models.FloatField(default=0)
    total_flights = models.PositiveIntegerField(default=0)
    total_credits = models.IntegerField(default=0)
    landing_avg = models.FloatField(default=0)

    current_location = models.CharField(max_length=4, default=default_location)
    last_activity = models.DateTimeField(null=True, blank=True)
    inactivity_reminder_sent_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        db_table = 'pilots'
        ordering = ['pilot_code']
        constraints = [
            models.CheckConstraint(
                condition=models.Q(total_credits__gte=0),
                name='pilot_credits_non_negative'
            ),
        ]
        indexes = [
            models.Index(fields=['status', 'last_activity']),
            models.Index(fields=['-total_hours']),
        ]

    def __str__(self):
        return f"{self.pilot_code} - {self.full_name}"

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()
