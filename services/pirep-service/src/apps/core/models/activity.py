"""
Activity Models

An activity (event or tour-style challenge) is a list of legs. Leg fields
left as NULL match any value.
"""

from datetime import datetime
from typing import Optional

from django.db import models
from django.utils import timezone

from shared.common.mixins import UUIDPrimaryKeyMixin, TimestampMixin, ActiveMixin


def leg_field_matches(expected: Optional[str], actual: Optional[str]) -> bool:
    """An unset leg field matches anything; a set one must equal the report value."""
    if expected is None:
        return True
    return expected.strip().upper() == (actual or '').strip().upper()


class Activity(UUIDPrimaryKeyMixin, TimestampMixin, ActiveMixin, models.Model):
    """Multi-leg event pilots progress through."""

    class ActivityType(models.TextChoices):
        EVENT = 'event', 'Event'
        TOUR = 'tour', 'Tour'

    title = models.CharField(max_length=200)
    description = models.TextField(blank=True)
    activity_type = models.CharField(max_length=10, choices=ActivityType.choices, default=ActivityType.EVENT)
    start_date = models.DateTimeField(null=True, blank=True)
    end_date = models.DateTimeField(null=True, blank=True)
    legs_in_order = models.BooleanField(default=False)
    min_rank = models.ForeignKey(
        'core.Rank',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='+'
    )

    # Rewards
    reward_points = models.PositiveIntegerField(default=0)
    reward_award = models.ForeignKey(
        'core.Award',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='+'
    )

    # Cached statistics
    total_pilots_complete = models.PositiveIntegerField(default=0)
    first_pilot_to_complete = models.ForeignKey(
        'core.Pilot',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='+'
    )
    average_days_to_complete = models.FloatField(null=True, blank=True)

    class Meta:
        db_table = 'activities'
        ordering = ['-start_date', 'title']
        verbose_name_plural = 'activities'

    def __str__(self):
        return self.title

    def is_open(self, at: datetime = None) -> bool:
        """Active and inside its date window."""
        at = at or timezone.now()
        if not self.active:
            return False
        if self.start_date is not None and at < self.start_date:
            return False
        if self.end_date is not None and at > self.end_date:
            return False
        return True


class ActivityLeg(UUIDPrimaryKeyMixin, models.Model):
    """One matchable segment of an activity."""

    activity = models.ForeignKey(Activity, on_delete=models.CASCADE, related_name='legs')
    leg_number = models.PositiveIntegerField()
    departure_icao = models.CharField(max_length=4, null=True, blank=True)
    arrival_icao = models.CharField(max_length=4, null=True, blank=True)
    flight_number = models.CharField(max_length=20, null=True, blank=True)
    aircraft = models.CharField(max_length=10, null=True, blank=True)

    class Meta:
        db_table = 'activity_legs'
        ordering = ['leg_number']
        constraints = [
            models.UniqueConstraint(
                fields=['activity', 'leg_number'],
                name='unique_activity_leg_number'
            )
        ]

    def __str__(self):
        return f"{self.activity_id} leg {self.leg_number}"

    def matches(self, report) -> bool:
        return (
            leg_field_matches(self.departure_icao, report.departure_icao) and
            leg_field_matches(self.arrival_icao, report.arrival_icao) and
            leg_field_matches(self.flight_number, report.flight_number) and
            leg_field_matches(self.aircraft, report.aircraft_type)
        )


class ActivityProgress(UUIDPrimaryKeyMixin, models.Model):
    """A pilot's progress through one activity."""

    pilot = models.ForeignKey('core.Pilot', on_delete=models.CASCADE, related_name='activity_progress')
    activity = models.ForeignKey(Activity, on_delete=models.CASCADE, related_name='progress')
    legs_complete = models.PositiveIntegerField(default=0)
    percent_complete = models.FloatField(default=0)
    start_date = models.DateTimeField(default=timezone.now)
    last_leg_flown_date = models.DateTimeField(null=True, blank=True)
    date_complete = models.DateTimeField(null=True, blank=True)
    days_to_complete = models.PositiveIntegerField(null=True, blank=True)

    class Meta:
        db_table = 'activity_progress'
        ordering = ['-start_date']
        constraints = [
            models.UniqueConstraint(
                fields=['pilot', 'activity'],
                name='unique_pilot_activity_progress'
            )
        ]

    def __str__(self):
        return f"{self.pilot_id} / {self.activity_id}: {self.legs_complete}"

    @property
    def is_complete(self) -> bool:
        return self.date_complete is not None


class ActivityLegCompletion(models.Model):
    """Completed leg of an activity progress. A leg counts once."""

    progress = models.ForeignKey(ActivityProgress, on_delete=models.CASCADE, related_name='completions')
    leg = models.ForeignKey(ActivityLeg, on_delete=models.CASCADE, related_name='+')
    report = models.ForeignKey(
        'core.FlightReport',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='+'
    )
    completed_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'activity_leg_completions'
        ordering = ['completed_at']
        constraints = [
            models.UniqueConstraint(
                fields=['progress', 'leg'],
                name='unique_activity_leg_completion'
            )
        ]
