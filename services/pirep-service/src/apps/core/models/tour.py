"""
Tour Models

Tours are strictly ordered paths. A pilot starts a tour explicitly and the
``current_leg`` pointer advances one leg at a time.
"""

from django.db import models
from django.utils import timezone

from shared.common.mixins import UUIDPrimaryKeyMixin, TimestampMixin, ActiveMixin
from .activity import leg_field_matches


class Tour(UUIDPrimaryKeyMixin, TimestampMixin, ActiveMixin, models.Model):
    """Ordered sequence of legs with a completion reward."""

    class Difficulty(models.TextChoices):
        EASY = 'easy', 'Easy'
        MEDIUM = 'medium', 'Medium'
        HARD = 'hard', 'Hard'

    name = models.CharField(max_length=200)
    description = models.TextField(blank=True)
    difficulty = models.CharField(max_length=10, choices=Difficulty.choices, default=Difficulty.MEDIUM)
    reward_credits = models.PositiveIntegerField(default=0)
    reward_award = models.ForeignKey(
        'core.Award',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='+'
    )

    class Meta:
        db_table = 'tours'
        ordering = ['-created_at']

    def __str__(self):
        return self.name


class TourLeg(UUIDPrimaryKeyMixin, models.Model):
    tour = models.ForeignKey(Tour, on_delete=models.CASCADE, related_name='legs')
    leg_number = models.PositiveIntegerField()
    departure_icao = models.CharField(max_length=4)
    arrival_icao = models.CharField(max_length=4)
    aircraft_types = models.JSONField(default=list, blank=True)  # empty = any type
    distance_nm = models.PositiveIntegerField(null=True, blank=True)

    class Meta:
        db_table = 'tour_legs'
        ordering = ['leg_number']
        constraints = [
            models.UniqueConstraint(
                fields=['tour', 'leg_number'],
                name='unique_tour_leg_number'
            )
        ]

    def __str__(self):
        return f"{self.tour_id} leg {self.leg_number}: {self.departure_icao}-{self.arrival_icao}"

    def matches(self, report) -> bool:
        if not (
            leg_field_matches(self.departure_icao, report.departure_icao) and
            leg_field_matches(self.arrival_icao, report.arrival_icao)
        ):
            return False
        if not self.aircraft_types:
            return True
        return report.aircraft_type.upper() in {code.upper() for code in self.aircraft_types}


class TourProgress(UUIDPrimaryKeyMixin, models.Model):
    """A pilot's run through a tour."""

    class Status(models.TextChoices):
        IN_PROGRESS = 'in_progress', 'In Progress'
        COMPLETED = 'completed', 'Completed'
        ABANDONED = 'abandoned', 'Abandoned'

    pilot = models.ForeignKey('core.Pilot', on_delete=models.CASCADE, related_name='tour_progress')
    tour = models.ForeignKey(Tour, on_delete=models.CASCADE, related_name='progress')
    current_leg = models.PositiveIntegerField(
        default=1,
        help_text="1-based position of the next leg, counted over legs ordered by leg_number"
    )
    status = models.CharField(max_length=20, choices=Status.choices, default=Status.IN_PROGRESS)
    started_at = models.DateTimeField(default=timezone.now)
    completed_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        db_table = 'tour_progress'
        ordering = ['-started_at']
        constraints = [
            models.UniqueConstraint(
                fields=['pilot', 'tour'],
                name='unique_pilot_tour_progress'
            )
        ]

    def __str__(self):
        return f"{self.pilot_id} / {self.tour_id}: leg {self.current_leg} ({self.status})"


class TourLegCompletion(models.Model):
    progress = models.ForeignKey(TourProgress, on_delete=models.CASCADE, related_name='legs_completed')
    leg_number = models.PositiveIntegerField()
    report = models.ForeignKey(
        'core.FlightReport',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='+'
    )
    completed_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'tour_leg_completions'
        ordering = ['leg_number']
        constraints = [
            models.UniqueConstraint(
                fields=['progress', 'leg_number'],
                name='unique_tour_leg_completion'
            )
        ]
