"""
Ephemeral Live Models

Active flight sessions expire ACTIVE_FLIGHT_TTL_SECONDS after their last
telemetry update; bids expire at ``expires_at``. Reads go through the
``live()`` / ``unexpired()`` querysets so expired rows are never returned,
and the ``live.sweep_expired`` task deletes them.
"""

from datetime import datetime, timedelta

from django.db import models
from django.utils import timezone

from shared.common.mixins import UUIDPrimaryKeyMixin
from ..conf import pirep_setting


def session_cutoff(now: datetime = None) -> datetime:
    now = now or timezone.now()
    return now - timedelta(seconds=pirep_setting('ACTIVE_FLIGHT_TTL_SECONDS'))


class ActiveFlightSessionQuerySet(models.QuerySet):

    def live(self, now: datetime = None):
        return self.filter(last_update__gte=session_cutoff(now))

    def expired(self, now: datetime = None):
        return self.filter(last_update__lt=session_cutoff(now))


class ActiveFlightSession(UUIDPrimaryKeyMixin, models.Model):
    """Live telemetry for one in-progress flight."""

    pilot = models.ForeignKey('core.Pilot', on_delete=models.CASCADE, related_name='live_sessions')
    callsign = models.CharField(max_length=20)
    flight_number = models.CharField(max_length=20, blank=True)
    departure_icao = models.CharField(max_length=4, blank=True)
    arrival_icao = models.CharField(max_length=4, blank=True)
    aircraft_type = models.CharField(max_length=10, blank=True)

    latitude = models.FloatField(default=0)
    longitude = models.FloatField(default=0)
    altitude = models.IntegerField(default=0)
    heading = models.IntegerField(default=0)
    ground_speed = models.IntegerField(default=0)
    status = models.CharField(max_length=30, default='preflight')

    started_at = models.DateTimeField(default=timezone.now)
    last_update = models.DateTimeField(default=timezone.now, db_index=True)

    objects = ActiveFlightSessionQuerySet.as_manager()

    class Meta:
        db_table = 'active_flight_sessions'
        ordering = ['-last_update']
        constraints = [
            models.UniqueConstraint(
                fields=['pilot', 'callsign'],
                name='unique_pilot_live_callsign'
            )
        ]

    def __str__(self):
        return f"{self.callsign} ({self.status})"


class BidQuerySet(models.QuerySet):

    def unexpired(self, now: datetime = None):
        return self.filter(expires_at__gt=now or timezone.now())

    def expired(self, now: datetime = None):
        return self.filter(expires_at__lte=now or timezone.now())


def bid_expiry() -> datetime:
    return timezone.now() + timedelta(seconds=pirep_setting('BID_TTL_SECONDS'))


class Bid(UUIDPrimaryKeyMixin, models.Model):
    """A pilot's reservation of a route."""

    class Status(models.TextChoices):
        ACTIVE = 'active', 'Active'
        COMPLETED = 'completed', 'Completed'
        CANCELLED = 'cancelled', 'Cancelled'

    pilot = models.ForeignKey('core.Pilot', on_delete=models.CASCADE, related_name='bids')
    callsign = models.CharField(max_length=20)
    flight_number = models.CharField(max_length=20, blank=True)
    departure_icao = models.CharField(max_length=4)
    arrival_icao = models.CharField(max_length=4)
    aircraft_type = models.CharField(max_length=10, blank=True)
    route = models.TextField(blank=True)
    status = models.CharField(max_length=20, choices=Status.choices, default=Status.ACTIVE, db_index=True)
    created_at = models.DateTimeField(default=timezone.now)
    expires_at = models.DateTimeField(default=bid_expiry, db_index=True)

    objects = BidQuerySet.as_manager()

    class Meta:
        db_table = 'bids'
        ordering = ['-created_at']

    def __str__(self):
        return f"{self.callsign} {self.departure_icao}-{self.arrival_icao} ({self.status})"
