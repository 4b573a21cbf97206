"""
Reference Data Models

Airports and the Destination of the Month bonus.
"""

from django.db import models

from shared.common.mixins import UUIDPrimaryKeyMixin, TimestampMixin


class Airport(models.Model):
    """Airport known to the portal, keyed by ICAO code."""

    icao = models.CharField(max_length=4, primary_key=True)
    iata = models.CharField(max_length=3, blank=True)
    name = models.CharField(max_length=255)
    city = models.CharField(max_length=100, blank=True)
    country = models.CharField(max_length=100, blank=True)
    latitude = models.FloatField(null=True, blank=True)
    longitude = models.FloatField(null=True, blank=True)
    active = models.BooleanField(default=True)

    class Meta:
        db_table = 'airports'
        ordering = ['icao']

    def __str__(self):
        return f"{self.icao} - {self.name}"


class DestinationOfTheMonth(UUIDPrimaryKeyMixin, TimestampMixin, models.Model):
    """Featured airport that pays a bonus on flights touching it."""

    airport_icao = models.CharField(max_length=4)
    month = models.CharField(max_length=7, blank=True, help_text="YYYY-MM")
    bonus_points = models.PositiveIntegerField(default=0)
    is_active = models.BooleanField(default=False, db_index=True)

    class Meta:
        db_table = 'destinations_of_the_month'
        ordering = ['-created_at']
        verbose_name = 'destination of the month'
        verbose_name_plural = 'destinations of the month'

    def __str__(self):
        return f"DOTM {self.airport_icao} ({self.month or 'current'})"
