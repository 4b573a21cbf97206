"""
Flight Report Models

A flight report (PIREP) moves through pending -> approved | rejected, and
rejected reports may be reopened to pending. Approval triggers propagation
into pilot statistics, rank, activities, tours and the credit ledger; each
applied propagation step leaves a PropagationStep marker.
"""

from django.db import models
from django.utils import timezone

from shared.common.mixins import UUIDPrimaryKeyMixin, TimestampMixin


class FlightReport(UUIDPrimaryKeyMixin, TimestampMixin, models.Model):
    """Pilot flight report submitted for review."""

    class ApprovalStatus(models.TextChoices):
        PENDING = 'pending', 'Pending'
        APPROVED = 'approved', 'Approved'
        REJECTED = 'rejected', 'Rejected'

    # Fields an administrator may change after approval
    ADMIN_CORRECTION_FIELDS = ('comments', 'admin_comments', 'route', 'alternate_icao')
    # Flight metadata, editable only while the report has not been approved
    METADATA_FIELDS = (
        'flight_number', 'callsign', 'departure_icao', 'arrival_icao',
        'aircraft_type', 'flight_time', 'fuel_used', 'distance',
        'landing_rate', 'pax', 'cargo',
    )

    pilot = models.ForeignKey('core.Pilot', on_delete=models.CASCADE, related_name='reports')
    pilot_name = models.CharField(max_length=200, blank=True)

    # Flight metadata
    flight_number = models.CharField(max_length=20)
    callsign = models.CharField(max_length=20)
    departure_icao = models.CharField(max_length=4)
    arrival_icao = models.CharField(max_length=4)
    alternate_icao = models.CharField(max_length=4, blank=True)
    route = models.TextField(blank=True)
    aircraft_type = models.CharField(max_length=10)

    # Metrics
    flight_time = models.PositiveIntegerField(help_text="Flight time in minutes")
    fuel_used = models.FloatField(default=0)
    distance = models.FloatField(default=0, help_text="Distance flown in nm")
    landing_rate = models.FloatField(help_text="Touchdown vertical speed in fpm")
    pax = models.PositiveIntegerField(default=0)
    cargo = models.PositiveIntegerField(default=0)
    score = models.PositiveIntegerField(default=0)
    credits_earned = models.IntegerField(default=0)

    # Review
    approval_status = models.CharField(
        max_length=20,
        choices=ApprovalStatus.choices,
        default=ApprovalStatus.PENDING,
        db_index=True
    )
    submitted_at = models.DateTimeField(default=timezone.now, db_index=True)
    reviewed_at = models.DateTimeField(null=True, blank=True)
    reviewed_by = models.UUIDField(null=True, blank=True)
    comments = models.TextField(blank=True)
    admin_comments = models.TextField(blank=True)

    # Set once every propagation step has been applied
    propagated_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        db_table = 'flight_reports'
        ordering = ['-submitted_at']
        indexes = [
            models.Index(fields=['pilot', 'approval_status']),
            models.Index(fields=['approval_status', 'propagated_at']),
            models.Index(fields=['departure_icao', 'arrival_icao']),
        ]

    def __str__(self):
        return f"{self.flight_number} {self.departure_icao}-{self.arrival_icao} ({self.approval_status})"

    @property
    def flight_hours(self) -> float:
        return self.flight_time / 60

    @property
    def is_propagated(self) -> bool:
        return self.propagated_at is not None


class PropagationStep(models.Model):
    """Marker recording that one propagation step ran for a report."""

    report = models.ForeignKey(FlightReport, on_delete=models.CASCADE, related_name='propagation_steps')
    step = models.CharField(max_length=50)
    applied_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'flight_report_propagation_steps'
        ordering = ['applied_at']
        constraints = [
            models.UniqueConstraint(
                fields=['report', 'step'],
                name='unique_report_propagation_step'
            )
        ]

    def __str__(self):
        return f"{self.report_id}:{self.step}"
