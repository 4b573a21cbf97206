"""
Award Models
"""

from django.db import models

from shared.common.mixins import UUIDPrimaryKeyMixin, TimestampMixin, ActiveMixin


class Award(UUIDPrimaryKeyMixin, TimestampMixin, ActiveMixin, models.Model):
    """Badge that can be granted to pilots."""

    name = models.CharField(max_length=100, unique=True)
    description = models.TextField(blank=True)
    category = models.CharField(max_length=50, blank=True)
    image_url = models.URLField(blank=True)

    class Meta:
        db_table = 'awards'
        ordering = ['name']

    def __str__(self):
        return self.name


class PilotAward(UUIDPrimaryKeyMixin, models.Model):
    """A granted award. At most one grant per (pilot, award)."""

    pilot = models.ForeignKey('core.Pilot', on_delete=models.CASCADE, related_name='awards')
    award = models.ForeignKey(Award, on_delete=models.CASCADE, related_name='grants')
    source = models.CharField(max_length=100, blank=True)  # e.g. activity:<id>
    granted_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'pilot_awards'
        ordering = ['-granted_at']
        constraints = [
            models.UniqueConstraint(
                fields=['pilot', 'award'],
                name='unique_pilot_award'
            )
        ]

    def __str__(self):
        return f"{self.award} -> {self.pilot_id}"
