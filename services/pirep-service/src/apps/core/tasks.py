"""
PIREP Service Celery Tasks

Periodic jobs scheduled from ``CELERY_BEAT_SCHEDULE``.
"""

import logging
from datetime import timedelta

from celery import shared_task
from django.db.models import F, Q
from django.utils import timezone

from .conf import pirep_setting
from .events import EventType, event_publisher
from .models import Pilot
from .services import ApprovalService, FlightRegistry, PropagationPipeline

logger = logging.getLogger(__name__)


@shared_task(name='live.sweep_expired')
def sweep_expired():
    """
    Delete expired live sessions and bids.

    Runs every minute; reads already ignore expired rows.
    """
    return FlightRegistry.sweep_expired()


@shared_task(name='reports.redrive_propagation')
def redrive_propagation(limit: int = 100):
    """
    Finish propagation for approved reports that still have missing steps.
    """
    results = {
        'checked': 0,
        'completed': 0,
        'still_failing': [],
    }

    for report in ApprovalService.pending_propagation(limit):
        results['checked'] += 1
        summary = PropagationPipeline.run(report)
        if summary.propagated:
            results['completed'] += 1
        else:
            results['still_failing'].append({
                'report_id': summary.report_id,
                'failed_steps': summary.failed_steps,
            })

    if results['checked']:
        logger.info(f"Propagation re-drive completed: {results}")
    return results


@shared_task(name='pilots.check_inactivity')
def check_inactivity():
    """
    Remind and deactivate inactive pilots.

    Active pilots idle longer than INACTIVITY_DEACTIVATE_DAYS are marked
    inactive; those idle longer than INACTIVITY_REMINDER_DAYS get one
    reminder per period of inactivity.
    """
    now = timezone.now()
    deactivate_before = now - timedelta(days=pirep_setting('INACTIVITY_DEACTIVATE_DAYS'))
    remind_before = now - timedelta(days=pirep_setting('INACTIVITY_REMINDER_DAYS'))

    results = {
        'marked_inactive': 0,
        'reminders_sent': 0,
    }

    stale = Pilot.objects.filter(status=Pilot.Status.ACTIVE, last_activity__lt=deactivate_before)
    for pilot in stale:
        updated = Pilot.objects.filter(
            id=pilot.id,
            status=Pilot.Status.ACTIVE,
            last_activity__lt=deactivate_before
        ).update(status=Pilot.Status.INACTIVE)
        if not updated:
            continue
        results['marked_inactive'] += 1
        logger.info(f"Pilot {pilot.pilot_code} marked inactive after {now - pilot.last_activity} idle")
        event_publisher.notify(EventType.PILOT_DEACTIVATED, pilot.id, {
            'pilot_code': pilot.pilot_code,
            'last_activity': pilot.last_activity.isoformat(),
        })

    idle = Pilot.objects.filter(
        status=Pilot.Status.ACTIVE,
        last_activity__lt=remind_before,
        last_activity__gte=deactivate_before,
    ).filter(
        Q(inactivity_reminder_sent_at__isnull=True) |
        Q(inactivity_reminder_sent_at__lt=F('last_activity'))
    )
    for pilot in idle:
        Pilot.objects.filter(id=pilot.id).update(inactivity_reminder_sent_at=now)
        results['reminders_sent'] += 1
        logger.info(f"Sent inactivity reminder to pilot {pilot.pilot_code}")
        event_publisher.notify(EventType.INACTIVITY_REMINDER, pilot.id, {
            'pilot_code': pilot.pilot_code,
            'email': pilot.email,
            'last_activity': pilot.last_activity.isoformat(),
        })

    logger.info(f"Inactivity check completed: {results}")
    return results
