"""
PIREP Service Events

Domain events emitted by the flight report pipeline. Delivery is
fire-and-forget: a failure to publish is logged and never propagates into
the state change that produced the event.
"""

import uuid
import json
import logging
from datetime import datetime, timezone
from typing import Dict, Any, List, Optional, Type
from dataclasses import dataclass, field, asdict
from enum import Enum

from django.conf import settings
from django.db import transaction

logger = logging.getLogger(__name__)


class EventType(str, Enum):
    """PIREP service event types."""

    # Report lifecycle
    REPORT_SUBMITTED = 'report.submitted'
    REPORT_APPROVED = 'report.approved'
    REPORT_REJECTED = 'report.rejected'

    # Progression
    RANK_CHANGED = 'pilot.rank_changed'
    ACTIVITY_COMPLETED = 'activity.completed'
    TOUR_COMPLETED = 'tour.completed'

    # Inactivity
    INACTIVITY_REMINDER = 'pilot.inactivity_reminder'
    PILOT_DEACTIVATED = 'pilot.deactivated'


@dataclass
class BaseEvent:
    """Base class for all events."""

    event_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    event_type: str = ''
    event_version: str = '1.0'
    timestamp: str = field(default_factory=lambda: datetime.now(timezone.utc).isoformat())
    source: str = 'pirep-service'
    pilot_id: str = ''
    payload: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        """Convert event to dictionary."""
        return asdict(self)

    def to_json(self) -> str:
        """Convert event to JSON string."""
        return json.dumps(self.to_dict(), default=str)


@dataclass
class ReportSubmittedEvent(BaseEvent):
    event_type: str = EventType.REPORT_SUBMITTED.value


@dataclass
class ReportApprovedEvent(BaseEvent):
    event_type: str = EventType.REPORT_APPROVED.value


@dataclass
class ReportRejectedEvent(BaseEvent):
    event_type: str = EventType.REPORT_REJECTED.value


@dataclass
class RankChangedEvent(BaseEvent):
    event_type: str = EventType.RANK_CHANGED.value


@dataclass
class ActivityCompletedEvent(BaseEvent):
    event_type: str = EventType.ACTIVITY_COMPLETED.value


@dataclass
class TourCompletedEvent(BaseEvent):
    event_type: str = EventType.TOUR_COMPLETED.value


@dataclass
class InactivityReminderEvent(BaseEvent):
    event_type: str = EventType.INACTIVITY_REMINDER.value


@dataclass
class PilotDeactivatedEvent(BaseEvent):
    event_type: str = EventType.PILOT_DEACTIVATED.value


def event_kind(kind: Any) -> str:
    return kind.value if isinstance(kind, EventType) else str(kind)


EVENT_CLASSES: Dict[str, Type[BaseEvent]] = {
    EventType.REPORT_SUBMITTED.value: ReportSubmittedEvent,
    EventType.REPORT_APPROVED.value: ReportApprovedEvent,
    EventType.REPORT_REJECTED.value: ReportRejectedEvent,
    EventType.RANK_CHANGED.value: RankChangedEvent,
    EventType.ACTIVITY_COMPLETED.value: ActivityCompletedEvent,
    EventType.TOUR_COMPLETED.value: TourCompletedEvent,
    EventType.INACTIVITY_REMINDER.value: InactivityReminderEvent,
    EventType.PILOT_DEACTIVATED.value: PilotDeactivatedEvent,
}


class EventPublisher:
    """
    Event publisher for the PIREP service.

    Backends:
    - ``log``: events are written to the log stream for the notification
      service to pick up
    - ``memory``: events are kept on the publisher (tests)
    """

    def __init__(self, backend: str = None):
        self._backend = backend
        self.published: List[BaseEvent] = []

    @property
    def backend(self) -> str:
        return self._backend or getattr(settings, 'EVENT_BACKEND', 'log')

    def publish(self, event: BaseEvent) -> bool:
        """
        Publish an event.

        Returns:
            True if the event was published, False if publishing failed
        """
        try:
            logger.info(
                f"Publishing event: {event.event_type}",
                extra={
                    'event_id': event.event_id,
                    'event_type': event.event_type,
                    'pilot_id': event.pilot_id,
                }
            )
            if self.backend == 'memory':
                self.published.append(event)
            else:
                logger.info(event.to_json())
            return True

        except Exception as e:
            logger.error(
                f"Failed to publish event: {event.event_type}",
                exc_info=True,
                extra={
                    'event_id': event.event_id,
                    'error': str(e),
                }
            )
            return False

    def notify(self, kind: str, pilot_id: Any, payload: Optional[Dict[str, Any]] = None) -> bool:
        """
        Fire-and-forget notification.

        Args:
            kind: Event type value, e.g. ``report.approved``
            pilot_id: Pilot the notification is about
            payload: Event data
        """
        event_class = EVENT_CLASSES.get(event_kind(kind), BaseEvent)
        event = event_class(pilot_id=str(pilot_id), payload=payload or {})
        if event_class is BaseEvent:
            event.event_type = event_kind(kind)
        return self.publish(event)

    def events_of(self, kind: str) -> List[BaseEvent]:
        """Published events of one type (memory backend)."""
        return [event for event in self.published if event.event_type == event_kind(kind)]

    def clear(self):
        self.published = []


event_publisher = EventPublisher()


def notify_on_commit(kind: Any, pilot_id: Any, payload: Optional[Dict[str, Any]] = None):
    """Notify once the surrounding transaction commits (immediately outside one)."""
    transaction.on_commit(lambda: event_publisher.notify(kind, pilot_id, payload))
