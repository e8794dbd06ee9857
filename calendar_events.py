"""
Calendar & Scheduling

Dated events for the firm (hearings, meetings, deadlines...) that may
point at a case, a client and an assignee. Every event ends strictly
after it starts. Overlapping events are allowed; nothing here detects
conflicts.

Reminders are an offset in minutes before start_time; 0 means no reminder.
"""
import logging
from dataclasses import dataclass, field
from datetime import datetime, time, timedelta, timezone
from typing import Any, Dict, List, Optional

from config import CALENDAR_LOOKAHEAD_DAYS, CALENDAR_LOOKBACK_DAYS, DEFAULT_REMINDER_MINUTES
from db.store import Store
from errors import InvalidTimeRange, ValidationError
from models import CalendarEvent, EventType, clean_text, parse_datetime, parse_enum
from tenant import TenantContext, TenantScopedStore

logger = logging.getLogger(__name__)

MINUTES_PER_HOUR = 60
MINUTES_PER_DAY = 1440

EDITABLE_FIELDS = (
    "title", "description", "location", "event_type", "start_time", "end_time",
    "case_id", "client_id", "assigned_to", "reminder_minutes",
)


def _plural(count: int, unit: str) -> str:
    return f"{count} {unit}" if count == 1 else f"{count} {unit}s"


def describe_reminder(minutes: Optional[int]) -> str:
    """
    Human text for a reminder offset.

    >>> describe_reminder(45)
    '45 minutes before'
    >>> describe_reminder(1440)
    '1 day before'
    """
    if not minutes:
        return "no reminder"
    if minutes < MINUTES_PER_HOUR:
        return f"{_plural(minutes, 'minute')} before"
    if minutes < MINUTES_PER_DAY:
        return f"{_plural(minutes // MINUTES_PER_HOUR, 'hour')} before"
    return f"{_plural(minutes // MINUTES_PER_DAY, 'day')} before"


def parse_reminder(value) -> int:
    if value is None or value == "":
        return DEFAULT_REMINDER_MINUTES
    if isinstance(value, bool):
        raise ValidationError("reminder_minutes", "must be a whole number of minutes")
    if isinstance(value, float) and not value.is_integer():
        raise ValidationError("reminder_minutes", "must be a whole number of minutes")
    try:
        minutes = int(value)
    except (TypeError, ValueError):
        raise ValidationError("reminder_minutes", f"must be a whole number of minutes (got {value!r})")
    if minutes < 0:
        raise ValidationError("reminder_minutes", "must not be negative")
    return minutes


@dataclass
class Agenda:
    """Calendar page buckets relative to a moment in time."""
    today: List[CalendarEvent] = field(default_factory=list)
    upcoming: List[CalendarEvent] = field(default_factory=list)
    overdue_deadlines: List[CalendarEvent] = field(default_factory=list)


def build_agenda(events: List[CalendarEvent], now: datetime) -> Agenda:
    """
    today: starts between today's midnight and tomorrow's
    upcoming: starts from tomorrow up to a week from today
    overdue_deadlines: deadline events that started before today
    """
    start_of_today = datetime.combine(now.date(), time.min, tzinfo=now.tzinfo)
    tomorrow = start_of_today + timedelta(days=1)
    next_week = start_of_today + timedelta(days=7)

    agenda = Agenda()
    for event in sorted(events, key=lambda e: e.start_time):
        if start_of_today <= event.start_time < tomorrow:
            agenda.today.append(event)
        elif tomorrow <= event.start_time < next_week:
            agenda.upcoming.append(event)
        elif event.start_time < start_of_today and event.event_type is EventType.DEADLINE:
            agenda.overdue_deadlines.append(event)
    return agenda


class CalendarManager:
    """Firm-scoped calendar events."""

    def __init__(self, store: Store, context: TenantContext = None):
        self.scoped = TenantScopedStore(store, context)

    def _validate(self, data: Dict[str, Any]) -> Dict[str, Any]:
        title = clean_text(data.get("title"))
        if not title:
            raise ValidationError("title", "is required")

        start_time = parse_datetime("start_time", data.get("start_time"))
        end_time = parse_datetime("end_time", data.get("end_time"))
        if end_time <= start_time:
            raise InvalidTimeRange(start_time, end_time)

        row = {
            "title": title,
            "description": clean_text(data.get("description")),
            "location": clean_text(data.get("location")),
            "event_type": parse_enum(EventType, "event_type", data.get("event_type"), EventType.MEETING).value,
            "start_time": start_time,
            "end_time": end_time,
            "case_id": data.get("case_id") or None,
            "client_id": data.get("client_id") or None,
            "assigned_to": data.get("assigned_to") or None,
            "reminder_minutes": parse_reminder(data.get("reminder_minutes")),
        }
        self.scoped.require_reference("cases", row["case_id"])
        self.scoped.require_reference("clients", row["client_id"])
        self.scoped.require_reference("profiles", row["assigned_to"])
        return row

    def create(self, title: str, start_time, end_time, event_type: str = None,
               description: str = None, location: str = None, case_id: str = None,
               client_id: str = None, assigned_to: str = None,
               reminder_minutes: int = None) -> CalendarEvent:
        row = self._validate({
            "title": title,
            "start_time": start_time,
            "end_time": end_time,
            "event_type": event_type,
            "description": description,
            "location": location,
            "case_id": case_id,
            "client_id": client_id,
            "assigned_to": assigned_to,
            "reminder_minutes": reminder_minutes,
        })
        row["created_by"] = self.scoped.context.user_id
        event = CalendarEvent.from_row(self.scoped.insert("calendar_events", row))
        logger.info("Scheduled event %s in firm %s", event.id, event.firm_id)
        return event

    def update(self, event_id: str, **changes) -> CalendarEvent:
        """Partial edit; the merged event must still end after it starts."""
        unknown = set(changes) - set(EDITABLE_FIELDS)
        if unknown:
            raise ValidationError(sorted(unknown)[0], "is not an editable event field")

        current = self.scoped.get("calendar_events", event_id)
        merged = {name: current.get(name) for name in EDITABLE_FIELDS}
        merged.update(changes)
        row = self._validate(merged)

        event = CalendarEvent.from_row(self.scoped.update("calendar_events", event_id, row))
        logger.info("Updated event %s in firm %s", event.id, event.firm_id)
        return event

    def get(self, event_id: str) -> CalendarEvent:
        return CalendarEvent.from_row(self.scoped.get("calendar_events", event_id))

    def delete(self, event_id: str) -> None:
        self.scoped.delete("calendar_events", event_id)
        logger.info("Deleted event %s in firm %s", event_id, self.scoped.firm_id)

    def list_in_range(self, start=None, end=None, event_type: str = None) -> List[CalendarEvent]:
        """
        Events whose start_time falls in [start, end], ordered by start_time.

        Defaults to the last 30 days through the next 90.
        """
        now = datetime.now(timezone.utc)
        start = parse_datetime("start", start) if start else now - timedelta(days=CALENDAR_LOOKBACK_DAYS)
        end = parse_datetime("end", end) if end else now + timedelta(days=CALENDAR_LOOKAHEAD_DAYS)
        if end < start:
            raise InvalidTimeRange(start, end)

        filters = {"start_time__gte": start, "start_time__lte": end}
        if event_type:
            filters["event_type"] = parse_enum(EventType, "event_type", event_type).value
        rows = self.scoped.list("calendar_events", filters, order_by="start_time")
        return [CalendarEvent.from_row(row) for row in rows]

    def agenda(self, now: datetime = None) -> Agenda:
        now = parse_datetime("now", now) if now else datetime.now(timezone.utc)
        events = self.list_in_range(
            now - timedelta(days=CALENDAR_LOOKBACK_DAYS),
            now + timedelta(days=CALENDAR_LOOKAHEAD_DAYS),
        )
        return build_agenda(events, now)
