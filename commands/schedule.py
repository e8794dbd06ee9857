"""Calendar commands."""

import click
from rich.table import Table

from calendar_events import CalendarManager, describe_reminder
from commands.context import console, pass_state, reports_errors

EVENT_TYPES = ["meeting", "hearing", "deadline", "appointment", "reminder", "other"]


def _events_table(title, events):
    table = Table(title=title)
    table.add_column("ID")
    table.add_column("Start")
    table.add_column("End")
    table.add_column("Type")
    table.add_column("Title")
    table.add_column("Reminder")
    for e in events:
        table.add_row(
            e.id[:8],
            e.start_time.strftime("%Y-%m-%d %H:%M"),
            e.end_time.strftime("%H:%M"),
            e.event_type.value,
            e.title[:40],
            describe_reminder(e.reminder_minutes),
        )
    return table


@click.group("calendar")
def calendar_group():
    """Calendar & scheduling."""
    pass


@calendar_group.command("add")
@click.argument("title")
@click.argument("start_time")
@click.argument("end_time")
@click.option("--type", "event_type", type=click.Choice(EVENT_TYPES))
@click.option("--reminder", "reminder_minutes", type=int, help="Minutes before start (0 = none, default 30)")
@click.option("--location")
@click.option("--case-id")
@click.option("--client-id")
@click.option("--assignee", "assigned_to", help="Assigned profile ID")
@click.option("--description")
@pass_state
@reports_errors
def calendar_add(state, title, start_time, end_time, **fields):
    """Schedule an event. Times are ISO-8601, e.g. 2026-03-15T09:00."""
    event = CalendarManager(state.store, state.tenant()).create(
        title=title, start_time=start_time, end_time=end_time, **fields
    )
    console.print(f"[green]Scheduled {event.title}[/green] ({event.id})")
    console.print(f"  Reminder: {describe_reminder(event.reminder_minutes)}")


@calendar_group.command("list")
@click.option("--from", "start", help="Range start (default 30 days ago)")
@click.option("--to", "end", help="Range end (default 90 days ahead)")
@click.option("--type", "event_type", type=click.Choice(EVENT_TYPES))
@pass_state
@reports_errors
def calendar_list(state, start, end, event_type):
    """Events in a date range, earliest first."""
    events = CalendarManager(state.store, state.tenant()).list_in_range(start, end, event_type)
    if not events:
        console.print("[yellow]No events in range[/yellow]")
        return
    console.print(_events_table(f"Events ({len(events)})", events))


@calendar_group.command("agenda")
@pass_state
@reports_errors
def calendar_agenda(state):
    """Today, the coming week, and overdue deadlines."""
    agenda = CalendarManager(state.store, state.tenant()).agenda()
    for title, events in (
        ("Today", agenda.today),
        ("Next 7 days", agenda.upcoming),
        ("Overdue deadlines", agenda.overdue_deadlines),
    ):
        if events:
            console.print(_events_table(f"{title} ({len(events)})", events))
        else:
            console.print(f"[dim]{title}: nothing[/dim]")


@calendar_group.command("move")
@click.argument("event_id")
@click.argument("start_time")
@click.argument("end_time")
@pass_state
@reports_errors
def calendar_move(state, event_id, start_time, end_time):
    """Reschedule an event."""
    event = CalendarManager(state.store, state.tenant()).update(
        event_id, start_time=start_time, end_time=end_time
    )
    console.print(f"[green]{event.title} moved to {event.start_time:%Y-%m-%d %H:%M}[/green]")


@calendar_group.command("delete")
@click.argument("event_id")
@pass_state
@reports_errors
def calendar_delete(state, event_id):
    """Delete an event."""
    CalendarManager(state.store, state.tenant()).delete(event_id)
    console.print("[green]Event deleted[/green]")
