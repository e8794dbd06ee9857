"""Time & activity log commands."""

import click
from rich.table import Table

from commands.context import console, money, pass_state, reports_errors
from time_entries import TimeLog

ACTIVITY_TYPES = ["consultation", "research", "drafting", "court", "negotiation", "review", "travel", "other"]


@click.group("time")
def time_group():
    """Time & activity log."""
    pass


@time_group.command("log")
@click.argument("case_id")
@click.argument("hours")
@click.option("--rate", help="Rate per hour (defaults to the case's hourly rate)")
@click.option("--date", "entry_date", help="YYYY-MM-DD (default today)")
@click.option("--activity", "activity_type", type=click.Choice(ACTIVITY_TYPES))
@click.option("--status", "billable_status", type=click.Choice(["billable", "non-billable", "pro-bono"]))
@click.option("--description")
@pass_state
@reports_errors
def time_log(state, case_id, hours, rate, entry_date, activity_type, billable_status, description):
    """Log HOURS of work on CASE_ID."""
    entry = TimeLog(state.store, state.tenant()).create(
        case_id=case_id,
        hours=hours,
        rate=rate,
        date=entry_date,
        activity_type=activity_type,
        billable_status=billable_status,
        description=description,
    )
    console.print(f"[green]Logged {entry.hours} h at {money(entry.rate)}[/green] = {money(entry.amount)}")


@time_group.command("list")
@click.argument("case_id")
@pass_state
@reports_errors
def time_list(state, case_id):
    """Time entries for a case."""
    log = TimeLog(state.store, state.tenant())
    entries = log.list_by_case(case_id)
    if not entries:
        console.print("[yellow]No time logged on this case[/yellow]")
        return

    table = Table(title=f"Time Entries ({len(entries)})")
    table.add_column("ID")
    table.add_column("Date")
    table.add_column("Activity")
    table.add_column("Hours", justify="right")
    table.add_column("Rate", justify="right")
    table.add_column("Amount", justify="right")
    table.add_column("Status")
    for e in entries:
        table.add_row(
            e.id[:8], str(e.date), e.activity_type.value, str(e.hours),
            money(e.rate), money(e.amount), e.billable_status.value,
        )
    console.print(table)

    summary = log.summarize(case_id)
    console.print(
        f"Total: {summary.total_hours} h, billable {summary.billable_hours} h = "
        f"[bold]{money(summary.billable_amount)}[/bold]"
    )


@time_group.command("delete")
@click.argument("entry_id")
@pass_state
@reports_errors
def time_delete(state, entry_id):
    """Delete a time entry."""
    TimeLog(state.store, state.tenant()).delete(entry_id)
    console.print("[green]Time entry deleted[/green]")
