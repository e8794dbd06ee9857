"""Case ledger commands."""

import click
from rich.panel import Panel
from rich.table import Table

from cases import CaseLedger
from commands.context import console, money, pass_state, reports_errors
from models import ContingencyBilling, FixedBilling, HourlyBilling

STATUS_COLORS = {
    "pending": "yellow",
    "active": "green",
    "closed": "blue",
    "archived": "white",
}


def describe_billing(billing) -> str:
    if isinstance(billing, HourlyBilling):
        return f"hourly at {money(billing.rate)}/h"
    if isinstance(billing, FixedBilling):
        return f"fixed fee {money(billing.fee)}"
    if isinstance(billing, ContingencyBilling):
        return f"contingency {billing.percentage}%"
    return "-"


@click.group()
def cases():
    """Case ledger."""
    pass


@cases.command("add")
@click.argument("client_id")
@click.argument("title")
@click.option("--number", "case_number", help="Case number (generated when omitted)")
@click.option("--billing", "billing_type", type=click.Choice(["hourly", "fixed", "contingency"]), default="hourly")
@click.option("--rate", "hourly_rate", help="Hourly rate")
@click.option("--fee", "fixed_fee", help="Fixed fee")
@click.option("--percentage", "contingency_percentage", help="Contingency percentage")
@click.option("--status", type=click.Choice(["pending", "active", "closed", "archived"]))
@click.option("--priority", type=click.Choice(["low", "medium", "high", "urgent"]))
@click.option("--practice-area")
@click.option("--lawyer", "assigned_lawyer", help="Assigned lawyer profile ID")
@click.option("--start-date", help="YYYY-MM-DD")
@click.option("--description")
@pass_state
@reports_errors
def cases_add(state, client_id, title, **fields):
    """Open a case for CLIENT_ID."""
    case = CaseLedger(state.store, state.tenant()).create(client_id=client_id, title=title, **fields)
    console.print(f"[green]Case {case.case_number} opened[/green] ({case.id})")
    console.print(f"  Billing: {describe_billing(case.billing)}")


@cases.command("edit")
@click.argument("case_id")
@click.option("--title")
@click.option("--number", "case_number")
@click.option("--billing", "billing_type", type=click.Choice(["hourly", "fixed", "contingency"]))
@click.option("--rate", "hourly_rate")
@click.option("--fee", "fixed_fee")
@click.option("--percentage", "contingency_percentage")
@click.option("--status", type=click.Choice(["pending", "active", "closed", "archived"]))
@click.option("--priority", type=click.Choice(["low", "medium", "high", "urgent"]))
@click.option("--lawyer", "assigned_lawyer")
@pass_state
@reports_errors
def cases_edit(state, case_id, **fields):
    """Edit a case. Only the options given are changed."""
    changes = {k: v for k, v in fields.items() if v is not None}
    if not changes:
        console.print("[yellow]Nothing to change[/yellow]")
        return
    case = CaseLedger(state.store, state.tenant()).update(case_id, **changes)
    console.print(f"[green]Case {case.case_number} updated[/green]")


@cases.command("list")
@click.option("--status", type=click.Choice(["pending", "active", "closed", "archived"]))
@click.option("--client-id")
@pass_state
@reports_errors
def cases_list(state, status, client_id):
    """List cases, newest first."""
    found = CaseLedger(state.store, state.tenant()).list(status=status, client_id=client_id)
    if not found:
        console.print("[yellow]No cases found[/yellow]")
        return

    table = Table(title=f"Cases ({len(found)})")
    table.add_column("Number")
    table.add_column("Title")
    table.add_column("Status")
    table.add_column("Priority")
    table.add_column("Billing")
    for c in found:
        color = STATUS_COLORS.get(c.status.value, "white")
        table.add_row(
            c.case_number,
            c.title[:40],
            f"[{color}]{c.status.value}[/{color}]",
            c.priority.value,
            describe_billing(c.billing),
        )
    console.print(table)


@cases.command("show")
@click.argument("case_id")
@pass_state
@reports_errors
def cases_show(state, case_id):
    """Show a case with its document and time statistics."""
    stats = CaseLedger(state.store, state.tenant()).get_with_statistics(case_id)
    case = stats.case
    lines = [
        f"Title: {case.title}",
        f"Status: {case.status.value}   Priority: {case.priority.value}",
        f"Client: {case.client_id}",
        f"Lawyer: {case.assigned_lawyer or 'unassigned'}",
        f"Billing: {describe_billing(case.billing)}",
        f"Documents: {stats.document_count}",
        f"Time entries: {stats.time_entry_count} ({stats.total_hours} h)",
    ]
    console.print(Panel("\n".join(lines), title=case.case_number))


@cases.command("duplicates")
@pass_state
@reports_errors
def cases_duplicates(state):
    """Report case numbers used by more than one case."""
    duplicates = CaseLedger(state.store, state.tenant()).find_duplicate_case_numbers()
    if not duplicates:
        console.print("[green]No duplicate case numbers[/green]")
        return
    for number, ids in duplicates.items():
        console.print(f"[yellow]{number}[/yellow]: {len(ids)} cases ({', '.join(i[:8] for i in ids)})")
