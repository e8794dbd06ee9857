"""Billing commands."""

import click
from rich.table import Table

from billing import BillingEngine, compute_invoice_totals
from commands.context import console, money, pass_state, reports_errors


def _print_invoice(invoice, title):
    table = Table(title=title)
    table.add_column("Description")
    table.add_column("Hours", justify="right")
    table.add_column("Rate", justify="right")
    table.add_column("Amount", justify="right")
    for item in invoice.items:
        table.add_row(item.description[:50], str(item.hours), money(item.rate), money(item.amount))
    console.print(table)

    totals = invoice.totals
    console.print(f"  Subtotal: {money(totals.subtotal)}")
    console.print(f"  Tax:      {money(totals.tax)}")
    console.print(f"  [bold]Total:    {money(totals.total)}[/bold]")
    console.print(f"  Due: {invoice.due_date}")


@click.group()
def billing():
    """Billing engine."""
    pass


@billing.command("basis")
@click.argument("case_id")
@pass_state
@reports_errors
def billing_basis(state, case_id):
    """What a case can bill under its billing mode."""
    basis = BillingEngine(state.store, state.tenant()).revenue_basis(case_id)
    if basis.computable:
        console.print(f"{basis.billing_type.value}: [bold]{money(basis.amount)}[/bold]")
    else:
        console.print(
            f"contingency {basis.contingency_percentage}% of the settlement "
            "[dim](not computable until settlement)[/dim]"
        )


@billing.command("draft")
@click.argument("case_id")
@pass_state
@reports_errors
def billing_draft(state, case_id):
    """Preview the invoice a case would produce."""
    invoice = BillingEngine(state.store, state.tenant()).draft_invoice_for_case(case_id)
    if not invoice.items:
        console.print("[yellow]No billable time on this case[/yellow]")
        return
    _print_invoice(invoice, "Draft Invoice")


@billing.command("invoice")
@click.argument("client_id")
@click.option(
    "--item", "items", type=(str, str, str), multiple=True, required=True,
    metavar="DESCRIPTION HOURS RATE", help="Line item; repeat for each one.",
)
@click.option("--case-id")
@click.option("--due-date", help="YYYY-MM-DD")
@click.option("--notes")
@pass_state
@reports_errors
def billing_invoice(state, client_id, items, case_id, due_date, notes):
    """Create an invoice from one or more --item entries."""
    invoice = BillingEngine(state.store, state.tenant()).create_invoice(
        client_id=client_id,
        items=[
            {"description": description, "hours": hours, "rate": rate}
            for description, hours, rate in items
        ],
        case_id=case_id,
        due_date=due_date,
        notes=notes,
    )
    _print_invoice(invoice, f"Invoice {invoice.invoice_number}")


@billing.command("invoices")
@click.option("--client-id")
@click.option("--case-id")
@pass_state
@reports_errors
def billing_invoices(state, client_id, case_id):
    """List invoices with their totals."""
    invoices = BillingEngine(state.store, state.tenant()).list_invoices(client_id, case_id)
    if not invoices:
        console.print("[yellow]No invoices found[/yellow]")
        return

    table = Table(title=f"Invoices ({len(invoices)})")
    table.add_column("Number")
    table.add_column("Issued")
    table.add_column("Due")
    table.add_column("Subtotal", justify="right")
    table.add_column("Total", justify="right")
    for inv in invoices:
        totals = compute_invoice_totals(inv.items)
        table.add_row(
            inv.invoice_number, str(inv.issue_date), str(inv.due_date),
            money(totals.subtotal), money(totals.total),
        )
    console.print(table)
