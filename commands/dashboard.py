"""Firm dashboard command."""

import click
from rich.panel import Panel
from rich.table import Table

from commands.context import console, money, pass_state, reports_errors
from firm_analytics import FirmDashboard


@click.command("dashboard")
@click.option("--billing", "show_billing", is_flag=True, help="Include the per-case billing overview")
@pass_state
@reports_errors
def dashboard_cmd(state, show_billing):
    """Firm headline numbers."""
    dashboard = FirmDashboard(state.store, state.tenant())
    summary = dashboard.summary()
    console.print(Panel(
        f"Clients: {summary.clients}\n"
        f"Cases: {summary.cases} ({summary.active_cases} active)\n"
        f"Upcoming events: {summary.upcoming_events}",
        title="Dashboard",
    ))

    if not show_billing:
        return

    table = Table(title="Billing Overview")
    table.add_column("Case")
    table.add_column("Title")
    table.add_column("Mode")
    table.add_column("Hours", justify="right")
    table.add_column("Revenue basis", justify="right")
    for row in dashboard.billing_overview():
        basis = money(row.revenue_basis) if row.revenue_basis is not None else f"{row.contingency_percentage}% of settlement"
        table.add_row(row.case_number, row.title[:30], row.billing_type.value, str(row.total_hours), basis)
    console.print(table)
