#!/usr/bin/env python3
"""
Law Firm Practice Manager

Main CLI for the practice core. Provides commands for:
- Firm onboarding and members
- Clients and cases
- Time & activity log
- Calendar & scheduling
- Documents
- Billing and invoices
- Firm dashboard
"""
import logging

import click
from rich.table import Table

from config import DEFAULT_USER_ID, LOG_LEVEL
from db.schema import ensure_all_tables
from db.store import get_store
from tenant import ProfileDirectory, onboard_firm
from commands.context import CLIState, console, pass_state, reports_errors
from commands.billing import billing
from commands.cases import cases
from commands.clients import clients
from commands.dashboard import dashboard_cmd
from commands.documents import documents
from commands.schedule import calendar_group
from commands.timelog import time_group


# ============================================================================
# CLI Group
# ============================================================================

@click.group()
@click.version_option(version="1.0.0")
@click.option("--user", "user_id", envvar="LAWFIRM_USER_ID", default=DEFAULT_USER_ID,
              help="Acting user ID (or LAWFIRM_USER_ID)")
@click.pass_context
def cli(ctx, user_id):
    """
    Law Firm Practice Manager

    Clients, cases, time, calendar, documents and invoices for your firm.
    Every command acts on the firm of the acting user.
    """
    logging.basicConfig(
        level=LOG_LEVEL,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    if ctx.obj is None:
        ctx.obj = CLIState(store=get_store(), user_id=user_id)


# ============================================================================
# Setup Commands
# ============================================================================

@cli.command("init-db")
def init_db():
    """Create the practice tables in PostgreSQL."""
    ensure_all_tables()
    console.print("[green]Practice tables ready[/green]")


@cli.command("onboard")
@click.argument("firm_name")
@click.argument("full_name")
@click.option("--email")
@pass_state
@reports_errors
def onboard(state, firm_name, full_name, email):
    """Create FIRM_NAME with the acting user as its admin."""
    if not state.user_id:
        raise click.UsageError("Pass --user or set LAWFIRM_USER_ID")
    context = onboard_firm(state.store, firm_name, state.user_id, full_name, email)
    console.print(f"[green]Firm {firm_name} created[/green] ({context.firm_id})")
    console.print(f"  {context.full_name} is its admin")


# ============================================================================
# Member Commands
# ============================================================================

@cli.group()
def members():
    """Firm members and roles."""
    pass


@members.command("add")
@click.argument("user_id")
@click.argument("full_name")
@click.option("--role", type=click.Choice(["admin", "lawyer", "staff"]), default="staff")
@click.option("--email")
@pass_state
@reports_errors
def members_add(state, user_id, full_name, role, email):
    """Add USER_ID to your firm (admins only)."""
    ProfileDirectory(state.store, state.tenant()).add_member(user_id, full_name, role, email)
    console.print(f"[green]{full_name} added as {role}[/green]")


@members.command("list")
@click.option("--role", type=click.Choice(["admin", "lawyer", "staff"]))
@pass_state
@reports_errors
def members_list(state, role):
    """List the members of your firm."""
    profiles = ProfileDirectory(state.store, state.tenant()).list_members(role)
    table = Table(title=f"Members ({len(profiles)})")
    table.add_column("ID")
    table.add_column("Name")
    table.add_column("Role")
    table.add_column("Email")
    for p in profiles:
        table.add_row(p["id"], p["full_name"], p["role"], p.get("email") or "-")
    console.print(table)


cli.add_command(clients)
cli.add_command(cases)
cli.add_command(time_group)
cli.add_command(calendar_group)
cli.add_command(documents)
cli.add_command(billing)
cli.add_command(dashboard_cmd)


# ============================================================================
# Main Entry Point
# ============================================================================

def main():
    """Main entry point."""
    cli()


if __name__ == "__main__":
    main()
