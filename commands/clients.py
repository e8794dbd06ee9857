"""Client registry commands."""

import click
from rich.panel import Panel
from rich.table import Table

from clients import ClientRegistry
from commands.context import console, pass_state, reports_errors


@click.group()
def clients():
    """Client registry."""
    pass


@clients.command("add")
@click.option("--type", "client_type", type=click.Choice(["individual", "company"]), required=True)
@click.option("--name", "full_name", help="Full name (contact person for companies)")
@click.option("--company", "company_name", help="Company name (companies only)")
@click.option("--email")
@click.option("--phone")
@click.option("--address")
@click.option("--tax-id")
@click.option("--notes")
@pass_state
@reports_errors
def clients_add(state, client_type, full_name, company_name, email, phone, address, tax_id, notes):
    """Register a new client."""
    registry = ClientRegistry(state.store, state.tenant())
    client = registry.create(
        type=client_type,
        full_name=full_name,
        company_name=company_name,
        email=email,
        phone=phone,
        address=address,
        tax_id=tax_id,
        notes=notes,
    )
    console.print(f"[green]Client {client.display_name} created[/green] ({client.id})")


@clients.command("edit")
@click.argument("client_id")
@click.option("--type", "client_type", type=click.Choice(["individual", "company"]))
@click.option("--name", "full_name")
@click.option("--company", "company_name")
@click.option("--email")
@click.option("--phone")
@click.option("--address")
@click.option("--tax-id")
@click.option("--notes")
@pass_state
@reports_errors
def clients_edit(state, client_id, client_type, **fields):
    """Edit a client. Only the options given are changed."""
    changes = {k: v for k, v in fields.items() if v is not None}
    if client_type:
        changes["type"] = client_type
    if not changes:
        console.print("[yellow]Nothing to change[/yellow]")
        return
    client = ClientRegistry(state.store, state.tenant()).update(client_id, **changes)
    console.print(f"[green]Client {client.display_name} updated[/green]")


@clients.command("list")
@click.option("--type", "client_type", type=click.Choice(["individual", "company"]))
@click.option("--search", help="Match name, company or email")
@pass_state
@reports_errors
def clients_list(state, client_type, search):
    """List clients, newest first."""
    found = ClientRegistry(state.store, state.tenant()).list(client_type=client_type, search=search)
    if not found:
        console.print("[yellow]No clients found[/yellow]")
        return

    table = Table(title=f"Clients ({len(found)})")
    table.add_column("ID")
    table.add_column("Name")
    table.add_column("Type")
    table.add_column("Email")
    table.add_column("Phone")
    for c in found:
        table.add_row(c.id[:8], c.display_name, c.type.value, c.email or "-", c.phone or "-")
    console.print(table)


@clients.command("show")
@click.argument("client_id")
@pass_state
@reports_errors
def clients_show(state, client_id):
    """Show a client and how many cases it has."""
    client, case_count = ClientRegistry(state.store, state.tenant()).get_with_case_count(client_id)
    lines = [
        f"Type: {client.type.value}",
        f"Contact: {client.full_name or '-'}",
        f"Email: {client.email or '-'}",
        f"Phone: {client.phone or '-'}",
        f"Address: {client.address or '-'}",
        f"Tax ID: {client.tax_id or '-'}",
        f"Cases: {case_count}",
    ]
    if client.notes:
        lines.append(f"\n{client.notes}")
    console.print(Panel("\n".join(lines), title=client.display_name))


@clients.command("delete")
@click.argument("client_id")
@click.confirmation_option(prompt="Delete this client?")
@pass_state
@reports_errors
def clients_delete(state, client_id):
    """Delete a client nothing else references."""
    ClientRegistry(state.store, state.tenant()).delete(client_id)
    console.print("[green]Client deleted[/green]")
