"""Document registry commands."""

import click
from rich.table import Table

from commands.context import console, pass_state, reports_errors
from documents import DocumentRegistry
from models import BlobReference

DOCUMENT_TYPES = ["contract", "evidence", "correspondence", "template", "other"]


@click.group()
def documents():
    """Document registry."""
    pass


@documents.command("add")
@click.argument("name")
@click.option("--url", "file_url", help="Location of the stored file")
@click.option("--size", "file_size", type=int, help="File size in bytes")
@click.option("--mime-type")
@click.option("--type", "document_type", type=click.Choice(DOCUMENT_TYPES))
@click.option("--case-id")
@click.option("--client-id")
@click.option("--template", "is_template", is_flag=True, help="Mark as a reusable template")
@click.option("--description")
@pass_state
@reports_errors
def documents_add(state, name, file_url, file_size, mime_type, **fields):
    """Register a document (its file lives in the blob store)."""
    content = BlobReference(url=file_url, size=file_size, mime_type=mime_type) if file_url else None
    document = DocumentRegistry(state.store, state.tenant()).create(name=name, content=content, **fields)
    console.print(f"[green]Document {document.name} registered[/green] (v{document.version}, {document.id})")


@documents.command("upload")
@click.argument("document_id")
@click.argument("file_url")
@click.option("--size", "file_size", type=int)
@click.option("--mime-type")
@pass_state
@reports_errors
def documents_upload(state, document_id, file_url, file_size, mime_type):
    """Replace a document's content with a new version."""
    document = DocumentRegistry(state.store, state.tenant()).replace_content(
        document_id, BlobReference(url=file_url, size=file_size, mime_type=mime_type)
    )
    console.print(f"[green]{document.name} is now version {document.version}[/green]")


@documents.command("list")
@click.option("--type", "document_type", type=click.Choice(DOCUMENT_TYPES))
@click.option("--case-id")
@click.option("--client-id")
@click.option("--templates", is_flag=True, help="Only templates")
@pass_state
@reports_errors
def documents_list(state, document_type, case_id, client_id, templates):
    """List documents, newest first."""
    found = DocumentRegistry(state.store, state.tenant()).list(
        document_type=document_type,
        case_id=case_id,
        client_id=client_id,
        is_template=True if templates else None,
    )
    if not found:
        console.print("[yellow]No documents found[/yellow]")
        return

    table = Table(title=f"Documents ({len(found)})")
    table.add_column("ID")
    table.add_column("Name")
    table.add_column("Type")
    table.add_column("Version", justify="right")
    table.add_column("Size", justify="right")
    table.add_column("Template")
    for d in found:
        size = f"{d.content.size:,}" if d.content and d.content.size is not None else "-"
        table.add_row(
            d.id[:8], d.name[:40], d.document_type.value, str(d.version), size,
            "yes" if d.is_template else "",
        )
    console.print(table)
