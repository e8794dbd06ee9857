"""
Client Registry

Individuals and companies the firm represents. A company needs a
company_name (full_name is then its contact person); an individual needs
a full_name and never carries a company_name.
"""
import logging
from typing import Any, Dict, List, Tuple

from db.store import Store
from errors import ValidationError
from models import Client, ClientType, clean_text, parse_enum
from tenant import TenantContext, TenantScopedStore

logger = logging.getLogger(__name__)

CLIENT_FIELDS = (
    "type", "full_name", "company_name", "email", "phone",
    "address", "tax_id", "notes",
)

# Tables whose client_id points at a client, with the label used in errors
REFERENCING_TABLES = (
    ("cases", "case(s)"),
    ("invoices", "invoice(s)"),
    ("documents", "document(s)"),
    ("calendar_events", "calendar event(s)"),
)


def validate_client(data: Dict[str, Any]) -> Dict[str, Any]:
    """Return the cleaned row for a client, or raise ValidationError."""
    row = {name: clean_text(data.get(name)) for name in CLIENT_FIELDS if name != "type"}
    client_type = parse_enum(ClientType, "type", data.get("type"))
    row["type"] = client_type.value

    if client_type is ClientType.COMPANY:
        if not row["company_name"]:
            raise ValidationError("company_name", "is required for company clients")
    else:
        if not row["full_name"]:
            raise ValidationError("full_name", "is required for individual clients")
        row["company_name"] = None

    if row["email"] and "@" not in row["email"]:
        raise ValidationError("email", f"is not a valid address ({row['email']})")
    return row


class ClientRegistry:
    """
    Firm-scoped client records.

    Clients are never hard-deleted while a case still references them.
    """

    def __init__(self, store: Store, context: TenantContext = None):
        self.scoped = TenantScopedStore(store, context)

    def create(self, type: str, full_name: str = None, company_name: str = None,
               email: str = None, phone: str = None, address: str = None,
               tax_id: str = None, notes: str = None) -> Client:
        row = validate_client({
            "type": type,
            "full_name": full_name,
            "company_name": company_name,
            "email": email,
            "phone": phone,
            "address": address,
            "tax_id": tax_id,
            "notes": notes,
        })
        row["created_by"] = self.scoped.context.user_id
        client = Client.from_row(self.scoped.insert("clients", row))
        logger.info("Created client %s in firm %s", client.id, client.firm_id)
        return client

    def update(self, client_id: str, **changes) -> Client:
        """Apply a partial edit. The merged record is validated before anything is written."""
        unknown = set(changes) - set(CLIENT_FIELDS)
        if unknown:
            raise ValidationError(sorted(unknown)[0], "is not an editable client field")

        current = self.scoped.get("clients", client_id)
        merged = {name: current.get(name) for name in CLIENT_FIELDS}
        merged.update(changes)
        row = validate_client(merged)

        client = Client.from_row(self.scoped.update("clients", client_id, row))
        logger.info("Updated client %s in firm %s", client.id, client.firm_id)
        return client

    def get(self, client_id: str) -> Client:
        return Client.from_row(self.scoped.get("clients", client_id))

    def get_with_case_count(self, client_id: str) -> Tuple[Client, int]:
        client = self.get(client_id)
        return client, self.scoped.count("cases", {"client_id": client_id})

    def list(self, client_type: str = None, search: str = None) -> List[Client]:
        """List clients, newest first."""
        filters = {}
        if client_type:
            filters["type"] = parse_enum(ClientType, "type", client_type).value
        rows = self.scoped.list("clients", filters, order_by="created_at", descending=True)
        clients = [Client.from_row(row) for row in rows]

        if search:
            needle = search.strip().lower()
            clients = [
                c for c in clients
                if any(needle in (value or "").lower()
                       for value in (c.full_name, c.company_name, c.email))
            ]
        return clients

    def delete(self, client_id: str) -> None:
        """Hard-delete a client nothing else points at."""
        self.scoped.get("clients", client_id)
        references = [
            f"{count} {label}"
            for table, label in REFERENCING_TABLES
            for count in [self.scoped.count(table, {"client_id": client_id})]
            if count
        ]
        if references:
            raise ValidationError(
                "client_id",
                f"client is referenced by {', '.join(references)} and cannot be deleted",
            )
        self.scoped.delete("clients", client_id)
        logger.info("Deleted client %s in firm %s", client_id, self.scoped.firm_id)

