"""
Billing Engine

Two independent computations:

1. Invoice totals from line items:
       amount   = hours x rate            (exact)
       subtotal = sum(amount)             (exact)
       tax      = subtotal x TAX_RATE     (rounded half-up to cents)
       total    = subtotal + tax

2. The revenue basis of a case, which depends on its billing mode:
       hourly       sum of hours x rate over billable time entries
       fixed        the fixed fee, whatever was logged
       contingency  not computable here; the percentage applies to a
                    settlement figure this system does not track

Totals are recomputed on every read. Nothing derived is ever stored.
"""
import logging
from dataclasses import dataclass
from datetime import date, timedelta
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Optional, Union

from cases import next_sequence_number
from config import INVOICE_DUE_DAYS
from db.store import Store
from errors import ValidationError
from models import (
    BillingType,
    Case,
    ContingencyBilling,
    FixedBilling,
    HourlyBilling,
    Invoice,
    LineItem,
    TimeEntry,
    clean_text,
    compute_invoice_totals,
    parse_date,
    parse_hours,
    parse_money,
)
from tenant import TenantContext, TenantScopedStore

logger = logging.getLogger(__name__)

INVOICE_NUMBER_PREFIX = "FAC"


# ============================================================================
# Pure computations
# ============================================================================

def make_line_item(item: Union[LineItem, Dict[str, Any]], position: int = 0) -> LineItem:
    """Validate a line item given as a LineItem or a plain dict."""
    if isinstance(item, LineItem):
        item = {"description": item.description, "hours": item.hours, "rate": item.rate}
    description = clean_text(item.get("description"))
    if not description:
        raise ValidationError(f"items[{position}].description", "is required")
    return LineItem(
        description=description,
        hours=parse_hours(f"items[{position}].hours", item.get("hours")),
        rate=parse_money(f"items[{position}].rate", item.get("rate")),
    )


def line_items_from_time_entries(entries: Iterable[TimeEntry]) -> List[LineItem]:
    """One line item per billable entry, in date order."""
    items = []
    for entry in sorted(entries, key=lambda e: e.date):
        if not entry.is_billable:
            continue
        label = entry.description or entry.activity_type.value.capitalize()
        items.append(LineItem(
            description=f"{entry.date.isoformat()} {label}",
            hours=entry.hours,
            rate=entry.rate,
        ))
    return items


@dataclass
class RevenueBasis:
    """What a case can bill, given its billing mode."""
    case_id: str
    billing_type: BillingType
    amount: Optional[Decimal]
    contingency_percentage: Optional[Decimal] = None

    @property
    def computable(self) -> bool:
        return self.amount is not None


def case_revenue_basis(case: Case, entries: Iterable[TimeEntry]) -> RevenueBasis:
    billing = case.billing
    if isinstance(billing, HourlyBilling):
        amount = sum((e.amount for e in entries if e.is_billable), Decimal("0"))
        return RevenueBasis(case.id, billing.billing_type, amount)
    if isinstance(billing, FixedBilling):
        return RevenueBasis(case.id, billing.billing_type, billing.fee)
    if isinstance(billing, ContingencyBilling):
        return RevenueBasis(case.id, billing.billing_type, None, billing.percentage)
    raise TypeError(f"Unknown billing terms: {billing!r}")


# ============================================================================
# Firm-scoped invoicing
# ============================================================================

class BillingEngine:
    """Revenue basis per case and invoice records for one firm."""

    def __init__(self, store: Store, context: TenantContext = None):
        self.scoped = TenantScopedStore(store, context)

    def _case_and_entries(self, case_id: str):
        case = Case.from_row(self.scoped.get("cases", case_id))
        rows = self.scoped.list("time_entries", {"case_id": case_id}, order_by="date")
        return case, [TimeEntry.from_row(row) for row in rows]

    def revenue_basis(self, case_id: str) -> RevenueBasis:
        return case_revenue_basis(*self._case_and_entries(case_id))

    def draft_invoice_for_case(self, case_id: str, issue_date=None) -> Invoice:
        """
        Unsaved invoice for a case.

        Hourly cases get one item per billable time entry; fixed-fee cases
        a single item for the fee. Contingency cases can't be drafted.
        """
        case, entries = self._case_and_entries(case_id)
        billing = case.billing
        if isinstance(billing, HourlyBilling):
            items = line_items_from_time_entries(entries)
        elif isinstance(billing, FixedBilling):
            items = [LineItem(
                description=f"{case.case_number} {case.title} (fixed fee)",
                hours=Decimal("1"),
                rate=billing.fee,
            )]
        else:
            raise ValidationError(
                "billing_type",
                "contingency fees depend on a settlement amount and cannot be invoiced automatically",
            )

        issued = parse_date("issue_date", issue_date) or date.today()
        return Invoice(
            id=None,
            firm_id=self.scoped.firm_id,
            invoice_number=None,
            client_id=case.client_id,
            case_id=case.id,
            issue_date=issued,
            due_date=issued + timedelta(days=INVOICE_DUE_DAYS),
            items=items,
        )

    def generate_invoice_number(self, year: int = None) -> str:
        year = year or date.today().year
        existing = (row["invoice_number"] for row in self.scoped.list("invoices"))
        return next_sequence_number(INVOICE_NUMBER_PREFIX, year, existing)

    def create_invoice(self, client_id: str, items: List[Union[LineItem, Dict[str, Any]]],
                       case_id: str = None, issue_date=None, due_date=None,
                       notes: str = None) -> Invoice:
        """
        Persist an invoice and its items.

        Everything is validated before the first write.
        """
        if not items:
            raise ValidationError("items", "an invoice needs at least one line item")
        line_items = [make_line_item(item, i) for i, item in enumerate(items)]

        if not client_id:
            raise ValidationError("client_id", "is required")
        self.scoped.get("clients", client_id)
        if case_id:
            case_row = self.scoped.get("cases", case_id)
            if case_row["client_id"] != client_id:
                raise ValidationError("case_id", "belongs to a different client")

        issued = parse_date("issue_date", issue_date) or date.today()
        due = parse_date("due_date", due_date) or issued + timedelta(days=INVOICE_DUE_DAYS)
        if due < issued:
            raise ValidationError("due_date", "must not be before issue_date")

        # Header and items commit together
        with self.scoped.transaction():
            header = self.scoped.insert("invoices", {
                "invoice_number": self.generate_invoice_number(issued.year),
                "client_id": client_id,
                "case_id": case_id,
                "issue_date": issued,
                "due_date": due,
                "notes": clean_text(notes),
                "created_by": self.scoped.context.user_id,
            })
            item_rows = [
                self.scoped.insert("invoice_items", {
                    "invoice_id": header["id"],
                    "position": position,
                    "description": item.description,
                    "hours": item.hours,
                    "rate": item.rate,
                })
                for position, item in enumerate(line_items)
            ]
        invoice = Invoice.from_rows(header, item_rows)
        logger.info(
            "Created invoice %s (%s) in firm %s", invoice.id, invoice.invoice_number, invoice.firm_id,
        )
        return invoice

    def get_invoice(self, invoice_id: str) -> Invoice:
        header = self.scoped.get("invoices", invoice_id)
        items = self.scoped.list("invoice_items", {"invoice_id": invoice_id}, order_by="position")
        return Invoice.from_rows(header, items)

    def list_invoices(self, client_id: str = None, case_id: str = None) -> List[Invoice]:
        """Invoices with their items, newest issue date first."""
        filters = {}
        if client_id:
            filters["client_id"] = client_id
        if case_id:
            filters["case_id"] = case_id
        headers = self.scoped.list("invoices", filters, order_by="issue_date", descending=True)
        return [
            Invoice.from_rows(
                header,
                self.scoped.list("invoice_items", {"invoice_id": header["id"]}, order_by="position"),
            )
            for header in headers
        ]
