"""
Practice Domain Model

Entities for a firm's clients, cases, time, calendar, documents and
invoices. Rows come out of the store as dicts and are turned into these
dataclasses with from_row(); derived values (amounts, display names,
reminder times) are properties, never columns.
"""
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from enum import Enum
from typing import Any, ClassVar, Dict, Iterable, List, Optional, Union

from dateutil.parser import isoparse

from config import TAX_RATE
from errors import ValidationError

# Stored precision: NUMERIC(12, 2) money, NUMERIC(8, 2) hours
CENTS = Decimal("0.01")
HOURS_QUANTUM = Decimal("0.01")


class ClientType(Enum):
    INDIVIDUAL = "individual"
    COMPANY = "company"


class CaseStatus(Enum):
    """Lifecycle order pending -> active -> closed -> archived; any jump is allowed."""
    PENDING = "pending"
    ACTIVE = "active"
    CLOSED = "closed"
    ARCHIVED = "archived"


class CasePriority(Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"


class BillingType(Enum):
    HOURLY = "hourly"
    FIXED = "fixed"
    CONTINGENCY = "contingency"


class BillableStatus(Enum):
    BILLABLE = "billable"
    NON_BILLABLE = "non-billable"
    PRO_BONO = "pro-bono"


class ActivityType(Enum):
    CONSULTATION = "consultation"
    RESEARCH = "research"
    DRAFTING = "drafting"
    COURT = "court"
    NEGOTIATION = "negotiation"
    REVIEW = "review"
    TRAVEL = "travel"
    OTHER = "other"


class EventType(Enum):
    MEETING = "meeting"
    HEARING = "hearing"
    DEADLINE = "deadline"
    APPOINTMENT = "appointment"
    REMINDER = "reminder"
    OTHER = "other"


class DocumentType(Enum):
    CONTRACT = "contract"
    EVIDENCE = "evidence"
    CORRESPONDENCE = "correspondence"
    TEMPLATE = "template"
    OTHER = "other"


# ============================================================================
# Value parsing
# ============================================================================

def parse_enum(enum_cls, field_name: str, value, default=None):
    """Accept an enum member or its string value."""
    if value is None or value == "":
        if default is None:
            raise ValidationError(field_name, "is required")
        return default
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(value)
    except ValueError:
        allowed = ", ".join(m.value for m in enum_cls)
        raise ValidationError(field_name, f"must be one of {allowed} (got {value!r})")


def to_decimal(value) -> Optional[Decimal]:
    """Decimal from a stored or user value; floats go through str() to avoid binary noise."""
    if value is None:
        return None
    if isinstance(value, Decimal):
        return value
    if isinstance(value, float):
        return Decimal(str(value))
    return Decimal(value)


def parse_amount(field_name: str, value, required: bool = True) -> Optional[Decimal]:
    """Non-negative decimal amount, or ValidationError."""
    if value is None or value == "":
        if required:
            raise ValidationError(field_name, "is required")
        return None
    if isinstance(value, bool):
        raise ValidationError(field_name, "must be a number")
    try:
        amount = to_decimal(value)
    except (InvalidOperation, TypeError, ValueError):
        raise ValidationError(field_name, f"must be a number (got {value!r})")
    if not amount.is_finite():
        raise ValidationError(field_name, "must be a finite number")
    if amount < 0:
        raise ValidationError(field_name, "must not be negative")
    return amount


def _quantize(field_name: str, amount: Decimal, quantum: Decimal) -> Decimal:
    try:
        return amount.quantize(quantum, rounding=ROUND_HALF_UP)
    except InvalidOperation:
        raise ValidationError(field_name, "is too large")


def parse_money(field_name: str, value, required: bool = True) -> Optional[Decimal]:
    """Non-negative amount rounded half-up to cents, as the store keeps it."""
    amount = parse_amount(field_name, value, required)
    return None if amount is None else _quantize(field_name, amount, CENTS)


def parse_hours(field_name: str, value) -> Decimal:
    """Non-negative hours rounded half-up to hundredths."""
    return _quantize(field_name, parse_amount(field_name, value), HOURS_QUANTUM)


def parse_date(field_name: str, value) -> Optional[date]:
    """date, datetime or ISO-8601 string -> date."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return isoparse(str(value)).date()
    except (ValueError, OverflowError):
        raise ValidationError(field_name, f"is not a valid date ({value!r})")


def parse_datetime(field_name: str, value) -> datetime:
    """
    datetime or ISO-8601 string -> timezone-aware datetime.

    Naive values are taken as UTC.
    """
    if value is None or value == "":
        raise ValidationError(field_name, "is required")
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        raise ValidationError(field_name, "needs a time of day, not just a date")
    else:
        try:
            parsed = isoparse(str(value))
        except (ValueError, OverflowError):
            raise ValidationError(field_name, f"is not a valid date/time ({value!r})")
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def clean_text(value: Optional[str]) -> Optional[str]:
    """Strip whitespace; empty strings become None."""
    if value is None:
        return None
    value = str(value).strip()
    return value or None


# ============================================================================
# Billing terms (one variant per billing mode)
# ============================================================================

@dataclass(frozen=True)
class HourlyBilling:
    rate: Decimal
    billing_type: ClassVar[BillingType] = BillingType.HOURLY


@dataclass(frozen=True)
class FixedBilling:
    fee: Decimal
    billing_type: ClassVar[BillingType] = BillingType.FIXED


@dataclass(frozen=True)
class ContingencyBilling:
    percentage: Decimal
    billing_type: ClassVar[BillingType] = BillingType.CONTINGENCY


BillingTerms = Union[HourlyBilling, FixedBilling, ContingencyBilling]


def build_billing_terms(billing_type, hourly_rate=None, fixed_fee=None,
                        contingency_percentage=None) -> BillingTerms:
    """
    Build the variant selected by billing_type.

    Only the amount matching the mode is read; the other two are ignored.
    """
    mode = parse_enum(BillingType, "billing_type", billing_type, BillingType.HOURLY)
    if mode is BillingType.HOURLY:
        return HourlyBilling(rate=parse_money("hourly_rate", hourly_rate))
    if mode is BillingType.FIXED:
        return FixedBilling(fee=parse_money("fixed_fee", fixed_fee))
    percentage = parse_money("contingency_percentage", contingency_percentage)
    if percentage > 100:
        raise ValidationError("contingency_percentage", "must be between 0 and 100")
    return ContingencyBilling(percentage=percentage)


def billing_from_row(row: Dict[str, Any]) -> BillingTerms:
    """Read the active billing variant from a stored case row."""
    mode = BillingType(row.get("billing_type") or BillingType.HOURLY.value)
    if mode is BillingType.HOURLY:
        return HourlyBilling(rate=to_decimal(row.get("hourly_rate")) or Decimal("0"))
    if mode is BillingType.FIXED:
        return FixedBilling(fee=to_decimal(row.get("fixed_fee")) or Decimal("0"))
    return ContingencyBilling(percentage=to_decimal(row.get("contingency_percentage")) or Decimal("0"))


def billing_to_row(terms: BillingTerms) -> Dict[str, Any]:
    """Columns for a billing variant; the inactive amounts are written as NULL."""
    return {
        "billing_type": terms.billing_type.value,
        "hourly_rate": terms.rate if isinstance(terms, HourlyBilling) else None,
        "fixed_fee": terms.fee if isinstance(terms, FixedBilling) else None,
        "contingency_percentage": terms.percentage if isinstance(terms, ContingencyBilling) else None,
    }


# ============================================================================
# Entities
# ============================================================================

@dataclass
class Client:
    """An individual or company client of the firm."""
    id: str
    firm_id: str
    type: ClientType
    full_name: Optional[str]
    company_name: Optional[str]
    email: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    tax_id: Optional[str] = None
    notes: Optional[str] = None
    created_by: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def display_name(self) -> str:
        if self.type is ClientType.COMPANY:
            return self.company_name or ""
        return self.full_name or ""

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "Client":
        return cls(
            id=row["id"],
            firm_id=row["firm_id"],
            type=ClientType(row["type"]),
            full_name=row.get("full_name"),
            company_name=row.get("company_name"),
            email=row.get("email"),
            phone=row.get("phone"),
            address=row.get("address"),
            tax_id=row.get("tax_id"),
            notes=row.get("notes"),
            created_by=row.get("created_by"),
            created_at=row.get("created_at"),
            updated_at=row.get("updated_at"),
        )


@dataclass
class Case:
    """A legal matter owned by one client."""
    id: str
    firm_id: str
    client_id: str
    case_number: str
    title: str
    status: CaseStatus
    priority: CasePriority
    billing: BillingTerms
    description: Optional[str] = None
    practice_area: Optional[str] = None
    assigned_lawyer: Optional[str] = None
    start_date: Optional[date] = None
    expected_end_date: Optional[date] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def billing_type(self) -> BillingType:
        return self.billing.billing_type

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "Case":
        return cls(
            id=row["id"],
            firm_id=row["firm_id"],
            client_id=row["client_id"],
            case_number=row["case_number"],
            title=row["title"],
            status=CaseStatus(row.get("status") or "pending"),
            priority=CasePriority(row.get("priority") or "medium"),
            billing=billing_from_row(row),
            description=row.get("description"),
            practice_area=row.get("practice_area"),
            assigned_lawyer=row.get("assigned_lawyer"),
            start_date=row.get("start_date"),
            expected_end_date=row.get("expected_end_date"),
            created_at=row.get("created_at"),
            updated_at=row.get("updated_at"),
        )


@dataclass
class CaseStatistics:
    """A case plus its aggregate counters (case detail view)."""
    case: Case
    document_count: int
    time_entry_count: int
    total_hours: Decimal


@dataclass
class TimeEntry:
    """A unit of work logged against a case."""
    id: str
    firm_id: str
    case_id: str
    date: date
    hours: Decimal
    rate: Decimal
    activity_type: ActivityType
    billable_status: BillableStatus
    description: Optional[str] = None
    user_id: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def amount(self) -> Decimal:
        """Always hours x rate, recomputed on every read."""
        return self.hours * self.rate

    @property
    def is_billable(self) -> bool:
        return self.billable_status is BillableStatus.BILLABLE

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "TimeEntry":
        return cls(
            id=row["id"],
            firm_id=row["firm_id"],
            case_id=row["case_id"],
            date=row["date"],
            hours=to_decimal(row["hours"]),
            rate=to_decimal(row["rate"]),
            activity_type=ActivityType(row.get("activity_type") or "other"),
            billable_status=BillableStatus(row.get("billable_status") or "billable"),
            description=row.get("description"),
            user_id=row.get("user_id"),
            created_at=row.get("created_at"),
            updated_at=row.get("updated_at"),
        )


@dataclass
class CalendarEvent:
    """A dated event, optionally tied to a case, a client and an assignee."""
    id: str
    firm_id: str
    title: str
    event_type: EventType
    start_time: datetime
    end_time: datetime
    reminder_minutes: int
    description: Optional[str] = None
    location: Optional[str] = None
    case_id: Optional[str] = None
    client_id: Optional[str] = None
    assigned_to: Optional[str] = None
    created_by: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def duration(self) -> timedelta:
        return self.end_time - self.start_time

    @property
    def reminder_at(self) -> Optional[datetime]:
        """When the reminder is due; None when reminders are off (0)."""
        if not self.reminder_minutes:
            return None
        return self.start_time - timedelta(minutes=self.reminder_minutes)

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "CalendarEvent":
        return cls(
            id=row["id"],
            firm_id=row["firm_id"],
            title=row["title"],
            event_type=EventType(row.get("event_type") or "other"),
            start_time=row["start_time"],
            end_time=row["end_time"],
            reminder_minutes=row.get("reminder_minutes") or 0,
            description=row.get("description"),
            location=row.get("location"),
            case_id=row.get("case_id"),
            client_id=row.get("client_id"),
            assigned_to=row.get("assigned_to"),
            created_by=row.get("created_by"),
            created_at=row.get("created_at"),
            updated_at=row.get("updated_at"),
        )


@dataclass(frozen=True)
class BlobReference:
    """Where a document's content lives in the external blob store."""
    url: str
    size: Optional[int] = None
    mime_type: Optional[str] = None


@dataclass
class Document:
    """Metadata for a file stored elsewhere."""
    id: str
    firm_id: str
    name: str
    document_type: DocumentType
    is_template: bool
    version: int
    description: Optional[str] = None
    case_id: Optional[str] = None
    client_id: Optional[str] = None
    content: Optional[BlobReference] = None
    uploaded_by: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "Document":
        content = None
        if row.get("file_url"):
            content = BlobReference(
                url=row["file_url"],
                size=row.get("file_size"),
                mime_type=row.get("mime_type"),
            )
        return cls(
            id=row["id"],
            firm_id=row["firm_id"],
            name=row["name"],
            document_type=DocumentType(row.get("document_type") or "other"),
            is_template=bool(row.get("is_template")),
            version=row.get("version") or 1,
            description=row.get("description"),
            case_id=row.get("case_id"),
            client_id=row.get("client_id"),
            content=content,
            uploaded_by=row.get("uploaded_by"),
            created_at=row.get("created_at"),
            updated_at=row.get("updated_at"),
        )


@dataclass(frozen=True)
class LineItem:
    """One billable unit on an invoice."""
    description: str
    hours: Decimal
    rate: Decimal

    @property
    def amount(self) -> Decimal:
        return self.hours * self.rate


@dataclass(frozen=True)
class InvoiceTotals:
    subtotal: Decimal
    tax: Decimal
    total: Decimal


def compute_invoice_totals(items: Iterable[LineItem], tax_rate: Decimal = None) -> InvoiceTotals:
    """
    Subtotal, tax and total for a list of line items.

    Amounts and subtotal are exact; tax is rounded half-up to cents.
    """
    rate = TAX_RATE if tax_rate is None else tax_rate
    subtotal = sum((item.amount for item in items), Decimal("0"))
    tax = (subtotal * rate).quantize(CENTS, rounding=ROUND_HALF_UP)
    return InvoiceTotals(subtotal=subtotal, tax=tax, total=subtotal + tax)


@dataclass
class Invoice:
    """Invoice header plus its line items. Totals are computed, never stored."""
    id: Optional[str]
    firm_id: str
    invoice_number: Optional[str]
    client_id: str
    issue_date: date
    due_date: date
    items: List[LineItem] = field(default_factory=list)
    case_id: Optional[str] = None
    notes: Optional[str] = None
    created_by: Optional[str] = None
    created_at: Optional[datetime] = None

    @property
    def totals(self) -> InvoiceTotals:
        return compute_invoice_totals(self.items)

    @classmethod
    def from_rows(cls, row: Dict[str, Any], item_rows: List[Dict[str, Any]]) -> "Invoice":
        items = [
            LineItem(
                description=item["description"],
                hours=to_decimal(item["hours"]),
                rate=to_decimal(item["rate"]),
            )
            for item in sorted(item_rows, key=lambda r: r["position"])
        ]
        return cls(
            id=row["id"],
            firm_id=row["firm_id"],
            invoice_number=row["invoice_number"],
            client_id=row["client_id"],
            issue_date=row["issue_date"],
            due_date=row["due_date"],
            items=items,
            case_id=row.get("case_id"),
            notes=row.get("notes"),
            created_by=row.get("created_by"),
            created_at=row.get("created_at"),
        )
