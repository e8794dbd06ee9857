"""
Firm Dashboard

Headline counters for the firm's home page and a billing overview of its
cases. Every figure is scoped to the current firm.
"""
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal
from typing import List, Optional

from billing import case_revenue_basis
from db.store import Store
from models import BillingType, Case, CaseStatus, TimeEntry, parse_datetime, parse_enum
from tenant import TenantContext, TenantScopedStore


@dataclass
class DashboardSummary:
    clients: int
    cases: int
    active_cases: int
    upcoming_events: int


@dataclass
class CaseBillingRow:
    """One case in the billing overview."""
    case_id: str
    case_number: str
    title: str
    billing_type: BillingType
    total_hours: Decimal
    revenue_basis: Optional[Decimal]
    contingency_percentage: Optional[Decimal] = None


class FirmDashboard:
    """Analytics for a single firm."""

    def __init__(self, store: Store, context: TenantContext = None):
        self.scoped = TenantScopedStore(store, context)

    def summary(self, now: datetime = None) -> DashboardSummary:
        now = parse_datetime("now", now) if now else datetime.now(timezone.utc)
        return DashboardSummary(
            clients=self.scoped.count("clients"),
            cases=self.scoped.count("cases"),
            active_cases=self.scoped.count("cases", {"status": CaseStatus.ACTIVE.value}),
            upcoming_events=self.scoped.count("calendar_events", {"start_time__gte": now}),
        )

    def billing_overview(self, status: str = None) -> List[CaseBillingRow]:
        filters = {"status": parse_enum(CaseStatus, "status", status).value} if status else None
        rows = []
        for case_row in self.scoped.list("cases", filters, order_by="case_number"):
            case = Case.from_row(case_row)
            entries = [
                TimeEntry.from_row(r)
                for r in self.scoped.list("time_entries", {"case_id": case.id})
            ]
            basis = case_revenue_basis(case, entries)
            rows.append(CaseBillingRow(
                case_id=case.id,
                case_number=case.case_number,
                title=case.title,
                billing_type=case.billing_type,
                total_hours=sum((e.hours for e in entries), Decimal("0")),
                revenue_basis=basis.amount,
                contingency_percentage=basis.contingency_percentage,
            ))
        return rows
