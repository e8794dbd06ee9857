"""
Time & Activity Log

Work logged against a case. The amount of an entry is always hours x rate
computed on read; there is no stored amount to drift out of date.
"""
import logging
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Any, Dict, List

from config import MAX_REASONABLE_HOURS
from db.store import Store
from errors import ValidationError
from models import (
    ActivityType,
    BillableStatus,
    HourlyBilling,
    TimeEntry,
    billing_from_row,
    clean_text,
    parse_date,
    parse_enum,
    parse_hours,
    parse_money,
)
from tenant import TenantContext, TenantScopedStore

logger = logging.getLogger(__name__)

EDITABLE_FIELDS = (
    "date", "hours", "rate", "description", "activity_type", "billable_status",
)


@dataclass
class TimeSummary:
    """Totals for one case's time entries."""
    case_id: str
    entry_count: int
    total_hours: Decimal
    billable_hours: Decimal
    billable_amount: Decimal


def summarize_entries(case_id: str, entries: List[TimeEntry]) -> TimeSummary:
    billable = [e for e in entries if e.is_billable]
    return TimeSummary(
        case_id=case_id,
        entry_count=len(entries),
        total_hours=sum((e.hours for e in entries), Decimal("0")),
        billable_hours=sum((e.hours for e in billable), Decimal("0")),
        billable_amount=sum((e.amount for e in billable), Decimal("0")),
    )


class TimeLog:
    """Firm-scoped time entries."""

    def __init__(self, store: Store, context: TenantContext = None):
        self.scoped = TenantScopedStore(store, context)

    def _validate(self, data: Dict[str, Any], case_row: Dict[str, Any]) -> Dict[str, Any]:
        hours = parse_hours("hours", data.get("hours"))
        if hours > MAX_REASONABLE_HOURS:
            logger.warning(
                "Time entry on case %s logs %s hours in one entry", case_row["id"], hours,
            )

        rate = parse_money("rate", data.get("rate"), required=False)
        if rate is None:
            billing = billing_from_row(case_row)
            if not isinstance(billing, HourlyBilling):
                raise ValidationError(
                    "rate", f"is required for {billing.billing_type.value} cases",
                )
            rate = billing.rate

        return {
            "case_id": case_row["id"],
            "date": parse_date("date", data.get("date")) or date.today(),
            "hours": hours,
            "rate": rate,
            "description": clean_text(data.get("description")),
            "activity_type": parse_enum(
                ActivityType, "activity_type", data.get("activity_type"), ActivityType.OTHER,
            ).value,
            "billable_status": parse_enum(
                BillableStatus, "billable_status", data.get("billable_status"),
                BillableStatus.BILLABLE,
            ).value,
        }

    def create(self, case_id: str, hours, rate=None, date=None, description: str = None,
               activity_type: str = None, billable_status: str = None) -> TimeEntry:
        """
        Log time on a case.

        When rate is omitted the case's hourly rate is used; cases billed
        any other way need an explicit rate.
        """
        if not case_id:
            raise ValidationError("case_id", "is required")
        case_row = self.scoped.get("cases", case_id)
        row = self._validate({
            "hours": hours,
            "rate": rate,
            "date": date,
            "description": description,
            "activity_type": activity_type,
            "billable_status": billable_status,
        }, case_row)
        row["user_id"] = self.scoped.context.user_id

        entry = TimeEntry.from_row(self.scoped.insert("time_entries", row))
        logger.info("Logged time entry %s on case %s", entry.id, case_id)
        return entry

    def update(self, entry_id: str, **changes) -> TimeEntry:
        unknown = set(changes) - set(EDITABLE_FIELDS)
        if unknown:
            raise ValidationError(sorted(unknown)[0], "is not an editable time entry field")

        current = self.scoped.get("time_entries", entry_id)
        case_row = self.scoped.get("cases", current["case_id"])
        merged = {name: current.get(name) for name in EDITABLE_FIELDS}
        merged.update(changes)
        row = self._validate(merged, case_row)

        entry = TimeEntry.from_row(self.scoped.update("time_entries", entry_id, row))
        logger.info("Updated time entry %s", entry.id)
        return entry

    def delete(self, entry_id: str) -> None:
        self.scoped.delete("time_entries", entry_id)
        logger.info("Deleted time entry %s in firm %s", entry_id, self.scoped.firm_id)

    def get(self, entry_id: str) -> TimeEntry:
        return TimeEntry.from_row(self.scoped.get("time_entries", entry_id))

    def list_by_case(self, case_id: str) -> List[TimeEntry]:
        """Entries for a case, oldest first."""
        self.scoped.get("cases", case_id)
        rows = self.scoped.list("time_entries", {"case_id": case_id}, order_by="date")
        return [TimeEntry.from_row(row) for row in rows]

    def summarize(self, case_id: str) -> TimeSummary:
        return summarize_entries(case_id, self.list_by_case(case_id))
