"""
Case Ledger

Legal matters, each owned by one client of the same firm and assigned to
at most one lawyer. Billing is a single variant (hourly, fixed or
contingency) so only the amount for the active mode is ever stored.

Case numbers look like CASO-2026-007. When none is supplied the next free
number for the firm and year is used; a supplied number that already
exists is accepted but logged, and find_duplicate_case_numbers() lists
every collision so they can be cleaned up.
"""
import logging
import re
from collections import defaultdict
from datetime import date
from decimal import Decimal
from typing import Any, Dict, Iterable, List

from db.store import Store
from errors import ValidationError
from models import (
    BillingTerms,
    Case,
    CasePriority,
    CaseStatistics,
    CaseStatus,
    billing_from_row,
    billing_to_row,
    build_billing_terms,
    clean_text,
    parse_date,
    parse_enum,
    to_decimal,
)
from tenant import TenantContext, TenantScopedStore

logger = logging.getLogger(__name__)

CASE_NUMBER_PREFIX = "CASO"

BILLING_FIELDS = ("billing_type", "hourly_rate", "fixed_fee", "contingency_percentage")

EDITABLE_FIELDS = (
    "client_id", "case_number", "title", "description", "status", "priority",
    "practice_area", "assigned_lawyer", "start_date", "expected_end_date",
    "billing",
) + BILLING_FIELDS


def next_sequence_number(prefix: str, year: int, existing: Iterable[str]) -> str:
    """
    Next PREFIX-YEAR-NNN after the highest number already used that year.

    The suffix is zero-padded to three digits and simply grows past 999.
    """
    pattern = re.compile(rf"^{re.escape(prefix)}-{year}-(\d+)$")
    highest = 0
    for number in existing:
        match = pattern.match(number or "")
        if match:
            highest = max(highest, int(match.group(1)))
    return f"{prefix}-{year}-{highest + 1:03d}"


class CaseLedger:
    """Firm-scoped case records and their statistics."""

    def __init__(self, store: Store, context: TenantContext = None):
        self.scoped = TenantScopedStore(store, context)

    # ========== Validation ==========

    def _validate(self, data: Dict[str, Any], billing: BillingTerms) -> Dict[str, Any]:
        title = clean_text(data.get("title"))
        if not title:
            raise ValidationError("title", "is required")
        if not data.get("client_id"):
            raise ValidationError("client_id", "is required")

        start_date = parse_date("start_date", data.get("start_date"))
        expected_end_date = parse_date("expected_end_date", data.get("expected_end_date"))
        if start_date and expected_end_date and expected_end_date < start_date:
            raise ValidationError("expected_end_date", "must not be before start_date")

        row = {
            "client_id": data["client_id"],
            "case_number": clean_text(data.get("case_number")),
            "title": title,
            "description": clean_text(data.get("description")),
            "status": parse_enum(CaseStatus, "status", data.get("status"), CaseStatus.PENDING).value,
            "priority": parse_enum(CasePriority, "priority", data.get("priority"), CasePriority.MEDIUM).value,
            "practice_area": clean_text(data.get("practice_area")),
            "assigned_lawyer": data.get("assigned_lawyer") or None,
            "start_date": start_date,
            "expected_end_date": expected_end_date,
        }
        row.update(billing_to_row(billing))

        # References must resolve inside this firm
        self.scoped.require_reference("clients", row["client_id"])
        self.scoped.require_reference("profiles", row["assigned_lawyer"])
        return row

    def _warn_if_duplicate(self, case_number: str, case_id: str = None) -> None:
        matches = [
            row["id"] for row in self.scoped.list("cases", {"case_number": case_number})
            if row["id"] != case_id
        ]
        if matches:
            logger.warning(
                "Duplicate case number %s in firm %s (also used by %s)",
                case_number, self.scoped.firm_id, ", ".join(matches),
            )

    def generate_case_number(self, year: int = None) -> str:
        year = year or date.today().year
        existing = (row["case_number"] for row in self.scoped.list("cases"))
        return next_sequence_number(CASE_NUMBER_PREFIX, year, existing)

    # ========== Mutations ==========

    def create(
        self,
        client_id: str,
        title: str,
        billing: BillingTerms = None,
        billing_type: str = "hourly",
        hourly_rate=None,
        fixed_fee=None,
        contingency_percentage=None,
        case_number: str = None,
        description: str = None,
        status: str = None,
        priority: str = None,
        practice_area: str = None,
        assigned_lawyer: str = None,
        start_date=None,
        expected_end_date=None,
    ) -> Case:
        """
        Open a new case.

        Billing can be given either as a variant (billing=HourlyBilling(...))
        or as billing_type plus the matching amount.
        """
        if billing is None:
            billing = build_billing_terms(billing_type, hourly_rate, fixed_fee, contingency_percentage)

        row = self._validate({
            "client_id": client_id,
            "case_number": case_number,
            "title": title,
            "description": description,
            "status": status,
            "priority": priority,
            "practice_area": practice_area,
            "assigned_lawyer": assigned_lawyer,
            "start_date": start_date,
            "expected_end_date": expected_end_date,
        }, billing)

        if row["case_number"]:
            self._warn_if_duplicate(row["case_number"])
        else:
            row["case_number"] = self.generate_case_number()

        case = Case.from_row(self.scoped.insert("cases", row))
        logger.info("Created case %s (%s) in firm %s", case.id, case.case_number, case.firm_id)
        return case

    def update(self, case_id: str, **changes) -> Case:
        """
        Apply a partial edit; last writer wins per call.

        Changing billing_type needs the amount for the new mode in the same
        call, since the amounts of inactive modes are not kept.
        """
        unknown = set(changes) - set(EDITABLE_FIELDS)
        if unknown:
            raise ValidationError(sorted(unknown)[0], "is not an editable case field")

        current = self.scoped.get("cases", case_id)
        merged = dict(current)
        merged.update({k: v for k, v in changes.items() if k != "billing"})

        if changes.get("billing") is not None:
            billing = changes["billing"]
        elif any(name in changes for name in BILLING_FIELDS):
            billing = build_billing_terms(
                merged.get("billing_type"),
                merged.get("hourly_rate"),
                merged.get("fixed_fee"),
                merged.get("contingency_percentage"),
            )
        else:
            billing = billing_from_row(current)

        row = self._validate(merged, billing)
        if not row["case_number"]:
            raise ValidationError("case_number", "cannot be cleared")
        if row["case_number"] != current["case_number"]:
            self._warn_if_duplicate(row["case_number"], case_id)

        case = Case.from_row(self.scoped.update("cases", case_id, row))
        logger.info("Updated case %s in firm %s", case.id, case.firm_id)
        return case

    # ========== Reads ==========

    def get(self, case_id: str) -> Case:
        return Case.from_row(self.scoped.get("cases", case_id))

    def get_with_statistics(self, case_id: str) -> CaseStatistics:
        """Case plus document count, time-entry count and total logged hours."""
        case = self.get(case_id)
        entries = self.scoped.list("time_entries", {"case_id": case_id})
        total_hours = sum((to_decimal(e["hours"]) for e in entries), Decimal("0"))
        return CaseStatistics(
            case=case,
            document_count=self.scoped.count("documents", {"case_id": case_id}),
            time_entry_count=len(entries),
            total_hours=total_hours,
        )

    def list(self, status: str = None, priority: str = None, client_id: str = None,
             assigned_lawyer: str = None) -> List[Case]:
        """List cases, newest first."""
        filters = {}
        if status:
            filters["status"] = parse_enum(CaseStatus, "status", status).value
        if priority:
            filters["priority"] = parse_enum(CasePriority, "priority", priority).value
        if client_id:
            filters["client_id"] = client_id
        if assigned_lawyer:
            filters["assigned_lawyer"] = assigned_lawyer
        rows = self.scoped.list("cases", filters, order_by="created_at", descending=True)
        return [Case.from_row(row) for row in rows]

    def find_duplicate_case_numbers(self) -> Dict[str, List[str]]:
        """case_number -> ids of every case sharing it (only numbers used more than once)."""
        by_number = defaultdict(list)
        for row in self.scoped.list("cases", order_by="created_at"):
            by_number[row["case_number"]].append(row["id"])
        return {number: ids for number, ids in by_number.items() if len(ids) > 1}

