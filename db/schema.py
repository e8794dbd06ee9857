"""
Practice Schema (PostgreSQL, multi-tenant)

Every tenant table carries firm_id and is indexed on it. Derived values
(time entry amounts, invoice totals) have no columns.
"""
import logging

from db.connection import get_connection

logger = logging.getLogger(__name__)


FIRMS_SCHEMA = """
CREATE TABLE IF NOT EXISTS firms (
    id VARCHAR(36) PRIMARY KEY,
    name TEXT NOT NULL,
    created_at TIMESTAMPTZ DEFAULT CURRENT_TIMESTAMP
);
"""

PROFILES_SCHEMA = """
CREATE TABLE IF NOT EXISTS profiles (
    id VARCHAR(36) PRIMARY KEY,
    firm_id VARCHAR(36) NOT NULL REFERENCES firms(id),
    full_name TEXT NOT NULL,
    email TEXT,
    role TEXT NOT NULL DEFAULT 'staff',
    created_at TIMESTAMPTZ DEFAULT CURRENT_TIMESTAMP
);
CREATE INDEX IF NOT EXISTS idx_profiles_firm ON profiles(firm_id);
"""

CLIENTS_SCHEMA = """
CREATE TABLE IF NOT EXISTS clients (
    id VARCHAR(36) PRIMARY KEY,
    firm_id VARCHAR(36) NOT NULL REFERENCES firms(id),
    type TEXT NOT NULL,
    full_name TEXT,
    company_name TEXT,
    email TEXT,
    phone TEXT,
    address TEXT,
    tax_id TEXT,
    notes TEXT,
    created_by VARCHAR(36),
    created_at TIMESTAMPTZ DEFAULT CURRENT_TIMESTAMP,
    updated_at TIMESTAMPTZ DEFAULT CURRENT_TIMESTAMP
);
CREATE INDEX IF NOT EXISTS idx_clients_firm ON clients(firm_id, created_at);
"""

CASES_SCHEMA = """
CREATE TABLE IF NOT EXISTS cases (
    id VARCHAR(36) PRIMARY KEY,
    firm_id VARCHAR(36) NOT NULL REFERENCES firms(id),
    client_id VARCHAR(36) NOT NULL REFERENCES clients(id),
    case_number TEXT NOT NULL,
    title TEXT NOT NULL,
    description TEXT,
    status TEXT NOT NULL DEFAULT 'pending',
    priority TEXT NOT NULL DEFAULT 'medium',
    practice_area TEXT,
    assigned_lawyer VARCHAR(36),
    billing_type TEXT NOT NULL DEFAULT 'hourly',
    hourly_rate NUMERIC(12, 2),
    fixed_fee NUMERIC(12, 2),
    contingency_percentage NUMERIC(5, 2),
    start_date DATE,
    expected_end_date DATE,
    created_at TIMESTAMPTZ DEFAULT CURRENT_TIMESTAMP,
    updated_at TIMESTAMPTZ DEFAULT CURRENT_TIMESTAMP
);
CREATE INDEX IF NOT EXISTS idx_cases_firm ON cases(firm_id, status);
CREATE INDEX IF NOT EXISTS idx_cases_number ON cases(firm_id, case_number);
CREATE INDEX IF NOT EXISTS idx_cases_client ON cases(firm_id, client_id);
"""

TIME_ENTRIES_SCHEMA = """
CREATE TABLE IF NOT EXISTS time_entries (
    id VARCHAR(36) PRIMARY KEY,
    firm_id VARCHAR(36) NOT NULL REFERENCES firms(id),
    case_id VARCHAR(36) NOT NULL REFERENCES cases(id),
    user_id VARCHAR(36),
    date DATE NOT NULL,
    hours NUMERIC(8, 2) NOT NULL CHECK (hours >= 0),
    rate NUMERIC(12, 2) NOT NULL CHECK (rate >= 0),
    description TEXT,
    activity_type TEXT NOT NULL DEFAULT 'other',
    billable_status TEXT NOT NULL DEFAULT 'billable',
    created_at TIMESTAMPTZ DEFAULT CURRENT_TIMESTAMP,
    updated_at TIMESTAMPTZ DEFAULT CURRENT_TIMESTAMP
);
CREATE INDEX IF NOT EXISTS idx_time_entries_case ON time_entries(firm_id, case_id, date);
"""

CALENDAR_EVENTS_SCHEMA = """
CREATE TABLE IF NOT EXISTS calendar_events (
    id VARCHAR(36) PRIMARY KEY,
    firm_id VARCHAR(36) NOT NULL REFERENCES firms(id),
    title TEXT NOT NULL,
    description TEXT,
    location TEXT,
    event_type TEXT NOT NULL DEFAULT 'meeting',
    start_time TIMESTAMPTZ NOT NULL,
    end_time TIMESTAMPTZ NOT NULL,
    case_id VARCHAR(36),
    client_id VARCHAR(36),
    assigned_to VARCHAR(36),
    reminder_minutes INTEGER NOT NULL DEFAULT 30 CHECK (reminder_minutes >= 0),
    created_by VARCHAR(36),
    created_at TIMESTAMPTZ DEFAULT CURRENT_TIMESTAMP,
    updated_at TIMESTAMPTZ DEFAULT CURRENT_TIMESTAMP,
    CHECK (end_time > start_time)
);
CREATE INDEX IF NOT EXISTS idx_events_start ON calendar_events(firm_id, start_time);
"""

DOCUMENTS_SCHEMA = """
CREATE TABLE IF NOT EXISTS documents (
    id VARCHAR(36) PRIMARY KEY,
    firm_id VARCHAR(36) NOT NULL REFERENCES firms(id),
    name TEXT NOT NULL,
    description TEXT,
    document_type TEXT NOT NULL DEFAULT 'other',
    case_id VARCHAR(36),
    client_id VARCHAR(36),
    is_template BOOLEAN NOT NULL DEFAULT FALSE,
    file_url TEXT,
    file_size BIGINT,
    mime_type TEXT,
    version INTEGER NOT NULL DEFAULT 1,
    uploaded_by VARCHAR(36),
    created_at TIMESTAMPTZ DEFAULT CURRENT_TIMESTAMP,
    updated_at TIMESTAMPTZ DEFAULT CURRENT_TIMESTAMP
);
CREATE INDEX IF NOT EXISTS idx_documents_firm ON documents(firm_id, is_template);
CREATE INDEX IF NOT EXISTS idx_documents_case ON documents(firm_id, case_id);
"""

INVOICES_SCHEMA = """
CREATE TABLE IF NOT EXISTS invoices (
    id VARCHAR(36) PRIMARY KEY,
    firm_id VARCHAR(36) NOT NULL REFERENCES firms(id),
    invoice_number TEXT NOT NULL,
    client_id VARCHAR(36) NOT NULL REFERENCES clients(id),
    case_id VARCHAR(36),
    issue_date DATE NOT NULL,
    due_date DATE NOT NULL,
    notes TEXT,
    created_by VARCHAR(36),
    created_at TIMESTAMPTZ DEFAULT CURRENT_TIMESTAMP
);
CREATE INDEX IF NOT EXISTS idx_invoices_firm ON invoices(firm_id, issue_date);

CREATE TABLE IF NOT EXISTS invoice_items (
    id VARCHAR(36) PRIMARY KEY,
    firm_id VARCHAR(36) NOT NULL REFERENCES firms(id),
    invoice_id VARCHAR(36) NOT NULL REFERENCES invoices(id),
    position INTEGER NOT NULL,
    description TEXT NOT NULL,
    hours NUMERIC(8, 2) NOT NULL,
    rate NUMERIC(12, 2) NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_invoice_items_invoice ON invoice_items(firm_id, invoice_id, position);
"""

ALL_SCHEMAS = [
    FIRMS_SCHEMA,
    PROFILES_SCHEMA,
    CLIENTS_SCHEMA,
    CASES_SCHEMA,
    TIME_ENTRIES_SCHEMA,
    CALENDAR_EVENTS_SCHEMA,
    DOCUMENTS_SCHEMA,
    INVOICES_SCHEMA,
]

# Columns each table accepts, used to whitelist SQL identifiers
TABLE_COLUMNS = {
    "firms": ("id", "name", "created_at"),
    "profiles": ("id", "firm_id", "full_name", "email", "role", "created_at"),
    "clients": (
        "id", "firm_id", "type", "full_name", "company_name", "email", "phone",
        "address", "tax_id", "notes", "created_by", "created_at", "updated_at",
    ),
    "cases": (
        "id", "firm_id", "client_id", "case_number", "title", "description",
        "status", "priority", "practice_area", "assigned_lawyer", "billing_type",
        "hourly_rate", "fixed_fee", "contingency_percentage", "start_date",
        "expected_end_date", "created_at", "updated_at",
    ),
    "time_entries": (
        "id", "firm_id", "case_id", "user_id", "date", "hours", "rate",
        "description", "activity_type", "billable_status", "created_at", "updated_at",
    ),
    "calendar_events": (
        "id", "firm_id", "title", "description", "location", "event_type",
        "start_time", "end_time", "case_id", "client_id", "assigned_to",
        "reminder_minutes", "created_by", "created_at", "updated_at",
    ),
    "documents": (
        "id", "firm_id", "name", "description", "document_type", "case_id",
        "client_id", "is_template", "file_url", "file_size", "mime_type",
        "version", "uploaded_by", "created_at", "updated_at",
    ),
    "invoices": (
        "id", "firm_id", "invoice_number", "client_id", "case_id", "issue_date",
        "due_date", "notes", "created_by", "created_at",
    ),
    "invoice_items": (
        "id", "firm_id", "invoice_id", "position", "description", "hours", "rate",
    ),
}


def ensure_all_tables():
    """Create every practice table. Call once at application startup."""
    with get_connection() as conn:
        cur = conn.cursor()
        for schema in ALL_SCHEMAS:
            cur.execute(schema)
    logger.info("Practice tables ensured (%d schemas)", len(ALL_SCHEMAS))
