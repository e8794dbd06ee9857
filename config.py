"""
Law Firm Practice Configuration
"""
import os
from decimal import Decimal
from pathlib import Path

# Load environment variables from .env file
from dotenv import dotenv_values

_env_path = Path(__file__).parent / ".env"
if _env_path.exists():
    _env_values = dotenv_values(_env_path)
    for key, value in _env_values.items():
        if value and not os.environ.get(key):  # Set if value exists and env not already set
            os.environ[key] = value

# Base paths
BASE_DIR = Path(__file__).parent

# Store backend: "postgres" (DATABASE_URL) or "memory"
STORE_BACKEND = os.getenv("LAWFIRM_STORE", "postgres")

# Billing
TAX_RATE = Decimal(os.getenv("LAWFIRM_TAX_RATE", "0.16"))  # IVA
INVOICE_DUE_DAYS = int(os.getenv("LAWFIRM_INVOICE_DUE_DAYS", "15"))

# Calendar
DEFAULT_REMINDER_MINUTES = int(os.getenv("LAWFIRM_DEFAULT_REMINDER_MINUTES", "30"))
CALENDAR_LOOKBACK_DAYS = 30
CALENDAR_LOOKAHEAD_DAYS = 90

# Time entries longer than this are logged as suspicious
MAX_REASONABLE_HOURS = Decimal("24")

# CLI actor
DEFAULT_USER_ID = os.getenv("LAWFIRM_USER_ID")

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
