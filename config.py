# config.py
from __future__ import annotations
import os
from typing import Optional, List
from pathlib import Path
from dotenv import load_dotenv, find_dotenv

# Load .env once, globally
load_dotenv(find_dotenv() or (Path(__file__).parent / ".env"))

def _clean(val: Optional[str], default: Optional[str] = None) -> Optional[str]:
    if val is None:
        return default
    v = val.strip()
    if (v.startswith('"') and v.endswith('"')) or (v.startswith("'") and v.endswith("'")):
        v = v[1:-1].strip()
    return v if v else default

def _must(name: str) -> str:
    v = _clean(os.getenv(name))
    if not v:
        raise RuntimeError(f"Missing required environment variable: {name}")
    return v

def _maybe_int(name: str, default: Optional[int] = None) -> Optional[int]:
    v = _clean(os.getenv(name))
    try:
        return int(v) if v is not None else default
    except ValueError:
        return default

def _maybe_bool(name: str, default: bool = False) -> bool:
    v = _clean(os.getenv(name))
    if v is None:
        return default
    return v.lower() in {"1", "true", "yes", "y", "on"}

def _csv_list(name: str, default: str = "") -> List[str]:
    raw = _clean(os.getenv(name), default) or ""
    return [p.strip().lower() for p in raw.split(",") if p.strip()]

# App timezone (used for check-in / vote / draw timestamps)
APP_TZ = _clean(os.getenv("APP_TZ"), "Asia/Jakarta")
LOG_LEVEL = _clean(os.getenv("LOG_LEVEL"), "INFO")

# ----- Event -----
EVENT_NAME = _clean(os.getenv("EVENT_NAME"), "Expert Forum 2025")

# ----- Database (Supabase Postgres) -----
# DATABASE_URL wins; otherwise the DB_* parts are assembled in utils.db.get_engine().
DATABASE_URL = _clean(os.getenv("DATABASE_URL"))
DB_HOST = _clean(os.getenv("DB_HOST"))
DB_PORT = _maybe_int("DB_PORT", 5432) or 5432
DB_NAME = _clean(os.getenv("DB_NAME"), "postgres")
DB_USER = _clean(os.getenv("DB_USER"), "postgres")
DB_PASSWORD = _clean(os.getenv("DB_PASSWORD"))

# ----- Accounts -----
# Role is decided by email when accounts are seeded.
ADMIN_EMAILS = _csv_list("ADMIN_EMAILS", "admin1@expert-forum.com,admin2@expert-forum.com")
STAFF_EMAILS = _csv_list("STAFF_EMAILS", "staff1@expert-forum.com,staff2@expert-forum.com")

ADMIN_PASSWORD       = _clean(os.getenv("ADMIN_PASSWORD"))
STAFF_PASSWORD       = _clean(os.getenv("STAFF_PASSWORD"))
# Participants get their own generated password (see utils/passwords.py).
PASSWORD_LENGTH      = 8
BCRYPT_ROUNDS        = _maybe_int("BCRYPT_ROUNDS", 12) or 12

# ----- Scanner / kiosk API -----
API_KEY = _clean(os.getenv("API_KEY"))
API_ALLOWED_ORIGINS = _csv_list("API_ALLOWED_ORIGINS", "http://localhost:8501,http://localhost:3000")

# ----- Business rules -----
BOOTH_THRESHOLD = {
    "offline": _maybe_int("BOOTH_THRESHOLD_OFFLINE", 10) or 10,
    "online": _maybe_int("BOOTH_THRESHOLD_ONLINE", 6) or 6,
}

MIN_GROUP_SIZE = 2
MAX_GROUP_SIZE = 2   # offline groups are pairs

DRAW_MIN_WINNERS = 1
DRAW_MAX_WINNERS = 10

VOTES_PER_PARTICIPANT = 2

MIN_ANSWER_LENGTH = 20
MIN_GROUP_NAME_LENGTH = 3
MIN_TITLE_LENGTH = 10
MIN_DESCRIPTION_LENGTH = 50

PAGINATION_SIZES = [10, 25, 50, 100]
DEFAULT_PAGE_SIZE = 10

COMPANY_OPTIONS = [
    "Astra Otoparts",
    "Astra Agro Lestari",
    "Astra Financial",
    "United Tractors",
    "Astra Honda Motor",
    "Astra Daihatsu Motor",
    "Astra International",
    "Serasi Autoraya",
    "Astra Graphia",
    "Astra Infra",
]

CHECKIN_METHODS = ("qr", "manual")
PARTICIPANT_TYPES = ("online", "offline")
USER_ROLES = ("admin", "staff", "participant")

# Lucky-draw prize templates: (id, label, number of slots revealed together)
PRIZE_TEMPLATES = [
    {"id": "grand",    "name": "Grand Prize",  "slot_count": 1},
    {"id": "major",    "name": "Major Prize",  "slot_count": 3},
    {"id": "regular",  "name": "Regular Prize", "slot_count": 5},
    {"id": "door",     "name": "Door Prize",   "slot_count": 10},
]

# Staff votes screen refresh
VOTES_REFRESH_SECONDS = _maybe_int("VOTES_REFRESH_SECONDS", 10) or 10

# ----- Participant import -----
IMPORT_COLUMN_ALIASES = {
    "nama": "name",
    "full_name": "name",
    "participant_name": "name",
    "e-mail": "email",
    "email_address": "email",
    "type": "participant_type",
    "tipe": "participant_type",
    "participant": "participant_type",
    "perusahaan": "company",
    "divisi": "division",
    "department": "division",
}

IMPORT_REQUIRED_COLS = ["name", "email", "participant_type"]
IMPORT_ALLOWED_COLS = ["name", "email", "participant_type", "company", "division"]

def validate_config() -> None:
    if not (DATABASE_URL or DB_HOST):
        raise RuntimeError("Set DATABASE_URL or DB_HOST for the event database")
    if not ADMIN_PASSWORD or not STAFF_PASSWORD:
        raise RuntimeError("ADMIN_PASSWORD and STAFF_PASSWORD must be set")
    for t in PRIZE_TEMPLATES:
        if not (DRAW_MIN_WINNERS <= t["slot_count"] <= DRAW_MAX_WINNERS):
            raise RuntimeError(f"Prize template {t['id']} has an invalid slot_count")
