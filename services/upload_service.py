# services/upload_service.py
from __future__ import annotations
import logging
import zipfile
from typing import Dict, List, Optional, Set, Tuple

import pandas as pd
from sqlalchemy import text
from sqlalchemy.engine import Engine

from domain.models import Credential
from utils.db import new_id, now
from utils.passwords import generate_password, hash_password
from utils.upload_utils import normalize_upload_df, validate_rows, coerce_schema

log = logging.getLogger(__name__)


UPLOAD_TYPES = ["csv", "xlsx"]


def read_table(file_like, filename: Optional[str] = None) -> pd.DataFrame:
    """Read an uploaded .xlsx or .csv; anything unreadable raises ValueError."""
    name = (filename or getattr(file_like, "name", "") or "").lower()
    if name.endswith(".csv"):
        return pd.read_csv(file_like, dtype=str)
    if name.endswith(".xlsx"):
        try:
            return pd.read_excel(file_like, dtype=str, engine="openpyxl")
        except (zipfile.BadZipFile, KeyError) as e:
            raise ValueError("file is not a valid .xlsx workbook") from e
    raise ValueError(f"unsupported file type {filename or name!r}; upload .xlsx or .csv")



def load_existing_emails(engine: Engine) -> Set[str]:
    with engine.connect() as conn:
        existing = pd.read_sql(text("SELECT email FROM users"), conn)
    return set(existing["email"].astype(str).str.lower()) if not existing.empty else set()


def dedup_new_rows(df: pd.DataFrame, existing_emails: Set[str]) -> pd.DataFrame:
    return df[~df["email"].isin(existing_emails)].copy()


def insert_rows(engine: Engine, df_new: pd.DataFrame) -> Tuple[int, List[Credential]]:
    """Insert participants with a generated password each; plaintext comes back once."""
    if df_new.empty:
        return 0, []
    ts = now()
    records: List[Dict] = []
    credentials: List[Credential] = []
    for rec in df_new.to_dict(orient="records"):
        password = generate_password()
        records.append({**rec, "id": new_id(), "pw": hash_password(password), "now": ts})
        credentials.append(Credential(name=rec["name"], email=rec["email"], password=password))
    with engine.begin() as conn:
        conn.execute(
            text("""
                INSERT INTO users (id, name, email, role, participant_type, company, division,
                                   is_checked_in, is_eligible_to_draw, password_hash, created_at, updated_at)
                VALUES (:id, :name, :email, 'participant', :participant_type, :company, :division,
                        FALSE, FALSE, :pw, :now, :now)
            """),
            records,
        )
    return len(records), credentials


def ingest_participants(engine: Engine, file_like, filename: Optional[str] = None) -> Dict:
    """
    Orchestrates: read → normalize → validate → dedup → coerce_schema → insert.
    summary["credentials"] holds the generated logins; they are not stored in plaintext.
    """
    summary = {"inserted": 0, "skipped_existing": 0, "errors": [], "preview": None, "credentials": []}

    try:
        df_raw = read_table(file_like, filename)
    except ValueError as e:
        log.warning("participant import: unreadable file %s: %s", filename, e)
        summary["errors"].append(f"Could not read the file: {e}")
        return summary
    if df_raw.empty:
        summary["errors"].append("Uploaded file is empty.")
        return summary

    df_norm = normalize_upload_df(df_raw)
    df_valid, errs = validate_rows(df_norm)
    if errs:
        summary["errors"].extend(errs)
    if df_valid.empty:
        return summary

    existing = load_existing_emails(engine)
    df_new = dedup_new_rows(df_valid, existing)
    summary["skipped_existing"] = len(df_valid) - len(df_new)
    if df_new.empty:
        return summary

    df_ready = coerce_schema(df_new)
    summary["inserted"], summary["credentials"] = insert_rows(engine, df_ready)
    summary["preview"] = df_ready.head(5)
    log.info("participant import: %d inserted, %d existing skipped, %d issue(s)",
             summary["inserted"], summary["skipped_existing"], len(summary["errors"]))
    return summary
