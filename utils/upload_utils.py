# utils/upload_utils.py
from __future__ import annotations

import re
from typing import List, Tuple, Optional

import pandas as pd

from config import (
    IMPORT_COLUMN_ALIASES,
    IMPORT_REQUIRED_COLS,
    IMPORT_ALLOWED_COLS,
    PARTICIPANT_TYPES,
)

EMAIL_REGEX = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")

_TYPE_ALIASES = {"luring": "offline", "daring": "online", "onsite": "offline", "on-site": "offline"}


def _canon_cols(df: pd.DataFrame) -> pd.DataFrame:
    df = df.copy()
    df.columns = [str(c).strip().lower().replace(" ", "_") for c in df.columns]
    for c in list(df.columns):
        if c in IMPORT_COLUMN_ALIASES and IMPORT_COLUMN_ALIASES[c] not in df.columns:
            df = df.rename(columns={c: IMPORT_COLUMN_ALIASES[c]})
    return df


def _text(s: pd.Series) -> pd.Series:
    return s.fillna("").astype(str).str.strip()


def normalize_upload_df(df_raw: pd.DataFrame) -> pd.DataFrame:
    df = _canon_cols(df_raw)

    for c in IMPORT_ALLOWED_COLS:
        if c in df.columns:
            df[c] = _text(df[c])

    if "email" in df.columns:
        df["email"] = df["email"].str.lower()
    if "participant_type" in df.columns:
        df["participant_type"] = df["participant_type"].str.lower().replace(_TYPE_ALIASES)
    return df


def validate_rows(df: pd.DataFrame) -> Tuple[pd.DataFrame, List[str]]:
    errors: List[str] = []
    missing_required = [c for c in IMPORT_REQUIRED_COLS if c not in df.columns]
    if missing_required:
        errors.append(f"Missing required column(s): {', '.join(missing_required)}")
        return df.iloc[0:0].copy(), errors

    valid_mask = pd.Series(True, index=df.index)

    empty_name = df["name"] == ""
    if empty_name.any():
        errors.append(f"{empty_name.sum()} row(s) missing name")
        valid_mask &= ~empty_name

    empty_email = df["email"] == ""
    if empty_email.any():
        errors.append(f"{empty_email.sum()} row(s) missing email")
        valid_mask &= ~empty_email
    invalid_email = ~df["email"].str.match(EMAIL_REGEX, na=False) & ~empty_email
    if invalid_email.any():
        errors.append(f"{invalid_email.sum()} row(s) have invalid email format")
        valid_mask &= ~invalid_email

    bad_type = ~df["participant_type"].isin(PARTICIPANT_TYPES)
    if bad_type.any():
        errors.append(f'{bad_type.sum()} row(s) have participant_type other than "online"/"offline"')
        valid_mask &= ~bad_type

    df = df.loc[valid_mask].copy()
    dupes = df["email"].duplicated(keep="first")
    if dupes.any():
        errors.append(f"{dupes.sum()} row(s) repeat an email already in the file")
        df = df.loc[~dupes].copy()
    return df, errors


def coerce_schema(df: pd.DataFrame, allowed_cols: Optional[List[str]] = None) -> pd.DataFrame:
    """Keep importable columns; optional text columns become None when blank."""
    allowed = allowed_cols or IMPORT_ALLOWED_COLS
    df = df[[c for c in df.columns if c in allowed]].copy()
    for c in allowed:
        if c not in df.columns:
            df[c] = None
    for c in ("company", "division"):
        if c in df.columns:
            df[c] = df[c].map(lambda v: v if isinstance(v, str) and v else None)
    return df[allowed]
