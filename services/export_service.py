# services/export_service.py
import datetime
from typing import Iterable, Optional

import pandas as pd

from domain.models import Credential, IdeationWithDetails, User
from utils.db import now

PARTICIPANT_HEADERS = [
    "ID", "Name", "Email", "Role", "Participant Type", "Company", "Division",
    "Is Checked In", "Is Eligible To Draw", "Event Checkin Time", "Event Checkin Method", "Created At",
]

SUBMISSION_HEADERS = [
    "ID", "Title", "Description", "Company Case", "Type", "Group Name",
    "Creator", "Creator Email", "Members", "Submitted At",
]


def _fmt_ts(v: Optional[datetime.datetime]) -> str:
    return v.strftime("%d/%m/%Y %H:%M:%S") if v else ""


def _yes_no(v: bool) -> str:
    return "Yes" if v else "No"


def participants_frame(users: Iterable[User]) -> pd.DataFrame:
    rows = [
        [
            u.id, u.name, u.email, u.role, u.participant_type or "", u.company or "", u.division or "",
            _yes_no(u.is_checked_in), _yes_no(u.is_eligible_to_draw),
            _fmt_ts(u.event_checkin_time), u.event_checkin_method or "", _fmt_ts(u.created_at),
        ]
        for u in users
    ]
    return pd.DataFrame(rows, columns=PARTICIPANT_HEADERS)


def participants_csv(users: Iterable[User]) -> bytes:
    return participants_frame(users).to_csv(index=False).encode("utf-8")


def submissions_frame(ideations: Iterable[IdeationWithDetails]) -> pd.DataFrame:
    rows = []
    for d in ideations:
        i = d.ideation
        rows.append([
            i.id, i.title, i.description, i.company_case,
            "Group" if i.is_group else "Individual",
            d.group.name if d.group else "",
            d.creator.name if d.creator else "",
            d.creator.email if d.creator else "",
            "; ".join(p.name for p in d.participants),
            _fmt_ts(i.submitted_at),
        ])
    return pd.DataFrame(rows, columns=SUBMISSION_HEADERS)


def submissions_csv(ideations: Iterable[IdeationWithDetails]) -> bytes:
    return submissions_frame(ideations).to_csv(index=False).encode("utf-8")


def export_filename(prefix: str, at: Optional[datetime.datetime] = None) -> str:
    """e.g. participants_2025-11-20T09-30-00.csv"""
    ts = (at or now()).strftime("%Y-%m-%dT%H-%M-%S")
    return f"{prefix}_{ts}.csv"


CREDENTIAL_HEADERS = ["Name", "Email", "Password"]


def credentials_csv(credentials: Iterable[Credential]) -> bytes:
    """One-time login sheet for the committee to hand out."""
    df = pd.DataFrame([[c.name, c.email, c.password] for c in credentials], columns=CREDENTIAL_HEADERS)
    return df.to_csv(index=False).encode("utf-8")
