# services/checkin_service.py
import logging
from typing import List, Optional, Tuple

from sqlalchemy import text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError

import config
from domain.errors import ConflictError, NotFoundError, RuleViolation
from domain.models import BoothCheckin, BoothCheckinWithDetails, BoothProgress, Booth, User
from services.users_service import fetch_user, require_participant
from utils.db import new_id, now

log = logging.getLogger(__name__)

# ─────────────────────────────────────────────────────────────
# Helpers
# ─────────────────────────────────────────────────────────────

def threshold_for(participant_type: Optional[str]) -> int:
    """Booth visits needed to enter the lucky draw."""
    if participant_type == "offline":
        return config.BOOTH_THRESHOLD["offline"]
    return config.BOOTH_THRESHOLD["online"]


def _count_checkins(conn, participant_id: str) -> int:
    return int(conn.execute(
        text("SELECT COUNT(*) FROM booth_checkins WHERE participant_id = :pid"),
        {"pid": participant_id},
    ).scalar_one())


def _event_is_active(conn) -> bool:
    row = conn.execute(
        text("SELECT is_active FROM events ORDER BY created_at ASC LIMIT 1")
    ).mappings().first()
    return bool(row and row["is_active"])

# ─────────────────────────────────────────────────────────────
# Event check-in
# ─────────────────────────────────────────────────────────────

def checkin_event(
    engine: Engine,
    participant_id: str,
    method: str,
    staff_id: Optional[str] = None,
) -> User:
    """
    Mark a participant as arrived.
      - online participants can only check in while the event is active
      - a participant checks in once; a second attempt is a conflict
    """
    if method not in config.CHECKIN_METHODS:
        raise RuleViolation(f"Unknown check-in method: {method}")

    with engine.begin() as conn:
        user = require_participant(conn, participant_id, lock=True)

        if user.participant_type == "online" and not _event_is_active(conn):
            raise RuleViolation("Event is not active yet")

        if user.is_checked_in:
            raise ConflictError(f"{user.name} has already checked in")

        conn.execute(
            text("""
                UPDATE users
                   SET is_checked_in = TRUE,
                       event_checkin_time = :now,
                       event_checkin_method = :method,
                       checked_in_by = :staff,
                       updated_at = :now
                 WHERE id = :id
            """),
            {"now": now(), "method": method, "staff": staff_id, "id": participant_id},
        )
        updated = fetch_user(conn, participant_id)

    log.info("event check-in %s via %s by %s", updated.email, method, staff_id or "self")
    return updated


def set_checkin_status(
    engine: Engine,
    participant_id: str,
    is_checked_in: bool,
    method: str = "manual",
    staff_id: Optional[str] = None,
) -> User:
    """Helpdesk toggle: check a participant in or undo a mistaken check-in."""
    if method not in config.CHECKIN_METHODS:
        raise RuleViolation(f"Unknown check-in method: {method}")

    with engine.begin() as conn:
        user = require_participant(conn, participant_id, lock=True)
        if user.is_checked_in == bool(is_checked_in):
            return user
        if is_checked_in:
            params = {"c": True, "t": now(), "m": method, "by": staff_id}
        else:
            params = {"c": False, "t": None, "m": None, "by": None}
        conn.execute(
            text("""
                UPDATE users
                   SET is_checked_in = :c,
                       event_checkin_time = :t,
                       event_checkin_method = :m,
                       checked_in_by = :by,
                       updated_at = :now
                 WHERE id = :id
            """),
            {**params, "now": now(), "id": participant_id},
        )
        updated = fetch_user(conn, participant_id)

    log.info("check-in status %s -> %s (by %s)", updated.email, is_checked_in, staff_id or "-")
    return updated

# ─────────────────────────────────────────────────────────────
# Booth check-in (quiz gated)
# ─────────────────────────────────────────────────────────────

def checkin_booth(
    engine: Engine,
    participant_id: str,
    booth_id: str,
    answer: str,
    question: Optional[str] = None,
) -> Tuple[BoothCheckin, User]:
    """
    Record a booth visit and recompute draw eligibility in the same transaction.
    Returns (checkin, updated participant).
    """
    answer = (answer or "").strip()
    if len(answer) < config.MIN_ANSWER_LENGTH:
        raise RuleViolation(f"Answer must be at least {config.MIN_ANSWER_LENGTH} characters")

    with engine.begin() as conn:
        user = require_participant(conn, participant_id, lock=True)
        if not user.is_checked_in:
            raise RuleViolation("Participant has not checked in to the event")

        booth_row = conn.execute(
            text("SELECT * FROM booths WHERE id = :id"), {"id": booth_id}
        ).mappings().first()
        if not booth_row:
            raise NotFoundError("Booth not found")
        booth = Booth.from_row(booth_row)
        if not booth.visible_to(user.participant_type):
            raise RuleViolation(f"{booth.name} is not open to {user.participant_type} participants")

        existing = conn.execute(
            text("""
                SELECT id FROM booth_checkins
                WHERE participant_id = :pid AND booth_id = :bid
            """),
            {"pid": participant_id, "bid": booth_id},
        ).first()
        if existing:
            raise ConflictError(f"{booth.name} has already been visited")

        checkin_id = new_id()
        try:
            conn.execute(
                text("""
                    INSERT INTO booth_checkins (id, participant_id, booth_id, question, answer, checkin_time)
                    VALUES (:id, :pid, :bid, :q, :a, :now)
                """),
                {"id": checkin_id, "pid": participant_id, "bid": booth_id,
                 "q": question, "a": answer, "now": now()},
            )
        except IntegrityError as e:
            raise ConflictError(f"{booth.name} has already been visited") from e

        visited = _count_checkins(conn, participant_id)
        eligible = visited >= threshold_for(user.participant_type)
        conn.execute(
            text("UPDATE users SET is_eligible_to_draw = :e, updated_at = :now WHERE id = :id"),
            {"e": eligible, "now": now(), "id": participant_id},
        )

        checkin = BoothCheckin.from_row(conn.execute(
            text("SELECT * FROM booth_checkins WHERE id = :id"), {"id": checkin_id}
        ).mappings().one())
        updated = fetch_user(conn, participant_id)

    if eligible and not user.is_eligible_to_draw:
        log.info("%s is now eligible for the lucky draw (%d booths)", updated.email, visited)
    log.info("booth check-in %s @ %s (%d visited)", updated.email, booth.name, visited)
    return checkin, updated


def participant_booth_checkins(engine: Engine, participant_id: str) -> List[BoothCheckin]:
    with engine.connect() as conn:
        rows = conn.execute(
            text("""
                SELECT * FROM booth_checkins
                WHERE participant_id = :pid
                ORDER BY checkin_time DESC
            """),
            {"pid": participant_id},
        ).mappings().all()
    return [BoothCheckin.from_row(r) for r in rows]


def booth_checkin_count(engine: Engine, participant_id: str) -> int:
    with engine.connect() as conn:
        return _count_checkins(conn, participant_id)


def has_visited_booth(engine: Engine, participant_id: str, booth_id: str) -> bool:
    with engine.connect() as conn:
        row = conn.execute(
            text("SELECT id FROM booth_checkins WHERE participant_id = :pid AND booth_id = :bid"),
            {"pid": participant_id, "bid": booth_id},
        ).first()
    return row is not None


def booth_checkins_for_booth(engine: Engine, booth_id: str) -> List[BoothCheckinWithDetails]:
    """Visitors of one booth with their answers, newest first (admin view)."""
    with engine.connect() as conn:
        rows = conn.execute(
            text("""
                SELECT bc.*, u.name AS u_name, u.email AS u_email, u.role AS u_role,
                       u.participant_type AS u_ptype, u.company AS u_company
                FROM booth_checkins bc
                JOIN users u ON u.id = bc.participant_id
                WHERE bc.booth_id = :bid
                ORDER BY bc.checkin_time DESC
            """),
            {"bid": booth_id},
        ).mappings().all()
    return [
        BoothCheckinWithDetails(
            checkin=BoothCheckin.from_row(r),
            participant=User(
                id=str(r["participant_id"]), name=r["u_name"], email=r["u_email"],
                role=r["u_role"], participant_type=r["u_ptype"], company=r["u_company"],
            ),
        )
        for r in rows
    ]


def get_progress(engine: Engine, participant_id: str) -> BoothProgress:
    """Booth progress snapshot; pages poll this instead of a realtime channel."""
    with engine.connect() as conn:
        user = require_participant(conn, participant_id)
        booth_ids = conn.execute(
            text("""
                SELECT booth_id FROM booth_checkins
                WHERE participant_id = :pid
                ORDER BY checkin_time ASC
            """),
            {"pid": participant_id},
        ).scalars().all()
    return BoothProgress(
        participant_id=participant_id,
        visited=len(booth_ids),
        threshold=threshold_for(user.participant_type),
        is_eligible=user.is_eligible_to_draw,
        visited_booth_ids=[str(b) for b in booth_ids],
    )
