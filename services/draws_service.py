# services/draws_service.py
import logging
import random
from typing import List, Optional, Sequence

from sqlalchemy import text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError

import config
from domain.errors import ConflictError, NotFoundError, RuleViolation
from domain.models import DrawLog, DrawLogWithDetails, User
from services.users_service import fetch_user, fetch_users
from utils.db import new_id, now

log = logging.getLogger(__name__)

_ELIGIBLE_SQL = """
    SELECT u.* FROM users u
    WHERE u.role = 'participant'
      AND u.is_eligible_to_draw = TRUE
      AND NOT EXISTS (SELECT 1 FROM draw_winners w WHERE w.participant_id = u.id)
    ORDER BY u.name ASC
"""


def _eligible(conn) -> List[User]:
    return [User.from_row(r) for r in conn.execute(text(_ELIGIBLE_SQL)).mappings().all()]


def eligible_participants(engine: Engine) -> List[User]:
    """Participants who reached their booth threshold and have not won yet."""
    with engine.connect() as conn:
        return _eligible(conn)


def pick_winners(candidates: Sequence[User], count: int, rng: Optional[random.Random] = None) -> List[User]:
    if not (config.DRAW_MIN_WINNERS <= count <= config.DRAW_MAX_WINNERS):
        raise RuleViolation(
            f"Number of winners must be between {config.DRAW_MIN_WINNERS} and {config.DRAW_MAX_WINNERS}"
        )
    if count > len(candidates):
        raise RuleViolation(f"Only {len(candidates)} eligible participant(s) left")
    return (rng or random.SystemRandom()).sample(list(candidates), count)


def submit_draw(
    engine: Engine,
    winner_ids: Sequence[str],
    staff_id: Optional[str] = None,
    prize_template: Optional[str] = None,
    prize_name: Optional[str] = None,
    slot_count: Optional[int] = None,
) -> DrawLog:
    """Record a finished draw: one log row plus one row per winner."""
    ids = [str(w) for w in winner_ids]
    if not ids:
        raise RuleViolation("No winners selected")
    if len(set(ids)) != len(ids):
        raise RuleViolation("The same participant was picked twice")

    with engine.begin() as conn:
        eligible = {u.id for u in _eligible(conn)}
        invalid = [w for w in ids if w not in eligible]
        if invalid:
            raise RuleViolation(f"{len(invalid)} winner(s) are not eligible or have already won")

        log_id = new_id()
        ts = now()
        conn.execute(
            text("""
                INSERT INTO draw_logs (id, staff_id, prize_template, prize_name, slot_count, created_at)
                VALUES (:id, :staff, :tpl, :prize, :slots, :now)
            """),
            {"id": log_id, "staff": staff_id, "tpl": prize_template, "prize": prize_name,
             "slots": int(slot_count or len(ids)), "now": ts},
        )
        try:
            for pid in ids:
                conn.execute(
                    text("""
                        INSERT INTO draw_winners (id, draw_log_id, participant_id, created_at)
                        VALUES (:id, :log, :pid, :now)
                    """),
                    {"id": new_id(), "log": log_id, "pid": pid, "now": ts},
                )
        except IntegrityError as e:
            raise ConflictError("A participant in this draw has already won") from e

        row = conn.execute(
            text("SELECT * FROM draw_logs WHERE id = :id"), {"id": log_id}
        ).mappings().one()

    log.info("draw %s (%s) recorded by %s: %d winner(s)", log_id, prize_name or prize_template or "-",
             staff_id or "-", len(ids))
    return DrawLog.from_row(row)


def draw_logs(engine: Engine) -> List[DrawLog]:
    with engine.connect() as conn:
        rows = conn.execute(
            text("SELECT * FROM draw_logs ORDER BY created_at DESC")
        ).mappings().all()
    return [DrawLog.from_row(r) for r in rows]


def _with_details(conn, dl: DrawLog) -> DrawLogWithDetails:
    ids = conn.execute(
        text("SELECT participant_id FROM draw_winners WHERE draw_log_id = :id ORDER BY created_at ASC"),
        {"id": dl.id},
    ).scalars().all()
    winners = fetch_users(conn, [str(x) for x in ids])
    staff = fetch_user(conn, dl.staff_id) if dl.staff_id else None
    return DrawLogWithDetails(log=dl, winners=winners, staff=staff)


def get_draw_log_with_details(engine: Engine, draw_log_id: str) -> DrawLogWithDetails:
    with engine.connect() as conn:
        row = conn.execute(
            text("SELECT * FROM draw_logs WHERE id = :id"), {"id": draw_log_id}
        ).mappings().first()
        if not row:
            raise NotFoundError("Draw log not found")
        return _with_details(conn, DrawLog.from_row(row))


def latest_draw_log(engine: Engine) -> Optional[DrawLogWithDetails]:
    with engine.connect() as conn:
        row = conn.execute(
            text("SELECT * FROM draw_logs ORDER BY created_at DESC LIMIT 1")
        ).mappings().first()
        return _with_details(conn, DrawLog.from_row(row)) if row else None


def draw_history(engine: Engine, limit: Optional[int] = None) -> List[DrawLogWithDetails]:
    sql = "SELECT * FROM draw_logs ORDER BY created_at DESC"
    params = {}
    if limit:
        sql += " LIMIT :limit"
        params["limit"] = int(limit)
    with engine.connect() as conn:
        rows = conn.execute(text(sql), params).mappings().all()
        return [_with_details(conn, DrawLog.from_row(r)) for r in rows]


def has_participant_won(engine: Engine, participant_id: str) -> bool:
    with engine.connect() as conn:
        row = conn.execute(
            text("SELECT id FROM draw_winners WHERE participant_id = :pid"), {"pid": participant_id}
        ).first()
    return row is not None


def total_draws(engine: Engine) -> int:
    with engine.connect() as conn:
        return int(conn.execute(text("SELECT COUNT(*) FROM draw_logs")).scalar_one())


def total_winners(engine: Engine) -> int:
    with engine.connect() as conn:
        return int(conn.execute(text("SELECT COUNT(*) FROM draw_winners")).scalar_one())


def all_winners(engine: Engine) -> List[dict]:
    """Every winner with the prize they won, latest draw first (admin winners list)."""
    with engine.connect() as conn:
        rows = conn.execute(
            text("""
                SELECT u.id, u.name, u.email, u.company, u.participant_type,
                       d.prize_name, d.prize_template, w.created_at AS won_at
                FROM draw_winners w
                JOIN users u ON u.id = w.participant_id
                JOIN draw_logs d ON d.id = w.draw_log_id
                ORDER BY w.created_at DESC, u.name ASC
            """)
        ).mappings().all()
    return [dict(r) for r in rows]
