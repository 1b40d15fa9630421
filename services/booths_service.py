# services/booths_service.py
import json
import random
from typing import List, Optional, Sequence

from sqlalchemy import text
from sqlalchemy.engine import Engine

from domain.errors import NotFoundError, RuleViolation
from domain.models import Booth
from utils.db import new_id, now

__all__ = ["list_booths", "get_booth", "random_question", "upsert_booth"]


def _fetch_booth(conn, booth_id: str) -> Optional[Booth]:
    row = conn.execute(
        text("SELECT * FROM booths WHERE id = :id"), {"id": booth_id}
    ).mappings().first()
    return Booth.from_row(row) if row else None


def list_booths(engine: Engine, participant_type: Optional[str] = None) -> List[Booth]:
    """All booths by display order, optionally only those a participant type may visit."""
    with engine.connect() as conn:
        rows = conn.execute(
            text('SELECT * FROM booths ORDER BY "order" ASC, name ASC')
        ).mappings().all()
    booths = [Booth.from_row(r) for r in rows]
    if participant_type:
        booths = [b for b in booths if b.visible_to(participant_type)]
    return booths


def get_booth(engine: Engine, booth_id: str) -> Booth:
    with engine.connect() as conn:
        booth = _fetch_booth(conn, booth_id)
    if not booth:
        raise NotFoundError("Booth not found")
    return booth


def random_question(booth: Booth, rng: Optional[random.Random] = None) -> str:
    """Pick the quiz question a participant answers at check-in."""
    if not booth.questions:
        raise RuleViolation("Booth has no questions")
    return (rng or random).choice(booth.questions)


def upsert_booth(
    engine: Engine,
    name: str,
    *,
    description: Optional[str] = None,
    poster_url: Optional[str] = None,
    questions: Sequence[str] = (),
    order: int = 0,
    is_online_only: bool = False,
    is_offline_only: bool = False,
) -> Booth:
    """Seed helper keyed on booth name."""
    if is_online_only and is_offline_only:
        raise RuleViolation("A booth cannot be both online-only and offline-only")
    params = {
        "name": name.strip(),
        "description": description,
        "poster_url": poster_url,
        "questions": json.dumps([q.strip() for q in questions if q and q.strip()]),
        "order": int(order),
        "on": bool(is_online_only),
        "off": bool(is_offline_only),
        "now": now(),
    }
    with engine.begin() as conn:
        existing = conn.execute(
            text("SELECT id FROM booths WHERE name = :name"), {"name": params["name"]}
        ).mappings().first()
        if existing:
            booth_id = existing["id"]
            conn.execute(
                text("""
                    UPDATE booths
                       SET description = :description, poster_url = :poster_url,
                           questions = :questions, "order" = :order,
                           is_online_only = :on, is_offline_only = :off, updated_at = :now
                     WHERE id = :id
                """),
                {**params, "id": booth_id},
            )
        else:
            booth_id = new_id()
            conn.execute(
                text("""
                    INSERT INTO booths (id, name, description, poster_url, questions, "order",
                                        is_online_only, is_offline_only, created_at, updated_at)
                    VALUES (:id, :name, :description, :poster_url, :questions, :order,
                            :on, :off, :now, :now)
                """),
                {**params, "id": booth_id},
            )
        return _fetch_booth(conn, booth_id)
