# services/votes_service.py
import logging
from typing import Dict, List, Sequence

from sqlalchemy import text, bindparam
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError

import config
from domain.errors import ConflictError, NotFoundError, RuleViolation
from domain.models import Booth, BoothVote, BoothVoteResult, BoothWithVoteStats
from services.users_service import require_participant
from utils.db import for_update, new_id, now

log = logging.getLogger(__name__)

# ─────────────────────────────────────────────────────────────
# Ranking
# ─────────────────────────────────────────────────────────────

def rank_booths(booths: Sequence[Booth], counts: Dict[str, int]) -> List[BoothWithVoteStats]:
    """Most votes first, ties broken by booth name; ranks are sequential (1..n)."""
    total = sum(counts.values())
    ordered = sorted(booths, key=lambda b: (-counts.get(b.id, 0), b.name.casefold()))
    out = []
    for i, b in enumerate(ordered, start=1):
        c = counts.get(b.id, 0)
        out.append(BoothWithVoteStats(
            booth=b,
            vote_count=c,
            vote_percentage=round(c / total * 100, 2) if total else 0.0,
            rank=i,
        ))
    return out


def _counts(conn) -> Dict[str, int]:
    rows = conn.execute(
        text("SELECT booth_id, COUNT(*) AS n FROM booth_votes GROUP BY booth_id")
    ).mappings().all()
    return {str(r["booth_id"]): int(r["n"]) for r in rows}


def _all_booths(conn) -> List[Booth]:
    rows = conn.execute(text('SELECT * FROM booths ORDER BY "order" ASC, name ASC')).mappings().all()
    return [Booth.from_row(r) for r in rows]

# ─────────────────────────────────────────────────────────────
# Participant voting
# ─────────────────────────────────────────────────────────────

def submit_votes(engine: Engine, participant_id: str, booth_ids: Sequence[str]) -> List[BoothVote]:
    """A participant casts all of their votes at once."""
    ids = [str(b) for b in booth_ids if b]
    n = config.VOTES_PER_PARTICIPANT
    if len(ids) != n:
        raise RuleViolation(f"Pick exactly {n} booths")
    if len(set(ids)) != len(ids):
        raise RuleViolation("Pick different booths")

    with engine.begin() as conn:
        ev = conn.execute(
            text("SELECT is_votes_open, is_votes_lock FROM events ORDER BY created_at ASC LIMIT 1")
        ).mappings().first()
        if not ev or not ev["is_votes_open"] or ev["is_votes_lock"]:
            raise RuleViolation("Voting is closed")

        require_participant(conn, participant_id, lock=True)

        already = conn.execute(
            text("SELECT COUNT(*) FROM booth_votes WHERE participant_id = :pid"),
            {"pid": participant_id},
        ).scalar_one()
        if already:
            raise ConflictError("You have already voted")

        found = conn.execute(
            text("SELECT id FROM booths WHERE id IN :ids").bindparams(bindparam("ids", expanding=True)),
            {"ids": ids},
        ).scalars().all()
        if len(found) != len(ids):
            raise NotFoundError("Booth not found")

        ts = now()
        try:
            for bid in ids:
                conn.execute(
                    text("""
                        INSERT INTO booth_votes (id, participant_id, booth_id, voted_at)
                        VALUES (:id, :pid, :bid, :now)
                    """),
                    {"id": new_id(), "pid": participant_id, "bid": bid, "now": ts},
                )
        except IntegrityError as e:
            raise ConflictError("You have already voted") from e

        rows = conn.execute(
            text("SELECT * FROM booth_votes WHERE participant_id = :pid"), {"pid": participant_id}
        ).mappings().all()

    log.info("votes recorded for %s: %s", participant_id, ", ".join(ids))
    return [BoothVote.from_row(r) for r in rows]


def get_user_votes(engine: Engine, participant_id: str) -> List[BoothVote]:
    with engine.connect() as conn:
        rows = conn.execute(
            text("""
                SELECT v.*, b.name AS b_name, b.description AS b_description,
                       b.poster_url AS b_poster_url, b."order" AS b_order
                FROM booth_votes v
                JOIN booths b ON b.id = v.booth_id
                WHERE v.participant_id = :pid
                ORDER BY v.voted_at DESC, b."order" ASC
            """),
            {"pid": participant_id},
        ).mappings().all()
    votes = []
    for r in rows:
        v = BoothVote.from_row(r)
        v.booth = Booth(id=v.booth_id, name=r["b_name"], description=r["b_description"],
                        poster_url=r["b_poster_url"], order=int(r["b_order"] or 0))
        votes.append(v)
    return votes


def booth_vote_counts(engine: Engine) -> Dict[str, int]:
    with engine.connect() as conn:
        return _counts(conn)


def total_voters(engine: Engine) -> int:
    with engine.connect() as conn:
        return int(conn.execute(
            text("SELECT COUNT(DISTINCT participant_id) FROM booth_votes")
        ).scalar_one())


def booth_vote_stats(engine: Engine) -> List[BoothWithVoteStats]:
    with engine.connect() as conn:
        booths = _all_booths(conn)
        counts = _counts(conn)
    return rank_booths(booths, counts)

# ─────────────────────────────────────────────────────────────
# Final results
# ─────────────────────────────────────────────────────────────

def submit_final_results(engine: Engine, event_id: str, staff_id: str) -> List[BoothVoteResult]:
    """
    Freeze the current ranking for the event and lock voting.
    Results can be submitted once; afterwards voting stays closed.
    """
    with engine.begin() as conn:
        ev = conn.execute(
            text("SELECT id FROM events WHERE id = :id" + for_update(conn)), {"id": event_id}
        ).mappings().first()
        if not ev:
            raise NotFoundError("Event not found")

        existing = conn.execute(
            text("SELECT COUNT(*) FROM booth_votes_results WHERE event_id = :eid"),
            {"eid": event_id},
        ).scalar_one()
        if existing:
            raise ConflictError("Final results have already been submitted")

        ranking = rank_booths(_all_booths(conn), _counts(conn))
        ts = now()
        try:
            for s in ranking:
                conn.execute(
                    text("""
                        INSERT INTO booth_votes_results
                            (id, event_id, booth_id, final_vote_count, final_rank, submitted_by, submitted_at)
                        VALUES (:id, :eid, :bid, :count, :rank, :staff, :now)
                    """),
                    {"id": new_id(), "eid": event_id, "bid": s.booth.id, "count": s.vote_count,
                     "rank": s.rank, "staff": staff_id, "now": ts},
                )
        except IntegrityError as e:
            raise ConflictError("Final results have already been submitted") from e

        conn.execute(
            text("""
                UPDATE events
                   SET is_votes_lock = TRUE, is_votes_open = FALSE, updated_at = :now
                 WHERE id = :id
            """),
            {"now": ts, "id": event_id},
        )

    log.info("final vote results submitted for %s by %s (%d booths)", event_id, staff_id, len(ranking))
    return get_final_results(engine, event_id)


def get_final_results(engine: Engine, event_id: str) -> List[BoothVoteResult]:
    with engine.connect() as conn:
        rows = conn.execute(
            text("""
                SELECT r.*, b.name AS b_name, b.description AS b_description,
                       b.poster_url AS b_poster_url, b."order" AS b_order
                FROM booth_votes_results r
                JOIN booths b ON b.id = r.booth_id
                WHERE r.event_id = :eid
                ORDER BY r.final_rank ASC
            """),
            {"eid": event_id},
        ).mappings().all()
    results = []
    for r in rows:
        res = BoothVoteResult.from_row(r)
        res.booth = Booth(id=res.booth_id, name=r["b_name"], description=r["b_description"],
                          poster_url=r["b_poster_url"], order=int(r["b_order"] or 0))
        results.append(res)
    return results


def has_results(engine: Engine, event_id: str) -> bool:
    with engine.connect() as conn:
        n = conn.execute(
            text("SELECT COUNT(*) FROM booth_votes_results WHERE event_id = :eid"),
            {"eid": event_id},
        ).scalar_one()
    return bool(n)
