# services/events_service.py
import logging
from typing import Optional, Tuple

from sqlalchemy import text
from sqlalchemy.engine import Engine

from domain.errors import NotFoundError, RuleViolation
from domain.models import Event
from utils.db import new_id, now

log = logging.getLogger(__name__)

__all__ = [
    "get_event", "is_event_active", "get_zoom_meeting_url", "get_voting_state",
    "set_event_active", "set_votes_open", "create_or_update_event",
]


def _fetch_event(conn) -> Optional[Event]:
    row = conn.execute(
        text("SELECT * FROM events ORDER BY created_at ASC LIMIT 1")
    ).mappings().first()
    return Event.from_row(row) if row else None


def get_event(engine: Engine) -> Event:
    """The current (single) event."""
    with engine.connect() as conn:
        ev = _fetch_event(conn)
    if not ev:
        raise NotFoundError("Event not found")
    return ev


def is_event_active(engine: Engine) -> bool:
    try:
        return get_event(engine).is_active
    except NotFoundError:
        return False


def get_zoom_meeting_url(engine: Engine) -> Optional[str]:
    try:
        return get_event(engine).zoom_meeting_url or None
    except NotFoundError:
        return None


def get_voting_state(engine: Engine) -> Tuple[bool, bool]:
    """(is_open, is_locked); a missing event is closed and unlocked."""
    try:
        ev = get_event(engine)
    except NotFoundError:
        return False, False
    return ev.is_votes_open, ev.is_votes_lock


def set_event_active(engine: Engine, event_id: str, is_active: bool) -> Event:
    with engine.begin() as conn:
        res = conn.execute(
            text("UPDATE events SET is_active = :a, updated_at = :now WHERE id = :id"),
            {"a": bool(is_active), "now": now(), "id": event_id},
        )
        if res.rowcount == 0:
            raise NotFoundError("Event not found")
        ev = _fetch_event(conn)
    log.info("event %s active=%s", event_id, is_active)
    return ev


def set_votes_open(engine: Engine, event_id: str, is_open: bool) -> Event:
    with engine.begin() as conn:
        row = conn.execute(
            text("SELECT is_votes_lock FROM events WHERE id = :id"), {"id": event_id}
        ).mappings().first()
        if not row:
            raise NotFoundError("Event not found")
        if row["is_votes_lock"] and is_open:
            raise RuleViolation("Voting results are final; voting cannot be reopened")
        conn.execute(
            text("UPDATE events SET is_votes_open = :o, updated_at = :now WHERE id = :id"),
            {"o": bool(is_open), "now": now(), "id": event_id},
        )
        ev = _fetch_event(conn)
    log.info("event %s votes_open=%s", event_id, is_open)
    return ev


def create_or_update_event(
    engine: Engine,
    name: str,
    date: str,
    *,
    is_active: bool = False,
    zoom_meeting_url: Optional[str] = None,
) -> Event:
    """Seed helper: keeps exactly one event row."""
    ts = now()
    with engine.begin() as conn:
        ev = _fetch_event(conn)
        if ev:
            conn.execute(
                text("""
                    UPDATE events
                       SET name = :name, date = :date, is_active = :a,
                           zoom_meeting_url = :zoom, updated_at = :now
                     WHERE id = :id
                """),
                {"name": name, "date": date, "a": is_active, "zoom": zoom_meeting_url,
                 "now": ts, "id": ev.id},
            )
        else:
            conn.execute(
                text("""
                    INSERT INTO events (id, name, date, is_active, is_votes_open, is_votes_lock,
                                        zoom_meeting_url, created_at, updated_at)
                    VALUES (:id, :name, :date, :a, FALSE, FALSE, :zoom, :now, :now)
                """),
                {"id": new_id(), "name": name, "date": date, "a": is_active,
                 "zoom": zoom_meeting_url, "now": ts},
            )
        return _fetch_event(conn)
