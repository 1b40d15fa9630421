# services/users_service.py
import logging
import re
from typing import Any, Dict, List, Optional, Sequence, Tuple

from sqlalchemy import text, bindparam
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError

import config
from domain.errors import ConflictError, NotFoundError, RuleViolation
from domain.models import (
    Booth, BoothCheckin, BoothCheckinWithDetails, BoothVote, CreateUserInput, Credential,
    Ideation, Page, UpdateUserInput, User, UserDetail, UserFilters,
)
from utils.db import for_update, new_id, now
from utils.passwords import generate_password, hash_password

log = logging.getLogger(__name__)

EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")

# ─────────────────────────────────────────────────────────────
# Connection-level helpers (shared by the other services)
# ─────────────────────────────────────────────────────────────

def fetch_user(conn, user_id: str, *, lock: bool = False) -> Optional[User]:
    row = conn.execute(
        text("SELECT * FROM users WHERE id = :id" + (for_update(conn) if lock else "")),
        {"id": user_id},
    ).mappings().first()
    return User.from_row(row) if row else None


def fetch_users(conn, user_ids: Sequence[str], *, order_by_name: bool = True) -> List[User]:
    if not user_ids:
        return []
    stmt = text(
        "SELECT * FROM users WHERE id IN :ids" + (" ORDER BY name ASC" if order_by_name else "")
    ).bindparams(bindparam("ids", expanding=True))
    rows = conn.execute(stmt, {"ids": list(user_ids)}).mappings().all()
    return [User.from_row(r) for r in rows]


def lock_users(conn, user_ids: Sequence[str]) -> List[str]:
    """Row-lock users in id order so concurrent writers queue instead of deadlocking."""
    if not user_ids:
        return []
    stmt = text(
        "SELECT id FROM users WHERE id IN :ids ORDER BY id ASC" + for_update(conn)
    ).bindparams(bindparam("ids", expanding=True))
    return [str(x) for x in conn.execute(stmt, {"ids": sorted(set(user_ids))}).scalars().all()]


def require_participant(conn, user_id: str, *, lock: bool = False) -> User:
    user = fetch_user(conn, user_id, lock=lock)
    if not user or not user.is_participant:
        raise NotFoundError("Participant not found")
    return user


def normalize_email(email: Optional[str]) -> str:
    return (email or "").strip().lower()


def role_for_email(email: str) -> str:
    e = normalize_email(email)
    if e in config.ADMIN_EMAILS:
        return "admin"
    if e in config.STAFF_EMAILS:
        return "staff"
    return "participant"


def _validate_email(email: str) -> str:
    e = normalize_email(email)
    if not e or not EMAIL_RE.match(e):
        raise RuleViolation("Email format is invalid")
    return e


def _validate_type(participant_type: Optional[str]) -> str:
    t = (participant_type or "").strip().lower()
    if t not in config.PARTICIPANT_TYPES:
        raise RuleViolation('participant_type must be "online" or "offline"')
    return t


def _blank_to_none(v: Optional[str]) -> Optional[str]:
    v = (v or "").strip()
    return v or None


def _where(filters: UserFilters) -> Tuple[str, Dict[str, Any]]:
    clauses = ["role = 'participant'"]
    params: Dict[str, Any] = {}
    if filters.participant_type:
        clauses.append("participant_type = :ptype")
        params["ptype"] = filters.participant_type
    if filters.is_checked_in is not None:
        clauses.append("is_checked_in = :checked")
        params["checked"] = bool(filters.is_checked_in)
    if filters.is_eligible_to_draw is not None:
        clauses.append("is_eligible_to_draw = :eligible")
        params["eligible"] = bool(filters.is_eligible_to_draw)
    if filters.company:
        clauses.append("company = :company")
        params["company"] = filters.company
    if filters.search and filters.search.strip():
        clauses.append("(LOWER(name) LIKE :q OR LOWER(email) LIKE :q)")
        params["q"] = f"%{filters.search.strip().lower()}%"
    return " AND ".join(clauses), params

# ─────────────────────────────────────────────────────────────
# Queries
# ─────────────────────────────────────────────────────────────

def list_users(
    engine: Engine,
    page: int = 1,
    limit: int = config.DEFAULT_PAGE_SIZE,
    filters: Optional[UserFilters] = None,
) -> Page:
    """Participants, newest first, one page at a time."""
    if limit not in config.PAGINATION_SIZES:
        limit = config.DEFAULT_PAGE_SIZE
    page = max(1, int(page or 1))
    where, params = _where(filters or UserFilters())
    with engine.connect() as conn:
        total = conn.execute(
            text(f"SELECT COUNT(*) FROM users WHERE {where}"), params
        ).scalar_one()
        rows = conn.execute(
            text(f"""
                SELECT * FROM users
                WHERE {where}
                ORDER BY created_at DESC, name ASC
                LIMIT :limit OFFSET :offset
            """),
            {**params, "limit": limit, "offset": (page - 1) * limit},
        ).mappings().all()
    return Page(items=[User.from_row(r) for r in rows], total=int(total), page=page, limit=limit)


def all_users_for_export(engine: Engine) -> List[User]:
    with engine.connect() as conn:
        rows = conn.execute(
            text("SELECT * FROM users WHERE role = 'participant' ORDER BY name ASC")
        ).mappings().all()
    return [User.from_row(r) for r in rows]


def get_user(engine: Engine, user_id: str) -> User:
    with engine.connect() as conn:
        user = fetch_user(conn, user_id)
    if not user:
        raise NotFoundError("User not found")
    return user


def get_user_by_email(engine: Engine, email: str) -> Optional[User]:
    with engine.connect() as conn:
        row = conn.execute(
            text("SELECT * FROM users WHERE email = :e"), {"e": normalize_email(email)}
        ).mappings().first()
    return User.from_row(row) if row else None


def password_hash_for(engine: Engine, user_id: str) -> Optional[str]:
    with engine.connect() as conn:
        return conn.execute(
            text("SELECT password_hash FROM users WHERE id = :id"), {"id": user_id}
        ).scalar_one_or_none()


def companies(engine: Engine) -> List[str]:
    with engine.connect() as conn:
        rows = conn.execute(
            text("""
                SELECT DISTINCT company FROM users
                WHERE role = 'participant' AND company IS NOT NULL AND company <> ''
                ORDER BY company ASC
            """)
        ).scalars().all()
    return list(rows)


def get_user_detail(engine: Engine, user_id: str) -> UserDetail:
    """User plus booth visits, ideations, groups and votes (detail drawer)."""
    from services import groups_service  # groups_service imports this module

    with engine.connect() as conn:
        user = fetch_user(conn, user_id)
        if not user:
            raise NotFoundError("User not found")

        checkin_rows = conn.execute(
            text("""
                SELECT bc.*, b.name AS b_name, b."order" AS b_order
                FROM booth_checkins bc
                JOIN booths b ON b.id = bc.booth_id
                WHERE bc.participant_id = :id
                ORDER BY bc.checkin_time DESC
            """),
            {"id": user_id},
        ).mappings().all()
        checkins = [
            BoothCheckinWithDetails(
                checkin=BoothCheckin.from_row(r),
                booth=Booth(id=str(r["booth_id"]), name=r["b_name"], order=int(r["b_order"] or 0)),
            )
            for r in checkin_rows
        ]

        ideation_rows = conn.execute(
            text("""
                SELECT i.* FROM ideations i
                WHERE i.creator_id = :id
                   OR i.group_id IN (SELECT group_id FROM group_members WHERE participant_id = :id)
                ORDER BY i.submitted_at DESC
            """),
            {"id": user_id},
        ).mappings().all()

        vote_rows = conn.execute(
            text("SELECT * FROM booth_votes WHERE participant_id = :id ORDER BY voted_at DESC"),
            {"id": user_id},
        ).mappings().all()

        group_ids = conn.execute(
            text("SELECT group_id FROM group_members WHERE participant_id = :id"),
            {"id": user_id},
        ).scalars().all()

    groups = [groups_service.get_group_with_details(engine, str(g)) for g in group_ids]
    return UserDetail(
        user=user,
        booth_checkins=checkins,
        ideations=[Ideation.from_row(r) for r in ideation_rows],
        groups=groups,
        votes=[BoothVote.from_row(r) for r in vote_rows],
    )

# ─────────────────────────────────────────────────────────────
# Writes
# ─────────────────────────────────────────────────────────────

def _insert_user(conn, *, name: str, email: str, role: str, participant_type: Optional[str],
                 company: Optional[str], division: Optional[str], password_hash: Optional[str] = None) -> str:
    uid = new_id()
    ts = now()
    try:
        conn.execute(
            text("""
                INSERT INTO users (id, name, email, role, participant_type, company, division,
                                   is_checked_in, is_eligible_to_draw, password_hash, created_at, updated_at)
                VALUES (:id, :name, :email, :role, :ptype, :company, :division,
                        FALSE, FALSE, :pw, :now, :now)
            """),
            {"id": uid, "name": name, "email": email, "role": role, "ptype": participant_type,
             "company": company, "division": division, "pw": password_hash, "now": ts},
        )
    except IntegrityError as e:
        raise ConflictError(f"Email {email} is already registered") from e
    return uid


def _email_taken(conn, email: str, exclude_id: Optional[str] = None) -> bool:
    row = conn.execute(
        text("SELECT id FROM users WHERE email = :e"), {"e": email}
    ).mappings().first()
    return bool(row) and str(row["id"]) != (exclude_id or "")


def create_user(engine: Engine, data: CreateUserInput) -> Tuple[User, Credential]:
    """Register a participant from the back-office; the generated password is returned once."""
    name = (data.name or "").strip()
    if not name:
        raise RuleViolation("Name is required")
    email = _validate_email(data.email)
    ptype = _validate_type(data.participant_type)
    with engine.begin() as conn:
        if _email_taken(conn, email):
            raise ConflictError(f"Email {email} is already registered")
        password = generate_password()
        uid = _insert_user(conn, name=name, email=email, role="participant", participant_type=ptype,
                           company=_blank_to_none(data.company), division=_blank_to_none(data.division),
                           password_hash=hash_password(password))
        user = fetch_user(conn, uid)
    log.info("participant created %s (%s, %s)", email, ptype, user.company or "-")
    return user, Credential(name=user.name, email=user.email, password=password)


def reset_password(engine: Engine, user_id: str) -> Credential:
    """Issue a fresh participant password (help desk); the old one stops working."""
    password = generate_password()
    with engine.begin() as conn:
        user = require_participant(conn, user_id, lock=True)
        conn.execute(
            text("UPDATE users SET password_hash = :pw, updated_at = :now WHERE id = :id"),
            {"pw": hash_password(password), "now": now(), "id": user_id},
        )
    log.info("password reset for %s", user.email)
    return Credential(name=user.name, email=user.email, password=password)


def create_staff_user(engine: Engine, name: str, email: str, role: Optional[str] = None) -> User:
    """Seed helper for admin/staff accounts; existing emails are returned unchanged."""
    email = _validate_email(email)
    role = role or role_for_email(email)
    if role not in ("admin", "staff"):
        raise RuleViolation(f"{email} is not listed in ADMIN_EMAILS or STAFF_EMAILS")
    with engine.begin() as conn:
        row = conn.execute(
            text("SELECT id FROM users WHERE email = :e"), {"e": email}
        ).mappings().first()
        if row:
            return fetch_user(conn, str(row["id"]))
        uid = _insert_user(conn, name=name.strip() or email, email=email, role=role,
                           participant_type=None, company=None, division=None)
        return fetch_user(conn, uid)


def update_user(engine: Engine, user_id: str, data: UpdateUserInput) -> User:
    changes = data.changes()
    if "name" in changes:
        changes["name"] = changes["name"].strip()
        if not changes["name"]:
            raise RuleViolation("Name is required")
    if "email" in changes:
        changes["email"] = _validate_email(changes["email"])
    if "participant_type" in changes:
        changes["participant_type"] = _validate_type(changes["participant_type"])
    for k in ("company", "division"):
        if k in changes:
            changes[k] = _blank_to_none(changes[k])

    with engine.begin() as conn:
        user = fetch_user(conn, user_id, lock=True)
        if not user:
            raise NotFoundError("User not found")
        if not changes:
            return user
        if "email" in changes and _email_taken(conn, changes["email"], exclude_id=user_id):
            raise ConflictError(f"Email {changes['email']} is already registered")
        sets = ", ".join(f"{k} = :{k}" for k in changes)
        conn.execute(
            text(f"UPDATE users SET {sets}, updated_at = :now WHERE id = :id"),
            {**changes, "now": now(), "id": user_id},
        )
        updated = fetch_user(conn, user_id)
    log.info("user %s updated: %s", user_id, ", ".join(sorted(changes)))
    return updated


def delete_user(engine: Engine, user_id: str) -> None:
    """Remove a participant who has not checked in yet."""
    with engine.begin() as conn:
        user = fetch_user(conn, user_id, lock=True)
        if not user:
            raise NotFoundError("User not found")
        if user.is_checked_in:
            raise RuleViolation("Participant has already checked in and cannot be deleted")
        owned = conn.execute(
            text("SELECT COUNT(*) FROM groups WHERE creator_id = :id"), {"id": user_id}
        ).scalar_one()
        if owned:
            raise RuleViolation("Participant created a group and cannot be deleted")
        for sql in (
            "DELETE FROM group_members WHERE participant_id = :id",
            "DELETE FROM booth_votes WHERE participant_id = :id",
            "DELETE FROM booth_checkins WHERE participant_id = :id",
            "DELETE FROM users WHERE id = :id",
        ):
            conn.execute(text(sql), {"id": user_id})
    log.info("participant deleted %s", user.email)
