# services/groups_service.py
import logging
from typing import List, Optional, Sequence

from sqlalchemy import text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError

import config
from domain.errors import ConflictError, NotFoundError, RuleViolation
from domain.models import Group, GroupWithDetails, Ideation, User
from services.users_service import fetch_user, fetch_users, require_participant
from utils.db import for_update, new_id, now

log = logging.getLogger(__name__)

# ─────────────────────────────────────────────────────────────
# Rules
# ─────────────────────────────────────────────────────────────

def _same_company(a: Optional[str], b: Optional[str]) -> bool:
    return bool(a and b and a.strip().lower() == b.strip().lower())


def check_offline_member(member: User, creator: Optional[User] = None) -> None:
    """Who may be part of an offline group (creator or invitee)."""
    if member.participant_type != "offline":
        raise RuleViolation(f"{member.name}: only offline participants can join a group")
    if not member.is_checked_in:
        raise RuleViolation(f"{member.name}: participant has not checked in yet")
    if creator is not None and _same_company(member.company, creator.company):
        raise RuleViolation(f"{member.name}: group members must come from different companies")


def fetch_group(conn, group_id: str, *, lock: bool = False) -> Optional[Group]:
    row = conn.execute(
        text("SELECT * FROM groups WHERE id = :id" + (for_update(conn) if lock else "")),
        {"id": group_id},
    ).mappings().first()
    return Group.from_row(row) if row else None


def _require_group(conn, group_id: str, *, lock: bool = False) -> Group:
    g = fetch_group(conn, group_id, lock=lock)
    if not g:
        raise NotFoundError("Group not found")
    return g


def _member_ids(conn, group_id: str) -> List[str]:
    return [str(x) for x in conn.execute(
        text("SELECT participant_id FROM group_members WHERE group_id = :gid ORDER BY joined_at ASC"),
        {"gid": group_id},
    ).scalars().all()]


def _add_member(conn, group_id: str, participant_id: str, ts) -> None:
    conn.execute(
        text("""
            INSERT INTO group_members (id, group_id, participant_id, joined_at)
            VALUES (:id, :gid, :pid, :now)
        """),
        {"id": new_id(), "gid": group_id, "pid": participant_id, "now": ts},
    )

# ─────────────────────────────────────────────────────────────
# Writes
# ─────────────────────────────────────────────────────────────

def create_group(engine: Engine, creator_id: str, name: str, member_ids: Sequence[str] = ()) -> Group:
    """
    Create an offline group. The creator is always the first member;
    extra members are validated like invitations. Group and member rows
    are written in one transaction.
    """
    name = (name or "").strip()
    if len(name) < config.MIN_GROUP_NAME_LENGTH:
        raise RuleViolation(f"Group name must be at least {config.MIN_GROUP_NAME_LENGTH} characters")

    extra = []
    for pid in member_ids:
        pid = str(pid)
        if pid and pid != creator_id and pid not in extra:
            extra.append(pid)
    if 1 + len(extra) > config.MAX_GROUP_SIZE:
        raise RuleViolation(f"A group has at most {config.MAX_GROUP_SIZE} members")

    with engine.begin() as conn:
        creator = require_participant(conn, creator_id)
        if creator.participant_type != "offline":
            raise RuleViolation("Only offline participants can create a group")
        if not creator.is_checked_in:
            raise RuleViolation("You have to check in before creating a group")

        members = fetch_users(conn, extra)
        if len(members) != len(extra) or any(not m.is_participant for m in members):
            raise NotFoundError("Some participants were not found")
        for m in members:
            check_offline_member(m, creator)

        gid = new_id()
        ts = now()
        conn.execute(
            text("""
                INSERT INTO groups (id, name, creator_id, is_submitted, created_at, updated_at)
                VALUES (:id, :name, :creator, FALSE, :now, :now)
            """),
            {"id": gid, "name": name, "creator": creator_id, "now": ts},
        )
        for pid in [creator_id] + extra:
            _add_member(conn, gid, pid, ts)
        group = fetch_group(conn, gid)

    log.info("group %r created by %s with %d member(s)", name, creator.email, 1 + len(extra))
    return group


def update_group(engine: Engine, group_id: str, name: str) -> Group:
    name = (name or "").strip()
    if len(name) < config.MIN_GROUP_NAME_LENGTH:
        raise RuleViolation(f"Group name must be at least {config.MIN_GROUP_NAME_LENGTH} characters")
    with engine.begin() as conn:
        g = _require_group(conn, group_id, lock=True)
        if g.is_submitted:
            raise RuleViolation("The group has already submitted its ideation")
        conn.execute(
            text("UPDATE groups SET name = :name, updated_at = :now WHERE id = :id"),
            {"name": name, "now": now(), "id": group_id},
        )
        return fetch_group(conn, group_id)


def invite_to_group(engine: Engine, group_id: str, participant_id: str) -> Group:
    with engine.begin() as conn:
        g = _require_group(conn, group_id, lock=True)
        if g.is_submitted:
            raise RuleViolation("The group has already submitted its ideation and cannot take new members")

        current = _member_ids(conn, group_id)
        if participant_id in current:
            raise ConflictError("Participant is already in this group")
        if len(current) >= config.MAX_GROUP_SIZE:
            raise RuleViolation(f"A group has at most {config.MAX_GROUP_SIZE} members")

        member = require_participant(conn, participant_id)
        creator = fetch_user(conn, g.creator_id)
        check_offline_member(member, creator)

        try:
            _add_member(conn, group_id, participant_id, now())
        except IntegrityError as e:
            raise ConflictError("Participant is already in this group") from e
        group = fetch_group(conn, group_id)

    log.info("%s joined group %s", member.email, group_id)
    return group


def leave_group(engine: Engine, group_id: str, participant_id: str) -> Group:
    with engine.begin() as conn:
        g = _require_group(conn, group_id, lock=True)
        if g.creator_id == participant_id:
            raise RuleViolation("The creator cannot leave their own group")
        if g.is_submitted:
            raise RuleViolation("The group has already submitted its ideation")
        res = conn.execute(
            text("DELETE FROM group_members WHERE group_id = :gid AND participant_id = :pid"),
            {"gid": group_id, "pid": participant_id},
        )
        if res.rowcount == 0:
            raise NotFoundError("Participant is not a member of this group")
        group = fetch_group(conn, group_id)
    log.info("%s left group %s", participant_id, group_id)
    return group

# ─────────────────────────────────────────────────────────────
# Queries
# ─────────────────────────────────────────────────────────────

def get_group(engine: Engine, group_id: str) -> Group:
    with engine.connect() as conn:
        return _require_group(conn, group_id)


def get_group_with_details(engine: Engine, group_id: str) -> GroupWithDetails:
    with engine.connect() as conn:
        g = _require_group(conn, group_id)
        creator = fetch_user(conn, g.creator_id)
        participants = fetch_users(conn, _member_ids(conn, group_id))
        ideation = None
        if g.is_submitted:
            row = conn.execute(
                text("SELECT * FROM ideations WHERE group_id = :gid"), {"gid": group_id}
            ).mappings().first()
            ideation = Ideation.from_row(row) if row else None
    return GroupWithDetails(group=g, creator=creator, participants=participants, ideation=ideation)


def available_participants(
    engine: Engine,
    search: Optional[str] = None,
    exclude_company: Optional[str] = None,
) -> List[User]:
    """Offline participants who have checked in (invite picker)."""
    clauses = ["role = 'participant'", "participant_type = 'offline'", "is_checked_in = TRUE"]
    params = {}
    if exclude_company and exclude_company.strip():
        clauses.append("(company IS NULL OR LOWER(company) <> :xc)")
        params["xc"] = exclude_company.strip().lower()
    if search and search.strip():
        clauses.append("(LOWER(name) LIKE :q OR LOWER(email) LIKE :q OR LOWER(COALESCE(company, '')) LIKE :q)")
        params["q"] = f"%{search.strip().lower()}%"
    with engine.connect() as conn:
        rows = conn.execute(
            text(f"SELECT * FROM users WHERE {' AND '.join(clauses)} ORDER BY name ASC"), params
        ).mappings().all()
    return [User.from_row(r) for r in rows]


def group_member_count(engine: Engine, group_id: str) -> int:
    with engine.connect() as conn:
        return int(conn.execute(
            text("SELECT COUNT(*) FROM group_members WHERE group_id = :gid"), {"gid": group_id}
        ).scalar_one())


def participant_groups(engine: Engine, participant_id: str) -> List[Group]:
    """Groups the participant belongs to, newest first."""
    with engine.connect() as conn:
        rows = conn.execute(
            text("""
                SELECT g.* FROM groups g
                JOIN group_members m ON m.group_id = g.id
                WHERE m.participant_id = :pid
                ORDER BY g.created_at DESC
            """),
            {"pid": participant_id},
        ).mappings().all()
    return [Group.from_row(r) for r in rows]
