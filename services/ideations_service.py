# services/ideations_service.py
import logging
from typing import List, Optional

from sqlalchemy import text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError

import config
from domain.errors import ConflictError, NotFoundError, RuleViolation
from domain.models import Group, Ideation, IdeationInput, IdeationWithDetails
from services.groups_service import fetch_group
from services.users_service import fetch_user, fetch_users, lock_users, require_participant
from utils.db import new_id, now

log = logging.getLogger(__name__)


def _clean_input(data: IdeationInput) -> IdeationInput:
    title = (data.title or "").strip()
    description = (data.description or "").strip()
    case = (data.company_case or "").strip()
    if len(title) < config.MIN_TITLE_LENGTH:
        raise RuleViolation(f"Title must be at least {config.MIN_TITLE_LENGTH} characters")
    if len(description) < config.MIN_DESCRIPTION_LENGTH:
        raise RuleViolation(f"Description must be at least {config.MIN_DESCRIPTION_LENGTH} characters")
    if case not in config.COMPANY_OPTIONS:
        raise RuleViolation("Pick a company case from the list")
    return IdeationInput(title=title, description=description, company_case=case)


def _insert(conn, data: IdeationInput, creator_id: str, group_id: Optional[str]) -> str:
    iid = new_id()
    ts = now()
    conn.execute(
        text("""
            INSERT INTO ideations (id, title, description, company_case, creator_id, group_id,
                                   is_group, submitted_at, created_at, updated_at)
            VALUES (:id, :title, :description, :case, :creator, :gid, :is_group, :now, :now, :now)
        """),
        {"id": iid, "title": data.title, "description": data.description, "case": data.company_case,
         "creator": creator_id, "gid": group_id, "is_group": group_id is not None, "now": ts},
    )
    return iid


def _fetch(conn, ideation_id: str) -> Optional[Ideation]:
    row = conn.execute(
        text("SELECT * FROM ideations WHERE id = :id"), {"id": ideation_id}
    ).mappings().first()
    return Ideation.from_row(row) if row else None

# ─────────────────────────────────────────────────────────────
# Submission
# ─────────────────────────────────────────────────────────────

def create_individual_ideation(engine: Engine, creator_id: str, data: IdeationInput) -> Ideation:
    """Online participants submit on their own, once per company case."""
    data = _clean_input(data)
    with engine.begin() as conn:
        creator = require_participant(conn, creator_id, lock=True)
        if creator.participant_type != "online":
            raise RuleViolation("Individual ideations are for online participants; offline participants submit as a group")
        dup = conn.execute(
            text("""
                SELECT id FROM ideations
                WHERE creator_id = :cid AND company_case = :case AND is_group = FALSE
            """),
            {"cid": creator_id, "case": data.company_case},
        ).first()
        if dup:
            raise ConflictError(f"You already submitted an ideation for {data.company_case}")
        iid = _insert(conn, data, creator_id, None)
        ideation = _fetch(conn, iid)
    log.info("individual ideation %s by %s (%s)", iid, creator.email, data.company_case)
    return ideation


def create_group_ideation(engine: Engine, group_id: str, submitter_id: str, data: IdeationInput) -> Ideation:
    """
    Submit the group's ideation and close the group.
      - submitter must be a member
      - group size within [MIN_GROUP_SIZE, MAX_GROUP_SIZE]
      - no member may already be in another submitted group
    """
    data = _clean_input(data)
    with engine.begin() as conn:
        group = fetch_group(conn, group_id, lock=True)
        if not group:
            raise NotFoundError("Group not found")
        if group.is_submitted:
            raise ConflictError("The group has already submitted its ideation")

        members = [str(x) for x in conn.execute(
            text("SELECT participant_id FROM group_members WHERE group_id = :gid"), {"gid": group_id}
        ).scalars().all()]
        if submitter_id not in members:
            raise RuleViolation("Only group members can submit the group ideation")
        if not (config.MIN_GROUP_SIZE <= len(members) <= config.MAX_GROUP_SIZE):
            raise RuleViolation(
                f"A group needs {config.MIN_GROUP_SIZE} to {config.MAX_GROUP_SIZE} members to submit"
            )

        # a member's other group may be submitting concurrently
        lock_users(conn, members)
        taken = conn.execute(
            text("""
                SELECT u.name FROM group_members m
                JOIN groups g ON g.id = m.group_id
                JOIN users u ON u.id = m.participant_id
                WHERE g.is_submitted = TRUE AND g.id <> :gid AND m.participant_id IN (
                    SELECT participant_id FROM group_members WHERE group_id = :gid
                )
                ORDER BY u.name ASC
            """),
            {"gid": group_id},
        ).scalars().all()
        if taken:
            raise ConflictError(f"Already in a submitted group: {', '.join(taken)}")

        try:
            iid = _insert(conn, data, group.creator_id, group_id)
        except IntegrityError as e:
            raise ConflictError("The group has already submitted its ideation") from e
        conn.execute(
            text("""
                UPDATE groups SET is_submitted = TRUE, submitted_at = :now, updated_at = :now
                 WHERE id = :id
            """),
            {"now": now(), "id": group_id},
        )
        ideation = _fetch(conn, iid)
    log.info("group ideation %s submitted for group %s by %s", iid, group_id, submitter_id)
    return ideation

# ─────────────────────────────────────────────────────────────
# Queries
# ─────────────────────────────────────────────────────────────

def list_ideations(engine: Engine, is_group: Optional[bool] = None) -> List[Ideation]:
    sql = "SELECT * FROM ideations"
    params = {}
    if is_group is not None:
        sql += " WHERE is_group = :g"
        params["g"] = bool(is_group)
    with engine.connect() as conn:
        rows = conn.execute(text(sql + " ORDER BY submitted_at DESC"), params).mappings().all()
    return [Ideation.from_row(r) for r in rows]


def get_ideation(engine: Engine, ideation_id: str) -> Ideation:
    with engine.connect() as conn:
        i = _fetch(conn, ideation_id)
    if not i:
        raise NotFoundError("Ideation not found")
    return i


def _details(conn, ideation: Ideation) -> IdeationWithDetails:
    creator = fetch_user(conn, ideation.creator_id)
    group: Optional[Group] = None
    participants = [creator] if creator else []
    if ideation.group_id:
        group = fetch_group(conn, ideation.group_id)
        ids = conn.execute(
            text("SELECT participant_id FROM group_members WHERE group_id = :gid"),
            {"gid": ideation.group_id},
        ).scalars().all()
        participants = fetch_users(conn, [str(x) for x in ids])
    return IdeationWithDetails(ideation=ideation, creator=creator, participants=participants, group=group)


def get_ideation_with_details(engine: Engine, ideation_id: str) -> IdeationWithDetails:
    with engine.connect() as conn:
        i = _fetch(conn, ideation_id)
        if not i:
            raise NotFoundError("Ideation not found")
        return _details(conn, i)


def ideations_by_creator(engine: Engine, creator_id: str) -> List[Ideation]:
    with engine.connect() as conn:
        rows = conn.execute(
            text("SELECT * FROM ideations WHERE creator_id = :cid ORDER BY submitted_at DESC"),
            {"cid": creator_id},
        ).mappings().all()
    return [Ideation.from_row(r) for r in rows]


def existing_company_cases(engine: Engine, creator_id: str) -> List[str]:
    """Company cases the participant already submitted individually (greyed out in the form)."""
    with engine.connect() as conn:
        rows = conn.execute(
            text("""
                SELECT DISTINCT company_case FROM ideations
                WHERE creator_id = :cid AND is_group = FALSE
                ORDER BY company_case ASC
            """),
            {"cid": creator_id},
        ).scalars().all()
    return list(rows)


def all_ideations_for_export(engine: Engine) -> List[IdeationWithDetails]:
    with engine.connect() as conn:
        rows = conn.execute(
            text("SELECT * FROM ideations ORDER BY submitted_at DESC")
        ).mappings().all()
        return [_details(conn, Ideation.from_row(r)) for r in rows]
