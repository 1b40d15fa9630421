# domain/tables.py
"""Schema of the event database.

Services query with plain SQL; this metadata exists so the schema can be
created on a fresh Supabase/Postgres project (``seed.py init``) and on the
in-memory SQLite database used by the tests.
"""
from sqlalchemy import (
    MetaData, Table, Column, String, Text, Boolean, Integer, DateTime, JSON,
    ForeignKey, UniqueConstraint, Index, Enum,
)
from sqlalchemy.dialects.postgresql import JSONB

metadata = MetaData()

_ID = lambda: Column("id", String(36), primary_key=True)  # noqa: E731
_TS = lambda name, nullable=False: Column(name, DateTime(timezone=True), nullable=nullable)  # noqa: E731

user_role = Enum("admin", "staff", "participant", name="user_role")
participant_type = Enum("online", "offline", name="participant_type")
checkin_method = Enum("qr", "manual", name="checkin_method")

events = Table(
    "events", metadata,
    _ID(),
    Column("name", String(200), nullable=False),
    Column("date", String(40), nullable=False),
    Column("is_active", Boolean, nullable=False, default=False),
    Column("is_votes_open", Boolean, nullable=False, default=False),
    Column("is_votes_lock", Boolean, nullable=False, default=False),
    Column("zoom_meeting_url", Text),
    _TS("created_at"),
    _TS("updated_at"),
)

users = Table(
    "users", metadata,
    _ID(),
    Column("name", String(200), nullable=False),
    Column("email", String(320), nullable=False, unique=True),
    Column("role", user_role, nullable=False, default="participant"),
    Column("participant_type", participant_type),
    Column("company", String(200)),
    Column("division", String(200)),
    Column("is_checked_in", Boolean, nullable=False, default=False),
    Column("is_eligible_to_draw", Boolean, nullable=False, default=False),
    _TS("event_checkin_time", nullable=True),
    Column("event_checkin_method", checkin_method),
    Column("checked_in_by", String(36), ForeignKey("users.id", ondelete="SET NULL")),
    Column("password_hash", String(100)),
    _TS("created_at"),
    _TS("updated_at"),
)

booths = Table(
    "booths", metadata,
    _ID(),
    Column("name", String(200), nullable=False),
    Column("description", Text),
    Column("poster_url", Text),
    Column("questions", JSON().with_variant(JSONB(), "postgresql"), nullable=False, default=list),
    Column("order", Integer, nullable=False, default=0),
    Column("is_online_only", Boolean, nullable=False, default=False),
    Column("is_offline_only", Boolean, nullable=False, default=False),
    _TS("created_at"),
    _TS("updated_at"),
)

booth_checkins = Table(
    "booth_checkins", metadata,
    _ID(),
    Column("participant_id", String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
    Column("booth_id", String(36), ForeignKey("booths.id", ondelete="CASCADE"), nullable=False),
    Column("question", Text),
    Column("answer", Text),
    _TS("checkin_time"),
    UniqueConstraint("participant_id", "booth_id", name="uq_booth_checkins_participant_booth"),
)

groups = Table(
    "groups", metadata,
    _ID(),
    Column("name", String(200), nullable=False),
    Column("creator_id", String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
    Column("is_submitted", Boolean, nullable=False, default=False),
    _TS("submitted_at", nullable=True),
    _TS("created_at"),
    _TS("updated_at"),
)

group_members = Table(
    "group_members", metadata,
    _ID(),
    Column("group_id", String(36), ForeignKey("groups.id", ondelete="CASCADE"), nullable=False),
    Column("participant_id", String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
    _TS("joined_at"),
    UniqueConstraint("group_id", "participant_id", name="uq_group_members_group_participant"),
)

ideations = Table(
    "ideations", metadata,
    _ID(),
    Column("title", String(300), nullable=False),
    Column("description", Text, nullable=False),
    Column("company_case", String(200), nullable=False),
    Column("creator_id", String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
    Column("group_id", String(36), ForeignKey("groups.id", ondelete="CASCADE")),
    Column("is_group", Boolean, nullable=False, default=False),
    _TS("submitted_at"),
    _TS("created_at"),
    _TS("updated_at"),
    UniqueConstraint("group_id", name="uq_ideations_group"),
)
Index("ix_ideations_creator_case", ideations.c.creator_id, ideations.c.company_case)

booth_votes = Table(
    "booth_votes", metadata,
    _ID(),
    Column("participant_id", String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
    Column("booth_id", String(36), ForeignKey("booths.id", ondelete="CASCADE"), nullable=False),
    _TS("voted_at"),
    UniqueConstraint("participant_id", "booth_id", name="uq_booth_votes_participant_booth"),
)

booth_votes_results = Table(
    "booth_votes_results", metadata,
    _ID(),
    Column("event_id", String(36), ForeignKey("events.id", ondelete="CASCADE"), nullable=False),
    Column("booth_id", String(36), ForeignKey("booths.id", ondelete="CASCADE"), nullable=False),
    Column("final_vote_count", Integer, nullable=False),
    Column("final_rank", Integer, nullable=False),
    Column("submitted_by", String(36), ForeignKey("users.id", ondelete="SET NULL")),
    _TS("submitted_at"),
    UniqueConstraint("event_id", "booth_id", name="uq_results_event_booth"),
)

draw_logs = Table(
    "draw_logs", metadata,
    _ID(),
    Column("staff_id", String(36), ForeignKey("users.id", ondelete="SET NULL")),
    Column("prize_template", String(60)),
    Column("prize_name", String(200)),
    Column("slot_count", Integer, nullable=False),
    _TS("created_at"),
)

draw_winners = Table(
    "draw_winners", metadata,
    _ID(),
    Column("draw_log_id", String(36), ForeignKey("draw_logs.id", ondelete="CASCADE"), nullable=False),
    Column("participant_id", String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
    _TS("created_at"),
    UniqueConstraint("participant_id", name="uq_draw_winners_participant"),
)
