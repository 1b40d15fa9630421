from __future__ import annotations

import json
import math
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Mapping, Optional


# ─────────────────────────────────────────────────────────────
# Row coercion (Postgres returns native types, SQLite returns 0/1 and text)
# ─────────────────────────────────────────────────────────────

def _bool(v: Any) -> bool:
    if isinstance(v, str):
        return v.strip().lower() in {"1", "true", "t", "yes"}
    return bool(v)

def _dt(v: Any) -> Optional[datetime]:
    if v is None or v == "":
        return None
    if isinstance(v, datetime):
        return v
    try:
        return datetime.fromisoformat(str(v))
    except ValueError:
        return None

def _str_list(v: Any) -> List[str]:
    if v is None:
        return []
    if isinstance(v, str):
        try:
            v = json.loads(v)
        except ValueError:
            return [v]
    if isinstance(v, (list, tuple)):
        return [str(x) for x in v]
    return []

def _opt(v: Any) -> Optional[str]:
    return None if v is None else str(v)


# ─────────────────────────────────────────────────────────────
# Rows
# ─────────────────────────────────────────────────────────────

@dataclass
class Event:
    id: str
    name: str
    date: str
    is_active: bool
    is_votes_open: bool
    is_votes_lock: bool
    zoom_meeting_url: Optional[str]
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_row(cls, r: Mapping[str, Any]) -> "Event":
        return cls(
            id=str(r["id"]),
            name=r["name"],
            date=str(r["date"]),
            is_active=_bool(r["is_active"]),
            is_votes_open=_bool(r["is_votes_open"]),
            is_votes_lock=_bool(r["is_votes_lock"]),
            zoom_meeting_url=r.get("zoom_meeting_url"),
            created_at=_dt(r.get("created_at")),
            updated_at=_dt(r.get("updated_at")),
        )


@dataclass
class User:
    id: str
    name: str
    email: str
    role: str
    participant_type: Optional[str] = None
    company: Optional[str] = None
    division: Optional[str] = None
    is_checked_in: bool = False
    is_eligible_to_draw: bool = False
    event_checkin_time: Optional[datetime] = None
    event_checkin_method: Optional[str] = None
    checked_in_by: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def is_participant(self) -> bool:
        return self.role == "participant"

    @property
    def is_staff_or_admin(self) -> bool:
        return self.role in ("staff", "admin")

    @classmethod
    def from_row(cls, r: Mapping[str, Any]) -> "User":
        return cls(
            id=str(r["id"]),
            name=r["name"],
            email=r["email"],
            role=r["role"],
            participant_type=r.get("participant_type"),
            company=r.get("company"),
            division=r.get("division"),
            is_checked_in=_bool(r.get("is_checked_in")),
            is_eligible_to_draw=_bool(r.get("is_eligible_to_draw")),
            event_checkin_time=_dt(r.get("event_checkin_time")),
            event_checkin_method=r.get("event_checkin_method"),
            checked_in_by=_opt(r.get("checked_in_by")),
            created_at=_dt(r.get("created_at")),
            updated_at=_dt(r.get("updated_at")),
        )


@dataclass
class Booth:
    id: str
    name: str
    description: Optional[str] = None
    poster_url: Optional[str] = None
    questions: List[str] = field(default_factory=list)
    order: int = 0
    is_online_only: bool = False
    is_offline_only: bool = False

    def visible_to(self, participant_type: Optional[str]) -> bool:
        if participant_type == "online" and self.is_offline_only:
            return False
        if participant_type == "offline" and self.is_online_only:
            return False
        return True

    @classmethod
    def from_row(cls, r: Mapping[str, Any]) -> "Booth":
        return cls(
            id=str(r["id"]),
            name=r["name"],
            description=r.get("description"),
            poster_url=r.get("poster_url"),
            questions=_str_list(r.get("questions")),
            order=int(r.get("order") or 0),
            is_online_only=_bool(r.get("is_online_only")),
            is_offline_only=_bool(r.get("is_offline_only")),
        )


@dataclass
class BoothCheckin:
    id: str
    participant_id: str
    booth_id: str
    answer: Optional[str]
    checkin_time: Optional[datetime]
    question: Optional[str] = None

    @classmethod
    def from_row(cls, r: Mapping[str, Any]) -> "BoothCheckin":
        return cls(
            id=str(r["id"]),
            participant_id=str(r["participant_id"]),
            booth_id=str(r["booth_id"]),
            answer=r.get("answer"),
            checkin_time=_dt(r.get("checkin_time")),
            question=r.get("question"),
        )


@dataclass
class BoothCheckinWithDetails:
    checkin: BoothCheckin
    booth: Optional[Booth] = None
    participant: Optional[User] = None


@dataclass
class BoothProgress:
    participant_id: str
    visited: int
    threshold: int
    is_eligible: bool
    visited_booth_ids: List[str] = field(default_factory=list)

    @property
    def remaining(self) -> int:
        return max(0, self.threshold - self.visited)

    @property
    def ratio(self) -> float:
        return min(1.0, self.visited / self.threshold) if self.threshold else 1.0


@dataclass
class Group:
    id: str
    name: str
    creator_id: str
    is_submitted: bool
    submitted_at: Optional[datetime] = None
    created_at: Optional[datetime] = None

    @classmethod
    def from_row(cls, r: Mapping[str, Any]) -> "Group":
        return cls(
            id=str(r["id"]),
            name=r["name"],
            creator_id=str(r["creator_id"]),
            is_submitted=_bool(r.get("is_submitted")),
            submitted_at=_dt(r.get("submitted_at")),
            created_at=_dt(r.get("created_at")),
        )


@dataclass
class GroupMember:
    id: str
    group_id: str
    participant_id: str
    joined_at: Optional[datetime] = None

    @classmethod
    def from_row(cls, r: Mapping[str, Any]) -> "GroupMember":
        return cls(
            id=str(r["id"]),
            group_id=str(r["group_id"]),
            participant_id=str(r["participant_id"]),
            joined_at=_dt(r.get("joined_at")),
        )


@dataclass
class Ideation:
    id: str
    title: str
    description: str
    company_case: str
    creator_id: str
    group_id: Optional[str]
    is_group: bool
    submitted_at: Optional[datetime] = None

    @classmethod
    def from_row(cls, r: Mapping[str, Any]) -> "Ideation":
        return cls(
            id=str(r["id"]),
            title=r["title"],
            description=r["description"],
            company_case=r["company_case"],
            creator_id=str(r["creator_id"]),
            group_id=_opt(r.get("group_id")),
            is_group=_bool(r.get("is_group")),
            submitted_at=_dt(r.get("submitted_at")),
        )


@dataclass
class GroupWithDetails:
    group: Group
    creator: Optional[User]
    participants: List[User] = field(default_factory=list)
    ideation: Optional[Ideation] = None

    @property
    def member_count(self) -> int:
        return len(self.participants)


@dataclass
class IdeationWithDetails:
    ideation: Ideation
    creator: Optional[User]
    participants: List[User] = field(default_factory=list)
    group: Optional[Group] = None


@dataclass
class BoothVote:
    id: str
    participant_id: str
    booth_id: str
    voted_at: Optional[datetime] = None
    booth: Optional[Booth] = None

    @classmethod
    def from_row(cls, r: Mapping[str, Any]) -> "BoothVote":
        return cls(
            id=str(r["id"]),
            participant_id=str(r["participant_id"]),
            booth_id=str(r["booth_id"]),
            voted_at=_dt(r.get("voted_at")),
        )


@dataclass
class BoothWithVoteStats:
    booth: Booth
    vote_count: int
    vote_percentage: float
    rank: int


@dataclass
class BoothVoteResult:
    id: str
    event_id: str
    booth_id: str
    final_vote_count: int
    final_rank: int
    submitted_by: Optional[str]
    submitted_at: Optional[datetime] = None
    booth: Optional[Booth] = None

    @classmethod
    def from_row(cls, r: Mapping[str, Any]) -> "BoothVoteResult":
        return cls(
            id=str(r["id"]),
            event_id=str(r["event_id"]),
            booth_id=str(r["booth_id"]),
            final_vote_count=int(r["final_vote_count"]),
            final_rank=int(r["final_rank"]),
            submitted_by=_opt(r.get("submitted_by")),
            submitted_at=_dt(r.get("submitted_at")),
        )


@dataclass
class DrawLog:
    id: str
    staff_id: Optional[str]
    prize_template: Optional[str]
    prize_name: Optional[str]
    slot_count: int
    created_at: Optional[datetime] = None

    @classmethod
    def from_row(cls, r: Mapping[str, Any]) -> "DrawLog":
        return cls(
            id=str(r["id"]),
            staff_id=_opt(r.get("staff_id")),
            prize_template=r.get("prize_template"),
            prize_name=r.get("prize_name"),
            slot_count=int(r.get("slot_count") or 0),
            created_at=_dt(r.get("created_at")),
        )


@dataclass
class DrawLogWithDetails:
    log: DrawLog
    winners: List[User] = field(default_factory=list)
    staff: Optional[User] = None


@dataclass
class PrizeTemplate:
    id: str
    name: str
    slot_count: int

    @classmethod
    def from_config(cls, d: Mapping[str, Any]) -> "PrizeTemplate":
        return cls(id=str(d["id"]), name=str(d["name"]), slot_count=int(d["slot_count"]))


@dataclass
class DrawSlot:
    slot_number: int
    winner: Optional[User] = None
    is_revealed: bool = False


@dataclass
class Stats:
    total_participants: int = 0
    total_offline: int = 0
    total_online: int = 0
    checked_in: int = 0
    checked_in_offline: int = 0
    checked_in_online: int = 0
    eligible_for_draw: int = 0
    submissions: int = 0
    group_submissions: int = 0
    individual_submissions: int = 0
    voters: int = 0
    draws: int = 0
    winners: int = 0


# ─────────────────────────────────────────────────────────────
# Inputs / query objects
# ─────────────────────────────────────────────────────────────

@dataclass
class CreateUserInput:
    name: str
    email: str
    participant_type: str
    company: Optional[str] = None
    division: Optional[str] = None


@dataclass
class Credential:
    """Plaintext login handed to a participant once; only the hash is stored."""
    name: str
    email: str
    password: str


@dataclass
class UpdateUserInput:
    name: Optional[str] = None
    email: Optional[str] = None
    participant_type: Optional[str] = None
    company: Optional[str] = None
    division: Optional[str] = None

    def changes(self) -> Dict[str, Any]:
        return {k: v for k, v in self.__dict__.items() if v is not None}


@dataclass
class IdeationInput:
    title: str
    description: str
    company_case: str


@dataclass
class UserFilters:
    participant_type: Optional[str] = None
    is_checked_in: Optional[bool] = None
    is_eligible_to_draw: Optional[bool] = None
    company: Optional[str] = None
    search: Optional[str] = None


@dataclass
class Page:
    items: List[Any]
    total: int
    page: int
    limit: int

    @property
    def total_pages(self) -> int:
        return math.ceil(self.total / self.limit) if self.limit else 0


@dataclass
class UserDetail:
    user: User
    booth_checkins: List[BoothCheckinWithDetails] = field(default_factory=list)
    ideations: List[Ideation] = field(default_factory=list)
    groups: List[GroupWithDetails] = field(default_factory=list)
    votes: List[BoothVote] = field(default_factory=list)
