# api_server.py
import secrets
from datetime import datetime
from functools import lru_cache
from typing import List, Optional

from fastapi import FastAPI, HTTPException, Depends, Header
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field
from sqlalchemy.engine import Engine

import config
from domain.errors import ForumError
from services import booths_service, checkin_service, draws_service, events_service, votes_service
from utils.db import get_engine
from utils.json_utils import as_dict
from utils.log import setup_logging
from utils.qr_utils import parse_scanned_text

setup_logging()

app = FastAPI(title="Expert Forum Check-in API")

# ──────────────────────────────────────────────
# CORS (API_ALLOWED_ORIGINS in .env)
# ──────────────────────────────────────────────
app.add_middleware(
    CORSMiddleware,
    allow_origins=config.API_ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    max_age=600,
)


@lru_cache(maxsize=1)
def get_db_engine() -> Engine:
    return get_engine()


# ──────────────────────────────────────────────
# Simple API-key auth (env driven)
#   - Set API_KEY in .env to enable
#   - Clients send X-API-Key: <key>  OR  Authorization: Bearer <key>
# ──────────────────────────────────────────────
def require_api_key(
    x_api_key: str | None = Header(default=None),
    authorization: str | None = Header(default=None),
):
    expected = config.API_KEY
    if not expected:
        # auth disabled (e.g., local dev)
        return
    token = None
    if x_api_key:
        token = x_api_key.strip()
    elif authorization and authorization.lower().startswith("bearer "):
        token = authorization.split(" ", 1)[1].strip()
    if not token or not secrets.compare_digest(token, expected):
        raise HTTPException(status_code=401, detail="Unauthorized")


def _fail(e: ForumError) -> HTTPException:
    return HTTPException(status_code=e.status_code, detail=e.message)

# ──────────────────────────────────────────────
# Models
# ──────────────────────────────────────────────
class EventOut(BaseModel):
    id: str
    name: str
    date: str
    is_active: bool
    is_votes_open: bool
    is_votes_lock: bool
    zoom_meeting_url: Optional[str] = None

class BoothOut(BaseModel):
    id: str
    name: str
    description: Optional[str] = None
    poster_url: Optional[str] = None
    order: int
    is_online_only: bool
    is_offline_only: bool

class ProgressOut(BaseModel):
    participant_id: str
    visited: int
    threshold: int
    remaining: int
    is_eligible: bool
    visited_booth_ids: List[str]

class EventCheckinReq(BaseModel):
    participant_id: Optional[str] = None
    scanned_text: Optional[str] = None     # raw QR text from a handheld scanner
    method: str = "qr"
    staff_id: Optional[str] = None         # audit: who scanned

class EventCheckinResp(BaseModel):
    message: str
    participant_id: str
    name: str
    participant_type: Optional[str] = None
    checkin_time: Optional[datetime] = None

class BoothCheckinReq(BaseModel):
    participant_id: str
    booth_id: str
    answer: str
    question: Optional[str] = None

class BoothCheckinResp(BaseModel):
    message: str
    visited: int
    threshold: int
    is_eligible: bool

class VoteReq(BaseModel):
    participant_id: str
    booth_ids: List[str] = Field(..., min_length=1)

class VoteStatOut(BaseModel):
    rank: int
    booth_id: str
    name: str
    vote_count: int
    vote_percentage: float

class EligibleOut(BaseModel):
    id: str
    name: str
    email: str
    company: Optional[str] = None
    participant_type: Optional[str] = None

# ──────────────────────────────────────────────
# Health
# ──────────────────────────────────────────────
@app.get("/api/health")
def health():
    return {"ok": True}

# ──────────────────────────────────────────────
# Event / booths / progress
# ──────────────────────────────────────────────
@app.get("/api/event", response_model=EventOut, dependencies=[Depends(require_api_key)])
def get_event(engine: Engine = Depends(get_db_engine)):
    try:
        ev = events_service.get_event(engine)
    except ForumError as e:
        raise _fail(e) from e
    return EventOut(
        id=ev.id, name=ev.name, date=ev.date, is_active=ev.is_active,
        is_votes_open=ev.is_votes_open, is_votes_lock=ev.is_votes_lock,
        zoom_meeting_url=ev.zoom_meeting_url,
    )


@app.get("/api/booths", response_model=List[BoothOut], dependencies=[Depends(require_api_key)])
def get_booths(participant_type: Optional[str] = None, engine: Engine = Depends(get_db_engine)):
    return [
        BoothOut(id=b.id, name=b.name, description=b.description, poster_url=b.poster_url,
                 order=b.order, is_online_only=b.is_online_only, is_offline_only=b.is_offline_only)
        for b in booths_service.list_booths(engine, participant_type)
    ]


@app.get(
    "/api/participants/{participant_id}/progress",
    response_model=ProgressOut,
    dependencies=[Depends(require_api_key)],
)
def get_progress(participant_id: str, engine: Engine = Depends(get_db_engine)):
    try:
        p = checkin_service.get_progress(engine, participant_id)
    except ForumError as e:
        raise _fail(e) from e
    return ProgressOut(
        participant_id=p.participant_id, visited=p.visited, threshold=p.threshold,
        remaining=p.remaining, is_eligible=p.is_eligible, visited_booth_ids=p.visited_booth_ids,
    )

# ──────────────────────────────────────────────
# POST event check-in (QR scan or manual lookup)
# ──────────────────────────────────────────────
@app.post("/api/checkin/event", response_model=EventCheckinResp, dependencies=[Depends(require_api_key)])
def post_event_checkin(payload: EventCheckinReq, engine: Engine = Depends(get_db_engine)):
    pid = payload.participant_id or parse_scanned_text(payload.scanned_text or "")
    if not pid:
        raise HTTPException(status_code=400, detail="QR code is not a participant code")
    try:
        user = checkin_service.checkin_event(engine, pid, payload.method, staff_id=payload.staff_id)
    except ForumError as e:
        raise _fail(e) from e
    return EventCheckinResp(
        message=f"Welcome, {user.name}!",
        participant_id=user.id,
        name=user.name,
        participant_type=user.participant_type,
        checkin_time=user.event_checkin_time,
    )

# ──────────────────────────────────────────────
# POST booth check-in (quiz answer)
# ──────────────────────────────────────────────
@app.post("/api/checkin/booth", response_model=BoothCheckinResp, dependencies=[Depends(require_api_key)])
def post_booth_checkin(payload: BoothCheckinReq, engine: Engine = Depends(get_db_engine)):
    try:
        checkin_service.checkin_booth(
            engine, payload.participant_id, payload.booth_id, payload.answer, question=payload.question,
        )
        p = checkin_service.get_progress(engine, payload.participant_id)
    except ForumError as e:
        raise _fail(e) from e
    return BoothCheckinResp(
        message="Booth visit recorded",
        visited=p.visited, threshold=p.threshold, is_eligible=p.is_eligible,
    )

# ──────────────────────────────────────────────
# Votes
# ──────────────────────────────────────────────
@app.post("/api/votes", dependencies=[Depends(require_api_key)])
def post_votes(payload: VoteReq, engine: Engine = Depends(get_db_engine)):
    try:
        votes = votes_service.submit_votes(engine, payload.participant_id, payload.booth_ids)
    except ForumError as e:
        raise _fail(e) from e
    return {"message": "Thank you for voting", "booth_ids": [v.booth_id for v in votes]}


@app.get("/api/votes/stats", response_model=List[VoteStatOut], dependencies=[Depends(require_api_key)])
def get_vote_stats(engine: Engine = Depends(get_db_engine)):
    return [
        VoteStatOut(rank=s.rank, booth_id=s.booth.id, name=s.booth.name,
                    vote_count=s.vote_count, vote_percentage=s.vote_percentage)
        for s in votes_service.booth_vote_stats(engine)
    ]

# ──────────────────────────────────────────────
# Lucky draw
# ──────────────────────────────────────────────
@app.get("/api/draws/eligible", response_model=List[EligibleOut], dependencies=[Depends(require_api_key)])
def get_eligible(engine: Engine = Depends(get_db_engine)):
    return [
        EligibleOut(id=u.id, name=u.name, email=u.email, company=u.company,
                    participant_type=u.participant_type)
        for u in draws_service.eligible_participants(engine)
    ]


@app.get("/api/draws/latest", dependencies=[Depends(require_api_key)])
def get_latest_draw(engine: Engine = Depends(get_db_engine)):
    """Latest draw with its winners, for the hall display screen."""
    latest = draws_service.latest_draw_log(engine)
    if latest is None:
        raise HTTPException(status_code=404, detail="No draws yet")
    return as_dict(latest)
