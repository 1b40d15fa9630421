# tests/conftest.py
import pytest
from sqlalchemy import create_engine, text
from sqlalchemy.pool import StaticPool

import config
from domain.models import CreateUserInput
from services import booths_service, events_service, users_service
from utils.db import init_schema


@pytest.fixture(autouse=True)
def fast_hashing(monkeypatch):
    monkeypatch.setattr(config, "BCRYPT_ROUNDS", 4)


@pytest.fixture
def engine():
    eng = create_engine(
        "sqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    init_schema(eng)
    yield eng
    eng.dispose()


@pytest.fixture
def event(engine):
    return events_service.create_or_update_event(engine, "Expert Forum 2025", "2025-11-20", is_active=True)


@pytest.fixture
def booths(engine):
    """Four shared booths plus one online-only and one offline-only booth."""
    out = {}
    for i, name in enumerate(["Alpha", "Bravo", "Charlie", "Delta"], start=1):
        out[name] = booths_service.upsert_booth(
            engine, name, description=f"{name} booth", questions=[f"What does {name} build?"], order=i,
        )
    out["Online Lab"] = booths_service.upsert_booth(
        engine, "Online Lab", questions=["Q?"], order=10, is_online_only=True,
    )
    out["Hall Demo"] = booths_service.upsert_booth(
        engine, "Hall Demo", questions=["Q?"], order=11, is_offline_only=True,
    )
    return out


@pytest.fixture
def staff(engine):
    return users_service.create_staff_user(engine, "Staff One", "staff1@expert-forum.com", role="staff")


@pytest.fixture
def make_participant(engine):
    counter = {"n": 0}

    def _make(participant_type="offline", company="Astra International", *, name=None,
              checked_in=False, eligible=False):
        counter["n"] += 1
        n = counter["n"]
        user, _ = users_service.create_user(engine, CreateUserInput(
            name=name or f"Participant {n:02d}",
            email=f"p{n}@example.com",
            participant_type=participant_type,
            company=company,
        ))
        if checked_in or eligible:
            with engine.begin() as conn:
                conn.execute(
                    text("UPDATE users SET is_checked_in = :c, is_eligible_to_draw = :e WHERE id = :id"),
                    {"c": bool(checked_in), "e": bool(eligible), "id": user.id},
                )
            user = users_service.get_user(engine, user.id)
        return user

    return _make


@pytest.fixture
def offline(make_participant):
    return make_participant("offline", "Astra International", name="Oscar Offline", checked_in=True)


@pytest.fixture
def online(make_participant):
    return make_participant("online", "United Tractors", name="Olivia Online")


@pytest.fixture
def small_thresholds(monkeypatch):
    monkeypatch.setitem(config.BOOTH_THRESHOLD, "offline", 3)
    monkeypatch.setitem(config.BOOTH_THRESHOLD, "online", 2)
