# utils/db.py
import uuid
import datetime
from typing import Optional
from zoneinfo import ZoneInfo

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine, Connection

import config
from domain.tables import metadata


def database_url() -> str:
    if config.DATABASE_URL:
        return config.DATABASE_URL
    if not config.DB_HOST:
        raise RuntimeError("Missing required environment variable: DATABASE_URL (or DB_HOST)")
    pwd = config.DB_PASSWORD or ""
    return (f"postgresql+psycopg2://{config.DB_USER}:{pwd}"
            f"@{config.DB_HOST}:{config.DB_PORT}/{config.DB_NAME}")


def get_engine(url: Optional[str] = None) -> Engine:
    return create_engine(url or database_url(), pool_pre_ping=True)


def init_schema(engine: Engine) -> None:
    """Create any missing tables (idempotent)."""
    metadata.create_all(engine)


def for_update(conn: Connection) -> str:
    """Row-lock suffix for SELECTs that precede a write; SQLite has no row locks."""
    return " FOR UPDATE" if conn.dialect.name == "postgresql" else ""


def new_id() -> str:
    return str(uuid.uuid4())


def now() -> datetime.datetime:
    return datetime.datetime.now(tz=ZoneInfo(config.APP_TZ))
