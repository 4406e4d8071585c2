# marketplace/database.py
from typing import Any

from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel, create_engine, Session

from marketplace.core.config import get_settings

settings = get_settings()

# ---------------------------------------------------------
# Engine
#
# PostgreSQL (production):
#   - pool_pre_ping validates pooled connections before use
#   - sslmode=require is appended when DATABASE_REQUIRE_SSL is set
#
# SQLite (local runs / tests):
#   - check_same_thread=False because FastAPI runs sync routes
#     in a threadpool
#   - in-memory databases share a single connection (StaticPool),
#     otherwise every new connection would see an empty database
# ---------------------------------------------------------


def _with_sslmode(url: str) -> str:
    if "sslmode=" in url:
        return url
    separator = "&" if "?" in url else "?"
    return f"{url}{separator}sslmode=require"


def _engine_options(url: str) -> dict[str, Any]:
    if url.startswith("sqlite"):
        options: dict[str, Any] = {"connect_args": {"check_same_thread": False}}
        if url in ("sqlite://", "sqlite:///:memory:"):
            options["poolclass"] = StaticPool
        return options

    return {
        "pool_pre_ping": True,
        "pool_size": settings.DB_POOL_SIZE,
        "max_overflow": settings.DB_MAX_OVERFLOW,
    }


db_url = settings.DATABASE_URL
if settings.DATABASE_REQUIRE_SSL and db_url.startswith("postgresql"):
    db_url = _with_sslmode(db_url)

engine = create_engine(
    db_url,
    echo=False,  # set to True if you want to debug SQL queries
    **_engine_options(db_url),
)


def create_db_and_tables() -> None:
    """
    Create all tables defined in SQLModel metadata if they do not exist.

    This is called once on application startup.
    """
    SQLModel.metadata.create_all(engine)


def get_session():
    """
    FastAPI dependency that yields a SQLModel Session.

    Usage:

        from fastapi import Depends

        @router.get("/example")
        def example_endpoint(session: Session = Depends(get_session)):
            ...
    """
    with Session(engine) as session:
        yield session
