import os
from pathlib import Path
from typing import Any, Dict, Generator

from dotenv import load_dotenv
from sqlalchemy.engine import Engine
from sqlmodel import Session, SQLModel, create_engine

load_dotenv()

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./league.db")
SQL_ECHO = os.getenv("SQL_ECHO", "false").lower() in ("true", "1", "yes")


def _engine_kwargs(url: str) -> Dict[str, Any]:
    """SQLite: shared across threads, file directory created. Postgres: pre-ping."""
    if url.startswith("sqlite"):
        db_path = url.replace("sqlite:///", "", 1)
        if db_path and db_path != ":memory:":
            Path(db_path).parent.mkdir(parents=True, exist_ok=True)
        return {"connect_args": {"check_same_thread": False}}
    return {"pool_pre_ping": True}


engine: Engine = create_engine(DATABASE_URL, echo=SQL_ECHO, **_engine_kwargs(DATABASE_URL))


def get_session() -> Generator[Session, None, None]:
    """Get database session"""
    with Session(engine) as session:
        yield session


def init_db() -> None:
    """Create league, matchup and playoff bracket tables if missing"""
    from app.models import League, Matchup, PlayoffBracketEntry  # noqa: F401

    SQLModel.metadata.create_all(engine)
