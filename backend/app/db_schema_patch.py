from __future__ import annotations

import logging
from typing import Dict, List, Tuple

from sqlalchemy import text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

logger = logging.getLogger(__name__)

# Columns added to "playoffbracketentry" after its first release.
# (name, sqlite_type, postgres_type)
REQUIRED_PLAYOFF_COLUMNS: List[Tuple[str, str, str]] = [
    ("is_bye", "BOOLEAN NOT NULL DEFAULT 0", "BOOLEAN NOT NULL DEFAULT FALSE"),
]


def _is_sqlite(engine: Engine) -> bool:
    return engine.dialect.name.lower() == "sqlite"


def _table_exists(engine: Engine, table_name: str) -> bool:
    if _is_sqlite(engine):
        sql = "SELECT name FROM sqlite_master WHERE type='table' AND name=:table_name"
    else:
        sql = """
        SELECT table_name FROM information_schema.tables
        WHERE table_schema = 'public' AND table_name = :table_name
        """
    with engine.connect() as conn:
        return conn.execute(text(sql), {"table_name": table_name}).fetchone() is not None


def _get_existing_columns(engine: Engine, table_name: str) -> Dict[str, str]:
    cols: Dict[str, str] = {}
    with engine.connect() as conn:
        if _is_sqlite(engine):
            # PRAGMA table_info returns rows: (cid, name, type, notnull, dflt_value, pk)
            for row in conn.execute(text(f"PRAGMA table_info({table_name});")).fetchall():
                cols[str(row[1])] = str(row[2])
        else:
            res = conn.execute(
                text(
                    "SELECT column_name, data_type FROM information_schema.columns "
                    "WHERE table_schema = 'public' AND table_name = :table_name"
                ),
                {"table_name": table_name},
            ).fetchall()
            for row in res:
                cols[str(row[0])] = str(row[1])
    return cols


def ensure_columns(engine: Engine, table_name: str, required: List[Tuple[str, str, str]]) -> List[str]:
    """
    Idempotently add missing columns to an existing table.
    Returns the names of the columns that were added. A missing table is left
    to create_all / alembic.
    """
    if not _table_exists(engine, table_name):
        return []

    existing = _get_existing_columns(engine, table_name)
    added: List[str] = []
    with engine.begin() as conn:
        for name, sqlite_type, pg_type in required:
            if name in existing:
                continue
            if _is_sqlite(engine):
                conn.execute(text(f"ALTER TABLE {table_name} ADD COLUMN {name} {sqlite_type};"))
            else:
                conn.execute(text(f"ALTER TABLE {table_name} ADD COLUMN IF NOT EXISTS {name} {pg_type};"))
            added.append(name)
    if added:
        logger.info(f"Added columns to {table_name}: {', '.join(added)}")
    return added


def ensure_playoff_columns(engine: Engine) -> List[str]:
    """Safe to run at every startup. Logs and carries on if the patch cannot be applied."""
    from app.models.playoff_bracket_entry import PlayoffBracketEntry

    try:
        return ensure_columns(engine, PlayoffBracketEntry.__table__.name, REQUIRED_PLAYOFF_COLUMNS)
    except SQLAlchemyError as e:
        logger.warning(f"Failed to ensure playoff bracket columns: {e}")
        return []
