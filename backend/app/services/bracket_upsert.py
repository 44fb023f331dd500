"""
Idempotent persistence of bracket entries.

Rows are keyed by (league_id, bracket_type, slot_id). Each chunk is one
INSERT ... ON CONFLICT DO UPDATE committed on its own; a failing chunk rolls
back, stops the remaining chunks and raises. Re-running the whole sync is the
recovery path.
"""
import logging
import os
from datetime import datetime
from itertools import groupby
from typing import Any, Dict, List, Sequence

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session

from app.models.playoff_bracket_entry import PlayoffBracketEntry

logger = logging.getLogger(__name__)

DEFAULT_CHUNK_SIZE = int(os.getenv("BRACKET_UPSERT_CHUNK_SIZE", "14"))

KEY_COLUMNS = ("league_id", "bracket_type", "slot_id")
MUTABLE_COLUMNS = (
    "matchup_id",
    "week",
    "round",
    "winner_id",
    "loser_id",
    "place",
    "team1",
    "team2",
    "team1_from_winner_of_slot",
    "team1_from_loser_of_slot",
    "team2_from_winner_of_slot",
    "team2_from_loser_of_slot",
    "is_bye",
)


class BracketPersistenceError(RuntimeError):
    def __init__(self, message: str, committed: int):
        self.committed = committed
        super().__init__(message)


def _dialect_insert(session: Session):
    dialect = session.get_bind().dialect.name
    if dialect == "postgresql":
        from sqlalchemy.dialects.postgresql import insert
    elif dialect == "sqlite":
        from sqlalchemy.dialects.sqlite import insert
    else:
        raise BracketPersistenceError(f"Upsert not supported on dialect '{dialect}'", committed=0)
    return insert


def entry_to_row(entry: PlayoffBracketEntry, now: datetime) -> Dict[str, Any]:
    row = {col: getattr(entry, col) for col in KEY_COLUMNS + MUTABLE_COLUMNS}
    row["created_at"] = now
    row["updated_at"] = now
    return row


def chunked(items: Sequence[Any], size: int) -> List[Sequence[Any]]:
    if size < 1:
        raise ValueError(f"chunk size must be positive, got {size}")
    return [items[i : i + size] for i in range(0, len(items), size)]


def round_batches(entries: Sequence[PlayoffBracketEntry], size: int) -> List[List[PlayoffBracketEntry]]:
    """
    Pack whole (bracket_type, round) groups into batches of at most `size`.

    Entries are ordered by (bracket_type, round, slot_id), so bye placeholders
    travel with the real round-1 slots. A round larger than `size` is the only
    case that gets split.
    """
    if size < 1:
        raise ValueError(f"chunk size must be positive, got {size}")
    ordered = sorted(entries, key=lambda e: (e.bracket_type, e.round, e.slot_id))

    batches: List[List[PlayoffBracketEntry]] = []
    current: List[PlayoffBracketEntry] = []
    for _, group in groupby(ordered, key=lambda e: (e.bracket_type, e.round)):
        group = list(group)
        if len(current) + len(group) > size and current:
            batches.append(current)
            current = []
        if len(group) > size:
            batches.extend(list(chunk) for chunk in chunked(group, size))
            continue
        current.extend(group)
    if current:
        batches.append(current)
    return batches


def upsert_bracket_entries(
    session: Session,
    entries: Sequence[PlayoffBracketEntry],
    chunk_size: int = DEFAULT_CHUNK_SIZE,
) -> int:
    """
    Upsert entries in round-aligned chunks of at most chunk_size rows.
    Returns the number of rows written.

    On conflict every mutable column is overwritten, except that a resolved
    matchup_id is never replaced by NULL. created_at is kept from the first
    insert.
    """
    if not entries:
        return 0

    insert = _dialect_insert(session)
    table = PlayoffBracketEntry.__table__
    now = datetime.utcnow()
    written = 0

    for index, chunk in enumerate(round_batches(entries, chunk_size)):
        stmt = insert(table).values([entry_to_row(entry, now) for entry in chunk])
        update_set = {col: stmt.excluded[col] for col in MUTABLE_COLUMNS}
        update_set["matchup_id"] = func.coalesce(stmt.excluded.matchup_id, table.c.matchup_id)
        update_set["updated_at"] = stmt.excluded.updated_at
        stmt = stmt.on_conflict_do_update(index_elements=list(KEY_COLUMNS), set_=update_set)

        try:
            session.execute(stmt)
            session.commit()
        except SQLAlchemyError as exc:
            session.rollback()
            logger.exception(
                "Bracket upsert chunk %d failed after %d committed rows; aborting remaining chunks",
                index,
                written,
            )
            raise BracketPersistenceError(
                f"Bracket upsert failed on chunk {index} ({written} rows committed before failure): {exc}",
                committed=written,
            ) from exc
        written += len(chunk)

    return written
