"""
Playoff bracket sync: source -> enrich -> byes -> normalize -> upsert.

Both bracket types of a league are fetched concurrently and fully normalized
before anything is written, so a malformed reference leaves the stored bracket
untouched. Safe to re-run at any time; the upsert is idempotent.
"""
import logging
import os
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Protocol, Sequence

from sqlmodel import Session, select

from app.models.league import League
from app.models.playoff_bracket_entry import BracketType, PlayoffBracketEntry
from app.services.bracket_byes import derive_bye_slots, round_one_rosters
from app.services.bracket_references import BracketReferenceError, normalize_slots
from app.services.bracket_slots import BracketSlot, BracketSlotError, enrich_bracket_slots
from app.services.bracket_upsert import upsert_bracket_entries
from app.services.matchup_ledger import MatchupLedgerRow, get_matchup_ledger, group_ledger_by_league
from app.services.sleeper_service import SleeperAPIError
from app.utils.sql import count_where

logger = logging.getLogger(__name__)

BRACKET_TYPES = (BracketType.winners, BracketType.losers)
DEFAULT_MAX_WORKERS = int(os.getenv("BRACKET_SYNC_MAX_WORKERS", "4"))


class InvalidBracketRequest(ValueError):
    """Sync asked for without a usable league id or bracket type."""


class LeagueNotFound(LookupError):
    """League id is not stored; brackets are only synced for known leagues."""

    def __init__(self, league_id: str):
        self.league_id = league_id
        super().__init__(f"League not found: {league_id}")


class BracketSource(Protocol):
    def get_bracket_slots(self, league_id: str, bracket_type: BracketType) -> List[BracketSlot]:
        ...


@dataclass
class BracketBuild:
    bracket_type: BracketType
    entries: List[PlayoffBracketEntry] = field(default_factory=list)
    raw_count: int = 0
    byes: int = 0
    ambiguous: int = 0
    unresolved: int = 0

    def summary(self) -> Dict[str, int]:
        return {
            "raw_slots": self.raw_count,
            "byes_synthesized": self.byes,
            "ambiguous_matchups": self.ambiguous,
            "unresolved_matchups": self.unresolved,
        }


def require_league_id(league_id: Any) -> str:
    if not isinstance(league_id, str) or not league_id.strip():
        raise InvalidBracketRequest(f"A league id is required, got {league_id!r}")
    return league_id.strip()


def require_known_league(session: Session, league_id: str) -> str:
    if session.get(League, league_id) is None:
        raise LeagueNotFound(league_id)
    return league_id


def require_bracket_type(bracket_type: Any) -> BracketType:
    try:
        return BracketType(bracket_type)
    except ValueError:
        raise InvalidBracketRequest(
            f"Unknown bracket type {bracket_type!r}; expected one of {[b.value for b in BracketType]}"
        ) from None


def require_unique_slot_ids(raw_slots: Sequence[BracketSlot], bracket_type: BracketType) -> None:
    seen = set()
    for slot in raw_slots:
        if slot.slot_id in seen:
            raise BracketSlotError(f"Duplicate {bracket_type.value} bracket slot id {slot.slot_id}")
        seen.add(slot.slot_id)


def build_bracket(
    league_id: str,
    bracket_type: BracketType,
    raw_slots: Sequence[BracketSlot],
    ledger: Sequence[MatchupLedgerRow],
) -> BracketBuild:
    """Pure pipeline for one bracket type of one league. Raises BracketReferenceError on bad lineage."""
    bracket_type = require_bracket_type(bracket_type)
    require_unique_slot_ids(raw_slots, bracket_type)
    enriched = enrich_bracket_slots(raw_slots, ledger, league_id=league_id, bracket_type=bracket_type.value)

    # Accumulator is local to this league + bracket type
    seen_rosters = round_one_rosters(enriched.slots)
    byes = derive_bye_slots(enriched.slots, seen_rosters)

    entries = normalize_slots(enriched.slots + byes, league_id=league_id, bracket_type=bracket_type.value)
    return BracketBuild(
        bracket_type=bracket_type,
        entries=entries,
        raw_count=len(raw_slots),
        byes=len(byes),
        ambiguous=enriched.ambiguous,
        unresolved=enriched.unresolved,
    )


def fetch_brackets(source: BracketSource, league_id: str) -> Dict[BracketType, List[BracketSlot]]:
    """Read both bracket types concurrently; they share no state."""
    with ThreadPoolExecutor(max_workers=len(BRACKET_TYPES)) as pool:
        futures = {bt: pool.submit(source.get_bracket_slots, league_id, bt) for bt in BRACKET_TYPES}
        return {bt: list(future.result()) for bt, future in futures.items()}


def build_league_brackets(
    source: BracketSource, league_id: str, ledger: Sequence[MatchupLedgerRow]
) -> List[BracketBuild]:
    raw = fetch_brackets(source, league_id)
    return [build_bracket(league_id, bt, raw[bt], ledger) for bt in BRACKET_TYPES]


def _persist_builds(session: Session, league_id: str, builds: List[BracketBuild]) -> Dict[str, Any]:
    entries = [entry for build in builds for entry in build.entries]
    written = upsert_bracket_entries(session, entries)
    stored = count_where(session, PlayoffBracketEntry, PlayoffBracketEntry.league_id == league_id)

    summary: Dict[str, Any] = {
        "league_id": league_id,
        "entries_written": written,
        "entries_stored": stored,
        "byes_synthesized": sum(b.byes for b in builds),
        "ambiguous_matchups": sum(b.ambiguous for b in builds),
        "unresolved_matchups": sum(b.unresolved for b in builds),
        "brackets": {b.bracket_type.value: b.summary() for b in builds},
    }
    logger.info(
        "Bracket sync league %s: %d entries written (%d byes, %d ambiguous, %d unresolved)",
        league_id,
        written,
        summary["byes_synthesized"],
        summary["ambiguous_matchups"],
        summary["unresolved_matchups"],
    )
    return summary


def sync_league_bracket(session: Session, league_id: str, source: BracketSource) -> Dict[str, Any]:
    """
    Run the full bracket pipeline for both bracket types of one league.

    Raises:
        InvalidBracketRequest: blank league id (before anything is fetched)
        LeagueNotFound: league id not stored (before anything is fetched)
        BracketSlotError: upstream slot without id/round, or a repeated slot id
        BracketReferenceError: malformed advancement reference; nothing written
        BracketPersistenceError: a chunk failed; earlier chunks stay committed

    Guarantees:
        - Idempotent (same upstream + ledger -> same rows)
        - Entries are never deleted, only superseded in place
    """
    league_id = require_known_league(session, require_league_id(league_id))
    ledger = get_matchup_ledger(session, league_id)
    builds = build_league_brackets(source, league_id, ledger)
    return _persist_builds(session, league_id, builds)


def sync_bracket_history(
    session: Session,
    source: BracketSource,
    league_ids: Optional[Sequence[str]] = None,
    max_workers: Optional[int] = None,
) -> List[Dict[str, Any]]:
    """
    Rebuild brackets for many leagues (default: every stored league).

    Per-league pipelines run concurrently; writes run league by league on the
    caller's session. An unknown league id or bad upstream data in one league
    is reported in that league's summary under "error" and does not stop the
    others; unknown leagues are never fetched. A persistence failure aborts
    the whole run.
    """
    if league_ids is None:
        league_ids = list(session.exec(select(League.league_id).order_by(League.league_id)).all())
    league_ids = [require_league_id(lid) for lid in league_ids]
    if not league_ids:
        return []
    known = set(session.exec(select(League.league_id).where(League.league_id.in_(league_ids))).all())

    ledgers = group_ledger_by_league(get_matchup_ledger(session))

    def _build(league_id: str) -> List[BracketBuild]:
        return build_league_brackets(source, league_id, ledgers.get(league_id, []))

    with ThreadPoolExecutor(max_workers=max_workers or DEFAULT_MAX_WORKERS) as pool:
        futures = [
            (league_id, pool.submit(_build, league_id) if league_id in known else None) for league_id in league_ids
        ]

        results: List[Dict[str, Any]] = []
        for league_id, future in futures:
            if future is None:
                logger.error(f"Bracket history: league {league_id} is not stored; skipped")
                results.append({"league_id": league_id, "error": str(LeagueNotFound(league_id))})
                continue
            try:
                builds = future.result()
            except (BracketReferenceError, BracketSlotError, SleeperAPIError) as exc:
                logger.error(f"Bracket history: league {league_id} rejected: {exc}")
                results.append({"league_id": league_id, "error": str(exc)})
                continue
            results.append(_persist_builds(session, league_id, builds))

    return results
