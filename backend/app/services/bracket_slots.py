"""
Bracket slots as read from upstream, and the slot enricher.

Enrichment derives each slot's week (14 + round) and cross-references the
slot's rosters against the matchup ledger to attach the matchup_id of the game
that was actually played. Nothing here touches the database.
"""
import logging
from collections import defaultdict
from dataclasses import dataclass, field, replace
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

from app.services.bracket_references import is_reference_payload
from app.services.matchup_ledger import MatchupLedgerRow

logger = logging.getLogger(__name__)

PLAYOFF_WEEK_OFFSET = 14


class BracketSlotError(ValueError):
    """Upstream slot is missing its identity (slot id or round)."""


def week_for_round(round_number: int) -> int:
    return PLAYOFF_WEEK_OFFSET + round_number


def _optional_int(value: Any) -> Optional[int]:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return None


@dataclass
class BracketSlot:
    slot_id: int
    round: int
    team1: Optional[int] = None
    team2: Optional[int] = None
    winner_id: Optional[int] = None
    loser_id: Optional[int] = None
    place: Optional[int] = None
    # Raw advancement references, validated later by the reference normalizer
    team1_source: Any = None
    team2_source: Any = None

    # Set by enrichment / bye derivation
    week: Optional[int] = None
    matchup_id: Optional[int] = None
    is_bye: bool = False

    @classmethod
    def from_api(cls, payload: Mapping[str, Any]) -> "BracketSlot":
        """
        Build a slot from one upstream bracket object (keys m, r, t1, t2, w, l, p, t1_from, t2_from).

        t1/t2 may hold a reference object instead of a roster id; that object
        stands in for the side's source unless tN_from is also present.
        """
        slot_id = _optional_int(payload.get("m"))
        round_number = _optional_int(payload.get("r"))
        if slot_id is None or round_number is None:
            raise BracketSlotError(f"Bracket slot missing 'm' or 'r': {dict(payload)!r}")

        sides: Dict[str, Tuple[Optional[int], Any]] = {}
        for side in ("t1", "t2"):
            team = payload.get(side)
            source = payload.get(f"{side}_from")
            if is_reference_payload(team):
                if source is None:
                    source = team
                team = None
            sides[side] = (_optional_int(team), source)

        return cls(
            slot_id=slot_id,
            round=round_number,
            team1=sides["t1"][0],
            team2=sides["t2"][0],
            winner_id=_optional_int(payload.get("w")),
            loser_id=_optional_int(payload.get("l")),
            place=_optional_int(payload.get("p")),
            team1_source=sides["t1"][1],
            team2_source=sides["t2"][1],
        )

    @property
    def rosters(self) -> List[int]:
        return [t for t in (self.team1, self.team2) if t is not None]


@dataclass
class EnrichmentResult:
    slots: List[BracketSlot] = field(default_factory=list)
    ambiguous: int = 0  # >1 distinct candidate; first one taken
    unresolved: int = 0  # no candidate yet


def index_ledger_by_week(
    ledger: Iterable[MatchupLedgerRow], league_id: str
) -> Dict[int, List[MatchupLedgerRow]]:
    """Head-to-head ledger rows of one league grouped by week, ledger order preserved."""
    by_week: Dict[int, List[MatchupLedgerRow]] = defaultdict(list)
    for row in ledger:
        if row.league_id != league_id or row.is_bye:
            continue
        by_week[row.week].append(row)
    return by_week


def matchup_candidates(slot: BracketSlot, week_rows: Iterable[MatchupLedgerRow]) -> List[int]:
    """Distinct matchup ids touching either of the slot's rosters, in ledger order."""
    rosters = slot.rosters
    if not rosters:
        return []
    seen: Dict[int, None] = {}
    for row in week_rows:
        if any(row.involves(roster) for roster in rosters):
            seen.setdefault(row.matchup_id, None)
    return list(seen)


def enrich_bracket_slots(
    slots: Iterable[BracketSlot],
    ledger: Iterable[MatchupLedgerRow],
    *,
    league_id: str,
    bracket_type: Optional[str] = None,
) -> EnrichmentResult:
    """Attach week and matchup_id to every slot. Input slots are not mutated."""
    by_week = index_ledger_by_week(ledger, league_id)
    result = EnrichmentResult()

    for slot in slots:
        week = week_for_round(slot.round)
        candidates = matchup_candidates(slot, by_week.get(week, []))

        matchup_id: Optional[int] = None
        if len(candidates) == 1:
            matchup_id = candidates[0]
        elif len(candidates) > 1:
            matchup_id = candidates[0]
            result.ambiguous += 1
            logger.warning(
                "Ambiguous matchup cross-reference for league %s %s slot %d (week %d): candidates %s, using %d",
                league_id,
                bracket_type or "bracket",
                slot.slot_id,
                week,
                candidates,
                matchup_id,
            )
        else:
            result.unresolved += 1

        result.slots.append(replace(slot, week=week, matchup_id=matchup_id))

    return result
