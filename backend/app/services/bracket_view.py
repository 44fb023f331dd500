"""
Read path: group persisted entries into winners/losers trees.

Pure group-by over stored rows. All cross-referencing already happened at
write time; lineage is resolved by slot-id lookup, never by walking objects.
"""
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional

from sqlmodel import Session, select

from app.models.playoff_bracket_entry import BracketType, PlayoffBracketEntry

STATE_UNSEEDED = "unseeded"
STATE_SEEDED = "seeded"
STATE_RESOLVED = "resolved"


def entry_state(entry: PlayoffBracketEntry) -> str:
    """Unseeded -> Seeded -> Resolved, inferred from which columns are populated."""
    if entry.winner_id is not None or entry.loser_id is not None:
        return STATE_RESOLVED
    if entry.team1 is not None or entry.team2 is not None:
        return STATE_SEEDED
    return STATE_UNSEEDED


@dataclass
class BracketRound:
    round: int
    week: int
    entries: List[PlayoffBracketEntry] = field(default_factory=list)


@dataclass
class BracketView:
    league_id: str
    winners_bracket: List[BracketRound] = field(default_factory=list)
    losers_bracket: List[BracketRound] = field(default_factory=list)


def group_rounds(entries: Iterable[PlayoffBracketEntry]) -> List[BracketRound]:
    """Rounds sorted final-first; entries within a round by slot id."""
    by_round: Dict[int, List[PlayoffBracketEntry]] = defaultdict(list)
    for entry in entries:
        by_round[entry.round].append(entry)

    rounds = []
    for round_number in sorted(by_round, reverse=True):
        round_entries = sorted(by_round[round_number], key=lambda e: e.slot_id)
        rounds.append(BracketRound(round=round_number, week=round_entries[0].week, entries=round_entries))
    return rounds


def assemble_bracket_view(league_id: str, entries: Iterable[PlayoffBracketEntry]) -> BracketView:
    winners: List[PlayoffBracketEntry] = []
    losers: List[PlayoffBracketEntry] = []
    for entry in entries:
        if entry.bracket_type == BracketType.winners.value:
            winners.append(entry)
        elif entry.bracket_type == BracketType.losers.value:
            losers.append(entry)

    return BracketView(
        league_id=league_id,
        winners_bracket=group_rounds(winners),
        losers_bracket=group_rounds(losers),
    )


def get_league_entries(session: Session, league_id: str) -> List[PlayoffBracketEntry]:
    return list(
        session.exec(
            select(PlayoffBracketEntry)
            .where(PlayoffBracketEntry.league_id == league_id)
            .order_by(PlayoffBracketEntry.bracket_type, PlayoffBracketEntry.round, PlayoffBracketEntry.slot_id)
        ).all()
    )


def get_bracket_view(session: Session, league_id: str) -> BracketView:
    return assemble_bracket_view(league_id, get_league_entries(session, league_id))


@dataclass
class BracketPodium:
    champion: Optional[int] = None
    runner_up: Optional[int] = None
    third_place: Optional[int] = None
    last_place: Optional[int] = None


def _placement_slot(entries: Iterable[PlayoffBracketEntry], place: int) -> Optional[PlayoffBracketEntry]:
    for entry in entries:
        if entry.place == place:
            return entry
    return None


def bracket_podium(view: BracketView) -> BracketPodium:
    """
    Champion and runner-up come from the winners-bracket place-1 game, third
    place from its place-3 game, last place is the loser of the losers
    bracket's highest-numbered placement game. Unplayed games give None.
    """
    winners = [e for r in view.winners_bracket for e in r.entries]
    losers = [e for r in view.losers_bracket for e in r.entries]

    podium = BracketPodium()
    final = _placement_slot(winners, 1)
    if final is not None:
        podium.champion = final.winner_id
        podium.runner_up = final.loser_id
    third = _placement_slot(winners, 3)
    if third is not None:
        podium.third_place = third.winner_id

    placed_losers = [e for e in losers if e.place is not None]
    if placed_losers:
        podium.last_place = max(placed_losers, key=lambda e: e.place).loser_id
    return podium
