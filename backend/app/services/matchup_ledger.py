"""
Matchup ledger reader: per-week pairings of the already-synced matchups.

The matchup table stores one row per roster per week; rows that share a
matchup_id played each other. The ledger folds them into one row per game
(lower roster id as home) plus one row per roster on a bye week.
"""
from collections import defaultdict
from dataclasses import dataclass
from typing import Dict, List, Optional

from sqlalchemy import func
from sqlmodel import Session, select

from app.models.matchup import Matchup

POSTSEASON_FIRST_WEEK = 15


@dataclass(frozen=True)
class MatchupLedgerRow:
    league_id: str
    week: int
    matchup_id: Optional[int]  # None == bye week for home_roster_id
    home_roster_id: int
    away_roster_id: Optional[int]

    @property
    def is_bye(self) -> bool:
        return self.matchup_id is None

    def involves(self, roster_id: int) -> bool:
        return self.home_roster_id == roster_id or self.away_roster_id == roster_id


def _ledger_sort_key(row: MatchupLedgerRow):
    # byes last within a week; ties broken by home roster
    return (
        row.league_id,
        row.week,
        row.matchup_id is None,
        row.matchup_id if row.matchup_id is not None else 0,
        row.home_roster_id,
    )


def get_matchup_ledger(
    session: Session,
    league_id: Optional[str] = None,
    min_week: int = POSTSEASON_FIRST_WEEK,
) -> List[MatchupLedgerRow]:
    """
    Read the ledger for one league (or every league when league_id is None).

    Ordering is stable: (league_id, week, matchup_id), byes last. The slot
    enricher relies on this ordering to pick deterministically between
    ambiguous candidates.
    """
    paired = (
        select(
            Matchup.league_id,
            Matchup.week,
            Matchup.matchup_id,
            func.min(Matchup.roster_id),
            func.max(Matchup.roster_id),
        )
        .where(Matchup.matchup_id.is_not(None), Matchup.week >= min_week)
        .group_by(Matchup.league_id, Matchup.week, Matchup.matchup_id)
    )
    byes = select(Matchup.league_id, Matchup.week, Matchup.roster_id).where(
        Matchup.matchup_id.is_(None), Matchup.week >= min_week
    )
    if league_id is not None:
        paired = paired.where(Matchup.league_id == league_id)
        byes = byes.where(Matchup.league_id == league_id)

    rows: List[MatchupLedgerRow] = []
    for lid, week, matchup_id, home, away in session.exec(paired).all():
        # Only one side synced so far: MIN == MAX
        rows.append(
            MatchupLedgerRow(
                league_id=lid,
                week=week,
                matchup_id=matchup_id,
                home_roster_id=home,
                away_roster_id=away if away != home else None,
            )
        )
    for lid, week, roster_id in session.exec(byes).all():
        rows.append(
            MatchupLedgerRow(
                league_id=lid,
                week=week,
                matchup_id=None,
                home_roster_id=roster_id,
                away_roster_id=None,
            )
        )

    rows.sort(key=_ledger_sort_key)
    return rows


def group_ledger_by_league(rows: List[MatchupLedgerRow]) -> Dict[str, List[MatchupLedgerRow]]:
    grouped: Dict[str, List[MatchupLedgerRow]] = defaultdict(list)
    for row in rows:
        grouped[row.league_id].append(row)
    return dict(grouped)
