from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING, Optional

from sqlmodel import Field, Relationship, SQLModel

if TYPE_CHECKING:
    from app.models.league import League


class BracketType(str, Enum):
    winners = "winners"
    losers = "losers"

    @property
    def endpoint(self) -> str:
        """Path segment of the upstream bracket endpoint."""
        return f"{self.value}_bracket"


class PlayoffBracketEntry(SQLModel, table=True):
    """One bracket slot of one league, keyed by (league_id, bracket_type, slot_id).

    Synthesized round-1 byes use negative slot ids.
    """

    league_id: str = Field(foreign_key="league.league_id", primary_key=True)
    bracket_type: str = Field(primary_key=True)  # "winners" | "losers"
    slot_id: int = Field(primary_key=True, sa_column_kwargs={"autoincrement": False})

    matchup_id: Optional[int] = Field(default=None)  # Cross-referenced ledger matchup; NULL if unresolved or bye
    week: int  # always 14 + round
    round: int
    winner_id: Optional[int] = Field(default=None)
    loser_id: Optional[int] = Field(default=None)
    place: Optional[int] = Field(default=None)  # Only on placement slots once resolved

    team1: Optional[int] = Field(default=None)
    team2: Optional[int] = Field(default=None)

    # Forward references: at most one of each winner/loser pair is set
    team1_from_winner_of_slot: Optional[int] = Field(default=None)
    team1_from_loser_of_slot: Optional[int] = Field(default=None)
    team2_from_winner_of_slot: Optional[int] = Field(default=None)
    team2_from_loser_of_slot: Optional[int] = Field(default=None)

    is_bye: bool = Field(default=False)

    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow, sa_column_kwargs={"onupdate": datetime.utcnow})

    league: Optional["League"] = Relationship(back_populates="playoff_entries")
