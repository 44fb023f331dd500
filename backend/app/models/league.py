from datetime import datetime
from typing import TYPE_CHECKING, List, Optional

from sqlmodel import Field, Relationship, SQLModel

if TYPE_CHECKING:
    from app.models.playoff_bracket_entry import PlayoffBracketEntry


class League(SQLModel, table=True):
    league_id: str = Field(primary_key=True)  # Sleeper league id (one per season)
    season: str
    name: str
    status: str = Field(default="in_season")  # "pre_draft" | "drafting" | "in_season" | "complete"
    previous_league_id: Optional[str] = Field(default=None)
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow, sa_column_kwargs={"onupdate": datetime.utcnow})

    # Relationships
    playoff_entries: List["PlayoffBracketEntry"] = Relationship(back_populates="league")
