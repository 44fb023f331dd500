from datetime import datetime
from typing import Optional

from sqlmodel import Field, SQLModel


class Matchup(SQLModel, table=True):
    """One roster's line for one week. Rows sharing a matchup_id played each other."""

    league_id: str = Field(primary_key=True)
    roster_id: int = Field(primary_key=True)
    week: int = Field(primary_key=True)
    season: str
    matchup_id: Optional[int] = Field(default=None, index=True)  # NULL == bye week
    points: float = Field(default=0.0)
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow, sa_column_kwargs={"onupdate": datetime.utcnow})
