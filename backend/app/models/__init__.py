from app.models.league import League
from app.models.matchup import Matchup
from app.models.playoff_bracket_entry import BracketType, PlayoffBracketEntry

__all__ = [
    "League",
    "Matchup",
    "BracketType",
    "PlayoffBracketEntry",
]
