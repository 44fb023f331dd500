# Force SQLModel table registration at test discovery time
# This ensures all models are registered before any test database creation
from app.models.league import League  # noqa: F401
from app.models.matchup import Matchup  # noqa: F401
from app.models.playoff_bracket_entry import PlayoffBracketEntry  # noqa: F401
