from typing import Dict, List, Sequence

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, SQLModel, create_engine

from app.database import get_session
from app.main import app
from app.models.league import League
from app.models.matchup import Matchup
from app.models.playoff_bracket_entry import BracketType
from app.routes.playoffs import get_bracket_source
from app.services.bracket_slots import BracketSlot

TEST_DATABASE_URL = "sqlite:///:memory:"

# ============================================================================
# Test Database Setup with StaticPool
# ============================================================================
# 1. sqlite:///:memory: with StaticPool so ALL sessions share the same DB
# 2. check_same_thread=False required for TestClient/threaded access
# 3. Models imported at module top so create_all() sees every table
# 4. Tables are dropped after each test so league ids can be reused freely
test_engine = create_engine(
    TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)


def override_get_session():
    """Override session to use test engine"""
    with Session(test_engine) as session:
        yield session


class FakeBracketSource:
    """In-memory bracket source: {(league_id, "winners"|"losers"): [raw upstream dicts]}."""

    def __init__(self, brackets: Dict[tuple, List[dict]] | None = None):
        self.brackets = brackets or {}
        self.calls: List[tuple] = []

    def set(self, league_id: str, bracket_type: str, raw: Sequence[dict]) -> None:
        self.brackets[(league_id, bracket_type)] = list(raw)

    def get_bracket_slots(self, league_id: str, bracket_type: BracketType) -> List[BracketSlot]:
        bracket_type = BracketType(bracket_type)
        self.calls.append((league_id, bracket_type.value))
        return [BracketSlot.from_api(item) for item in self.brackets.get((league_id, bracket_type.value), [])]


@pytest.fixture(name="session", scope="function")
def session_fixture():
    """Provide a test database session on a fresh schema"""
    SQLModel.metadata.create_all(test_engine)

    with Session(test_engine) as session:
        yield session

    SQLModel.metadata.drop_all(test_engine)


@pytest.fixture(name="source")
def source_fixture() -> FakeBracketSource:
    return FakeBracketSource()


@pytest.fixture(name="client")
def client_fixture(session: Session, source: FakeBracketSource):
    """Provide a test client with overridden database session and bracket source

    Overrides MUST be set BEFORE TestClient() so the app never touches its
    own engine or the real upstream.
    """
    app.dependency_overrides[get_session] = override_get_session
    app.dependency_overrides[get_bracket_source] = lambda: source

    with TestClient(app) as client:
        yield client

    app.dependency_overrides.clear()


def add_league(session: Session, league_id: str = "L2024", season: str = "2024") -> League:
    league = League(league_id=league_id, season=season, name=f"League {season}")
    session.add(league)
    session.commit()
    session.refresh(league)
    return league


def add_matchup(session: Session, league_id: str, week: int, roster_id: int, matchup_id, points: float = 100.0):
    session.add(
        Matchup(
            league_id=league_id,
            season="2024",
            week=week,
            roster_id=roster_id,
            matchup_id=matchup_id,
            points=points,
        )
    )
    session.commit()


# Sleeper's documented 6-team winners bracket: seeds 1 and 2 skip round 1.
SIX_TEAM_WINNERS = [
    {"r": 1, "m": 1, "t1": 3, "t2": 6, "w": None, "l": None},
    {"r": 1, "m": 2, "t1": 4, "t2": 5, "w": None, "l": None},
    {"r": 2, "m": 3, "t1": 1, "t2": None, "t2_from": {"w": 1}, "w": None, "l": None},
    {"r": 2, "m": 4, "t1": 2, "t2": None, "t2_from": {"w": 2}, "w": None, "l": None},
    {"r": 2, "m": 5, "t1": None, "t2": None, "t1_from": {"l": 1}, "t2_from": {"l": 2}, "w": None, "l": None, "p": 5},
    {"r": 3, "m": 6, "t1": None, "t2": None, "t1_from": {"w": 3}, "t2_from": {"w": 4}, "w": None, "l": None, "p": 1},
    {"r": 3, "m": 7, "t1": None, "t2": None, "t1_from": {"l": 3}, "t2_from": {"l": 4}, "w": None, "l": None, "p": 3},
]

# Same bracket once every game has been played.
SIX_TEAM_WINNERS_FINAL = [
    {"r": 1, "m": 1, "t1": 3, "t2": 6, "w": 6, "l": 3},
    {"r": 1, "m": 2, "t1": 4, "t2": 5, "w": 4, "l": 5},
    {"r": 2, "m": 3, "t1": 1, "t2": 6, "t2_from": {"w": 1}, "w": 1, "l": 6},
    {"r": 2, "m": 4, "t1": 2, "t2": 4, "t2_from": {"w": 2}, "w": 4, "l": 2},
    {"r": 2, "m": 5, "t1": 3, "t2": 5, "t1_from": {"l": 1}, "t2_from": {"l": 2}, "w": 5, "l": 3, "p": 5},
    {"r": 3, "m": 6, "t1": 1, "t2": 4, "t1_from": {"w": 3}, "t2_from": {"w": 4}, "w": 1, "l": 4, "p": 1},
    {"r": 3, "m": 7, "t1": 6, "t2": 2, "t1_from": {"l": 3}, "t2_from": {"l": 4}, "w": 2, "l": 6, "p": 3},
]

# Consolation bracket for the four non-playoff rosters.
FOUR_TEAM_LOSERS_FINAL = [
    {"r": 1, "m": 1, "t1": 7, "t2": 10, "w": 7, "l": 10},
    {"r": 1, "m": 2, "t1": 8, "t2": 9, "w": 8, "l": 9},
    {"r": 2, "m": 3, "t1": 7, "t2": 8, "t1_from": {"w": 1}, "t2_from": {"w": 2}, "w": 8, "l": 7, "p": 1},
    {"r": 2, "m": 4, "t1": 10, "t2": 9, "t1_from": {"l": 1}, "t2_from": {"l": 2}, "w": 9, "l": 10, "p": 3},
]
