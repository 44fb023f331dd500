"""
Playoff bracket endpoints.

Read endpoints need no auth and serve whatever was last persisted. The sync
endpoints are meant for the scheduler: after week 14 and repeatedly through
the postseason. Both are idempotent.
"""
import logging
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel
from sqlmodel import Session

from app.database import get_session
from app.models.league import League
from app.models.playoff_bracket_entry import PlayoffBracketEntry
from app.services.bracket_references import BracketReferenceError, LoserOfSlot, WinnerOfSlot, reference_from_columns
from app.services.bracket_slots import BracketSlotError
from app.services.bracket_sync_service import (
    BracketSource,
    InvalidBracketRequest,
    LeagueNotFound,
    sync_bracket_history,
    sync_league_bracket,
)
from app.services.bracket_upsert import BracketPersistenceError
from app.services.bracket_view import BracketRound, bracket_podium, entry_state, get_bracket_view
from app.services.sleeper_service import SleeperAPIError, SleeperService

logger = logging.getLogger(__name__)

router = APIRouter()


def get_bracket_source() -> BracketSource:
    return SleeperService()


# ── Response models ──────────────────────────────────────────────────────

class SlotSource(BaseModel):
    outcome: str  # "winner" | "loser"
    slot_id: int


class BracketEntryOut(BaseModel):
    slot_id: int
    round: int
    week: int
    matchup_id: Optional[int] = None
    team1: Optional[int] = None
    team2: Optional[int] = None
    team1_source: Optional[SlotSource] = None
    team2_source: Optional[SlotSource] = None
    winner_id: Optional[int] = None
    loser_id: Optional[int] = None
    place: Optional[int] = None
    is_bye: bool = False
    state: str  # unseeded | seeded | resolved


class BracketRoundOut(BaseModel):
    round: int
    week: int
    entries: List[BracketEntryOut]


class BracketViewResponse(BaseModel):
    league_id: str
    winners_bracket: List[BracketRoundOut]
    losers_bracket: List[BracketRoundOut]


class BracketPodiumResponse(BaseModel):
    league_id: str
    champion: Optional[int] = None
    runner_up: Optional[int] = None
    third_place: Optional[int] = None
    last_place: Optional[int] = None


class BracketSyncResponse(BaseModel):
    league_id: str
    entries_written: int = 0
    entries_stored: int = 0
    byes_synthesized: int = 0
    ambiguous_matchups: int = 0
    unresolved_matchups: int = 0
    brackets: Dict[str, Dict[str, int]] = {}
    error: Optional[str] = None


class BracketHistoryRequest(BaseModel):
    league_ids: Optional[List[str]] = None


class BracketHistoryResponse(BaseModel):
    leagues: List[BracketSyncResponse]


# ── Helpers ──────────────────────────────────────────────────────────────

def _source_out(winner_of: Optional[int], loser_of: Optional[int]) -> Optional[SlotSource]:
    reference = reference_from_columns(winner_of, loser_of)
    if isinstance(reference, WinnerOfSlot):
        return SlotSource(outcome="winner", slot_id=reference.slot_id)
    if isinstance(reference, LoserOfSlot):
        return SlotSource(outcome="loser", slot_id=reference.slot_id)
    return None


def _entry_out(e: PlayoffBracketEntry) -> BracketEntryOut:
    return BracketEntryOut(
        slot_id=e.slot_id,
        round=e.round,
        week=e.week,
        matchup_id=e.matchup_id,
        team1=e.team1,
        team2=e.team2,
        team1_source=_source_out(e.team1_from_winner_of_slot, e.team1_from_loser_of_slot),
        team2_source=_source_out(e.team2_from_winner_of_slot, e.team2_from_loser_of_slot),
        winner_id=e.winner_id,
        loser_id=e.loser_id,
        place=e.place,
        is_bye=e.is_bye,
        state=entry_state(e),
    )


def _rounds_out(rounds: List[BracketRound]) -> List[BracketRoundOut]:
    return [
        BracketRoundOut(round=r.round, week=r.week, entries=[_entry_out(e) for e in r.entries])
        for r in rounds
    ]


def _require_league(session: Session, league_id: str) -> League:
    league = session.get(League, league_id)
    if not league:
        raise HTTPException(status_code=404, detail="League not found")
    return league


# ── Endpoints ────────────────────────────────────────────────────────────

@router.get("/leagues/{league_id}/playoffs", response_model=BracketViewResponse)
def get_league_playoffs(league_id: str, session: Session = Depends(get_session)) -> BracketViewResponse:
    """Winners and losers brackets, final round first."""
    _require_league(session, league_id)
    view = get_bracket_view(session, league_id)
    return BracketViewResponse(
        league_id=league_id,
        winners_bracket=_rounds_out(view.winners_bracket),
        losers_bracket=_rounds_out(view.losers_bracket),
    )


@router.get("/leagues/{league_id}/playoffs/podium", response_model=BracketPodiumResponse)
def get_league_podium(league_id: str, session: Session = Depends(get_session)) -> BracketPodiumResponse:
    _require_league(session, league_id)
    podium = bracket_podium(get_bracket_view(session, league_id))
    return BracketPodiumResponse(
        league_id=league_id,
        champion=podium.champion,
        runner_up=podium.runner_up,
        third_place=podium.third_place,
        last_place=podium.last_place,
    )


@router.post("/leagues/{league_id}/playoffs/sync", response_model=BracketSyncResponse)
def sync_league_playoffs(
    league_id: str,
    session: Session = Depends(get_session),
    source: BracketSource = Depends(get_bracket_source),
) -> Dict[str, Any]:
    """Rebuild one league's brackets from upstream. Safe to retry."""
    try:
        return sync_league_bracket(session, league_id, source)
    except InvalidBracketRequest as e:
        raise HTTPException(status_code=400, detail=str(e))
    except LeagueNotFound:
        raise HTTPException(status_code=404, detail="League not found")
    except BracketReferenceError as e:
        logger.error(f"Bracket sync rejected for league {league_id}: {e}")
        raise HTTPException(status_code=422, detail=str(e))
    except (SleeperAPIError, BracketSlotError) as e:
        raise HTTPException(status_code=502, detail=f"Upstream bracket unavailable: {e}")
    except BracketPersistenceError as e:
        raise HTTPException(
            status_code=503,
            detail=f"Bracket sync interrupted after {e.committed} rows; retry the sync",
        )


@router.post("/playoffs/sync-history", response_model=BracketHistoryResponse)
def sync_playoff_history(
    payload: Optional[BracketHistoryRequest] = None,
    session: Session = Depends(get_session),
    source: BracketSource = Depends(get_bracket_source),
) -> BracketHistoryResponse:
    """Rebuild brackets for every stored league (or the listed ones)."""
    league_ids = payload.league_ids if payload else None
    try:
        results = sync_bracket_history(session, source, league_ids)
    except InvalidBracketRequest as e:
        raise HTTPException(status_code=400, detail=str(e))
    except BracketPersistenceError as e:
        raise HTTPException(
            status_code=503,
            detail=f"Bracket history sync interrupted after {e.committed} rows; retry the sync",
        )
    return BracketHistoryResponse(leagues=[BracketSyncResponse(**r) for r in results])
