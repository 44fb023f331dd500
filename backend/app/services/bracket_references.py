"""
Advancement references: "this side is the winner/loser of slot N".

Upstream encodes them as loose objects ({"w": 3} or {"l": 3}) with no
discriminant. They are parsed once, here, into WinnerOfSlot / LoserOfSlot and
never passed around raw past this point.
"""
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Dict, List, Mapping, Optional, Union

from app.models.playoff_bracket_entry import PlayoffBracketEntry

if TYPE_CHECKING:
    from app.services.bracket_slots import BracketSlot

WINNER_KEY = "w"
LOSER_KEY = "l"


class BracketReferenceError(ValueError):
    """Malformed advancement reference. Bracket shape cannot be trusted."""

    def __init__(
        self,
        message: str,
        *,
        league_id: Optional[str] = None,
        bracket_type: Optional[str] = None,
        slot_id: Optional[int] = None,
        side: Optional[str] = None,
    ):
        self.league_id = league_id
        self.bracket_type = bracket_type
        self.slot_id = slot_id
        self.side = side
        context = []
        if league_id is not None:
            context.append(f"league={league_id}")
        if bracket_type is not None:
            context.append(f"bracket={bracket_type}")
        if slot_id is not None:
            context.append(f"slot={slot_id}")
        if side is not None:
            context.append(f"side={side}")
        suffix = f" ({', '.join(context)})" if context else ""
        super().__init__(f"{message}{suffix}")


@dataclass(frozen=True)
class WinnerOfSlot:
    slot_id: int


@dataclass(frozen=True)
class LoserOfSlot:
    slot_id: int


SlotReference = Union[WinnerOfSlot, LoserOfSlot]


def is_reference_payload(value: Any) -> bool:
    """True for anything shaped like an upstream reference object rather than a roster id."""
    return isinstance(value, Mapping)


def _as_slot_id(value: Any, marker: str) -> int:
    # bool is an int subclass; a True/False slot id is never valid
    if isinstance(value, bool):
        raise BracketReferenceError(f"Reference marker '{marker}' has non-integer slot id {value!r}")
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    raise BracketReferenceError(f"Reference marker '{marker}' has non-integer slot id {value!r}")


def normalize_reference(raw: Any) -> Optional[SlotReference]:
    """
    Convert a raw advancement reference into WinnerOfSlot, LoserOfSlot or None.

    None (absent) maps to None. Anything else must carry exactly one of the
    winner/loser markers; both, neither, or a non-mapping value raise
    BracketReferenceError rather than being guessed at.
    """
    if raw is None:
        return None
    if isinstance(raw, (WinnerOfSlot, LoserOfSlot)):
        return raw
    if not is_reference_payload(raw):
        raise BracketReferenceError(f"Reference must be an object, got {type(raw).__name__}: {raw!r}")

    has_winner = raw.get(WINNER_KEY) is not None
    has_loser = raw.get(LOSER_KEY) is not None

    if has_winner and has_loser:
        raise BracketReferenceError(f"Reference has both winner and loser markers: {dict(raw)!r}")
    if not has_winner and not has_loser:
        raise BracketReferenceError(f"Reference has neither winner nor loser marker: {dict(raw)!r}")

    if has_winner:
        return WinnerOfSlot(_as_slot_id(raw[WINNER_KEY], WINNER_KEY))
    return LoserOfSlot(_as_slot_id(raw[LOSER_KEY], LOSER_KEY))


def reference_columns(side: str, reference: Optional[SlotReference]) -> Dict[str, Optional[int]]:
    """Spread one side's reference over its two persisted columns (team1_from_winner_of_slot, ...)."""
    winner_col = f"{side}_from_winner_of_slot"
    loser_col = f"{side}_from_loser_of_slot"
    return {
        winner_col: reference.slot_id if isinstance(reference, WinnerOfSlot) else None,
        loser_col: reference.slot_id if isinstance(reference, LoserOfSlot) else None,
    }


def reference_from_columns(winner_of: Optional[int], loser_of: Optional[int]) -> Optional[SlotReference]:
    """Inverse of reference_columns, for the read path."""
    if winner_of is not None:
        return WinnerOfSlot(winner_of)
    if loser_of is not None:
        return LoserOfSlot(loser_of)
    return None


def normalize_slot(slot: "BracketSlot", *, league_id: str, bracket_type: str) -> PlayoffBracketEntry:
    """
    Turn an enriched slot into the persisted entry, validating both references.

    Raises BracketReferenceError (with slot context) for a malformed reference,
    or for a round-1 slot that claims one: nothing precedes round 1.
    """
    from app.services.bracket_slots import week_for_round

    columns: Dict[str, Optional[int]] = {}
    for side, raw in (("team1", slot.team1_source), ("team2", slot.team2_source)):
        try:
            reference = normalize_reference(raw)
        except BracketReferenceError as exc:
            raise BracketReferenceError(
                str(exc), league_id=league_id, bracket_type=bracket_type, slot_id=slot.slot_id, side=side
            ) from exc
        if reference is not None and slot.round <= 1:
            raise BracketReferenceError(
                "Round-1 slot cannot reference an earlier slot",
                league_id=league_id,
                bracket_type=bracket_type,
                slot_id=slot.slot_id,
                side=side,
            )
        columns.update(reference_columns(side, reference))

    return PlayoffBracketEntry(
        league_id=league_id,
        bracket_type=bracket_type,
        slot_id=slot.slot_id,
        matchup_id=slot.matchup_id,
        week=slot.week if slot.week is not None else week_for_round(slot.round),
        round=slot.round,
        winner_id=slot.winner_id,
        loser_id=slot.loser_id,
        place=slot.place,
        team1=slot.team1,
        team2=slot.team2,
        is_bye=slot.is_bye,
        **columns,
    )


def normalize_slots(slots: List["BracketSlot"], *, league_id: str, bracket_type: str) -> List[PlayoffBracketEntry]:
    """All-or-nothing: the first malformed reference aborts the whole bracket type."""
    return [normalize_slot(slot, league_id=league_id, bracket_type=bracket_type) for slot in slots]
