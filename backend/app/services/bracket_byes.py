"""
Bye derivation.

Upstream never lists a round-1 game for a seed that skipped it. Such a roster
first shows up in round 2 on a side with no advancement reference. For each
one, a single-team round-1 placeholder is synthesized with a negative slot id.
"""
from typing import Iterable, List, Optional, Set

from app.services.bracket_slots import BracketSlot, week_for_round

BYE_ROUND = 1


def round_one_rosters(slots: Iterable[BracketSlot]) -> Set[int]:
    rosters: Set[int] = set()
    for slot in slots:
        if slot.round == BYE_ROUND:
            rosters.update(slot.rosters)
    return rosters


def derive_bye_slots(
    slots: Iterable[BracketSlot],
    seen_rosters: Optional[Set[int]] = None,
) -> List[BracketSlot]:
    """
    Return synthesized round-1 bye slots for one bracket type of one league.

    seen_rosters is the accumulator of rosters that already have a round-1
    entry; it is built from the slots when not given and is updated in place
    as byes are synthesized, so a roster gets at most one bye. Callers own it;
    never share one across leagues or bracket types.

    Only the round-1 -> round-2 transition is inspected. A side with a
    non-null source reference has explicit lineage and never yields a bye.
    """
    slots = list(slots)
    if seen_rosters is None:
        seen_rosters = round_one_rosters(slots)

    byes: List[BracketSlot] = []
    round_two = sorted((s for s in slots if s.round == BYE_ROUND + 1), key=lambda s: s.slot_id)

    for slot in round_two:
        for team, source in ((slot.team1, slot.team1_source), (slot.team2, slot.team2_source)):
            if team is None or source is not None:
                continue
            if team in seen_rosters:
                continue
            byes.append(
                BracketSlot(
                    slot_id=-(len(byes) + 1),
                    round=BYE_ROUND,
                    team1=team,
                    week=week_for_round(BYE_ROUND),
                    matchup_id=None,
                    is_bye=True,
                )
            )
            seen_rosters.add(team)

    return byes
