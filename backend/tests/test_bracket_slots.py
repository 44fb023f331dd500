"""
Tests for raw slot parsing and matchup cross-referencing (slot enricher).
"""
import logging

import pytest

from app.services.bracket_slots import (
    BracketSlot,
    BracketSlotError,
    enrich_bracket_slots,
    week_for_round,
)
from app.services.matchup_ledger import MatchupLedgerRow


def _row(week, matchup_id, home, away, league_id="L1"):
    return MatchupLedgerRow(
        league_id=league_id, week=week, matchup_id=matchup_id, home_roster_id=home, away_roster_id=away
    )


class TestFromApi:
    def test_full_payload(self):
        slot = BracketSlot.from_api(
            {"m": 5, "r": 2, "t1": 3, "t2": 5, "w": 5, "l": 3, "p": 5, "t1_from": {"l": 1}, "t2_from": {"l": 2}}
        )
        assert (slot.slot_id, slot.round) == (5, 2)
        assert (slot.team1, slot.team2) == (3, 5)
        assert (slot.winner_id, slot.loser_id, slot.place) == (5, 3, 5)
        assert slot.team1_source == {"l": 1}
        assert slot.team2_source == {"l": 2}
        assert slot.week is None and slot.matchup_id is None and slot.is_bye is False

    def test_missing_keys_are_null(self):
        slot = BracketSlot.from_api({"m": 1, "r": 1, "t1": 3})
        assert slot.team2 is None
        assert slot.winner_id is None and slot.loser_id is None and slot.place is None
        assert slot.team1_source is None and slot.team2_source is None

    def test_reference_in_team_field_becomes_source(self):
        slot = BracketSlot.from_api({"m": 3, "r": 2, "t1": 1, "t2": {"w": 1}})
        assert slot.team2 is None
        assert slot.team2_source == {"w": 1}

    def test_explicit_from_wins_over_team_field_reference(self):
        slot = BracketSlot.from_api({"m": 3, "r": 2, "t2": {"w": 9}, "t2_from": {"w": 1}})
        assert slot.team2 is None
        assert slot.team2_source == {"w": 1}

    @pytest.mark.parametrize("payload", [{"r": 1}, {"m": 1}, {"m": None, "r": 1}])
    def test_missing_identity_rejected(self, payload):
        with pytest.raises(BracketSlotError):
            BracketSlot.from_api(payload)


class TestEnrichment:
    def test_week_is_fourteen_plus_round(self):
        slots = [BracketSlot(slot_id=i, round=r) for i, r in enumerate((1, 2, 3), start=1)]
        result = enrich_bracket_slots(slots, [], league_id="L1")
        assert [s.week for s in result.slots] == [15, 16, 17]
        assert week_for_round(4) == 18

    def test_single_candidate_resolves(self):
        # ledger has one week-15 row {42: 7 vs 9}; slot t1=7, t2=9
        ledger = [_row(15, 42, 7, 9)]
        result = enrich_bracket_slots([BracketSlot(slot_id=1, round=1, team1=7, team2=9)], ledger, league_id="L1")
        assert result.slots[0].matchup_id == 42
        assert result.ambiguous == 0
        assert result.unresolved == 0

    def test_one_known_side_is_enough(self):
        ledger = [_row(16, 3, 1, 6)]
        slot = BracketSlot(slot_id=3, round=2, team1=1, team2=None, team2_source={"w": 1})
        result = enrich_bracket_slots([slot], ledger, league_id="L1")
        assert result.slots[0].matchup_id == 3

    def test_no_candidate_leaves_null(self):
        result = enrich_bracket_slots(
            [BracketSlot(slot_id=1, round=1, team1=3, team2=6)], [_row(15, 1, 1, 2)], league_id="L1"
        )
        assert result.slots[0].matchup_id is None
        assert result.unresolved == 1

    def test_unseeded_slot_leaves_null(self):
        result = enrich_bracket_slots([BracketSlot(slot_id=6, round=3)], [_row(17, 1, 1, 4)], league_id="L1")
        assert result.slots[0].matchup_id is None

    def test_other_weeks_leagues_and_byes_ignored(self):
        ledger = [
            _row(16, 50, 7, 9),  # wrong week
            _row(15, 51, 7, 9, league_id="OTHER"),  # wrong league
            _row(15, None, 7, None),  # bye row
        ]
        result = enrich_bracket_slots([BracketSlot(slot_id=1, round=1, team1=7, team2=9)], ledger, league_id="L1")
        assert result.slots[0].matchup_id is None

    def test_ambiguous_picks_first_in_ledger_order_and_warns(self, caplog):
        ledger = [_row(15, 2, 3, 8), _row(15, 4, 6, 10)]
        slot = BracketSlot(slot_id=1, round=1, team1=3, team2=6)

        with caplog.at_level(logging.WARNING, logger="app.services.bracket_slots"):
            result = enrich_bracket_slots([slot], ledger, league_id="L1", bracket_type="winners")

        assert result.slots[0].matchup_id == 2
        assert result.ambiguous == 1
        assert "Ambiguous matchup cross-reference" in caplog.text

    def test_input_slots_not_mutated(self):
        slot = BracketSlot(slot_id=1, round=1, team1=7, team2=9)
        enrich_bracket_slots([slot], [_row(15, 42, 7, 9)], league_id="L1")
        assert slot.week is None and slot.matchup_id is None

    def test_deterministic_across_runs(self):
        ledger = [_row(15, 2, 3, 8), _row(15, 4, 6, 10), _row(16, 1, 1, 3)]
        slots = [BracketSlot(slot_id=1, round=1, team1=3, team2=6), BracketSlot(slot_id=3, round=2, team1=1)]
        first = enrich_bracket_slots(slots, ledger, league_id="L1")
        second = enrich_bracket_slots(slots, ledger, league_id="L1")
        assert [s.matchup_id for s in first.slots] == [s.matchup_id for s in second.slots] == [2, 1]
