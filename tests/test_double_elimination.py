"""Tests for double-elimination brackets."""

import pytest

from bracketeer.config import DoubleEliminationOptions
from bracketeer.core.errors import InvalidResultError
from bracketeer.core.models import MatchResult
from bracketeer.factory import restore_tournament
from bracketeer.formats.double_elimination import DoubleEliminationTournament

from helpers import ids_by_name, play_out, roster


def make(count, **kwargs):
    options = DoubleEliminationOptions(name="Double", participant_names=roster(count), **kwargs)
    tournament = DoubleEliminationTournament(options)
    tournament.start()
    return tournament


def win(tournament, match, winner_id):
    tournament.record_match_result(match.id, MatchResult.win(winner_id))


def play_guarded(tournament, pick=None):
    """Play out while checking nobody with two losses is ever scheduled."""
    while tournament.get_current_matches():
        for match in tournament.get_current_matches():
            for pid in match.participant_ids:
                assert tournament.losses(pid) < 2
        match = tournament.get_current_matches()[0]
        winner = pick(match) if pick else match.participant_ids[0]
        win(tournament, match, winner)


# ── Structure ────────────────────────────────────────────────────


class TestStructure:
    def test_winners_bracket_built_on_start(self):
        t = make(8)
        assert len(t.winners_bracket) == 7
        assert t.losers_bracket == []
        assert t.grand_final is None

    def test_split_start(self):
        t = make(8, split_start=True)
        ids = ids_by_name(t)
        assert len(t.winners_bracket) == 3
        assert len(t.losers_bracket) == 2
        for name in ("P5", "P6", "P7", "P8"):
            assert t.losses(ids[name]) == 1

    def test_split_start_ignored_below_four(self):
        t = make(3, split_start=True)
        assert t.losers_bracket == []


# ── Routing ──────────────────────────────────────────────────────


class TestRouting:
    def test_loser_drops_to_losers_bracket(self):
        t = make(4)
        ids = ids_by_name(t)
        first = t.get_current_matches()[0]
        win(t, first, ids["P1"])
        assert t.losses(ids["P4"]) == 1
        assert ids["P4"] in t.losers_bracket[0].participant_ids

    def test_two_entrants_go_straight_to_grand_final(self):
        t = make(2)
        ids = ids_by_name(t)
        win(t, t.get_current_matches()[0], ids["P1"])
        assert sorted(t.grand_final.participant_ids) == sorted(ids.values())

    def test_grand_final_reset_when_losers_side_wins(self):
        t = make(2)
        ids = ids_by_name(t)
        win(t, t.get_current_matches()[0], ids["P1"])
        win(t, t.grand_final, ids["P2"])
        assert t.grand_final_reset is not None
        assert not t.completed

        win(t, t.grand_final_reset, ids["P2"])
        assert t.completed
        standings = t.get_standings()
        assert standings[0].participant_id == ids["P2"]
        assert standings[0].rank == 1

    def test_no_reset_when_winners_side_wins(self):
        t = make(4)
        ids = ids_by_name(t)
        p1 = ids["P1"]
        play_guarded(t, lambda m: p1 if p1 in m.participant_ids else m.participant_ids[0])
        assert t.completed
        assert t.grand_final_reset is None
        assert t.get_standings()[0].participant_id == ids["P1"]

    @pytest.mark.parametrize("count", [3, 4, 5, 6, 8])
    def test_nobody_plays_after_two_losses(self, count):
        t = make(count)
        play_guarded(t)
        assert t.completed
        eliminated = [s for s in t.get_standings() if s.is_eliminated]
        assert len(eliminated) >= count - 2

    def test_losers_bracket_winner_can_force_reset(self):
        t = make(4)
        ids = ids_by_name(t)
        p1 = ids["P1"]

        def pick(match):
            if t.grand_final is not None and match.id == t.grand_final.id:
                return next(pid for pid in match.participant_ids if pid != p1)
            return p1 if p1 in match.participant_ids else match.participant_ids[0]

        play_guarded(t, pick)
        assert t.grand_final_reset is not None
        assert t.completed


# ── Validation ───────────────────────────────────────────────────


class TestValidation:
    def test_tie_rejected(self):
        t = make(4)
        match = t.get_current_matches()[0]
        with pytest.raises(InvalidResultError, match="Tie breakers are enabled"):
            t.record_match_result(match.id, MatchResult.tie())

    def test_tie_rejected_without_tie_breakers(self):
        t = make(4, tie_breakers=False)
        match = t.get_current_matches()[0]
        with pytest.raises(InvalidResultError, match="requires a winner"):
            t.record_match_result(match.id, MatchResult.tie())


# ── Persistence ──────────────────────────────────────────────────


class TestPersistence:
    def test_losses_rebuilt_on_restore(self):
        t = make(6, split_start=True)
        for match in t.get_current_matches()[:2]:
            win(t, match, match.participant_ids[0])

        restored = restore_tournament(t.export())
        for p in t.participants:
            assert restored.losses(p.id) == t.losses(p.id)
        assert [m.id for m in restored.get_current_matches()] == [
            m.id for m in t.get_current_matches()
        ]

    def test_restored_tournament_plays_out(self):
        t = make(5)
        win(t, t.get_current_matches()[0], t.get_current_matches()[0].participant_ids[0])
        restored = restore_tournament(t.export())
        play_out(restored)
        assert restored.completed
