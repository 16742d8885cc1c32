"""Tests for free-for-all elimination rounds."""

import pytest

from bracketeer.config import FreeForAllOptions
from bracketeer.core.errors import InvalidOptionsError, InvalidResultError
from bracketeer.core.models import MatchResult
from bracketeer.core.points import PointsSystemConfig, PointsSystemType
from bracketeer.factory import restore_tournament
from bracketeer.formats.free_for_all import FreeForAllTournament

from helpers import ids_by_name, play_out, roster


def build(count, **kwargs):
    options = FreeForAllOptions(name="Brawl", participant_names=roster(count), **kwargs)
    return FreeForAllTournament(options)


def make(count, **kwargs):
    tournament = build(count, **kwargs)
    tournament.start()
    return tournament


def rank_all(tournament):
    for match in tournament.get_current_matches():
        tournament.record_match_result(match.id, MatchResult.ranked(match.participant_ids))


# ── Options ──────────────────────────────────────────────────────


class TestOptions:
    def test_minimum_per_match(self):
        with pytest.raises(InvalidOptionsError, match="at least 2"):
            build(4, participants_per_match=1)

    def test_top_n_requires_count(self):
        with pytest.raises(InvalidOptionsError, match="Advancement count must be at least 1"):
            build(8, advancement_rule="top-n")

    def test_top_n_below_match_size(self):
        with pytest.raises(InvalidOptionsError, match="less than participants per match"):
            build(8, advancement_rule="top-n", advancement_count=4)

    def test_needs_a_full_match_to_start(self):
        t = build(3, participants_per_match=4)
        with pytest.raises(InvalidOptionsError, match="at least 4 participants"):
            t.start()


# ── Rounds ───────────────────────────────────────────────────────


class TestRounds:
    def test_nine_players_in_fours(self):
        t = make(9, participants_per_match=4)
        sizes = [len(m.participant_ids) for m in t.rounds[0]]
        assert sizes == [4, 4, 1]
        assert t.rounds[0][2].is_completed
        assert len(t.get_current_matches()) == 2

        rank_all(t)
        assert t.current_round == 2
        assert [len(m.participant_ids) for m in t.rounds[1]] == [3]
        assert not t.completed

        rank_all(t)
        assert t.completed
        assert t.get_current_matches() == []

    def test_top_n_advancement(self):
        t = make(8, participants_per_match=4, advancement_rule="top-n", advancement_count=2)
        rank_all(t)
        ids = ids_by_name(t)
        finalists = t.rounds[1][0].participant_ids
        assert finalists == [ids["P1"], ids["P2"], ids["P5"], ids["P6"]]

    def test_eliminated_participants(self):
        t = make(8, participants_per_match=4)
        rank_all(t)
        ids = ids_by_name(t)
        eliminated = set(t.get_eliminated_participants())
        assert eliminated == {ids[n] for n in ("P2", "P3", "P4", "P6", "P7", "P8")}

    def test_rankings_validated(self):
        t = make(4)
        match = t.get_current_matches()[0]
        with pytest.raises(InvalidResultError, match="All participants must be ranked"):
            t.record_match_result(match.id, MatchResult.ranked(match.participant_ids[:2]))

    def test_duplicate_ranking(self):
        t = make(4)
        match = t.get_current_matches()[0]
        a, b, c, _ = match.participant_ids
        with pytest.raises(InvalidResultError, match="only be ranked once"):
            t.record_match_result(match.id, MatchResult.ranked([a, b, c, a]))


# ── Standings ────────────────────────────────────────────────────


class TestStandings:
    def test_champion_ranked_first(self):
        t = make(9, participants_per_match=4)
        play_out(t)
        standings = t.get_standings()
        ids = ids_by_name(t)
        assert standings[0].participant_id == ids["P1"]
        assert standings[0].rank == 1
        assert standings[0].is_eliminated is False

    def test_equal_records_share_rank(self):
        t = make(8, participants_per_match=4)
        rank_all(t)
        standings = {s.participant_name: s for s in t.get_standings()}
        assert standings["P2"].rank == standings["P6"].rank

    def test_points_from_placement(self):
        t = make(4, points_system=PointsSystemConfig(PointsSystemType.F1))
        rank_all(t)
        assert t.completed
        standings = t.get_standings()
        assert standings[0].points == 25
        assert sorted(s.points for s in standings) == [12, 15, 18, 25]


# ── Persistence ──────────────────────────────────────────────────


class TestPersistence:
    def test_eliminations_rebuilt_on_restore(self):
        t = make(8, participants_per_match=4)
        match = t.get_current_matches()[0]
        t.record_match_result(match.id, MatchResult.ranked(match.participant_ids))
        restored = restore_tournament(t.export())
        assert restored.get_eliminated_participants() == t.get_eliminated_participants()
        play_out(restored)
        assert restored.completed
