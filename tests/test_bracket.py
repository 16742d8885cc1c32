"""Tests for elimination bracket math."""

import pytest

from bracketeer.core.bracket import (
    bracket_rounds,
    bracket_size,
    build_elimination_bracket,
    bye_count,
    matches_by_round,
    parent_match_index,
    round_label,
)
from bracketeer.core.models import Match


# ── Sizing ───────────────────────────────────────────────────────


class TestSizing:
    @pytest.mark.parametrize(
        "count,rounds,size,byes",
        [(2, 1, 2, 0), (3, 2, 4, 1), (5, 3, 8, 3), (8, 3, 8, 0), (9, 4, 16, 7)],
    )
    def test_sizes(self, count, rounds, size, byes):
        assert bracket_rounds(count) == rounds
        assert bracket_size(count) == size
        assert bye_count(count) == byes

    def test_degenerate(self):
        assert bracket_rounds(1) == 0
        assert bye_count(0) == 0


class TestRoundLabels:
    def test_named_rounds(self):
        assert round_label(4, 4) == "Finals"
        assert round_label(3, 4) == "Semifinals"
        assert round_label(2, 4) == "Quarterfinals"

    def test_early_round(self):
        assert round_label(1, 4) == "Round 1"


class TestParentIndex:
    def test_eight_slot_bracket(self):
        # 7 matches: 0-3 round 1, 4-5 semis, 6 final
        assert [parent_match_index(i, 7) for i in range(7)] == [4, 4, 5, 5, 6, 6, None]


# ── Seeding ──────────────────────────────────────────────────────


class TestBuildEliminationBracket:
    def test_full_bracket_no_byes(self):
        seeds = [f"s{i}" for i in range(1, 9)]
        matches = build_elimination_bracket(seeds)
        assert len(matches) == 7
        first = [m.participant_ids for m in matches if m.round == 1]
        assert first == [["s1", "s8"], ["s2", "s7"], ["s3", "s6"], ["s4", "s5"]]

    def test_five_entrants(self):
        seeds = [f"s{i}" for i in range(1, 6)]
        matches = build_elimination_bracket(seeds)
        assert len(matches) == 7
        playable_first = [m for m in matches if m.round == 1 and len(m.participant_ids) == 2]
        assert len(playable_first) == 1
        assert playable_first[0].participant_ids == ["s4", "s5"]
        # top seeds skip round 1
        assert matches[4].participant_ids == ["s1", "s2"]
        assert matches[5].participant_ids == ["s3"]

    def test_every_entrant_placed_once(self):
        seeds = [f"s{i}" for i in range(1, 12)]
        placed = [pid for m in build_elimination_bracket(seeds) for pid in m.participant_ids]
        assert sorted(placed) == sorted(seeds)

    @pytest.mark.parametrize("count", range(2, 21))
    def test_byes_enter_in_round_two(self, count):
        seeds = [f"s{i}" for i in range(1, count + 1)]
        matches = build_elimination_bracket(seeds)
        assert len(matches) == bracket_size(count) - 1

        round_one = {pid for m in matches if m.round == 1 for pid in m.participant_ids}
        round_two = {pid for m in matches if m.round == 2 for pid in m.participant_ids}
        for seed in seeds[:bye_count(count)]:
            assert seed not in round_one
            assert seed in round_two

        placed = [pid for m in matches for pid in m.participant_ids]
        assert sorted(placed) == sorted(seeds)

    def test_match_numbers_sequential(self):
        matches = build_elimination_bracket(["a", "b", "c"])
        assert [m.match_number for m in matches] == [1, 2, 3]
        assert [m.round for m in matches] == [1, 1, 2]


class TestMatchesByRound:
    def test_groups_and_sorts(self):
        matches = [
            Match.create(round=2, match_number=3),
            Match.create(round=1, match_number=2),
            Match.create(round=1, match_number=1),
        ]
        grouped = matches_by_round(matches)
        assert [number for number, _ in grouped] == [1, 2]
        assert [m.match_number for m in grouped[0][1]] == [1, 2]
