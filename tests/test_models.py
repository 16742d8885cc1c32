"""Tests for the core data model."""

from datetime import datetime, timezone

import pytest

from bracketeer.core.errors import InvalidResultError, LifecycleError
from bracketeer.core.models import (
    Match,
    MatchResult,
    MatchStatus,
    Participant,
    format_timestamp,
    parse_timestamp,
)


class TestMatch:
    def test_playable_needs_two(self):
        assert not Match.create(["a"]).is_playable
        assert Match.create(["a", "b"]).is_playable

    def test_complete_once(self):
        match = Match.create(["a", "b"])
        match.complete(MatchResult.win("a"))
        assert match.status is MatchStatus.COMPLETED
        assert not match.is_playable
        with pytest.raises(LifecycleError):
            match.complete(MatchResult.win("b"))

    def test_add_participant_ignores_duplicates(self):
        match = Match.create(["a"])
        match.add_participant("a")
        assert match.participant_ids == ["a"]

    def test_wire_form(self):
        match = Match.create(["a", "b"], round=2, match_number=5)
        match.complete(MatchResult.ranked(["b", "a"]))
        data = match.to_dict()
        assert data["status"] == "completed"
        assert data["matchNumber"] == 5
        assert data["result"]["rankings"][0] == {"participantId": "b", "position": 1}
        assert Match.from_dict(data) == match

    def test_snake_case_input(self):
        match = Match.from_dict({"id": "m1", "participant_ids": ["a"], "match_number": 2})
        assert match.participant_ids == ["a"]
        assert match.match_number == 2


class TestMatchResult:
    def test_positions(self):
        result = MatchResult.ranked(["x", "y", "z"])
        assert result.position_of("z") == 3
        assert result.participant_at(1) == "x"
        assert result.position_of("nobody") is None

    def test_coerce_mapping(self):
        result = MatchResult.coerce({"winnerId": "a", "score": {"a": 2, "b": 1}})
        assert result.winner_id == "a"
        assert result.score == {"a": 2, "b": 1}

    def test_coerce_rejects_other_types(self):
        with pytest.raises(InvalidResultError):
            MatchResult.coerce("a wins")

    def test_malformed_rankings(self):
        with pytest.raises(InvalidResultError, match="Malformed rankings"):
            MatchResult.from_dict({"rankings": [{"participantId": "a"}]})


class TestParticipant:
    def test_npc_flag_only_when_set(self):
        assert "isNPC" not in Participant("p", "Ana", 1).to_dict()
        assert Participant("p", "Bot", 2, is_npc=True).to_dict()["isNPC"] is True

    def test_from_dict(self):
        p = Participant.from_dict({"id": "p", "name": "Bot", "seed": 3, "isNPC": True})
        assert p == Participant("p", "Bot", 3, True)


class TestTimestamps:
    def test_format(self):
        moment = datetime(2024, 5, 1, 12, 30, 0, 123456, tzinfo=timezone.utc)
        assert format_timestamp(moment) == "2024-05-01T12:30:00.123Z"

    def test_parse_round_trip(self):
        parsed = parse_timestamp("2024-05-01T12:30:00.123Z")
        assert parsed.tzinfo is not None
        assert format_timestamp(parsed) == "2024-05-01T12:30:00.123Z"
