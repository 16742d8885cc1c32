"""Core data model: participants, matches, results and standings.

The wire form produced by ``to_dict`` uses the camelCase keys of the
tournament exchange format so exported documents stay readable by other
clients. ``from_dict`` also accepts snake_case keys for hand-built input.
"""

from __future__ import annotations

import copy
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Mapping, Sequence

from bracketeer.core.errors import InvalidResultError, LifecycleError


def generate_id() -> str:
    """Return a random identifier. Ordering is never derived from ids."""
    return str(uuid.uuid4())


def _pick(data: Mapping[str, Any], camel: str, snake: str, default: Any = None) -> Any:
    if camel in data:
        return data[camel]
    return data.get(snake, default)


class MatchStatus(Enum):
    PENDING = "pending"
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"


# ── Participants ─────────────────────────────────────────────────

@dataclass
class Participant:
    id: str
    name: str
    seed: int
    is_npc: bool = False

    def to_dict(self) -> dict:
        d = {"id": self.id, "name": self.name, "seed": self.seed}
        if self.is_npc:
            d["isNPC"] = True
        return d

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Participant:
        return cls(
            id=data["id"],
            name=data["name"],
            seed=data.get("seed") or 0,
            is_npc=bool(_pick(data, "isNPC", "is_npc", False)),
        )


# ── Results ──────────────────────────────────────────────────────

@dataclass(frozen=True)
class Ranking:
    """Finish position of one participant in a multi-participant match."""

    participant_id: str
    position: int


@dataclass
class MatchResult:
    """Outcome of a match.

    Head-to-head formats use ``winner_id`` (with ``is_tie`` for draws),
    Swiss and points-ranked round robin use ``score``, and multi-participant
    matches use ``rankings``. Engines fill in derived fields (loser, winner
    from scores, points from rankings) on their own copy of the result.
    """

    winner_id: str | None = None
    loser_id: str | None = None
    is_tie: bool = False
    score: dict[str, float] | None = None
    rankings: list[Ranking] | None = None

    @classmethod
    def win(cls, winner_id: str, loser_id: str | None = None) -> MatchResult:
        return cls(winner_id=winner_id, loser_id=loser_id)

    @classmethod
    def tie(cls) -> MatchResult:
        return cls(is_tie=True)

    @classmethod
    def scores(cls, score: Mapping[str, float]) -> MatchResult:
        return cls(score=dict(score))

    @classmethod
    def ranked(cls, order: Sequence[str]) -> MatchResult:
        """Build a ranking from participant ids listed first place first."""
        return cls(
            rankings=[Ranking(pid, position) for position, pid in enumerate(order, 1)]
        )

    @classmethod
    def coerce(cls, value: MatchResult | Mapping[str, Any]) -> MatchResult:
        """Return a private copy of ``value`` as a MatchResult."""
        if isinstance(value, MatchResult):
            return copy.deepcopy(value)
        if isinstance(value, Mapping):
            return cls.from_dict(value)
        raise InvalidResultError(
            f"Match result must be a MatchResult or a mapping, got {type(value).__name__}"
        )

    def position_of(self, participant_id: str) -> int | None:
        for ranking in self.rankings or []:
            if ranking.participant_id == participant_id:
                return ranking.position
        return None

    def participant_at(self, position: int) -> str | None:
        for ranking in self.rankings or []:
            if ranking.position == position:
                return ranking.participant_id
        return None

    def to_dict(self) -> dict:
        d: dict[str, Any] = {}
        if self.winner_id is not None:
            d["winnerId"] = self.winner_id
        if self.loser_id is not None:
            d["loserId"] = self.loser_id
        if self.is_tie:
            d["isTie"] = True
        if self.score is not None:
            d["score"] = dict(self.score)
        if self.rankings is not None:
            d["rankings"] = [
                {"participantId": r.participant_id, "position": r.position}
                for r in self.rankings
            ]
        return d

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> MatchResult:
        raw_rankings = data.get("rankings")
        rankings = None
        if raw_rankings is not None:
            try:
                rankings = [
                    Ranking(
                        participant_id=_pick(r, "participantId", "participant_id"),
                        position=int(r["position"]),
                    )
                    for r in raw_rankings
                ]
            except (KeyError, TypeError, ValueError) as exc:
                raise InvalidResultError(f"Malformed rankings: {exc}") from exc
        score = data.get("score")
        return cls(
            winner_id=_pick(data, "winnerId", "winner_id"),
            loser_id=_pick(data, "loserId", "loser_id"),
            is_tie=bool(_pick(data, "isTie", "is_tie", False)),
            score=dict(score) if score is not None else None,
            rankings=rankings,
        )


# ── Matches ──────────────────────────────────────────────────────

@dataclass
class Match:
    id: str
    participant_ids: list[str] = field(default_factory=list)
    status: MatchStatus = MatchStatus.PENDING
    round: int | None = None
    match_number: int | None = None
    result: MatchResult | None = None

    @classmethod
    def create(
        cls,
        participant_ids: Sequence[str] = (),
        round: int | None = None,
        match_number: int | None = None,
    ) -> Match:
        return cls(
            id=generate_id(),
            participant_ids=list(participant_ids),
            round=round,
            match_number=match_number,
        )

    @property
    def is_completed(self) -> bool:
        return self.status is MatchStatus.COMPLETED

    @property
    def is_playable(self) -> bool:
        """Two or more entrants and no result yet."""
        return len(self.participant_ids) >= 2 and not self.is_completed

    def has_participant(self, participant_id: str) -> bool:
        return participant_id in self.participant_ids

    def opponent_of(self, participant_id: str) -> str | None:
        for pid in self.participant_ids:
            if pid != participant_id:
                return pid
        return None

    def add_participant(self, participant_id: str) -> None:
        if participant_id not in self.participant_ids:
            self.participant_ids.append(participant_id)

    def complete(self, result: MatchResult) -> None:
        if self.is_completed:
            raise LifecycleError("Match already completed")
        self.result = result
        self.status = MatchStatus.COMPLETED

    def copy(self) -> Match:
        return copy.deepcopy(self)

    def to_dict(self) -> dict:
        d: dict[str, Any] = {
            "id": self.id,
            "status": self.status.value,
            "participantIds": list(self.participant_ids),
        }
        if self.round is not None:
            d["round"] = self.round
        if self.match_number is not None:
            d["matchNumber"] = self.match_number
        if self.result is not None:
            d["result"] = self.result.to_dict()
        return d

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Match:
        result = data.get("result")
        return cls(
            id=data["id"],
            participant_ids=list(_pick(data, "participantIds", "participant_ids", [])),
            status=MatchStatus(data.get("status", "pending")),
            round=data.get("round"),
            match_number=_pick(data, "matchNumber", "match_number"),
            result=MatchResult.from_dict(result) if result is not None else None,
        )


# ── Standings ────────────────────────────────────────────────────

@dataclass
class Standing:
    """One row of a derived standings table. Never persisted."""

    participant_id: str
    participant_name: str
    rank: int = 0
    wins: int = 0
    losses: int = 0
    ties: int = 0
    matches_played: int = 0
    points: float | None = None
    games_won: float | None = None
    games_lost: float | None = None
    is_eliminated: bool | None = None

    def to_dict(self) -> dict:
        d: dict[str, Any] = {
            "participantId": self.participant_id,
            "participantName": self.participant_name,
            "rank": self.rank,
            "wins": self.wins,
            "losses": self.losses,
            "ties": self.ties,
            "matchesPlayed": self.matches_played,
        }
        if self.points is not None:
            d["points"] = self.points
        if self.games_won is not None:
            d["gamesWon"] = self.games_won
        if self.games_lost is not None:
            d["gamesLost"] = self.games_lost
        if self.is_eliminated is not None:
            d["isEliminated"] = self.is_eliminated
        return d


# ── Timestamps ───────────────────────────────────────────────────

def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def format_timestamp(value: datetime) -> str:
    """ISO-8601 in UTC with millisecond precision and a ``Z`` suffix."""
    return value.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace(
        "+00:00", "Z"
    )


def parse_timestamp(value: str) -> datetime:
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed
