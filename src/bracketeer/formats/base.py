"""Tournament — abstract base class for all tournament formats.

A format owns its structural fields (brackets, rounds, score tables) and
plugs into the shared lifecycle through the hooks below. Callers only go
through the public methods and never see internal Match objects.

Class hierarchy:
    Tournament (ABC)
    ├── SingleEliminationTournament
    ├── DoubleEliminationTournament
    ├── RoundRobinTournament
    ├── SwissTournament
    └── FreeForAllTournament
"""

from __future__ import annotations

import copy
import logging
from abc import ABC, abstractmethod
from typing import Any, ClassVar, Iterable, Mapping

from bracketeer.config import BaseOptions, options_from_dict
from bracketeer.core.errors import (
    InvalidOptionsError,
    InvalidResultError,
    LifecycleError,
    MatchNotFoundError,
    ParticipantNotFoundError,
)
from bracketeer.core.models import (
    Match,
    MatchResult,
    Participant,
    Standing,
    format_timestamp,
    generate_id,
    parse_timestamp,
    utcnow,
)

logger = logging.getLogger(__name__)

STATE_VERSION = "1.0.0"


class Tournament(ABC):
    """Abstract base for tournament engines.

    Subclasses set ``type`` and ``options_class`` and implement the
    structural hooks; roster handling, lookups and the export envelope
    live here.
    """

    type: ClassVar[str]
    options_class: ClassVar[type[BaseOptions]]

    def __init__(self, options: BaseOptions | Mapping[str, Any], id: str | None = None):
        if isinstance(options, Mapping):
            options = options_from_dict({**options, "type": self.type})
        if not isinstance(options, self.options_class):
            raise InvalidOptionsError(
                f"{type(self).__name__} requires {self.options_class.__name__}, "
                f"got {type(options).__name__}"
            )
        self.options = copy.deepcopy(options)
        self.id = id or generate_id()
        self.name = self.options.name
        self.participants: list[Participant] = [
            Participant(id=generate_id(), name=name, seed=i)
            for i, name in enumerate(self.options.participant_names, 1)
        ]
        self.started = False
        self.completed = False
        self.created_at = utcnow()
        self.updated_at = self.created_at

    def __repr__(self) -> str:
        return (
            f"<{type(self).__name__} {self.name!r} participants={len(self.participants)} "
            f"started={self.started} completed={self.completed}>"
        )

    # ------------------------------------------------------------------
    # Structural hooks, implemented by each format
    # ------------------------------------------------------------------

    @property
    def min_participants(self) -> int:
        return 2

    @abstractmethod
    def _generate(self) -> None:
        """Build the initial matches from the seeded roster."""

    @abstractmethod
    def _clear(self) -> None:
        """Drop every match and all derived bookkeeping."""

    @abstractmethod
    def _all_matches(self) -> list[Match]:
        """Every match the engine owns, in a stable display order."""

    @abstractmethod
    def _apply_result(self, match: Match, result: MatchResult) -> None:
        """Validate ``result`` for ``match``, complete it and advance."""

    def _is_ready(self, match: Match) -> bool:
        """Whether every result that can still seat someone in ``match`` is in."""
        return True

    @abstractmethod
    def get_standings(self) -> list[Standing]:
        """Standings recomputed from match history."""

    @abstractmethod
    def _export_structure(self) -> dict:
        """Format-specific state document fields."""

    @abstractmethod
    def _import_structure(self, state: Mapping[str, Any]) -> None:
        """Restore format-specific fields and rebuild derived bookkeeping."""

    # ------------------------------------------------------------------
    # Roster
    # ------------------------------------------------------------------

    def get_participants(self) -> list[Participant]:
        return [copy.copy(p) for p in self.participants]

    def get_participant(self, participant_id: str) -> Participant:
        for p in self.participants:
            if p.id == participant_id:
                return p
        raise ParticipantNotFoundError(f"Participant with id {participant_id} not found")

    def add_participant(self, name: str, is_npc: bool = False) -> Participant:
        if self.started:
            raise LifecycleError("Cannot add participants after tournament has started")
        participant = Participant(
            id=generate_id(), name=name, seed=len(self.participants) + 1, is_npc=is_npc
        )
        self.participants.append(participant)
        self._sync_roster()
        return copy.copy(participant)

    def remove_participant(self, participant_id: str) -> None:
        if self.started:
            raise LifecycleError("Cannot remove participants after tournament has started")
        participant = self.get_participant(participant_id)
        self.participants.remove(participant)
        for seed, p in enumerate(self.participants, 1):
            p.seed = seed
        self._sync_roster()

    def set_name(self, name: str) -> None:
        self.name = name
        self.options.name = name
        self.touch()

    def _sync_roster(self) -> None:
        self.options.participant_names = [p.name for p in self.participants]
        self.touch()

    def _seeded_participants(self) -> list[Participant]:
        return sorted(self.participants, key=lambda p: p.seed)

    def _participant_name(self, participant_id: str) -> str:
        for p in self.participants:
            if p.id == participant_id:
                return p.name
        return participant_id

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def start(self) -> None:
        if self.started:
            raise LifecycleError("Tournament already started")
        self._validate_participants(self.min_participants)
        self._generate()
        self.started = True
        self.touch()
        logger.info(
            "Started %s tournament %r with %d participants",
            self.type, self.name, len(self.participants),
        )

    def record_match_result(
        self, match_id: str, result: MatchResult | Mapping[str, Any]
    ) -> None:
        if not self.started:
            raise LifecycleError("Tournament not started")
        match = self._find_match(match_id)
        if match.is_completed:
            raise LifecycleError("Match already completed")
        if self.completed:
            raise LifecycleError("Tournament already completed")
        if len(match.participant_ids) < 2:
            raise InvalidResultError("Match does not have enough participants")
        if not self._is_ready(match):
            raise LifecycleError("Match is waiting on earlier results")

        self._apply_result(match, MatchResult.coerce(result))
        self.touch()
        logger.debug("Recorded result for match %s in %r", match_id, self.name)
        if self.completed:
            logger.info("Tournament %r completed", self.name)

    def get_current_matches(self) -> list[Match]:
        if not self.started:
            return []
        return [m.copy() for m in self._all_matches() if m.is_playable and self._is_ready(m)]

    def get_match(self, match_id: str) -> Match:
        return self._find_match(match_id).copy()

    def get_matches(self) -> list[Match]:
        return [m.copy() for m in self._all_matches()]

    def reset(self) -> None:
        """Discard every result and rebuild the structure from the roster."""
        self._clear()
        self.completed = False
        if self.started:
            self._generate()
        self.touch()
        logger.info("Reset tournament %r", self.name)

    def touch(self) -> None:
        self.updated_at = utcnow()

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    def export(self) -> dict:
        self.touch()
        state = {
            "version": STATE_VERSION,
            "id": self.id,
            "name": self.name,
            "type": self.type,
            "createdAt": format_timestamp(self.created_at),
            "updatedAt": format_timestamp(self.updated_at),
            "started": self.started,
            "completed": self.completed,
            "participants": [p.to_dict() for p in self.participants],
            "options": self.options.to_dict(),
        }
        state.update(self._export_structure())
        return state

    def import_state(self, state: Mapping[str, Any]) -> None:
        if state.get("type") != self.type:
            raise InvalidOptionsError(
                f"Cannot import {state.get('type')!r} state into a {self.type} tournament"
            )
        self.options = options_from_dict({**(state.get("options") or {}), "type": self.type})
        self.id = state["id"]
        self.name = state["name"]
        self.started = bool(state.get("started"))
        self.completed = bool(state.get("completed"))
        self.participants = [Participant.from_dict(p) for p in state.get("participants", [])]
        self.created_at = parse_timestamp(state["createdAt"])
        self.updated_at = parse_timestamp(state["updatedAt"])
        self._import_structure(state)
        self.touch()

    # ------------------------------------------------------------------
    # Shared helpers
    # ------------------------------------------------------------------

    def _validate_participants(self, minimum: int) -> None:
        if len(self.participants) < minimum:
            raise InvalidOptionsError(
                f"This tournament requires at least {minimum} participants"
            )

    def _find_match(self, match_id: str) -> Match:
        for match in self._all_matches():
            if match.id == match_id:
                return match
        raise MatchNotFoundError(f"Match with id {match_id} not found")

    @staticmethod
    def _validate_winner(match: Match, winner_id: str) -> None:
        if winner_id not in match.participant_ids:
            raise InvalidResultError("Winner ID does not match a participant in this match")

    @staticmethod
    def _validate_rankings(match: Match, result: MatchResult) -> None:
        """Require a full, contiguous 1..K ranking of the match's entrants."""
        rankings = result.rankings
        if not rankings:
            raise InvalidResultError("Rankings are required for multi-participant matches")
        if len(rankings) != len(match.participant_ids):
            raise InvalidResultError("All participants must be ranked")

        ranked_ids = [r.participant_id for r in rankings]
        for pid in ranked_ids:
            if pid not in match.participant_ids:
                raise InvalidResultError(f"Participant {pid} is not in this match")
        if len(set(ranked_ids)) != len(ranked_ids):
            raise InvalidResultError("Each participant can only be ranked once")

        positions = sorted(r.position for r in rankings)
        if positions != list(range(1, len(positions) + 1)):
            raise InvalidResultError("Rankings must be consecutive starting from 1")

    @staticmethod
    def _matches_export(matches: Iterable[Match]) -> list[dict]:
        return [m.to_dict() for m in matches]

    @staticmethod
    def _matches_import(data: Iterable[Mapping[str, Any]] | None) -> list[Match]:
        return [Match.from_dict(m) for m in data or []]
