"""FreeForAllTournament — many entrants per match, the best finishers advance.

Rounds shrink the field until the survivors fit in a single final match.
Advancement is either winner-only or top-N per match.
"""

from __future__ import annotations

import logging
from typing import Any, Mapping

from bracketeer.config import FREE_FOR_ALL, FreeForAllOptions
from bracketeer.core.errors import InvalidOptionsError
from bracketeer.core.models import Match, MatchResult, Ranking, Standing
from bracketeer.core.points import get_points_for_placement
from bracketeer.formats.base import Tournament

logger = logging.getLogger(__name__)


class FreeForAllTournament(Tournament):
    type = FREE_FOR_ALL
    options_class = FreeForAllOptions

    def __init__(self, options, id: str | None = None):
        super().__init__(options, id)
        opts = self.options
        if opts.participants_per_match < 2:
            raise InvalidOptionsError("Participants per match must be at least 2")
        if opts.advancement_rule == "top-n":
            if not opts.advancement_count or opts.advancement_count < 1:
                raise InvalidOptionsError(
                    "Advancement count must be at least 1 when using top-n advancement"
                )
            if opts.advancement_count >= opts.participants_per_match:
                raise InvalidOptionsError(
                    "Advancement count must be less than participants per match"
                )
        self.rounds: list[list[Match]] = []
        self.current_round = 0
        self.eliminated: set[str] = set()

    @property
    def min_participants(self) -> int:
        return self.options.participants_per_match

    @property
    def advancement_threshold(self) -> int:
        if self.options.advancement_rule == "top-n":
            return self.options.advancement_count or 1
        return 1

    # ── Rounds ───────────────────────────────────────────────────

    def _generate(self) -> None:
        self.rounds = []
        self.eliminated = set()
        self._generate_round([p.id for p in self._seeded_participants()])

    def _generate_round(self, participant_ids: list[str]) -> None:
        per_match = self.options.participants_per_match
        round_number = len(self.rounds) + 1
        matches = []
        for i in range(0, len(participant_ids), per_match):
            group = participant_ids[i:i + per_match]
            match = Match.create(group, round=round_number, match_number=len(matches) + 1)
            if len(group) == 1:
                match.complete(MatchResult(winner_id=group[0], rankings=[Ranking(group[0], 1)]))
            matches.append(match)
        self.rounds.append(matches)
        self.current_round = round_number
        logger.info(
            "Round %d of %r: %d entrants in %d matches",
            round_number, self.name, len(participant_ids), len(matches),
        )

    def _clear(self) -> None:
        self.rounds = []
        self.current_round = 0
        self.eliminated = set()

    def _all_matches(self) -> list[Match]:
        return [m for round_matches in self.rounds for m in round_matches]

    # ── Results ──────────────────────────────────────────────────

    def _apply_result(self, match: Match, result: MatchResult) -> None:
        self._validate_rankings(match, result)
        result.winner_id = result.participant_at(1)
        if self.options.points_system is not None:
            size = len(match.participant_ids)
            result.score = {
                r.participant_id: get_points_for_placement(
                    self.options.points_system, r.position, size
                )
                for r in result.rankings
            }
        match.complete(result)
        self._eliminate(match)

        current = self.rounds[-1]
        if all(m.is_completed for m in current):
            self._close_round(current)

    def _eliminate(self, match: Match) -> None:
        threshold = self.advancement_threshold
        for ranking in match.result.rankings or []:
            if ranking.position > threshold:
                self.eliminated.add(ranking.participant_id)

    def _close_round(self, matches: list[Match]) -> None:
        threshold = self.advancement_threshold
        advancing = [
            r.participant_id
            for m in matches
            for r in sorted(m.result.rankings or [], key=lambda r: r.position)
            if r.position <= threshold
        ]
        played = [m for m in matches if len(m.participant_ids) >= 2]
        if len(advancing) < 2 or (len(matches) == 1 and len(played) == 1):
            self.completed = True
            return
        self._generate_round(advancing)

    # ── Standings ────────────────────────────────────────────────

    def _final_match(self) -> Match | None:
        if not self.rounds:
            return None
        played = [m for m in self.rounds[-1] if len(m.participant_ids) >= 2]
        return played[0] if len(played) == 1 else None

    def get_standings(self) -> list[Standing]:
        final = self._final_match()
        has_points = self.options.points_system is not None

        standings = []
        for p in self.participants:
            wins = losses = played = 0
            points: float = 0
            for match in self._all_matches():
                if not match.is_completed or not match.has_participant(p.id):
                    continue
                position = match.result.position_of(p.id)
                if position is None:
                    continue
                played += 1
                if position == 1:
                    wins += 1
                else:
                    losses += 1
                points += (match.result.score or {}).get(p.id, 0)

            rank = 0
            if (
                self.completed
                and final is not None
                and played > 0
                and wins == played
                and final.result.position_of(p.id) == 1
            ):
                rank = 1

            standings.append(
                Standing(
                    participant_id=p.id,
                    participant_name=p.name,
                    rank=rank,
                    wins=wins,
                    losses=losses,
                    matches_played=played,
                    points=points if has_points else None,
                    is_eliminated=p.id in self.eliminated,
                )
            )

        standings.sort(
            key=lambda s: (
                s.rank == 0,
                s.rank,
                -s.wins,
                -s.matches_played,
                s.participant_name.casefold(),
            )
        )

        # Equal wins and matches played share a rank.
        next_rank = 1
        for i, standing in enumerate(standings):
            if standing.rank == 0:
                previous = standings[i - 1] if i > 0 else None
                if (
                    previous is not None
                    and standing.wins == previous.wins
                    and standing.matches_played == previous.matches_played
                ):
                    standing.rank = previous.rank
                else:
                    standing.rank = next_rank
            next_rank = standing.rank + 1
        return standings

    # ── Queries ──────────────────────────────────────────────────

    def get_rounds(self) -> list[list[Match]]:
        return [[m.copy() for m in round_matches] for round_matches in self.rounds]

    def get_eliminated_participants(self) -> list[str]:
        return [p.id for p in self.participants if p.id in self.eliminated]

    # ── Persistence ──────────────────────────────────────────────

    def _export_structure(self) -> dict:
        return {
            "rounds": [self._matches_export(r) for r in self.rounds],
            "currentRound": self.current_round,
            "eliminatedParticipants": self.get_eliminated_participants(),
        }

    def _import_structure(self, state: Mapping[str, Any]) -> None:
        self.rounds = [self._matches_import(r) for r in state.get("rounds") or []]
        self.current_round = int(state.get("currentRound") or 0)
        self.eliminated = set()
        for match in self._all_matches():
            if match.is_completed and match.result is not None:
                self._eliminate(match)
