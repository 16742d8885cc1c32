"""RoundRobinTournament — everyone plays everyone.

Head-to-head schedules hold one match per pair for each repeat round.
Multi-player schedules split the roster into groups, rotating the roster
between rounds so groups differ.
"""

from __future__ import annotations

import logging
from typing import Any, Mapping

from bracketeer.config import ROUND_ROBIN, RoundRobinOptions
from bracketeer.core.bracket import matches_by_round
from bracketeer.core.errors import InvalidResultError
from bracketeer.core.models import Match, MatchResult, Participant, Standing
from bracketeer.core.points import get_default_points_system, get_points_for_placement
from bracketeer.formats.base import Tournament

logger = logging.getLogger(__name__)


class RoundRobinTournament(Tournament):
    type = ROUND_ROBIN
    options_class = RoundRobinOptions

    def __init__(self, options, id: str | None = None):
        super().__init__(options, id)
        if self.options.is_multi_player and self.options.points_system is None:
            self.options.points_system = get_default_points_system(self.options.match_type)
        self.matches: list[Match] = []
        self.current_round = 0

    # ── Schedule ─────────────────────────────────────────────────

    def _generate(self) -> None:
        seeded = self._seeded_participants()
        self.matches = []
        for round_number in range(1, self.options.rounds + 1):
            if self.options.is_multi_player:
                groups = self._rotated_groups(seeded, round_number)
            else:
                groups = [
                    [a.id, b.id]
                    for i, a in enumerate(seeded)
                    for b in seeded[i + 1:]
                ]
            for group in groups:
                self.matches.append(
                    Match.create(group, round=round_number, match_number=len(self.matches) + 1)
                )
        self.current_round = 1
        logger.info(
            "Scheduled %d matches over %d rounds for %r",
            len(self.matches), self.options.rounds, self.name,
        )

    def _rotated_groups(self, seeded: list[Participant], round_number: int) -> list[list[str]]:
        n = len(seeded)
        offset = ((round_number - 1) * (n // 2)) % n
        rotated = seeded[offset:] + seeded[:offset]
        per_match = self.options.players_per_match
        groups = [
            [p.id for p in rotated[i:i + per_match]]
            for i in range(0, n, per_match)
        ]
        return [g for g in groups if len(g) >= 2]

    def _clear(self) -> None:
        self.matches = []
        self.current_round = 0

    def _all_matches(self) -> list[Match]:
        return list(self.matches)

    @property
    def total_rounds(self) -> int:
        return self.options.rounds

    def _is_group_match(self, match: Match) -> bool:
        return self.options.is_multi_player and len(match.participant_ids) > 2

    def get_current_matches(self) -> list[Match]:
        if not self.started:
            return []
        return [
            m.copy()
            for m in self.matches
            if m.is_playable and (m.round or 1) <= self.current_round
        ]

    def get_matches_by_round(self) -> list[tuple[int, list[Match]]]:
        return [
            (number, [m.copy() for m in group])
            for number, group in matches_by_round(self.matches)
        ]

    # ── Results ──────────────────────────────────────────────────

    def _apply_result(self, match: Match, result: MatchResult) -> None:
        if self._is_group_match(match):
            self._validate_rankings(match, result)
            result.winner_id = result.participant_at(1)
            if self.options.ranking_method == "points" and self.options.points_system:
                size = len(match.participant_ids)
                result.score = {
                    r.participant_id: get_points_for_placement(
                        self.options.points_system, r.position, size
                    )
                    for r in result.rankings
                }
        else:
            self._validate_head_to_head(match, result)

        match.complete(result)
        self._advance_round()
        self.completed = all(m.is_completed for m in self.matches)

    def _validate_head_to_head(self, match: Match, result: MatchResult) -> None:
        if self.options.ranking_method == "points" and not result.score:
            raise InvalidResultError("Score is required when ranking by points")
        if self.options.ranking_method == "wins" and not result.winner_id and not result.is_tie:
            raise InvalidResultError("Winner or tie must be specified when ranking by wins")

        if result.score:
            for pid in result.score:
                if pid not in match.participant_ids:
                    raise InvalidResultError(f"Participant {pid} is not in this match")
        if result.winner_id and not result.is_tie:
            self._validate_winner(match, result.winner_id)
            result.loser_id = match.opponent_of(result.winner_id)

    def _advance_round(self) -> None:
        while self.current_round < self.options.rounds and all(
            m.is_completed for m in self.matches if m.round == self.current_round
        ):
            self.current_round += 1
            logger.info("Round %d open in %r", self.current_round, self.name)

    # ── Standings ────────────────────────────────────────────────

    def get_standings(self) -> list[Standing]:
        by_points = self.options.ranking_method == "points"
        multi = self.options.is_multi_player
        completed = [m for m in self.matches if m.is_completed]

        standings = []
        for p in self.participants:
            wins = losses = ties = 0
            points: float = 0
            played = [m for m in completed if m.has_participant(p.id)]
            for match in played:
                result = match.result
                if self._is_group_match(match):
                    position = result.position_of(p.id)
                    if position == 1:
                        wins += 1
                    elif position == len(match.participant_ids):
                        losses += 1
                    if result.score:
                        points += result.score.get(p.id, 0)
                elif by_points:
                    mine = (result.score or {}).get(p.id, 0)
                    theirs = (result.score or {}).get(match.opponent_of(p.id), 0)
                    points += mine
                    if mine > theirs:
                        wins += 1
                    elif mine < theirs:
                        losses += 1
                    else:
                        ties += 1
                elif result.is_tie:
                    ties += 1
                elif result.winner_id == p.id:
                    wins += 1
                else:
                    losses += 1

            standings.append(
                Standing(
                    participant_id=p.id,
                    participant_name=p.name,
                    wins=wins,
                    losses=losses,
                    ties=ties,
                    points=points if by_points or multi else None,
                    matches_played=len(played),
                )
            )

        if by_points or multi:
            standings.sort(
                key=lambda s: (-(s.points or 0), -s.wins, s.participant_name.casefold())
            )
        else:
            standings.sort(key=lambda s: (-s.wins, s.losses, s.participant_name.casefold()))

        for rank, standing in enumerate(standings, 1):
            standing.rank = rank
        return standings

    # ── Persistence ──────────────────────────────────────────────

    def _export_structure(self) -> dict:
        return {
            "matches": self._matches_export(self.matches),
            "currentRound": self.current_round,
        }

    def _import_structure(self, state: Mapping[str, Any]) -> None:
        self.matches = self._matches_import(state.get("matches"))
        self.current_round = int(state.get("currentRound") or 0)
