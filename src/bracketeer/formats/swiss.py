"""SwissTournament — score-matched pairings, one round at a time.

Each round pairs participants with similar running scores who have not
met yet. The next round is only drawn once the current one is fully
recorded, so pairings always reflect the latest standings.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Mapping

from bracketeer.config import SWISS, SwissOptions
from bracketeer.core.bracket import bracket_rounds
from bracketeer.core.errors import InvalidResultError
from bracketeer.core.models import Match, MatchResult, Standing
from bracketeer.core.points import (
    calculate_match_points_from_placement,
    get_default_points_system,
    get_points_for_placement,
)
from bracketeer.formats.base import Tournament

logger = logging.getLogger(__name__)


@dataclass
class ParticipantScore:
    """Running pairing bookkeeping for one participant."""

    match_points: float = 0
    game_points: float = 0
    opponent_ids: list[str] = field(default_factory=list)
    matches_played: int = 0

    def to_dict(self) -> dict:
        return {
            "matchPoints": self.match_points,
            "gamePoints": self.game_points,
            "opponentIds": list(self.opponent_ids),
            "matchesPlayed": self.matches_played,
        }


class SwissTournament(Tournament):
    type = SWISS
    options_class = SwissOptions

    def __init__(self, options, id: str | None = None):
        super().__init__(options, id)
        if self.options.is_multi_player and self.options.points_system is None:
            self.options.points_system = get_default_points_system(self.options.match_type)
        self.rounds: list[list[Match]] = []
        self.current_round = 0
        self.participant_scores: dict[str, ParticipantScore] = {}

    @property
    def number_of_rounds(self) -> int:
        return self.options.number_of_rounds or bracket_rounds(len(self.participants))

    # ── Pairing ──────────────────────────────────────────────────

    def _generate(self) -> None:
        self.participant_scores = {p.id: ParticipantScore() for p in self.participants}
        self.rounds = []
        self._generate_round()
        self.current_round = 1

    def _clear(self) -> None:
        self.rounds = []
        self.current_round = 0
        self.participant_scores = {}

    def _all_matches(self) -> list[Match]:
        return [m for round_matches in self.rounds for m in round_matches]

    def _generate_round(self) -> None:
        if len(self.rounds) >= self.number_of_rounds:
            return
        round_number = len(self.rounds) + 1
        groups, bye = self._pair(round_number)

        number = len(self._all_matches())
        matches = []
        for group in groups:
            number += 1
            matches.append(Match.create(group, round=round_number, match_number=number))

        if bye is not None:
            number += 1
            match = Match.create([bye], round=round_number, match_number=number)
            match.complete(
                MatchResult(winner_id=bye, score={bye: self.options.points_per_bye})
            )
            self._score_match(match)
            matches.append(match)

        self.rounds.append(matches)
        logger.info(
            "Paired round %d of %d for %r (%d matches%s)",
            round_number, self.number_of_rounds, self.name, len(groups),
            ", 1 bye" if bye is not None else "",
        )

    def _pair(self, round_number: int) -> tuple[list[list[str]], str | None]:
        """Group unpaired participants top-down, avoiding rematches when possible."""
        scores = self.participant_scores
        order = [
            p.id
            for p in sorted(
                self._seeded_participants(),
                key=lambda p: (-scores[p.id].match_points, -scores[p.id].game_points),
            )
        ]
        size = self.options.players_per_match if self.options.is_multi_player else 2

        unpaired = list(order)
        groups: list[list[str]] = []
        while len(unpaired) > 1:
            group = [unpaired.pop(0)]
            while len(group) < size and unpaired:
                fresh = [
                    pid for pid in unpaired
                    if not any(pid in scores[member].opponent_ids for member in group)
                ]
                if fresh:
                    pick = fresh[0]
                else:
                    pick = unpaired[0]
                    logger.warning(
                        "Round %d of %r: no unplayed opponent left, repeating a pairing",
                        round_number, self.name,
                    )
                unpaired.remove(pick)
                group.append(pick)
            groups.append(group)

        return groups, (unpaired[0] if unpaired else None)

    # ── Results ──────────────────────────────────────────────────

    def _apply_result(self, match: Match, result: MatchResult) -> None:
        if self.options.is_multi_player and len(match.participant_ids) > 2:
            self._validate_rankings(match, result)
            result.winner_id = result.participant_at(1)
            size = len(match.participant_ids)
            result.score = {
                r.participant_id: get_points_for_placement(
                    self.options.points_system, r.position, size
                )
                for r in result.rankings
            }
        else:
            self._resolve_scores(match, result)

        match.complete(result)
        self._score_match(match)

        if all(m.is_completed for m in self.rounds[-1]):
            if len(self.rounds) < self.number_of_rounds:
                self._generate_round()
                self.current_round = len(self.rounds)
            else:
                self.completed = True

    def _resolve_scores(self, match: Match, result: MatchResult) -> None:
        """Derive winner, loser or tie from the two reported scores."""
        if not result.score:
            raise InvalidResultError("Swiss system requires game scores for each match")
        if len(match.participant_ids) != 2:
            raise InvalidResultError("Match does not have 2 participants")
        for pid in result.score:
            if pid not in match.participant_ids:
                raise InvalidResultError(f"Participant {pid} is not in this match")

        first, second = match.participant_ids
        a = result.score.get(first, 0)
        b = result.score.get(second, 0)
        result.winner_id = result.loser_id = None
        result.is_tie = False
        if a > b:
            result.winner_id, result.loser_id = first, second
        elif b > a:
            result.winner_id, result.loser_id = second, first
        else:
            result.is_tie = True

    def _score_match(self, match: Match) -> None:
        """Fold one completed match into the running pairing scores."""
        opts = self.options
        result = match.result
        ids = match.participant_ids

        if len(ids) == 1:
            entry = self.participant_scores[ids[0]]
            entry.match_points += opts.points_per_bye
            entry.matches_played += 1
            return

        for pid in ids:
            entry = self.participant_scores[pid]
            if result.rankings:
                position = result.position_of(pid) or len(ids)
                entry.match_points += calculate_match_points_from_placement(
                    position, len(ids), opts.match_points_formula
                )
                entry.game_points += (result.score or {}).get(pid, 0)
            else:
                if result.is_tie:
                    entry.match_points += opts.points_per_match_tie
                elif result.winner_id == pid:
                    entry.match_points += opts.points_per_match_win
                entry.game_points += (result.score or {}).get(pid, 0) * opts.points_per_game_win
            entry.opponent_ids.extend(other for other in ids if other != pid)
            entry.matches_played += 1

    # ── Standings ────────────────────────────────────────────────

    def get_standings(self) -> list[Standing]:
        completed = [m for m in self._all_matches() if m.is_completed]

        standings = []
        for p in self.participants:
            wins = losses = ties = 0
            games_won: float = 0
            games_lost: float = 0
            for match in completed:
                if not match.has_participant(p.id):
                    continue
                result = match.result
                score = result.score or {}
                if len(match.participant_ids) == 1:
                    wins += 1
                    continue
                if result.rankings:
                    position = result.position_of(p.id)
                    if position == 1:
                        wins += 1
                    elif position == len(match.participant_ids):
                        losses += 1
                elif result.is_tie:
                    ties += 1
                elif result.winner_id == p.id:
                    wins += 1
                else:
                    losses += 1
                games_won += score.get(p.id, 0)
                if not result.rankings:
                    games_lost += sum(
                        score.get(other, 0) for other in match.participant_ids if other != p.id
                    )

            entry = self.participant_scores.get(p.id) or ParticipantScore()
            standings.append(
                Standing(
                    participant_id=p.id,
                    participant_name=p.name,
                    wins=wins,
                    losses=losses,
                    ties=ties,
                    points=entry.match_points,
                    games_won=games_won,
                    games_lost=games_lost,
                    matches_played=entry.matches_played,
                )
            )

        standings.sort(
            key=lambda s: (
                -(s.points or 0),
                -(s.games_won or 0),
                s.games_lost or 0,
                s.participant_name.casefold(),
            )
        )
        for rank, standing in enumerate(standings, 1):
            standing.rank = rank
        return standings

    # ── Queries ──────────────────────────────────────────────────

    def get_rounds(self) -> list[list[Match]]:
        return [[m.copy() for m in round_matches] for round_matches in self.rounds]

    def get_participant_score(self, participant_id: str) -> ParticipantScore:
        self.get_participant(participant_id)
        entry = self.participant_scores.get(participant_id) or ParticipantScore()
        return ParticipantScore(
            entry.match_points, entry.game_points, list(entry.opponent_ids), entry.matches_played
        )

    # ── Persistence ──────────────────────────────────────────────

    def _export_structure(self) -> dict:
        return {
            "rounds": [self._matches_export(r) for r in self.rounds],
            "currentRound": self.current_round,
            "participantScores": {
                pid: entry.to_dict() for pid, entry in self.participant_scores.items()
            },
        }

    def _import_structure(self, state: Mapping[str, Any]) -> None:
        self.rounds = [self._matches_import(r) for r in state.get("rounds") or []]
        self.current_round = int(state.get("currentRound") or 0)

        self.participant_scores = {}
        if self.started:
            self.participant_scores = {p.id: ParticipantScore() for p in self.participants}
            for match in self._all_matches():
                if match.is_completed and match.result is not None:
                    self._score_match(match)
