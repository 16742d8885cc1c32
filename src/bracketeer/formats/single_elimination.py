"""SingleEliminationTournament — one loss and you are out.

Head-to-head brackets use the shared full-size layout from
``core.bracket``. Multi-player brackets put ``players_per_match`` entrants
in each match and advance only the match winner.
"""

from __future__ import annotations

import logging
from typing import Any, Mapping

from bracketeer.config import SINGLE_ELIMINATION, SingleEliminationOptions
from bracketeer.core.bracket import (
    build_elimination_bracket,
    matches_by_round,
    parent_match_index,
    round_label,
)
from bracketeer.core.errors import InvalidResultError
from bracketeer.core.models import Match, MatchResult, Ranking, Standing
from bracketeer.formats.base import Tournament

logger = logging.getLogger(__name__)


class SingleEliminationTournament(Tournament):
    type = SINGLE_ELIMINATION
    options_class = SingleEliminationOptions

    def __init__(self, options, id: str | None = None):
        super().__init__(options, id)
        self.bracket: list[Match] = []
        self.third_place_match: Match | None = None

    # ── Structure ────────────────────────────────────────────────

    def _generate(self) -> None:
        seeded = [p.id for p in self._seeded_participants()]
        if self.options.is_multi_player:
            self._generate_multi_player(seeded)
        else:
            self.bracket = build_elimination_bracket(seeded)
        logger.info(
            "Built %d-match bracket over %d rounds for %r",
            len(self.bracket), self.total_rounds, self.name,
        )

    def _generate_multi_player(self, seeded: list[str]) -> None:
        per_match = self.options.players_per_match
        self.bracket = []
        for i in range(0, len(seeded), per_match):
            self._append(seeded[i:i + per_match], round_number=1)

        previous = len(self.bracket)
        round_number = 2
        while previous > 1:
            count = -(-previous // per_match)
            for _ in range(count):
                self._append([], round_number)
            previous = count
            round_number += 1

        for match in self._round(1):
            if len(match.participant_ids) == 1:
                self._complete_bye(match)

    def _append(self, participant_ids: list[str], round_number: int) -> Match:
        match = Match.create(
            participant_ids, round=round_number, match_number=len(self.bracket) + 1
        )
        self.bracket.append(match)
        return match

    def _clear(self) -> None:
        self.bracket = []
        self.third_place_match = None

    def _all_matches(self) -> list[Match]:
        matches = list(self.bracket)
        if self.third_place_match is not None:
            matches.append(self.third_place_match)
        return matches

    def _round(self, round_number: int) -> list[Match]:
        return [m for m in self.bracket if m.round == round_number]

    @property
    def total_rounds(self) -> int:
        if not self.bracket:
            return 0
        return max(m.round or 1 for m in self.bracket)

    @property
    def final_match(self) -> Match | None:
        return self.bracket[-1] if self.bracket else None

    # ── Results ──────────────────────────────────────────────────

    def _apply_result(self, match: Match, result: MatchResult) -> None:
        if self.options.is_multi_player and (
            len(match.participant_ids) > 2 or result.rankings
        ):
            self._validate_rankings(match, result)
            result.winner_id = result.participant_at(1)
        else:
            self._validate_head_to_head(match, result)
            result.loser_id = match.opponent_of(result.winner_id)

        match.complete(result)

        if match is not self.third_place_match:
            if self.options.is_multi_player:
                self._advance_multi_player(match, result.winner_id)
            else:
                self._advance(match, result.winner_id)

        self._check_completion()

    def _validate_head_to_head(self, match: Match, result: MatchResult) -> None:
        if result.is_tie or not result.winner_id:
            if self.options.tie_breakers:
                raise InvalidResultError("Tie breakers are enabled - match cannot end in a tie")
            raise InvalidResultError("Single elimination requires a winner for each match")
        if len(match.participant_ids) != 2:
            raise InvalidResultError("Match does not have 2 participants")
        self._validate_winner(match, result.winner_id)

    def _advance(self, match: Match, winner_id: str) -> None:
        index = self._index_of(match)
        parent = parent_match_index(index, len(self.bracket))
        if parent is not None:
            self.bracket[parent].add_participant(winner_id)
        self._maybe_build_third_place()

    def _maybe_build_third_place(self) -> None:
        """Pair the semifinal losers once both semifinals have been played."""
        if not self.options.third_place_match or self.third_place_match is not None:
            return
        total = len(self.bracket)
        if total < 3:
            return
        semifinals = self.bracket[total - 3:total - 1]
        if not all(m.is_completed and len(m.participant_ids) == 2 for m in semifinals):
            return
        losers = [m.opponent_of(m.result.winner_id) for m in semifinals]
        final = self.bracket[-1]
        self.third_place_match = Match.create(
            losers, round=final.round, match_number=total + 1
        )
        logger.info("Third-place match created for %r", self.name)

    def _advance_multi_player(self, match: Match, winner_id: str) -> None:
        current = match.round or 1
        next_round = self._round(current + 1)
        if not next_round:
            return
        position = next(i for i, m in enumerate(self._round(current)) if m is match)
        target = next_round[position // self.options.players_per_match]
        target.add_participant(winner_id)

        if len(target.participant_ids) == 1 and self._is_ready(target):
            self._complete_bye(target)

    def _feeders(self, match: Match) -> list[Match]:
        """Previous-round matches whose winners are seated in ``match``."""
        current = match.round or 1
        if current == 1:
            return []
        position = next(i for i, m in enumerate(self._round(current)) if m is match)
        per_match = self.options.players_per_match
        return self._round(current - 1)[position * per_match:(position + 1) * per_match]

    def _is_ready(self, match: Match) -> bool:
        # Head-to-head slots never hold two entrants with a seat still open.
        if not self.options.is_multi_player or match is self.third_place_match:
            return True
        return all(m.is_completed for m in self._feeders(match))

    def _complete_bye(self, match: Match) -> None:
        """A lone entrant with no one left to meet advances unopposed."""
        pid = match.participant_ids[0]
        match.complete(MatchResult(winner_id=pid, rankings=[Ranking(pid, 1)]))
        self._advance_multi_player(match, pid)

    def _check_completion(self) -> None:
        final = self.final_match
        if final is None or not final.is_completed:
            self.completed = False
            return
        self.completed = self.third_place_match is None or self.third_place_match.is_completed

    def _index_of(self, match: Match) -> int:
        return next(i for i, m in enumerate(self.bracket) if m is match)

    # ── Standings ────────────────────────────────────────────────

    def get_standings(self) -> list[Standing]:
        matches = [m for m in self._all_matches() if m.is_completed and len(m.participant_ids) >= 2]
        final = self.final_match
        third = self.third_place_match

        standings = []
        for p in self.participants:
            played = [m for m in matches if m.has_participant(p.id)]
            wins = sum(1 for m in played if m.result.winner_id == p.id)
            losses = len(played) - wins

            rank = 0
            if final is not None and final.is_completed and final.has_participant(p.id):
                if self.options.is_multi_player and final.result.rankings:
                    rank = final.result.position_of(p.id) or 0
                else:
                    rank = 1 if final.result.winner_id == p.id else 2
            if third is not None and third.is_completed and third.has_participant(p.id):
                rank = 3 if third.result.winner_id == p.id else 4

            standings.append(
                Standing(
                    participant_id=p.id,
                    participant_name=p.name,
                    rank=rank,
                    wins=wins,
                    losses=losses,
                    matches_played=len(played),
                    is_eliminated=losses > 0,
                )
            )

        standings.sort(
            key=lambda s: (
                s.rank == 0,
                s.rank,
                -s.wins,
                s.participant_name.casefold(),
            )
        )
        return standings

    # ── Queries ──────────────────────────────────────────────────

    def get_bracket(self) -> list[Match]:
        return [m.copy() for m in self.bracket]

    def get_third_place_match(self) -> Match | None:
        return self.third_place_match.copy() if self.third_place_match else None

    def get_rounds(self) -> list[tuple[str, list[Match]]]:
        """Bracket matches grouped by round, each labelled for display."""
        total = self.total_rounds
        return [
            (round_label(number, total), [m.copy() for m in group])
            for number, group in matches_by_round(self.bracket)
        ]

    # ── Persistence ──────────────────────────────────────────────

    def _export_structure(self) -> dict:
        d: dict[str, Any] = {"bracket": self._matches_export(self.bracket)}
        if self.third_place_match is not None:
            d["thirdPlaceMatch"] = self.third_place_match.to_dict()
        return d

    def _import_structure(self, state: Mapping[str, Any]) -> None:
        self.bracket = self._matches_import(state.get("bracket"))
        third = state.get("thirdPlaceMatch")
        self.third_place_match = Match.from_dict(third) if third else None
