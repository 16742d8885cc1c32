"""DoubleEliminationTournament — out after the second loss.

The winners bracket is a regular elimination bracket. The losers bracket
grows as results come in: every winners-bracket loser takes the first open
losers match, and losers-bracket winners keep playing each other until one
is left to meet the winners-bracket champion in the grand final.
"""

from __future__ import annotations

import logging
from typing import Any, Mapping

from bracketeer.config import DOUBLE_ELIMINATION, DoubleEliminationOptions
from bracketeer.core.bracket import build_elimination_bracket, parent_match_index
from bracketeer.core.errors import InvalidResultError
from bracketeer.core.models import Match, MatchResult, Participant, Standing
from bracketeer.formats.base import Tournament

logger = logging.getLogger(__name__)


class DoubleEliminationTournament(Tournament):
    type = DOUBLE_ELIMINATION
    options_class = DoubleEliminationOptions

    def __init__(self, options, id: str | None = None):
        super().__init__(options, id)
        self.winners_bracket: list[Match] = []
        self.losers_bracket: list[Match] = []
        self.grand_final: Match | None = None
        self.grand_final_reset: Match | None = None
        self._losses: dict[str, int] = {}

    # ── Structure ────────────────────────────────────────────────

    def _split(self) -> tuple[list[Participant], list[Participant]]:
        """Winners-bracket and losers-bracket starters, by seed."""
        seeded = self._seeded_participants()
        if self.options.split_start and len(seeded) >= 4:
            cut = len(seeded) // 2
            return seeded[:cut], seeded[cut:]
        return seeded, []

    def _generate(self) -> None:
        winners, losers = self._split()
        self._losses = {p.id: 0 for p in self.participants}
        for p in losers:
            self._losses[p.id] = 1

        self.winners_bracket = build_elimination_bracket([p.id for p in winners])
        for i in range(0, len(losers), 2):
            self._new_losers_match([p.id for p in losers[i:i + 2]], round_number=1)

        logger.info(
            "Built winners bracket of %d matches for %r (%d starting in losers bracket)",
            len(self.winners_bracket), self.name, len(losers),
        )

    def _clear(self) -> None:
        self.winners_bracket = []
        self.losers_bracket = []
        self.grand_final = None
        self.grand_final_reset = None
        self._losses = {p.id: 0 for p in self.participants}

    def _all_matches(self) -> list[Match]:
        matches = self.winners_bracket + self.losers_bracket
        if self.grand_final is not None:
            matches.append(self.grand_final)
        if self.grand_final_reset is not None:
            matches.append(self.grand_final_reset)
        return matches

    def _new_losers_match(self, participant_ids: list[str], round_number: int) -> Match:
        match = Match.create(
            participant_ids,
            round=round_number,
            match_number=len(self.winners_bracket) + len(self.losers_bracket) + 1,
        )
        self.losers_bracket.append(match)
        return match

    def _next_losers_round(self) -> int:
        played = [m.round or 1 for m in self.losers_bracket if m.is_completed]
        return max(played, default=0) + 1

    @property
    def winners_final(self) -> Match | None:
        return self.winners_bracket[-1] if self.winners_bracket else None

    # ── Results ──────────────────────────────────────────────────

    def _apply_result(self, match: Match, result: MatchResult) -> None:
        if result.is_tie or not result.winner_id:
            if self.options.tie_breakers:
                raise InvalidResultError("Tie breakers are enabled - match cannot end in a tie")
            raise InvalidResultError("Double elimination requires a winner for each match")
        if len(match.participant_ids) != 2:
            raise InvalidResultError("Match does not have 2 participants")
        self._validate_winner(match, result.winner_id)

        winner_id = result.winner_id
        loser_id = match.opponent_of(winner_id)
        result.loser_id = loser_id
        match.complete(result)
        self._losses[loser_id] = self._losses.get(loser_id, 0) + 1

        if match is self.grand_final_reset:
            self.completed = True
        elif match is self.grand_final:
            self._on_grand_final(winner_id, loser_id)
        elif any(m is match for m in self.losers_bracket):
            self._on_losers_match(winner_id)
        else:
            self._on_winners_match(match, winner_id, loser_id)

    def _on_winners_match(self, match: Match, winner_id: str, loser_id: str) -> None:
        index = next(i for i, m in enumerate(self.winners_bracket) if m is match)
        parent = parent_match_index(index, len(self.winners_bracket))
        if parent is not None:
            self.winners_bracket[parent].add_participant(winner_id)
            self._add_to_losers(loser_id)
            return

        self._add_to_grand_final(winner_id)
        if self._pending_losers_matches():
            self._add_to_losers_final(loser_id)
        else:
            # Nobody left in the losers bracket to face.
            self._add_to_grand_final(loser_id)

    def _on_losers_match(self, winner_id: str) -> None:
        final = self.winners_final
        if not self._pending_losers_matches() and final is not None and final.is_completed:
            self._add_to_grand_final(winner_id)
        else:
            self._add_to_losers(winner_id)

    def _on_grand_final(self, winner_id: str, loser_id: str) -> None:
        if self._losses.get(winner_id, 0) == 1:
            self.grand_final_reset = Match.create(
                [winner_id, loser_id],
                round=self.grand_final.round,
                match_number=(self.grand_final.match_number or 0) + 1,
            )
            logger.info("Grand final reset required in %r", self.name)
        else:
            self.completed = True

    def _pending_losers_matches(self) -> list[Match]:
        return [m for m in self.losers_bracket if not m.is_completed]

    def _add_to_losers(self, participant_id: str) -> None:
        for match in self.losers_bracket:
            if not match.is_completed and len(match.participant_ids) < 2:
                match.add_participant(participant_id)
                return
        self._new_losers_match([participant_id], self._next_losers_round())

    def _add_to_losers_final(self, participant_id: str) -> None:
        last = self.losers_bracket[-1] if self.losers_bracket else None
        if last is not None and not last.is_completed and len(last.participant_ids) < 2:
            last.add_participant(participant_id)
        else:
            self._new_losers_match([participant_id], self._next_losers_round())

    def _add_to_grand_final(self, participant_id: str) -> None:
        if self.grand_final is None:
            final = self.winners_final
            self.grand_final = Match.create(
                round=(final.round or 1) + 1 if final else 1,
                match_number=len(self.winners_bracket) + len(self.losers_bracket) + 1,
            )
        self.grand_final.add_participant(participant_id)

    # ── Standings ────────────────────────────────────────────────

    def losses(self, participant_id: str) -> int:
        return self._losses.get(participant_id, 0)

    def get_standings(self) -> list[Standing]:
        played = [m for m in self._all_matches() if m.is_completed and len(m.participant_ids) == 2]

        deciding = None
        if self.completed:
            if self.grand_final_reset is not None and self.grand_final_reset.is_completed:
                deciding = self.grand_final_reset
            elif self.grand_final is not None and self.grand_final.is_completed:
                deciding = self.grand_final

        standings = []
        for p in self.participants:
            mine = [m for m in played if m.has_participant(p.id)]
            losses = self._losses.get(p.id, 0)
            rank = 0
            if deciding is not None and deciding.has_participant(p.id):
                rank = 1 if deciding.result.winner_id == p.id else 2
            standings.append(
                Standing(
                    participant_id=p.id,
                    participant_name=p.name,
                    rank=rank,
                    wins=sum(1 for m in mine if m.result.winner_id == p.id),
                    losses=losses,
                    matches_played=len(mine),
                    is_eliminated=losses >= 2,
                )
            )

        standings.sort(
            key=lambda s: (
                s.rank == 0,
                s.rank,
                s.losses,
                -s.wins,
                s.participant_name.casefold(),
            )
        )
        return standings

    # ── Queries ──────────────────────────────────────────────────

    def get_winners_bracket(self) -> list[Match]:
        return [m.copy() for m in self.winners_bracket]

    def get_losers_bracket(self) -> list[Match]:
        return [m.copy() for m in self.losers_bracket]

    def get_grand_final(self) -> Match | None:
        return self.grand_final.copy() if self.grand_final else None

    def get_grand_final_reset(self) -> Match | None:
        return self.grand_final_reset.copy() if self.grand_final_reset else None

    # ── Persistence ──────────────────────────────────────────────

    def _export_structure(self) -> dict:
        d: dict[str, Any] = {
            "winnersBracket": self._matches_export(self.winners_bracket),
            "losersBracket": self._matches_export(self.losers_bracket),
        }
        if self.grand_final is not None:
            d["grandFinal"] = self.grand_final.to_dict()
        if self.grand_final_reset is not None:
            d["grandFinalReset"] = self.grand_final_reset.to_dict()
        return d

    def _import_structure(self, state: Mapping[str, Any]) -> None:
        self.winners_bracket = self._matches_import(state.get("winnersBracket"))
        self.losers_bracket = self._matches_import(state.get("losersBracket"))
        gf = state.get("grandFinal")
        reset = state.get("grandFinalReset")
        self.grand_final = Match.from_dict(gf) if gf else None
        self.grand_final_reset = Match.from_dict(reset) if reset else None

        self._losses = {p.id: 0 for p in self.participants}
        if self.started:
            for p in self._split()[1]:
                self._losses[p.id] = 1
        for match in self._all_matches():
            if match.is_completed and match.result and match.result.winner_id:
                loser = match.opponent_of(match.result.winner_id)
                if loser is not None:
                    self._losses[loser] = self._losses.get(loser, 0) + 1
