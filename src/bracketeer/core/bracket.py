"""Elimination bracket math shared by single and double elimination.

The bracket is a flat list laid out round by round: round 1 occupies the
first ``size/2`` slots, round 2 the next ``size/4`` and so on, with the
final last. A slot's winner moves to ``total - (total - i) // 2``.
"""

from __future__ import annotations

from typing import Iterable, Sequence

from bracketeer.core.models import Match


# ── Round labels ─────────────────────────────────────────────────

_ROUND_LABELS = {
    0: "Finals",
    1: "Semifinals",
    2: "Quarterfinals",
}


def round_label(round_number: int, total_rounds: int) -> str:
    """Human-readable name for a bracket round."""
    remaining = total_rounds - round_number
    if remaining in _ROUND_LABELS:
        return _ROUND_LABELS[remaining]
    return f"Round {round_number}"


# ── Sizing ───────────────────────────────────────────────────────

def bracket_rounds(participant_count: int) -> int:
    """ceil(log2(n)); 0 for fewer than two participants."""
    if participant_count < 2:
        return 0
    return (participant_count - 1).bit_length()


def bracket_size(participant_count: int) -> int:
    return 1 << bracket_rounds(participant_count)


def bye_count(participant_count: int) -> int:
    if participant_count < 2:
        return 0
    return bracket_size(participant_count) - participant_count


def parent_match_index(match_index: int, total_matches: int) -> int | None:
    """Index of the match a winner advances to, or None for the final."""
    if match_index >= total_matches - 1:
        return None
    return total_matches - (total_matches - match_index) // 2


# ── Grouping ─────────────────────────────────────────────────────

def matches_by_round(matches: Iterable[Match]) -> list[tuple[int, list[Match]]]:
    """Group matches by round number, each round ordered by match number.

    Matches without a round are treated as round 1.
    """
    rounds: dict[int, list[Match]] = {}
    for match in matches:
        rounds.setdefault(match.round or 1, []).append(match)
    return [
        (number, sorted(group, key=lambda m: m.match_number or 0))
        for number, group in sorted(rounds.items())
    ]


# ── Seeding ──────────────────────────────────────────────────────

def build_elimination_bracket(seeded_ids: Sequence[str]) -> list[Match]:
    """Build a full two-player elimination bracket.

    ``seeded_ids`` is ordered by seed, best first. The top ``byes`` seeds
    skip round 1: their round-1 slots stay empty and they are placed
    directly into round-2 matches, two per match in seed order. The rest
    play round 1 in the trailing slots, seed i against seed (last - i).
    """
    n = len(seeded_ids)
    rounds = bracket_rounds(n)
    size = 1 << rounds
    byes = size - n

    matches: list[Match] = []
    number = 0
    for round_number in range(1, rounds + 1):
        for _ in range(size >> round_number):
            number += 1
            matches.append(Match.create(round=round_number, match_number=number))

    playing = list(seeded_ids[byes:])
    for k in range(len(playing) // 2):
        slot = matches[byes + k]
        slot.add_participant(playing[k])
        slot.add_participant(playing[-1 - k])

    first_round_slots = size // 2
    for k, pid in enumerate(seeded_ids[:byes]):
        matches[first_round_slots + k // 2].add_participant(pid)
    return matches
