"""Roster and play-out helpers shared by the format tests."""

from bracketeer.core.models import MatchResult


def roster(count):
    """Participant names P1..Pn, in seed order."""
    return [f"P{i}" for i in range(1, count + 1)]


def ids_by_name(tournament):
    return {p.name: p.id for p in tournament.participants}


def play_out(tournament, pick=None):
    """Record results until nothing is playable.

    ``pick(match)`` returns the winner id; by default the first listed
    participant wins. Multi-participant matches are ranked in listed order
    with the picked winner first.
    """
    guard = 0
    while tournament.get_current_matches():
        guard += 1
        assert guard < 500, "tournament never finished"
        match = tournament.get_current_matches()[0]
        winner = pick(match) if pick else match.participant_ids[0]
        if len(match.participant_ids) > 2 or tournament.type == "free-for-all":
            order = [winner] + [pid for pid in match.participant_ids if pid != winner]
            tournament.record_match_result(match.id, MatchResult.ranked(order))
        else:
            tournament.record_match_result(match.id, MatchResult.win(winner))
