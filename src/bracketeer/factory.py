"""Create, restore and validate tournaments by type."""

from __future__ import annotations

import logging
from typing import Any, Mapping

from bracketeer.config import (
    DOUBLE_ELIMINATION,
    FREE_FOR_ALL,
    MULTI_PLAYER,
    ROUND_ROBIN,
    SINGLE_ELIMINATION,
    SWISS,
    BaseOptions,
    TournamentOptions,
    camel_case,
    options_class,
    options_from_dict,
)
from bracketeer.core.errors import InvalidOptionsError
from bracketeer.core.points import PointsSystemConfig, validate_points_system
from bracketeer.formats.base import Tournament
from bracketeer.formats.double_elimination import DoubleEliminationTournament
from bracketeer.formats.free_for_all import FreeForAllTournament
from bracketeer.formats.round_robin import RoundRobinTournament
from bracketeer.formats.single_elimination import SingleEliminationTournament
from bracketeer.formats.swiss import SwissTournament

logger = logging.getLogger(__name__)

TOURNAMENT_CLASSES: dict[str, type[Tournament]] = {
    SINGLE_ELIMINATION: SingleEliminationTournament,
    DOUBLE_ELIMINATION: DoubleEliminationTournament,
    ROUND_ROBIN: RoundRobinTournament,
    SWISS: SwissTournament,
    FREE_FOR_ALL: FreeForAllTournament,
}


def _tournament_class(tournament_type: str) -> type[Tournament]:
    try:
        return TOURNAMENT_CLASSES[tournament_type]
    except KeyError:
        raise InvalidOptionsError(f"Unknown tournament type: {tournament_type}") from None


def create_tournament(options: BaseOptions | Mapping[str, Any]) -> Tournament:
    """Build a not-started tournament from typed options or a mapping."""
    if isinstance(options, Mapping):
        options = options_from_dict(options)
    tournament = _tournament_class(options.type)(options)
    logger.debug("Created %s tournament %s", options.type, tournament.id)
    return tournament


def restore_tournament(state: Mapping[str, Any]) -> Tournament:
    """Rebuild a tournament from a state document produced by ``export()``."""
    cls = _tournament_class(state.get("type"))
    options = options_from_dict({**(state.get("options") or {}), "type": cls.type})
    tournament = cls(options, id=state.get("id"))
    tournament.import_state(state)
    return tournament


def get_default_options(tournament_type: str) -> TournamentOptions:
    """Baseline options for a format: named "New Tournament", empty roster."""
    return options_class(tournament_type)()


def validate_options(options: BaseOptions | Mapping[str, Any]) -> list[str]:
    """Return human-readable problems with ``options``; empty means valid.

    Accepts typed options or a partial camelCase/snake_case mapping.
    """
    if isinstance(options, BaseOptions):
        data = options.to_dict()
    else:
        data = {camel_case(k) if "_" in k else k: v for k, v in options.items()}

    errors: list[str] = []

    name = data.get("name")
    if not name or not str(name).strip():
        errors.append("Tournament name is required")

    names = data.get("participantNames")
    if not names or len(names) < 2:
        errors.append("At least 2 participants are required")
    if names:
        unique = {str(n).strip().lower() for n in names}
        if len(unique) != len(names):
            errors.append("Participant names must be unique")
    roster_size = len(names or [])

    match_type = data.get("matchType")
    players_per_match = data.get("playersPerMatch")
    points_system = data.get("pointsSystem")

    if match_type == MULTI_PLAYER:
        if not players_per_match or players_per_match < 2:
            errors.append("Players per match must be at least 2 for multi-player matches")
        if players_per_match and names and players_per_match > roster_size:
            errors.append("Players per match cannot exceed total participant count")
        if points_system:
            try:
                if not isinstance(points_system, PointsSystemConfig):
                    points_system = PointsSystemConfig.from_dict(points_system)
                validate_points_system(points_system)
            except InvalidOptionsError as exc:
                errors.append(str(exc))

    kind = data.get("type")

    if kind == FREE_FOR_ALL:
        per_match = data.get("participantsPerMatch")
        if per_match and (per_match < 2 or per_match > roster_size):
            errors.append(f"Participants per match must be between 2 and {roster_size}")
        if data.get("advancementRule") == "top-n":
            count = data.get("advancementCount")
            if not count or count < 1:
                errors.append("Advancement count must be at least 1 when using top-n advancement")
            if count and per_match and count >= per_match:
                errors.append("Advancement count must be less than participants per match")

    if kind == SWISS:
        for key, label in (
            ("pointsPerMatchWin", "Points per match win"),
            ("pointsPerMatchTie", "Points per match tie"),
            ("pointsPerGameWin", "Points per game win"),
            ("pointsPerGameTie", "Points per game tie"),
            ("pointsPerBye", "Points per bye"),
        ):
            value = data.get(key)
            if value is not None and value < 0:
                errors.append(f"{label} must be non-negative")

    if kind == ROUND_ROBIN:
        rounds = data.get("rounds")
        if rounds and (rounds < 1 or rounds > 3):
            errors.append("Rounds must be between 1 and 3")
        if (
            match_type == MULTI_PLAYER
            and players_per_match
            and players_per_match > 2
            and data.get("rankingMethod") == "points"
            and not points_system
        ):
            errors.append(
                "Points system is required for multi-player round robin with points ranking"
            )

    return errors
