"""Points-system resolver. Converts a finish position into a score.

Two fixed-table presets (Formula 1, Mario Kart), two formulas (linear
descending, winner-takes-most) and caller-supplied custom tables. Every
function here is pure; engines call them per completed match.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Mapping

from bracketeer.core.errors import InvalidOptionsError

logger = logging.getLogger(__name__)


class PointsSystemType(Enum):
    F1 = "f1"
    MARIO_KART = "mario-kart"
    LINEAR = "linear"
    WINNER_TAKES_MOST = "winner-takes-most"
    CUSTOM = "custom"


@dataclass(frozen=True)
class PointsSystemPreset:
    name: str
    type: PointsSystemType
    description: str
    best_for: str
    points: tuple[int, ...] = ()
    max_players: int | None = None


POINTS_SYSTEM_PRESETS: dict[PointsSystemType, PointsSystemPreset] = {
    PointsSystemType.F1: PointsSystemPreset(
        name="Formula 1",
        type=PointsSystemType.F1,
        description="Official F1 scoring system (top 10 score points)",
        best_for="Competitive racing with large gaps between placements",
        points=(25, 18, 15, 12, 10, 8, 6, 4, 2, 1),
        max_players=10,
    ),
    PointsSystemType.MARIO_KART: PointsSystemPreset(
        name="Mario Kart",
        type=PointsSystemType.MARIO_KART,
        description="Mario Kart 8 Deluxe scoring (all placements score)",
        best_for="Casual racing where everyone earns points",
        points=(15, 12, 10, 9, 8, 7, 6, 5, 4, 3, 2, 1),
        max_players=12,
    ),
    PointsSystemType.LINEAR: PointsSystemPreset(
        name="Linear Descending",
        type=PointsSystemType.LINEAR,
        description="Equal point gaps between placements (N, N-1, N-2, ..., 1)",
        best_for="Equal point gaps between all placements",
    ),
    PointsSystemType.WINNER_TAKES_MOST: PointsSystemPreset(
        name="Winner Takes Most",
        type=PointsSystemType.WINNER_TAKES_MOST,
        description="Winning is worth twice as much as 2nd place",
        best_for="Emphasizing winning over consistent placement",
    ),
    PointsSystemType.CUSTOM: PointsSystemPreset(
        name="Custom",
        type=PointsSystemType.CUSTOM,
        description="Define your own point distribution",
        best_for="Specific tournament requirements",
    ),
}


@dataclass
class PointsSystemConfig:
    type: PointsSystemType
    custom_points: list[float] | None = None

    def __post_init__(self) -> None:
        if not isinstance(self.type, PointsSystemType):
            try:
                self.type = PointsSystemType(self.type)
            except ValueError:
                raise InvalidOptionsError(
                    f"Unknown points system type: {self.type}"
                ) from None
        if self.custom_points is not None:
            self.custom_points = list(self.custom_points)

    def to_dict(self) -> dict:
        d: dict[str, Any] = {"type": self.type.value}
        if self.custom_points is not None:
            d["customPoints"] = list(self.custom_points)
        return d

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> PointsSystemConfig:
        if "type" not in data:
            raise InvalidOptionsError("Points system type is required")
        custom = data.get("customPoints", data.get("custom_points"))
        return cls(type=data["type"], custom_points=custom)


def _pad(points: list[float], player_count: int) -> list[float]:
    if player_count <= len(points):
        return list(points[:player_count])
    return list(points) + [0] * (player_count - len(points))


def generate_points_array(config: PointsSystemConfig, player_count: int) -> list[float]:
    """Points for finish positions 1..player_count (index 0 is first place)."""
    kind = config.type

    if kind in (PointsSystemType.F1, PointsSystemType.MARIO_KART):
        return _pad(list(POINTS_SYSTEM_PRESETS[kind].points), player_count)

    if kind is PointsSystemType.LINEAR:
        return [player_count - i for i in range(player_count)]

    if kind is PointsSystemType.WINNER_TAKES_MOST:
        if player_count == 1:
            return [1]
        points = [player_count - i for i in range(player_count)]
        if points:
            points[0] = player_count * 2
        return points

    if kind is PointsSystemType.CUSTOM:
        if not config.custom_points:
            raise InvalidOptionsError("Custom points system requires customPoints array")
        return _pad(config.custom_points, player_count)

    raise InvalidOptionsError(f"Unknown points system type: {kind}")


def get_points_for_placement(
    config: PointsSystemConfig, placement: int, total_players: int
) -> float:
    """Points for a 1-indexed placement. Out-of-range placements score 0."""
    points = generate_points_array(config, total_players)
    index = placement - 1
    if index < 0 or index >= len(points):
        return 0
    return points[index]


def calculate_match_points_from_placement(
    placement: int, total_players: int, formula: str = "proportional"
) -> int:
    """Convert a multi-player placement into Swiss-style match points.

    ``winner-only``: 3 for first place, otherwise 0.
    ``proportional``: 3 / 2 / 1 for the podium, otherwise 0.
    """
    if formula == "winner-only":
        return 3 if placement == 1 else 0
    return {1: 3, 2: 2, 3: 1}.get(placement, 0)


def validate_points_system(config: PointsSystemConfig) -> None:
    """Raise InvalidOptionsError for unusable configurations.

    A custom table that is not descending is accepted but logged.
    """
    if config.type is not PointsSystemType.CUSTOM:
        return

    points = config.custom_points
    if not points:
        raise InvalidOptionsError(
            "Custom points system requires customPoints array with at least one value"
        )
    if any(p < 0 for p in points):
        raise InvalidOptionsError("Points cannot be negative")
    if not is_descending(points):
        logger.warning(
            "Custom points are not in descending order - this may lead to unexpected results"
        )


def is_descending(points: list[float]) -> bool:
    return all(later <= earlier for earlier, later in zip(points, points[1:]))


def get_default_points_system(match_type: str | None) -> PointsSystemConfig:
    if match_type == "multi-player":
        return PointsSystemConfig(PointsSystemType.MARIO_KART)
    return PointsSystemConfig(PointsSystemType.LINEAR)


def format_points_array(points: list[float]) -> str:
    def fmt(p: float) -> str:
        return f"{p:g}"

    if len(points) <= 6:
        return ", ".join(fmt(p) for p in points)
    return f"{', '.join(fmt(p) for p in points[:5])}, ... ({len(points)} total)"
