"""Tournament options and the YAML options loader."""

from __future__ import annotations

import re
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, ClassVar, Mapping

import yaml

from bracketeer.core.errors import InvalidOptionsError
from bracketeer.core.points import PointsSystemConfig

SINGLE_ELIMINATION = "single-elimination"
DOUBLE_ELIMINATION = "double-elimination"
ROUND_ROBIN = "round-robin"
SWISS = "swiss"
FREE_FOR_ALL = "free-for-all"

TOURNAMENT_TYPES = (
    SINGLE_ELIMINATION,
    DOUBLE_ELIMINATION,
    ROUND_ROBIN,
    SWISS,
    FREE_FOR_ALL,
)

HEAD_TO_HEAD = "head-to-head"
MULTI_PLAYER = "multi-player"


@dataclass
class BaseOptions:
    name: str = "New Tournament"
    participant_names: list[str] = field(default_factory=list)
    match_type: str = HEAD_TO_HEAD
    players_per_match: int = 2

    type: ClassVar[str] = ""

    @property
    def is_multi_player(self) -> bool:
        return self.match_type == MULTI_PLAYER and (self.players_per_match or 2) > 2

    def to_dict(self) -> dict:
        d: dict[str, Any] = {"type": self.type}
        for f in fields(self):
            value = getattr(self, f.name)
            if value is None:
                continue
            if isinstance(value, PointsSystemConfig):
                value = value.to_dict()
            elif isinstance(value, list):
                value = list(value)
            d[camel_case(f.name)] = value
        return d


@dataclass
class SingleEliminationOptions(BaseOptions):
    third_place_match: bool = False
    tie_breakers: bool = True
    advancement_rule: str = "winner-only"

    type: ClassVar[str] = SINGLE_ELIMINATION


@dataclass
class DoubleEliminationOptions(BaseOptions):
    split_start: bool = False
    tie_breakers: bool = True

    type: ClassVar[str] = DOUBLE_ELIMINATION


@dataclass
class RoundRobinOptions(BaseOptions):
    ranking_method: str = "wins"  # "wins" or "points"
    rounds: int = 1
    points_system: PointsSystemConfig | None = None

    type: ClassVar[str] = ROUND_ROBIN


@dataclass
class SwissOptions(BaseOptions):
    points_per_match_win: float = 3
    points_per_match_tie: float = 1
    points_per_game_win: float = 1
    points_per_game_tie: float = 0
    points_per_bye: float = 3
    number_of_rounds: int | None = None
    points_system: PointsSystemConfig | None = None
    match_points_formula: str = "proportional"  # or "winner-only"

    type: ClassVar[str] = SWISS


@dataclass
class FreeForAllOptions(BaseOptions):
    participants_per_match: int = 4
    advancement_rule: str = "winner-only"  # or "top-n"
    advancement_count: int | None = None
    points_system: PointsSystemConfig | None = None

    type: ClassVar[str] = FREE_FOR_ALL


OPTIONS_CLASSES: dict[str, type[BaseOptions]] = {
    cls.type: cls
    for cls in (
        SingleEliminationOptions,
        DoubleEliminationOptions,
        RoundRobinOptions,
        SwissOptions,
        FreeForAllOptions,
    )
}

TournamentOptions = (
    SingleEliminationOptions
    | DoubleEliminationOptions
    | RoundRobinOptions
    | SwissOptions
    | FreeForAllOptions
)


# ── Key conversion ───────────────────────────────────────────────

def camel_case(snake: str) -> str:
    head, *rest = snake.split("_")
    return head + "".join(part.title() for part in rest)


_CAMEL_BOUNDARY = re.compile(r"(?<!^)(?=[A-Z])")


def snake_case(key: str) -> str:
    return _CAMEL_BOUNDARY.sub("_", key).lower()


def options_class(tournament_type: str) -> type[BaseOptions]:
    try:
        return OPTIONS_CLASSES[tournament_type]
    except KeyError:
        raise InvalidOptionsError(f"Unknown tournament type: {tournament_type}") from None


def options_from_dict(data: Mapping[str, Any]) -> TournamentOptions:
    """Build typed options from a camelCase or snake_case mapping.

    The mapping must carry a ``type`` key. Unrecognised keys are ignored
    so documents written by newer clients still load.
    """
    if "type" not in data:
        raise InvalidOptionsError("Tournament type is required")
    cls = options_class(data["type"])
    known = {f.name for f in fields(cls)}

    kwargs: dict[str, Any] = {}
    for key, value in data.items():
        name = snake_case(key)
        if name not in known:
            continue
        if name == "points_system" and value is not None:
            value = PointsSystemConfig.from_dict(value)
        elif name == "participant_names":
            value = list(value or [])
        kwargs[name] = value
    return cls(**kwargs)


# ── YAML ─────────────────────────────────────────────────────────

def load_options(path: Path) -> TournamentOptions:
    """Load tournament options from a YAML file.

    Expected layout::

        tournament:
          name: Friday Night Smash
          type: double-elimination
        participants: [Ana, Ben, Cy, Dee]
        options:
          split_start: false
    """
    with open(path) as f:
        raw = yaml.safe_load(f)

    if not isinstance(raw, dict) or "tournament" not in raw:
        raise InvalidOptionsError(f"{path}: missing 'tournament' section")

    t = raw["tournament"] or {}
    if "type" not in t:
        raise InvalidOptionsError(f"{path}: tournament.type is required")

    data: dict[str, Any] = dict(raw.get("options") or {})
    data["type"] = t["type"]
    if "name" in t:
        data["name"] = t["name"]
    data["participant_names"] = [str(p) for p in raw.get("participants") or []]
    return options_from_dict(data)
