"""Bracket and schedule engines for five tournament formats."""

from bracketeer.config import (
    DoubleEliminationOptions,
    FreeForAllOptions,
    RoundRobinOptions,
    SingleEliminationOptions,
    SwissOptions,
    load_options,
)
from bracketeer.core.errors import (
    InvalidExportError,
    InvalidOptionsError,
    InvalidResultError,
    LifecycleError,
    MatchNotFoundError,
    NotFoundError,
    ParticipantNotFoundError,
    TournamentError,
    TournamentNotFoundError,
)
from bracketeer.core.models import Match, MatchResult, MatchStatus, Participant, Ranking, Standing
from bracketeer.core.points import PointsSystemConfig, PointsSystemType
from bracketeer.factory import (
    create_tournament,
    get_default_options,
    restore_tournament,
    validate_options,
)
from bracketeer.formats.base import Tournament
from bracketeer.storage import TournamentStore, build_export, dumps_export, loads_export

__version__ = "0.3.0"

__all__ = [
    "DoubleEliminationOptions",
    "FreeForAllOptions",
    "InvalidExportError",
    "InvalidOptionsError",
    "InvalidResultError",
    "LifecycleError",
    "Match",
    "MatchNotFoundError",
    "MatchResult",
    "MatchStatus",
    "NotFoundError",
    "Participant",
    "ParticipantNotFoundError",
    "PointsSystemConfig",
    "PointsSystemType",
    "Ranking",
    "RoundRobinOptions",
    "SingleEliminationOptions",
    "Standing",
    "SwissOptions",
    "Tournament",
    "TournamentError",
    "TournamentNotFoundError",
    "TournamentStore",
    "build_export",
    "create_tournament",
    "dumps_export",
    "get_default_options",
    "load_options",
    "loads_export",
    "restore_tournament",
    "validate_options",
]
