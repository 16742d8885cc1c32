"""Exception taxonomy for tournament engines.

Every failure is raised synchronously at the point of violation and carries
a human-readable message meant to be shown to the user as-is.
"""


class TournamentError(Exception):
    """Base class for every error raised by bracketeer."""


# ── Lifecycle ────────────────────────────────────────────────────

class LifecycleError(TournamentError):
    """Operation not allowed in the tournament's current state."""


# ── Validation ───────────────────────────────────────────────────

class InvalidOptionsError(TournamentError, ValueError):
    """Tournament options or roster are invalid."""


class InvalidResultError(TournamentError, ValueError):
    """A match result has the wrong shape for the match or format."""


class InvalidExportError(TournamentError, ValueError):
    """An export document is malformed."""


# ── Lookups ──────────────────────────────────────────────────────

class NotFoundError(TournamentError, LookupError):
    """Referenced object does not exist."""


class MatchNotFoundError(NotFoundError):
    pass


class ParticipantNotFoundError(NotFoundError):
    pass


class TournamentNotFoundError(NotFoundError):
    pass
