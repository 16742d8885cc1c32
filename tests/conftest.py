"""Shared test fixtures for bracketeer."""

import pytest

from bracketeer.storage import TournamentStore


@pytest.fixture
def store(tmp_path):
    """A store backed by a file in a temporary directory."""
    return TournamentStore(tmp_path / "tournaments.json")
