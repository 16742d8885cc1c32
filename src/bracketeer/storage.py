"""Export documents and the file-backed tournament store.

An export document wraps one tournament state as
``{exportVersion, exportDate, state}`` and is the exchange format between
users. The store keeps every saved state in a single JSON object keyed by
tournament id and rewrites the whole file on each change.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping

import jsonschema

from bracketeer.core.errors import InvalidExportError, TournamentNotFoundError
from bracketeer.core.models import format_timestamp, generate_id, utcnow
from bracketeer.factory import restore_tournament
from bracketeer.formats.base import Tournament

logger = logging.getLogger(__name__)

EXPORT_VERSION = "1.0.0"
SCHEMA_PATH = Path(__file__).parent / "schemas" / "export_document.json"


def load_schema(path: Path = SCHEMA_PATH) -> dict:
    """Read a JSON Schema document from disk."""
    with open(path) as f:
        return json.load(f)


_export_schema: dict | None = None


def _schema() -> dict:
    global _export_schema
    if _export_schema is None:
        _export_schema = load_schema()
    return _export_schema


# ── Export documents ─────────────────────────────────────────────

def build_export(source: Tournament | Mapping[str, Any]) -> dict:
    """Wrap a tournament (or an exported state) in an export envelope."""
    state = source.export() if isinstance(source, Tournament) else dict(source)
    return {
        "exportVersion": EXPORT_VERSION,
        "exportDate": format_timestamp(utcnow()),
        "state": state,
    }


def validate_export(document: Any) -> None:
    try:
        jsonschema.validate(instance=document, schema=_schema())
    except jsonschema.ValidationError as exc:
        raise InvalidExportError(f"Invalid tournament export format: {exc.message}") from exc


def dumps_export(source: Tournament | Mapping[str, Any]) -> str:
    return json.dumps(build_export(source), indent=2)


def loads_export(text: str) -> dict:
    """Parse and validate an export document."""
    try:
        document = json.loads(text)
    except json.JSONDecodeError as exc:
        raise InvalidExportError(f"Export is not valid JSON: {exc}") from exc
    validate_export(document)
    return document


def import_tournament(text: str) -> Tournament:
    """Restore a live tournament straight from export-document text."""
    return restore_tournament(loads_export(text)["state"])


# ── Store ────────────────────────────────────────────────────────

@dataclass(frozen=True)
class TournamentSummary:
    id: str
    name: str
    type: str
    created_at: str
    updated_at: str
    started: bool
    completed: bool


class TournamentStore:
    """Whole-value key-value store of tournament states in one JSON file.

    There is no locking: concurrent writers are not coordinated and the
    last write wins.
    """

    def __init__(self, path: Path | str):
        self.path = Path(path)

    def _read(self) -> dict[str, dict]:
        if not self.path.exists():
            return {}
        with open(self.path) as f:
            try:
                data = json.load(f)
            except json.JSONDecodeError as exc:
                raise InvalidExportError(f"{self.path}: store is not valid JSON") from exc
        if not isinstance(data, dict):
            raise InvalidExportError(f"{self.path}: store must be a JSON object")
        return data

    def _write(self, data: dict[str, dict]) -> None:
        """Write the store atomically (tmp + rename)."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(dir=self.path.parent, suffix=".tmp")
        try:
            with os.fdopen(fd, "w") as f:
                json.dump(data, f, indent=2)
            os.replace(tmp_path, self.path)
        except Exception:
            try:
                os.unlink(tmp_path)
            except OSError:
                pass
            raise

    # ── Key-value surface ────────────────────────────────────────

    def get(self, tournament_id: str) -> dict | None:
        return self._read().get(tournament_id)

    def set(self, state: Mapping[str, Any]) -> None:
        data = self._read()
        data[state["id"]] = dict(state)
        self._write(data)

    def delete(self, tournament_id: str) -> bool:
        data = self._read()
        if tournament_id not in data:
            return False
        del data[tournament_id]
        self._write(data)
        return True

    def list(self) -> list[TournamentSummary]:
        return [
            TournamentSummary(
                id=state["id"],
                name=state["name"],
                type=state["type"],
                created_at=state["createdAt"],
                updated_at=state["updatedAt"],
                started=state["started"],
                completed=state["completed"],
            )
            for state in self._read().values()
        ]

    def clear(self) -> None:
        if self.path.exists():
            self.path.unlink()

    # ── Tournaments ──────────────────────────────────────────────

    def save(self, tournament: Tournament) -> dict:
        state = tournament.export()
        self.set(state)
        logger.debug("Saved tournament %s to %s", tournament.id, self.path)
        return state

    def load(self, tournament_id: str) -> Tournament:
        state = self.get(tournament_id)
        if state is None:
            raise TournamentNotFoundError(f"Tournament with id {tournament_id} not found")
        return restore_tournament(state)

    def export(self, tournament_id: str) -> str:
        state = self.get(tournament_id)
        if state is None:
            raise TournamentNotFoundError(f"Tournament with id {tournament_id} not found")
        return dumps_export(state)

    def import_export(self, text: str) -> str:
        """Store the tournament in an export document and return its id.

        A tournament whose id is already stored is saved under a fresh id
        with " (Imported)" appended to its name.
        """
        state = dict(loads_export(text)["state"])
        if self.get(state["id"]) is not None:
            state["id"] = generate_id()
            state["name"] = f"{state['name']} (Imported)"
        self.set(state)
        logger.info("Imported tournament %r as %s", state["name"], state["id"])
        return state["id"]
