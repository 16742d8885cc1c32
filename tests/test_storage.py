"""Tests for export documents and the file-backed store."""

import json

import pytest

from bracketeer.core.errors import InvalidExportError, TournamentNotFoundError
from bracketeer.core.models import MatchResult
from bracketeer.factory import create_tournament
from bracketeer.storage import (
    EXPORT_VERSION,
    build_export,
    dumps_export,
    import_tournament,
    loads_export,
    validate_export,
)

from helpers import roster


def started(kind="single-elimination", count=4, name="Cup"):
    t = create_tournament({"type": kind, "name": name, "participantNames": roster(count)})
    t.start()
    return t


# ── Export documents ─────────────────────────────────────────────


class TestExportDocuments:
    def test_envelope(self):
        document = build_export(started())
        assert document["exportVersion"] == EXPORT_VERSION
        assert document["exportDate"].endswith("Z")
        assert document["state"]["type"] == "single-elimination"

    def test_every_format_validates(self):
        for kind in ("single-elimination", "double-elimination", "round-robin", "swiss", "free-for-all"):
            validate_export(build_export(started(kind)))

    def test_missing_state_rejected(self):
        with pytest.raises(InvalidExportError, match="Invalid tournament export format"):
            validate_export({"exportVersion": "1.0.0", "exportDate": "x"})

    def test_bad_type_rejected(self):
        document = build_export(started())
        document["state"]["type"] = "bowling"
        with pytest.raises(InvalidExportError):
            validate_export(document)

    def test_not_json(self):
        with pytest.raises(InvalidExportError, match="not valid JSON"):
            loads_export("{nope")

    def test_import_tournament(self):
        t = started()
        match = t.get_current_matches()[0]
        t.record_match_result(match.id, MatchResult.win(match.participant_ids[0]))
        restored = import_tournament(dumps_export(t))
        assert restored.id == t.id
        assert restored.get_match(match.id).is_completed


# ── Store ────────────────────────────────────────────────────────


class TestTournamentStore:
    def test_empty_store(self, store):
        assert store.list() == []
        assert store.get("missing") is None

    def test_save_and_load(self, store):
        t = started()
        store.save(t)
        loaded = store.load(t.id)
        assert loaded.name == "Cup"
        assert [m.id for m in loaded.get_current_matches()] == [
            m.id for m in t.get_current_matches()
        ]

    def test_load_missing(self, store):
        with pytest.raises(TournamentNotFoundError, match="Tournament with id x not found"):
            store.load("x")

    def test_list_summaries(self, store):
        store.save(started(name="A"))
        store.save(started("swiss", name="B"))
        summaries = sorted(store.list(), key=lambda s: s.name)
        assert [(s.name, s.type, s.started) for s in summaries] == [
            ("A", "single-elimination", True),
            ("B", "swiss", True),
        ]

    def test_delete(self, store):
        t = started()
        store.save(t)
        assert store.delete(t.id) is True
        assert store.delete(t.id) is False
        assert store.get(t.id) is None

    def test_clear(self, store):
        store.save(started())
        store.clear()
        assert store.list() == []
        assert not store.path.exists()

    def test_file_is_plain_json(self, store):
        t = started()
        store.save(t)
        data = json.loads(store.path.read_text())
        assert list(data) == [t.id]
        assert not list(store.path.parent.glob("*.tmp"))

    def test_corrupt_file(self, store):
        store.path.write_text("not json")
        with pytest.raises(InvalidExportError):
            store.list()

    def test_export_from_store(self, store):
        t = started()
        store.save(t)
        document = loads_export(store.export(t.id))
        assert document["state"]["id"] == t.id

    def test_import_new(self, store):
        t = started()
        new_id = store.import_export(dumps_export(t))
        assert new_id == t.id
        assert store.get(t.id)["name"] == "Cup"

    def test_import_duplicate_gets_new_id(self, store):
        t = started()
        store.save(t)
        new_id = store.import_export(dumps_export(t))
        assert new_id != t.id
        assert store.get(new_id)["name"] == "Cup (Imported)"
        assert len(store.list()) == 2

    def test_import_invalid(self, store):
        with pytest.raises(InvalidExportError):
            store.import_export(json.dumps({"state": {}}))
        assert store.list() == []
