"""
Tests for database/database.py and database/local_store.py.

Uses a real SQLite file in a pytest tmp_path so every test gets an isolated DB.
No network, no async: pure local persistence.
"""
import json
import sqlite3

import pytest

import database.database as db
from database.local_store import LocalStore, decode_collection
from utils.errors import DeserializeError, PersistError


# ── Fixture ───────────────────────────────────────────────────

@pytest.fixture()
def tdb(tmp_path, monkeypatch):
    """Patch DB_PATH to a fresh temp file and initialise the schema."""
    db_path = str(tmp_path / "test.db")
    monkeypatch.setattr(db, 'DB_PATH', db_path)
    db.init_db()
    return db_path


# ── Helpers ───────────────────────────────────────────────────

def _raw(db_path: str, sql: str, params=()):
    """Run a raw query against the test DB and return fetchall."""
    conn = sqlite3.connect(db_path)
    conn.row_factory = sqlite3.Row
    cur = conn.execute(sql, params)
    rows = cur.fetchall()
    conn.close()
    return [dict(r) for r in rows]


def _deck(deck_id='deck-1', name='French', cards=None):
    return {'id': deck_id, 'name': name, 'createdAt': '2024-01-01T00:00:00.000Z', 'cards': cards or []}


def _card(card_id='card-1', front='q', back='a', status='unknown'):
    return {'id': card_id, 'front': front, 'back': back, 'status': status,
            'createdAt': '2024-01-01T00:00:00.000Z'}


# ── Key / value ───────────────────────────────────────────────

class TestKeyValue:
    def test_get_missing_returns_none(self, tdb):
        assert db.get_value('nope') is None

    def test_set_and_get(self, tdb):
        db.set_value('k', 'v')
        assert db.get_value('k') == 'v'

    def test_set_overwrites_single_row(self, tdb):
        db.set_value('k', 'one')
        db.set_value('k', 'two')
        assert db.get_value('k') == 'two'
        assert len(_raw(tdb, 'SELECT * FROM kv_store')) == 1

    def test_delete(self, tdb):
        db.set_value('k', 'v')
        assert db.delete_value('k') is True
        assert db.get_value('k') is None

    def test_delete_missing_returns_false(self, tdb):
        assert db.delete_value('k') is False

    def test_init_db_is_idempotent(self, tdb):
        db.set_value('k', 'v')
        db.init_db()
        assert db.get_value('k') == 'v'

    def test_explicit_path_overrides_default(self, tdb, tmp_path):
        other = str(tmp_path / "other.db")
        db.init_db(other)
        db.set_value('k', 'elsewhere', other)
        assert db.get_value('k') is None
        assert db.get_value('k', other) == 'elsewhere'


# ── Local store ───────────────────────────────────────────────

class TestLocalStore:
    def test_load_never_saved_is_none(self, local):
        assert local.load() is None

    def test_save_then_load(self, local):
        decks = [_deck(cards=[_card()])]
        local.save(decks)
        assert local.load() == decks

    def test_stored_under_fixed_key(self, local, db_path):
        local.save([])
        rows = _raw(db_path, 'SELECT key, value FROM kv_store')
        assert rows == [{'key': 'flashcards_data', 'value': '[]'}]

    def test_corrupt_blob_loads_as_none(self, local, db_path):
        db.set_value('flashcards_data', '{not json', db_path)
        assert local.load() is None

    def test_non_list_blob_loads_as_none(self, local, db_path):
        db.set_value('flashcards_data', '{"id": "deck-1"}', db_path)
        assert local.load() is None

    def test_clear_removes_state(self, local):
        local.save([_deck()])
        local.clear()
        assert local.load() is None

    def test_on_save_receives_snapshot(self, db_path):
        seen = []
        store = LocalStore(db_path, on_save=seen.append)
        decks = [_deck()]
        store.save(decks)
        assert seen == [decks]
        # the hook gets its own copy
        seen[0][0]['name'] = 'changed'
        assert decks[0]['name'] == 'French'

    def test_unwritable_path_raises_persist_error(self, tmp_path):
        # a directory cannot be opened as a database file
        store = LocalStore(str(tmp_path))
        with pytest.raises(PersistError):
            store.save([])

    def test_unwritable_path_reads_as_absent(self, tmp_path):
        assert LocalStore(str(tmp_path)).load() is None

    def test_failed_save_does_not_call_hook(self, tmp_path):
        seen = []
        store = LocalStore(str(tmp_path), on_save=seen.append)
        with pytest.raises(PersistError):
            store.save([_deck()])
        assert seen == []


# ── Decoding defaults ─────────────────────────────────────────

class TestDecodeCollection:
    def test_missing_cards_defaults_to_empty(self):
        decks = decode_collection(json.dumps([{'id': 'deck-1', 'name': 'A'}]))
        assert decks[0]['cards'] == []

    def test_missing_status_defaults_to_unknown(self):
        raw = json.dumps([_deck(cards=[{'id': 'c1', 'front': 'q', 'back': 'a'}])])
        assert decode_collection(raw)[0]['cards'][0]['status'] == 'unknown'

    def test_bogus_status_defaults_to_unknown(self):
        raw = json.dumps([_deck(cards=[_card(status='mastered')])])
        assert decode_collection(raw)[0]['cards'][0]['status'] == 'unknown'

    def test_unknown_fields_preserved(self):
        raw = json.dumps([dict(_deck(), color='blue')])
        assert decode_collection(raw)[0]['color'] == 'blue'

    def test_entries_without_id_dropped(self):
        raw = json.dumps([{'name': 'no id'}, 'junk', _deck(cards=[{'front': 'x'}, _card()])])
        decks = decode_collection(raw)
        assert [d['id'] for d in decks] == ['deck-1']
        assert [c['id'] for c in decks[0]['cards']] == ['card-1']

    def test_invalid_json_raises(self):
        with pytest.raises(DeserializeError):
            decode_collection('[')

    def test_top_level_object_raises(self):
        with pytest.raises(DeserializeError):
            decode_collection('{}')
