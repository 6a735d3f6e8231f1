"""
Shared fixtures: isolated sqlite files and an in-memory fake of the remote
REST table store, served through httpx.MockTransport.
"""
import json

import httpx
import pytest

import database.database as db
from database.local_store import LocalStore
from sync.client import RemoteStoreClient


class FakeRemote:
    """Tiny REST table store: GET/POST/PATCH/DELETE on /rest/v1/{table} with eq filters."""

    def __init__(self):
        self.tables = {'decks': [], 'cards': []}
        self.calls = []
        self.fail_on = set()

    def count(self, method, table):
        return sum(1 for m, t, _ in self.calls if m == method and t == table)

    def _matches(self, row, params):
        for column, value in params.items():
            if column == 'limit':
                continue
            if value.startswith('eq.') and str(row.get(column)) != value[3:]:
                return False
        return True

    def __call__(self, request: httpx.Request) -> httpx.Response:
        table = request.url.path.rsplit('/', 1)[-1]
        params = dict(request.url.params)
        self.calls.append((request.method, table, params))

        if (request.method, table) in self.fail_on:
            return httpx.Response(500, json={'message': f'{table} is on fire'})

        rows = self.tables.setdefault(table, [])
        matched = [r for r in rows if self._matches(r, params)]

        if request.method == 'GET':
            if 'limit' in params:
                matched = matched[:int(params['limit'])]
            return httpx.Response(200, json=matched)

        if request.method == 'POST':
            row = json.loads(request.content)
            rows.append(row)
            return httpx.Response(201, json=[row])

        if request.method == 'PATCH':
            patch = json.loads(request.content)
            for row in matched:
                row.update(patch)
            return httpx.Response(200, json=matched)

        if request.method == 'DELETE':
            self.tables[table] = [r for r in rows if r not in matched]
            return httpx.Response(204)

        return httpx.Response(405, json={'message': 'method not allowed'})


@pytest.fixture()
def db_path(tmp_path):
    path = str(tmp_path / "flashcards.db")
    db.init_db(path)
    return path


@pytest.fixture()
def local(db_path):
    return LocalStore(db_path)


@pytest.fixture()
def fake_remote():
    return FakeRemote()


@pytest.fixture()
def client(fake_remote):
    return RemoteStoreClient(
        "https://remote.test",
        "anon-key",
        transport=httpx.MockTransport(fake_remote),
    )
