import asyncio
import copy
import itertools
from collections import defaultdict

import pytest
from fastapi.testclient import TestClient

from rh_backend.domain.account_rules import SESSION_CLASS, USER_CLASS, pointer
from rh_backend.load_secrets import Settings
from rh_backend.main import create_app
from rh_backend.record_store import StoreError
from rh_backend.services.account import AccountWorkflow


class InMemoryRecordStore:
    """RecordStore fake. Every primitive yields to the event loop once, like a network round trip."""

    def __init__(self):
        self.collections = defaultdict(list)
        self.credentials = {}
        self.failing = set()
        self.ids = itertools.count(1)
        self.closed = False

    def _check(self, primitive: str):
        if primitive in self.failing:
            raise StoreError(f"{primitive} unavailable")

    def _insert(self, collection: str, fields: dict) -> dict:
        record = {**copy.deepcopy(fields), "objectId": f"obj{next(self.ids)}"}
        self.collections[collection].append(record)
        return dict(record)

    def _get(self, collection: str, object_id: str) -> dict:
        for record in self.collections[collection]:
            if record["objectId"] == object_id:
                return record
        raise StoreError("Object not found.", code=101)

    def records(self, collection: str) -> list:
        return [dict(record) for record in self.collections[collection]]

    def add_user(self, username: str, password: str, **fields) -> dict:
        user = self._insert(USER_CLASS, {"username": username, **fields})
        self.credentials[username] = (password, user["objectId"])
        return user

    def add_session(self, user_id: str, session_token: str) -> dict:
        return self._insert(SESSION_CLASS, {"sessionToken": session_token, "user": pointer(user_id)})

    async def init(self):
        pass

    async def query_first(self, collection, filters):
        await asyncio.sleep(0)
        self._check("query_first")
        for record in self.collections[collection]:
            if all(record.get(key) == value for key, value in filters.items()):
                return copy.deepcopy(record)
        return None

    async def create(self, collection, fields):
        await asyncio.sleep(0)
        self._check("create")
        return self._insert(collection, fields)

    async def update(self, collection, object_id, fields):
        await asyncio.sleep(0)
        self._check("update")
        self._get(collection, object_id).update(copy.deepcopy(fields))

    async def delete(self, collection, object_id):
        await asyncio.sleep(0)
        self._check("delete")
        self.collections[collection].remove(self._get(collection, object_id))

    async def authenticate(self, login, password):
        await asyncio.sleep(0)
        self._check("authenticate")
        if login not in self.credentials or self.credentials[login][0] != password:
            raise StoreError("Invalid username/password.", code=101)
        user = self._get(USER_CLASS, self.credentials[login][1])
        session_token = f"r:token{next(self.ids)}"
        self.add_session(user["objectId"], session_token)
        return {**user, "sessionToken": session_token}

    async def aclose(self):
        self.closed = True


@pytest.fixture
def store():
    return InMemoryRecordStore()


@pytest.fixture
def workflow(store):
    return AccountWorkflow(store)


@pytest.fixture
def alice(store):
    """User alice/secret with address 0xABC and an open session token."""
    user = store.add_user(
        "alice", "secret", ethAddress="0xABC", email="alice@example.com", userUniqueHash="hash-alice"
    )
    store.add_session(user["objectId"], "r:alice")
    return user


@pytest.fixture
def client(store):
    app = create_app(Settings(record_store="sql", log_level="DEBUG"), store=store)
    with TestClient(app) as test_client:
        yield test_client
