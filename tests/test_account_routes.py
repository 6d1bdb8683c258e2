from fastapi.testclient import TestClient

from rh_backend.domain.account_rules import LOGGED_IN_USERS_CLASS, REALM_HUNTER_DATA_CLASS
from rh_backend.load_secrets import Settings
from rh_backend.main import create_app

PREFIX = "/rh-backend/account"


def test_user_login(client: TestClient, alice):
    response = client.post(f"{PREFIX}/userLogin", json={"username": "alice", "password": "secret"})

    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "ok"
    assert body["sessionToken"].startswith("r:")
    assert body["userUniqueHash"] == "hash-alice"


def test_user_login_bad_credentials(client: TestClient, alice):
    response = client.post(f"{PREFIX}/userLogin", json={"username": "alice", "password": "nope"})

    assert response.status_code == 400
    assert response.json() == {
        "status": "error",
        "kind": "store_error",
        "message": "Invalid username/password.",
    }


def test_user_login_missing_field_is_rejected(client: TestClient):
    response = client.post(f"{PREFIX}/userLogin", json={"username": "alice"})

    assert response.status_code == 422


def test_retrieve_user_by_session_token(client: TestClient, alice):
    response = client.post(f"{PREFIX}/retrieveUserBySessionToken", json={"sessionToken": "r:alice"})

    assert response.status_code == 200
    assert response.json()["objectId"] == alice["objectId"]
    assert response.json()["ethAddress"] == "0xABC"


def test_retrieve_user_by_unknown_session_token(client: TestClient):
    response = client.post(f"{PREFIX}/retrieveUserBySessionToken", json={"sessionToken": "r:none"})

    assert response.status_code == 400
    assert response.json()["kind"] == "not_found"
    assert response.json()["message"] == "Session token not found"


def test_logged_in_user_flow(client: TestClient, store, alice):
    login = client.post(f"{PREFIX}/userLogin", json={"username": "alice", "password": "secret"})
    token = login.json()["sessionToken"]

    user = client.post(f"{PREFIX}/retrieveUserBySessionToken", json={"sessionToken": token})
    assert user.json()["ethAddress"] == "0xABC"

    added = client.post(f"{PREFIX}/addLoggedInUser", json={"sessionToken": token})
    assert added.status_code == 200
    assert added.json() == {"status": "ok", "user": "0xABC"}

    again = client.post(f"{PREFIX}/addLoggedInUser", json={"sessionToken": token})
    assert again.status_code == 400
    assert again.json() == {"status": "error", "kind": "conflict", "message": "User is already logged in"}

    removed = client.post(f"{PREFIX}/removeLoggedInUser", json={"address": "0xABC"})
    assert removed.status_code == 200
    assert store.records(LOGGED_IN_USERS_CLASS) == []

    removed_again = client.post(f"{PREFIX}/removeLoggedInUser", json={"address": "0xABC"})
    assert removed_again.status_code == 400
    assert removed_again.json()["message"] == "User not found"


def test_user_data_flow(client: TestClient, store, alice):
    user_id = alice["objectId"]

    missing = client.post(f"{PREFIX}/checkUserDataExists", json={"userObjId": user_id})
    assert missing.status_code == 400
    assert missing.json()["message"] == "WebAppData not found for this user"

    added = client.post(f"{PREFIX}/addUserData", json={"userObjId": user_id})
    assert added.status_code == 200
    assert added.json() == {"status": "ok"}

    exists = client.post(f"{PREFIX}/checkUserDataExists", json={"userObjId": user_id})
    assert exists.status_code == 200
    assert exists.json() is True

    again = client.post(f"{PREFIX}/addUserData", json={"userObjId": user_id, "playfabId": "PF1"})
    assert again.status_code == 400
    assert again.json()["kind"] == "conflict"
    assert again.json()["message"] == "WebAppData already exists for this user"


def test_add_user_data_with_playfab_id(client: TestClient, store, alice):
    response = client.post(f"{PREFIX}/addUserData", json={"userObjId": alice["objectId"], "playfabId": "PF1"})

    assert response.status_code == 200
    [record] = store.records(REALM_HUNTER_DATA_CLASS)
    assert record["canDeposit"] is True
    assert record["canClaim"] is False


def test_playfab_flow(client: TestClient, alice):
    user_id = alice["objectId"]
    client.post(f"{PREFIX}/addUserData", json={"userObjId": user_id})

    before = client.post(f"{PREFIX}/checkPlayfabIdExists", json={"userObjId": user_id})
    assert before.json() is False

    no_id = client.get(f"{PREFIX}/getPlayfabId/0xABC")
    assert no_id.status_code == 400
    assert no_id.json()["kind"] == "missing_field"

    linked = client.post(f"{PREFIX}/addPlayfabId", json={"userObjId": user_id, "playfabId": "PF7"})
    assert linked.json() == {"status": "ok"}

    after = client.post(f"{PREFIX}/checkPlayfabIdExists", json={"userObjId": user_id})
    assert after.json() is True

    found = client.get(f"{PREFIX}/getPlayfabId/0xABC")
    assert found.status_code == 200
    assert found.json() == {"status": "ok", "playfabId": "PF7"}


def test_get_user_id_from_unique_hash(client: TestClient, alice):
    response = client.post(f"{PREFIX}/getUserIdFromUniqueHash", json={"uniqueHash": "hash-alice"})

    assert response.status_code == 200
    assert response.json() == {"status": "ok", "userObjId": alice["objectId"]}


def test_store_failure_is_reported_as_error(client: TestClient, store, alice):
    store.failing.add("query_first")

    response = client.post(f"{PREFIX}/removeLoggedInUser", json={"address": "0xABC"})

    assert response.status_code == 400
    assert response.json() == {"status": "error", "kind": "store_error", "message": "query_first unavailable"}


def test_store_is_closed_on_shutdown(store):
    with TestClient(create_app(Settings(record_store="sql"), store=store)):
        assert store.closed is False
    assert store.closed is True
