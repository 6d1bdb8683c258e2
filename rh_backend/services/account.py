"""Account workflow: login, session resolution, presence and profile data.

- Routers never touch the record store directly; they call this module.
- Every operation returns `Ok(value)` or `Err(AccountError)`; a `StoreError`
  raised by the store is turned into an `Err` of kind `store_error`.
- The first failure aborts the remaining steps. Nothing is rolled back.
- Existence guards are check-then-act against the store, so two concurrent
  calls for the same address or user can both pass them.
"""

import asyncio
import functools
import logging
from typing import Optional, Set

from rh_backend.domain.account_rules import (
    LOGGED_IN_USERS_CLASS,
    PROFILE_DATA_CLASSES,
    REALM_HUNTER_DATA_CLASS,
    SESSION_CLASS,
    USER_CLASS,
    ErrorKind,
    Err,
    Ok,
    Result,
    fail,
    initial_profile_data,
    pointer,
    pointer_id,
    presence_fields,
)
from rh_backend.models.schema_models import (
    LoggedInUserSchema,
    LoginSchema,
    PlayfabIdSchema,
    StatusSchema,
    UserIdSchema,
)
from rh_backend.record_store import RecordStore, StoreError


def store_errors(operation):
    """Turn a StoreError escaping `operation` into an Err result."""

    @functools.wraps(operation)
    async def wrapper(*args, **kwargs):
        try:
            return await operation(*args, **kwargs)
        except StoreError as e:
            logging.error(f"{operation.__name__} failed in the record store: {e.message}")
            return fail(ErrorKind.STORE_ERROR, e.message)

    return wrapper


class AccountWorkflow:
    def __init__(self, store: RecordStore):
        self.store = store
        self.pending_writes: Set[asyncio.Task] = set()

    async def _find_user(self, user_id: Optional[str]) -> Result[dict]:
        if not user_id:
            return fail(ErrorKind.NOT_FOUND, "User not found")
        user = await self.store.query_first(USER_CLASS, {"objectId": user_id})
        if user is None:
            return fail(ErrorKind.NOT_FOUND, "User not found")
        return Ok(user)

    async def _resolve_identity(self, session_token: str) -> Result[dict]:
        """Resolve the `_User` record owning a session token"""
        session = await self.store.query_first(SESSION_CLASS, {"sessionToken": session_token})
        if session is None:
            return fail(ErrorKind.NOT_FOUND, "Session token not found")
        return await self._find_user(pointer_id(session.get("user")))

    @store_errors
    async def authenticate(self, login: str, password: str) -> Result[LoginSchema]:
        """Log the user in to the record store

        Args:
            login (str): the user's login
            password (str): the user's password

        Returns:
            Result[LoginSchema]: `status`, `sessionToken` and `userUniqueHash`
        """
        user = await self.store.authenticate(login, password)
        logging.info(f"User {login} logged in")
        return Ok(
            LoginSchema(
                session_token=user["sessionToken"],
                user_unique_hash=user.get("userUniqueHash"),
            )
        )

    @store_errors
    async def resolve_identity_by_session(self, session_token: str) -> Result[dict]:
        return await self._resolve_identity(session_token)

    @store_errors
    async def mark_present(self, session_token: str) -> Result[LoggedInUserSchema]:
        """Add the user owning `session_token` to the logged-in users after logging into Realm Hunter.

        The presence record is written in the background: success is
        reported before the write is durable, and a failed write is only
        logged.
        """
        resolved = await self._resolve_identity(session_token)
        if isinstance(resolved, Err):
            return resolved
        user = resolved.value

        address = user.get("ethAddress")
        if not address:
            return fail(ErrorKind.MISSING_FIELD, "User has no ETH address")

        logged_in = await self.store.query_first(LOGGED_IN_USERS_CLASS, {"address": address})
        if logged_in is not None:
            logging.warning(f"User {address} is already logged in")
            return fail(ErrorKind.CONFLICT, "User is already logged in")

        task = asyncio.create_task(self.store.create(LOGGED_IN_USERS_CLASS, presence_fields(user)))
        self.pending_writes.add(task)
        task.add_done_callback(self._write_finished)
        return Ok(LoggedInUserSchema(user=address))

    def _write_finished(self, task: asyncio.Task) -> None:
        self.pending_writes.discard(task)
        if task.cancelled():
            logging.warning("Logged-in user write was cancelled")
        elif task.exception() is not None:
            logging.error(f"Failed to save logged-in user: {task.exception()}")
        else:
            logging.info(f"Saved logged-in user {task.result().get('address')}")

    async def drain(self) -> None:
        """Wait for background writes still in flight."""
        if self.pending_writes:
            await asyncio.gather(*self.pending_writes, return_exceptions=True)

    @store_errors
    async def mark_absent(self, address: str) -> Result[StatusSchema]:
        """Remove a logged-in user after logging out of Realm Hunter."""
        logged_in = await self.store.query_first(LOGGED_IN_USERS_CLASS, {"address": address})
        if logged_in is None:
            return fail(ErrorKind.NOT_FOUND, "User not found")

        await self.store.delete(LOGGED_IN_USERS_CLASS, logged_in["objectId"])
        logging.info(f"User {address} logged out")
        return Ok(StatusSchema())

    @store_errors
    async def bootstrap_profile_data(
        self, user_id: str, playfab_id: Optional[str] = None
    ) -> Result[StatusSchema]:
        """Create the WebAppData and RealmHunterData records of a user

        Args:
            user_id (str): object id of the `_User`
            playfab_id (Optional[str]): PlayFab id; enables depositing when given

        Returns:
            Result[StatusSchema]: Conflict names the first kind that already exists
        """
        found = await self._find_user(user_id)
        if isinstance(found, Err):
            return found
        user = found.value

        for collection in PROFILE_DATA_CLASSES:
            existing = await self.store.query_first(collection, {"user": pointer(user_id)})
            if existing is not None:
                logging.warning(f"{collection} already exists for user {user_id}")
                return fail(ErrorKind.CONFLICT, f"{collection} already exists for this user")

        fields = initial_profile_data(user_id, user.get("ethAddress"), playfab_id)
        for collection in PROFILE_DATA_CLASSES:
            await self.store.create(collection, dict(fields))
        logging.info(f"Created profile data for user {user_id}")
        return Ok(StatusSchema())

    @store_errors
    async def check_profile_data_exists(self, user_id: str) -> Result[bool]:
        """Return Ok(True) when both profile kinds exist.

        Both kinds are queried before branching. A missing kind is reported
        as NotFound, never as Ok(False).
        """
        existing = {}
        for collection in PROFILE_DATA_CLASSES:
            existing[collection] = await self.store.query_first(collection, {"user": pointer(user_id)})
        for collection in PROFILE_DATA_CLASSES:
            if existing[collection] is None:
                return fail(ErrorKind.NOT_FOUND, f"{collection} not found for this user")
        return Ok(True)

    @store_errors
    async def get_user_id_from_unique_hash(self, unique_hash: str) -> Result[UserIdSchema]:
        user = await self.store.query_first(USER_CLASS, {"userUniqueHash": unique_hash})
        if user is None:
            return fail(ErrorKind.NOT_FOUND, "User not found")
        return Ok(UserIdSchema(user_obj_id=user["objectId"]))

    async def _find_realm_hunter_data(self, user_id: str) -> Result[dict]:
        data = await self.store.query_first(REALM_HUNTER_DATA_CLASS, {"user": pointer(user_id)})
        if data is None:
            return fail(ErrorKind.NOT_FOUND, f"{REALM_HUNTER_DATA_CLASS} not found for this user")
        return Ok(data)

    @store_errors
    async def link_playfab_id(self, user_id: str, playfab_id: str) -> Result[StatusSchema]:
        """Attach a PlayFab id to the user's RealmHunterData and enable depositing."""
        found = await self._find_user(user_id)
        if isinstance(found, Err):
            return found

        data = await self._find_realm_hunter_data(user_id)
        if isinstance(data, Err):
            return data
        if data.value.get("playfabId"):
            return fail(ErrorKind.CONFLICT, "PlayFab ID already exists for this user")

        await self.store.update(
            REALM_HUNTER_DATA_CLASS,
            data.value["objectId"],
            {"playfabId": playfab_id, "canDeposit": True},
        )
        logging.info(f"Linked PlayFab ID to user {user_id}")
        return Ok(StatusSchema())

    @store_errors
    async def get_playfab_id(self, address: str) -> Result[PlayfabIdSchema]:
        data = await self.store.query_first(REALM_HUNTER_DATA_CLASS, {"address": address})
        if data is None:
            return fail(ErrorKind.NOT_FOUND, f"{REALM_HUNTER_DATA_CLASS} not found for this address")
        if not data.get("playfabId"):
            return fail(ErrorKind.MISSING_FIELD, "User has no PlayFab ID")
        return Ok(PlayfabIdSchema(playfab_id=data["playfabId"]))

    @store_errors
    async def check_playfab_id_exists(self, user_id: str) -> Result[bool]:
        data = await self._find_realm_hunter_data(user_id)
        if isinstance(data, Err):
            return data
        return Ok(bool(data.value.get("playfabId")))
