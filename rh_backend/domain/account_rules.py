"""Account rules that are independent from HTTP and the record store.

Collection names, pointer handling, the initial profile shape and the
result types returned by the account workflow live here.

Rule of thumb:
- OK: record shapes, validation, pure transformations.
- Not OK: awaiting the store, FastAPI, logging configuration.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Generic, Optional, TypeVar, Union

USER_CLASS = "_User"
SESSION_CLASS = "_Session"
LOGGED_IN_USERS_CLASS = "RHLoggedInUsers"
WEB_APP_DATA_CLASS = "WebAppData"
REALM_HUNTER_DATA_CLASS = "RealmHunterData"

# Order matters: existence checks report the first kind in this tuple.
PROFILE_DATA_CLASSES = (WEB_APP_DATA_CLASS, REALM_HUNTER_DATA_CLASS)

INITIAL_TIER = "tier0"

T = TypeVar("T")


class ErrorKind(str, Enum):
    NOT_FOUND = "not_found"
    CONFLICT = "conflict"
    MISSING_FIELD = "missing_field"
    STORE_ERROR = "store_error"


@dataclass(frozen=True)
class AccountError:
    kind: ErrorKind
    message: str


@dataclass(frozen=True)
class Ok(Generic[T]):
    value: T


@dataclass(frozen=True)
class Err:
    error: AccountError


Result = Union[Ok[T], Err]


def fail(kind: ErrorKind, message: str) -> Err:
    return Err(AccountError(kind=kind, message=message))


def pointer(object_id: str) -> dict:
    """Return a Parse-style pointer to a `_User` record."""
    return {"__type": "Pointer", "className": USER_CLASS, "objectId": object_id}


def pointer_id(value) -> Optional[str]:
    """Return the object id a pointer refers to, or None if `value` is not a pointer."""
    if isinstance(value, dict):
        return value.get("objectId")
    return None


def capabilities(playfab_id: Optional[str]) -> dict:
    """Capability pair granted at bootstrap.

    Claiming is never enabled here. Depositing is enabled only once the
    user has a PlayFab account linked.
    """
    return {"canClaim": False, "canDeposit": bool(playfab_id)}


def initial_profile_data(user_id: str, address: Optional[str], playfab_id: Optional[str]) -> dict:
    """Fields for a freshly bootstrapped profile record of either kind."""
    fields = {"user": pointer(user_id), "tier": INITIAL_TIER}
    if address:
        fields["address"] = address
    if playfab_id:
        fields["playfabId"] = playfab_id
    fields.update(capabilities(playfab_id))
    return fields


def presence_fields(user_record: dict) -> dict:
    """Fields of the presence record for a resolved user."""
    fields = {"address": user_record["ethAddress"]}
    if user_record.get("email"):
        fields["email"] = user_record["email"]
    return fields
