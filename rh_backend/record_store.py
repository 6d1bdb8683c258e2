from typing import Optional, Protocol


class StoreError(Exception):
    """Raised when a record store primitive fails (bad credentials, connectivity, missing object)."""

    def __init__(self, message: str, code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.code = code


class RecordStore(Protocol):
    """Keyed document store holding every record the account service touches.

    Records are plain dicts carrying at least `objectId`. Filters are
    equality filters; a filter value may be a pointer dict, which matches
    records referencing the same object. Every failure raises `StoreError`.
    """

    async def init(self) -> None:
        """Prepare the backing storage before the first request."""
        ...

    async def query_first(self, collection: str, filters: dict) -> Optional[dict]:
        """Return the first record of `collection` matching every filter, or None."""
        ...

    async def create(self, collection: str, fields: dict) -> dict:
        """Create a record and return it with its `objectId`."""
        ...

    async def update(self, collection: str, object_id: str, fields: dict) -> None:
        """Set `fields` on an existing record."""
        ...

    async def delete(self, collection: str, object_id: str) -> None:
        ...

    async def authenticate(self, login: str, password: str) -> dict:
        """Log a user in and return `objectId`, `sessionToken` and `userUniqueHash`."""
        ...

    async def aclose(self) -> None:
        ...
