import json
import logging
from typing import Optional

import httpx

from rh_backend.domain.account_rules import SESSION_CLASS, USER_CLASS
from rh_backend.record_store import StoreError

logging.getLogger("httpx").setLevel(logging.WARNING)

# Built-in classes live under their own REST endpoints.
BUILTIN_PATHS = {
    USER_CLASS: "/users",
    SESSION_CLASS: "/sessions",
}


class ParseRecordStore:
    """Record store backed by a Parse Server REST API (Moralis v1 servers included).

    Every request carries the master key, so class-level permissions and
    ACLs do not hide records from the backend.
    """

    def __init__(
        self,
        server_url: str,
        app_id: str,
        master_key: str,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.client = httpx.AsyncClient(
            base_url=server_url.rstrip("/"),
            headers={
                "X-Parse-Application-Id": app_id,
                "X-Parse-Master-Key": master_key,
                "Content-Type": "application/json",
            },
            transport=transport,
        )

    @staticmethod
    def class_path(collection: str) -> str:
        return BUILTIN_PATHS.get(collection, f"/classes/{collection}")

    async def _request(self, method: str, path: str, **kwargs) -> dict:
        """Send a request and return the decoded body

        Raises:
            StoreError: the server could not be reached or answered with a Parse error
        """
        try:
            response = await self.client.request(method, path, **kwargs)
        except httpx.HTTPError as e:
            logging.error(f"Record store request {method} {path} failed: {e}")
            raise StoreError(f"Record store unavailable: {e}") from e

        try:
            body = response.json() if response.content else {}
        except ValueError:
            body = {}

        if response.is_error:
            message = body.get("error") or f"Record store returned HTTP {response.status_code}"
            logging.error(f"Record store request {method} {path} failed: {message}")
            raise StoreError(message, code=body.get("code"))
        return body

    async def init(self) -> None:
        pass

    async def query_first(self, collection: str, filters: dict) -> Optional[dict]:
        body = await self._request(
            "GET",
            self.class_path(collection),
            params={"where": json.dumps(filters), "limit": 1},
        )
        results = body.get("results") or []
        return results[0] if results else None

    async def create(self, collection: str, fields: dict) -> dict:
        body = await self._request("POST", self.class_path(collection), json=fields)
        return {**fields, **body}

    async def update(self, collection: str, object_id: str, fields: dict) -> None:
        await self._request("PUT", f"{self.class_path(collection)}/{object_id}", json=fields)

    async def delete(self, collection: str, object_id: str) -> None:
        await self._request("DELETE", f"{self.class_path(collection)}/{object_id}")

    async def authenticate(self, login: str, password: str) -> dict:
        return await self._request(
            "GET",
            "/login",
            params={"username": login, "password": password},
            headers={"X-Parse-Revocable-Session": "1"},
        )

    async def aclose(self) -> None:
        await self.client.aclose()
