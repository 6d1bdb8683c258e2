import hashlib
import logging
import secrets
from typing import Optional

from sqlalchemy import Select, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker
from uuid6 import uuid7

from rh_backend.domain.account_rules import SESSION_CLASS, USER_CLASS, pointer
from rh_backend.models.schemas import Base, CredentialTable, RecordTable
from rh_backend.record_store import StoreError

logging.getLogger("aiosqlite").setLevel(logging.WARNING)


def hash_password(password: str, salt: str, pepper_data: str) -> str:
    return hashlib.sha256((password + salt + pepper_data).encode()).hexdigest()


def to_record(row: RecordTable) -> dict:
    return {
        **(row.document or {}),
        "objectId": row.object_id,
        "createdAt": row.created_at.isoformat() if row.created_at else None,
        "updatedAt": row.updated_at.isoformat() if row.updated_at else None,
    }


def filter_clause(key: str, value):
    """Equality on one document field; pointers compare by the object id they reference"""
    if key == "objectId":
        return RecordTable.object_id == value
    if isinstance(value, dict) and "objectId" in value:
        return RecordTable.document[(key, "objectId")].as_string() == value["objectId"]
    if isinstance(value, bool):
        return RecordTable.document[key].as_boolean() == value
    if isinstance(value, int):
        return RecordTable.document[key].as_integer() == value
    if isinstance(value, float):
        return RecordTable.document[key].as_float() == value
    return RecordTable.document[key].as_string() == value


def query_statement(collection: str, filters: dict) -> Select:
    return (
        select(RecordTable)
        .where(
            RecordTable.collection == collection,
            *(filter_clause(key, value) for key, value in filters.items()),
        )
        .order_by(RecordTable.created_at, RecordTable.object_id)
        .limit(1)
    )


class SqlRecordStore:
    """Self-hosted record store on SQLAlchemy's async engine.

    Records of every collection share one table and keep their fields in a
    JSON document. Credentials are kept apart from `_User` documents so
    password hashes never leave the store. Each primitive opens its own
    session, so a write left running in the background never shares a
    session with the next query.
    """

    def __init__(self, engine: AsyncEngine, pepper_data: str = ""):
        self.engine = engine
        self.pepper_data = pepper_data
        self.Session = async_sessionmaker(
            autocommit=False, class_=AsyncSession, expire_on_commit=False, bind=engine
        )

    async def init(self) -> None:
        """Create tables if not exists"""
        try:
            async with self.engine.begin() as conn:
                await conn.run_sync(Base.metadata.create_all)
        except SQLAlchemyError as e:
            logging.error(f"Failed to create record tables: {e}")
            raise StoreError(f"Failed to create record tables: {e}") from e

    async def query_first(self, collection: str, filters: dict) -> Optional[dict]:
        async with self.Session() as session:
            try:
                result = await session.execute(query_statement(collection, filters))
                row = result.scalars().first()
                return to_record(row) if row is not None else None
            except SQLAlchemyError as e:
                logging.error(f"Failed to query {collection}: {e}")
                raise StoreError(f"Failed to query {collection}: {e}") from e

    async def create(self, collection: str, fields: dict) -> dict:
        async with self.Session() as session:
            try:
                row = RecordTable(
                    object_id=uuid7().hex,
                    collection=collection,
                    document=dict(fields),
                )
                session.add(row)
                await session.commit()
                return to_record(row)
            except SQLAlchemyError as e:
                logging.error(f"Failed to create {collection} record: {e}")
                raise StoreError(f"Failed to create {collection} record: {e}") from e

    async def _get_row(self, session: AsyncSession, collection: str, object_id: str) -> RecordTable:
        stmt = select(RecordTable).where(
            RecordTable.collection == collection,
            RecordTable.object_id == object_id,
        )
        result = await session.execute(stmt)
        row = result.scalars().first()
        if row is None:
            raise StoreError("Object not found.", code=101)
        return row

    async def update(self, collection: str, object_id: str, fields: dict) -> None:
        async with self.Session() as session:
            try:
                row = await self._get_row(session, collection, object_id)
                # reassign so the JSON column is flagged dirty
                row.document = {**(row.document or {}), **fields}
                await session.commit()
            except SQLAlchemyError as e:
                logging.error(f"Failed to update {collection} record {object_id}: {e}")
                raise StoreError(f"Failed to update {collection} record: {e}") from e

    async def delete(self, collection: str, object_id: str) -> None:
        async with self.Session() as session:
            try:
                row = await self._get_row(session, collection, object_id)
                await session.delete(row)
                await session.commit()
            except SQLAlchemyError as e:
                logging.error(f"Failed to delete {collection} record {object_id}: {e}")
                raise StoreError(f"Failed to delete {collection} record: {e}") from e

    async def register_user(self, username: str, password: str, **fields) -> dict:
        """Create a `_User` record and the credentials to log in with

        Args:
            username (str): login name, unique across users
            password (str): plain password, stored salted and peppered
            **fields: extra user fields such as `ethAddress` or `email`

        Raises:
            StoreError: the username is already taken

        Returns:
            dict: the created `_User` record
        """
        document = {"username": username, **fields}
        document.setdefault("userUniqueHash", secrets.token_hex(16))
        salt = secrets.token_hex(8)
        async with self.Session() as session:
            try:
                existing = await session.get(CredentialTable, username)
                if existing is not None:
                    raise StoreError("Account already exists for this username.", code=202)

                row = RecordTable(object_id=uuid7().hex, collection=USER_CLASS, document=document)
                session.add(row)
                session.add(
                    CredentialTable(
                        username=username,
                        user_id=row.object_id,
                        hash_password=hash_password(password, salt, self.pepper_data),
                        salt=salt,
                    )
                )
                await session.commit()
                logging.info(f"Registered user {username} as {row.object_id}")
                return to_record(row)
            except SQLAlchemyError as e:
                logging.error(f"Failed to register user {username}: {e}")
                raise StoreError(f"Failed to register user: {e}") from e

    async def authenticate(self, login: str, password: str) -> dict:
        async with self.Session() as session:
            try:
                credential = await session.get(CredentialTable, login)
                if credential is None:
                    raise StoreError("Invalid username/password.", code=101)

                hashed_password = hash_password(password, credential.salt, self.pepper_data)
                if not secrets.compare_digest(hashed_password, credential.hash_password):
                    raise StoreError("Invalid username/password.", code=101)

                user_row = await self._get_row(session, USER_CLASS, credential.user_id)
                session_token = f"r:{secrets.token_hex(16)}"
                session.add(
                    RecordTable(
                        object_id=uuid7().hex,
                        collection=SESSION_CLASS,
                        document={"sessionToken": session_token, "user": pointer(user_row.object_id)},
                    )
                )
                await session.commit()
                return {
                    **to_record(user_row),
                    "sessionToken": session_token,
                }
            except SQLAlchemyError as e:
                logging.error(f"Failed to log in {login}: {e}")
                raise StoreError(f"Failed to log in: {e}") from e

    async def aclose(self) -> None:
        await self.engine.dispose()
