from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine


def create_store_engine(database_url: str) -> AsyncEngine:
    """Create the async engine behind the SQL record store.

    SQLite URLs (sqlite+aiosqlite) get the default pool, anything else
    (postgresql+asyncpg) a larger pool for concurrent requests.
    """
    if database_url.startswith("sqlite"):
        return create_async_engine(url=database_url, echo=False)
    return create_async_engine(database_url, pool_size=20, max_overflow=20)
