import logging
from contextlib import asynccontextmanager
from typing import Optional

import uvicorn
from fastapi import FastAPI
from starlette.middleware.cors import CORSMiddleware

from rh_backend.create_engine import create_store_engine
from rh_backend.load_secrets import Settings, load_settings
from rh_backend.parse_store import ParseRecordStore
from rh_backend.record_store import RecordStore
from rh_backend.routers import account
from rh_backend.services.account import AccountWorkflow
from rh_backend.sql_store import SqlRecordStore


def create_store(settings: Settings) -> RecordStore:
    if settings.record_store == "sql":
        return SqlRecordStore(create_store_engine(settings.database_url), settings.pepper_data)
    return ParseRecordStore(settings.server_url, settings.app_id, settings.master_key)


def create_app(settings: Optional[Settings] = None, store: Optional[RecordStore] = None) -> FastAPI:
    """Build the application.

    The record store is created from `settings` unless one is passed in,
    and is opened and closed with the application's lifespan.
    """
    if settings is None:
        settings = load_settings()
    logging.basicConfig(level=settings.log_level)

    @asynccontextmanager
    async def lifespan(app):
        record_store = store if store is not None else create_store(settings)
        await record_store.init()
        app.state.workflow = AccountWorkflow(record_store)
        logging.info(f"Record store ready ({settings.record_store})")
        try:
            yield
        finally:
            await app.state.workflow.drain()
            await record_store.aclose()
            logging.info("Stop Server")

    app = FastAPI(lifespan=lifespan)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.include_router(account.account_router)
    return app


def run() -> None:
    settings = load_settings()
    uvicorn.run(create_app(settings), host="0.0.0.0", port=settings.port)


if __name__ == "__main__":
    run()
