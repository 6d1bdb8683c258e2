import os
from typing import Literal, Mapping, Optional

from dotenv import load_dotenv
from pydantic import BaseModel

DEFAULT_DATABASE_URL = "sqlite+aiosqlite:///./rh_backend.sqlite3"


class Settings(BaseModel):
    """Process configuration, read once at startup."""

    record_store: Literal["parse", "sql"] = "parse"
    server_url: Optional[str] = None
    app_id: Optional[str] = None
    master_key: Optional[str] = None
    database_url: str = DEFAULT_DATABASE_URL
    pepper_data: str = ""
    log_level: str = "INFO"
    port: int = 3000


def load_settings(environ: Optional[Mapping[str, str]] = None) -> Settings:
    """Build the settings from the environment (and a `.env` file when reading os.environ)

    Raises:
        ValueError: a variable required by the chosen record store is missing or a value is invalid
    """
    if environ is None:
        load_dotenv()
        environ = os.environ

    settings = Settings(
        record_store=environ.get("RECORD_STORE", "parse").lower(),
        server_url=environ.get("MORALIS_SERVERURL"),
        app_id=environ.get("MORALIS_APPID"),
        master_key=environ.get("MORALIS_MASTERKEY"),
        database_url=environ.get("DATABASE_URL", DEFAULT_DATABASE_URL),
        pepper_data=environ.get("PEPPER_DATA", ""),
        log_level=environ.get("LOG_LEVEL", "INFO").upper(),
        port=environ.get("PORT", 3000),
    )

    if settings.record_store == "parse":
        missing = [
            name
            for name, value in (
                ("MORALIS_SERVERURL", settings.server_url),
                ("MORALIS_APPID", settings.app_id),
                ("MORALIS_MASTERKEY", settings.master_key),
            )
            if not value
        ]
        if missing:
            raise ValueError(f"Missing environment variables: {', '.join(missing)}")
    return settings


if __name__ == "__main__":
    print(load_settings())
