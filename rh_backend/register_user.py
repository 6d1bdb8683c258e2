import argparse
import asyncio
import os
from typing import List, Optional

from dotenv import load_dotenv

from rh_backend.create_engine import create_store_engine
from rh_backend.load_secrets import Settings, load_settings
from rh_backend.sql_store import SqlRecordStore


def get_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Register a user in the SQL record store")
    parser.add_argument("--username", type=str, help="Username", required=True)
    parser.add_argument("--password", type=str, help="Password", required=True)
    parser.add_argument("--eth-address", type=str, help="Wallet address of the user")
    parser.add_argument("--email", type=str, help="Email of the user")
    parser.add_argument("--unique-hash", type=str, help="Unique hash; generated when omitted")
    return parser


async def register(args: argparse.Namespace, settings: Settings) -> dict:
    fields = {}
    if args.eth_address:
        fields["ethAddress"] = args.eth_address
    if args.email:
        fields["email"] = args.email
    if args.unique_hash:
        fields["userUniqueHash"] = args.unique_hash

    store = SqlRecordStore(create_store_engine(settings.database_url), settings.pepper_data)
    try:
        await store.init()
        return await store.register_user(args.username, args.password, **fields)
    finally:
        await store.aclose()


def register_user(argv: Optional[List[str]] = None, settings: Optional[Settings] = None) -> dict:
    """Parse `argv`, register the user and return the created `_User` record"""
    args = get_parser().parse_args(argv)
    if settings is None:
        load_dotenv()
        settings = load_settings({**os.environ, "RECORD_STORE": "sql"})
    return asyncio.run(register(args, settings))


def main(argv: Optional[List[str]] = None) -> None:
    user = register_user(argv)
    print(user["objectId"], user["username"], user["userUniqueHash"])


if __name__ == "__main__":
    main()
