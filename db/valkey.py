# backend/db/valkey.py
import logging
import os
from typing import Optional, Tuple

from dotenv import load_dotenv
from redis.asyncio import Redis

load_dotenv()

logger = logging.getLogger(__name__)

DEFAULT_PORT = 6379

_SCHEMES = ("redis://", "valkey://", "rediss://")


class StoreConfigError(ValueError):
    pass


def parse_valkey_url(raw: str) -> Tuple[str, int, bool]:
    """
    Splits a connection string like "valkey.example.com:6379/4" into
    ("valkey.example.com:6379", 4, use_tls). Scheme, port and db are optional.
    """
    raw = raw.strip()
    if not raw:
        raise StoreConfigError("empty store URL")

    use_tls = raw.startswith("rediss://")
    for scheme in _SCHEMES:
        if raw.startswith(scheme):
            raw = raw[len(scheme):]
            break

    db = 0
    if "/" in raw:
        raw, db_str = raw.rsplit("/", 1)
        if db_str:
            try:
                db = int(db_str)
            except ValueError as exc:
                raise StoreConfigError(f"invalid DB number in store URL: {db_str!r}") from exc

    if not raw:
        raise StoreConfigError("store URL has no host")

    if not _has_port(raw):
        raw = f"{raw}:{DEFAULT_PORT}"

    return raw, db, use_tls


def _has_port(address: str) -> bool:
    if address.startswith("["):
        return "]:" in address
    return address.count(":") == 1


def create_valkey_client(raw_url: Optional[str] = None) -> Redis:
    """
    Builds the shared store client from VALKEY_URL (or the given URL).
    The client is pooled and safe to share between concurrent requests.
    """
    if raw_url is None:
        raw_url = os.getenv("VALKEY_URL", "")
    if not raw_url.strip():
        raise StoreConfigError(
            "environment variable VALKEY_URL must be set (example: valkey.example.com:6379/4)"
        )

    address, db, use_tls = parse_valkey_url(raw_url)
    scheme = "rediss" if use_tls else "redis"
    logger.info("connecting to store at %s (db %d)", address, db)
    return Redis.from_url(f"{scheme}://{address}/{db}", encoding="utf-8", decode_responses=True)


async def check_connectivity(client: Redis) -> None:
    """Round-trip a trivial key so a broken connection fails at startup, not on the first request"""
    await client.set("purpose", "meow")
    if await client.get("purpose") != "meow":
        raise ConnectionError("store did not return the probe value")
