"""
PIEM Backend — Document Store Gateway
======================================

What:  Owns the single Motor client and exposes collection accessors.
How:   `MongoStore` is created once in the application lifespan, pinged
       (with tenacity backoff) before the server accepts traffic, stored on
       `app.state.store`, and handed to services through `get_store`.
Who:   main.py (lifecycle), services (collections), health route (ping).
When:  Connected at startup, closed at shutdown; never per request.

Collections:
    users       ← User documents
    categories  ← Category documents
    inventory   ← Inventory item documents
    suppliers   ← Supplier documents
"""

import logging
from typing import Any, Dict, List, Optional, Tuple

from fastapi import Request
from motor.motor_asyncio import AsyncIOMotorClient
from pymongo.errors import ConnectionFailure, OperationFailure, PyMongoError
from tenacity import (
    before_sleep_log,
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from piem.config import settings

logger = logging.getLogger(__name__)


USERS = "users"
CATEGORIES = "categories"
INVENTORY = "inventory"
SUPPLIERS = "suppliers"

# Natural keys backed by a case-insensitive unique index
# (collection, field) pairs; strength 2 collation ignores letter case.
UNIQUE_NATURAL_KEYS: List[Tuple[str, str]] = [
    (USERS, "username"),
    (USERS, "email"),
    (CATEGORIES, "name"),
    (INVENTORY, "name"),
    (SUPPLIERS, "name"),
]
CASE_INSENSITIVE_COLLATION: Dict[str, Any] = {"locale": "en", "strength": 2}


class MongoStore:
    """
    Process-scoped handle to the document database.

    The client is injected so tests can pass an in-memory Motor-compatible
    client; production code builds one with `from_settings()`.
    """

    def __init__(self, client: Any, db_name: str):
        self.client = client
        self.db = client[db_name]
        self.db_name = db_name

    @classmethod
    def from_settings(cls) -> "MongoStore":
        client = AsyncIOMotorClient(
            settings.mongodb_uri,
            serverSelectionTimeoutMS=settings.mongodb_server_selection_timeout_ms,
            tz_aware=True,
        )
        return cls(client, settings.mongodb_db_name)

    def collection(self, name: str):
        return self.db[name]

    async def ping(self) -> bool:
        """Lightweight round-trip used by the health check."""
        try:
            await self.client.admin.command("ping")
        except PyMongoError as e:
            logger.warning("Document store ping failed: %s", str(e))
            return False
        return True

    async def connect(self, attempts: Optional[int] = None) -> None:
        """
        Verify the server is reachable before serving requests.

        Retries ConnectionFailure with exponential backoff (1s, 2s, 4s ...).
        The last failure propagates and aborts startup.
        """
        attempts = attempts or settings.mongodb_connect_attempts

        @retry(
            stop=stop_after_attempt(attempts),
            wait=wait_exponential(multiplier=1, min=1, max=10),
            retry=retry_if_exception_type(ConnectionFailure),
            before_sleep=before_sleep_log(logger, logging.WARNING),
            reraise=True,
        )
        async def _ping() -> None:
            await self.client.admin.command("ping")

        await _ping()
        logger.info("Connected to document store (database=%s)", self.db_name)

    async def ensure_indexes(self) -> None:
        """
        Create case-insensitive unique indexes on natural keys.

        Index creation fails when existing data already violates uniqueness;
        that is logged and the service keeps the application-level probe only.
        """
        for collection_name, field in UNIQUE_NATURAL_KEYS:
            try:
                await self.collection(collection_name).create_index(
                    field,
                    name=f"uniq_{field}_ci",
                    unique=True,
                    collation=CASE_INSENSITIVE_COLLATION,
                )
            except OperationFailure as e:
                logger.warning(
                    "Could not create unique index on %s.%s: %s",
                    collection_name,
                    field,
                    str(e),
                )

    def close(self) -> None:
        self.client.close()
        logger.info("Document store connection closed")


# ── Store Dependency ──────────────────────────────────────────────────────
def get_store(request: Request) -> MongoStore:
    """
    FastAPI dependency returning the lifespan-scoped store.

    Example usage in a route:
        @router.get("/things")
        async def list_things(store: MongoStore = Depends(get_store)):
            ...
    """
    return request.app.state.store
