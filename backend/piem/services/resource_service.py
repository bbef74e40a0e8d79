"""
PIEM Backend — Generic Resource Service
========================================

What:  The five canonical operations (list, get, create, update, delete)
       implemented once and configured per collection by a descriptor.
How:   `ResourceDescriptor` names the collection, natural-key fields,
       ownership policy, list filter and sort order. Per-resource rules
       (defaults, creator stamping, delete guards, cross-collection
       counters) live in a `ResourceHooks` subclass.
Who:   Instantiated per request by the route dependencies in routes/crud.py.

Operation Flow (update):
    ┌──────────┐    ┌──────────┐    ┌────────────┐    ┌──────────┐    ┌────────┐
    │  Lookup  │───▶│  Policy  │───▶│  Hooks     │───▶│  Unique  │───▶│  $set  │
    │  (404)   │    │  (401/3) │    │  (400/403) │    │  (409)   │    │        │
    └──────────┘    └──────────┘    └────────────┘    └──────────┘    └────────┘

Consistency:
    There is no transaction around probe and write. Two concurrent creates
    with the same natural key can both pass the probe; the unique indexes
    created at startup reject the loser with DuplicateKeyError → 409.
"""

import logging
import re
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, Iterator, List, Optional, Tuple, Union

from bson import ObjectId
from pymongo.errors import DuplicateKeyError, PyMongoError

from piem.database import MongoStore
from piem.exceptions import (
    ConflictError,
    DatabaseError,
    ForbiddenError,
    NotFoundError,
    UnauthenticatedError,
)
from piem.services.policies import Caller, OpenAccess, OwnershipPolicy
from piem.validation import parse_object_id

logger = logging.getLogger(__name__)


# ══════════════════════════════════════════════════════════════════════════
# Helpers
# ══════════════════════════════════════════════════════════════════════════

def utcnow() -> datetime:
    """Current UTC time truncated to the store's millisecond precision."""
    now = datetime.now(timezone.utc)
    return now.replace(microsecond=now.microsecond - now.microsecond % 1000)


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def case_insensitive(value: str) -> Dict[str, str]:
    """Query operator matching `value` exactly, ignoring letter case."""
    return {"$regex": f"^{re.escape(value)}$", "$options": "i"}


# ══════════════════════════════════════════════════════════════════════════
# Descriptor & Hooks
# ══════════════════════════════════════════════════════════════════════════

class ResourceHooks:
    """
    Extension points around the generic operations.

    `before_*` hooks may raise PiemError subclasses to abort before any
    write; they return the (possibly amended) values to write.
    `after_*` hooks run once the write succeeded.
    """

    async def before_create(
        self, service: "ResourceService", caller: Optional[Caller], values: Dict[str, Any]
    ) -> Dict[str, Any]:
        return values

    async def after_create(self, service: "ResourceService", doc: Dict[str, Any]) -> None:
        return None

    async def before_update(
        self,
        service: "ResourceService",
        caller: Optional[Caller],
        doc: Dict[str, Any],
        changes: Dict[str, Any],
    ) -> Dict[str, Any]:
        return changes

    async def after_update(
        self, service: "ResourceService", before: Dict[str, Any], after: Dict[str, Any]
    ) -> None:
        return None

    async def before_delete(
        self, service: "ResourceService", caller: Optional[Caller], doc: Dict[str, Any]
    ) -> None:
        return None

    async def after_delete(self, service: "ResourceService", doc: Dict[str, Any]) -> None:
        return None

    async def present(
        self, service: "ResourceService", docs: List[Dict[str, Any]]
    ) -> List[Dict[str, Any]]:
        """Shape stored documents for a response (e.g. embed referenced records)."""
        return docs


@dataclass(frozen=True)
class ListFilter:
    """Whitelisted equality filter exposed as one query parameter."""

    param: str
    field: str
    parse: Callable[[str], Any] = str
    description: str = ""


@dataclass(frozen=True)
class ResourceDescriptor:
    name: str
    collection: str
    natural_keys: Tuple[str, ...] = ()
    policy: OwnershipPolicy = field(default_factory=OpenAccess)
    list_filter: Optional[ListFilter] = None
    sort: Tuple[Tuple[str, int], ...] = (("createdAt", 1),)
    hooks: ResourceHooks = field(default_factory=ResourceHooks)
    conflict_message: str = "Resource already exists"

    @property
    def label(self) -> str:
        return self.name[:1].upper() + self.name[1:]


# ══════════════════════════════════════════════════════════════════════════
# Service
# ══════════════════════════════════════════════════════════════════════════

class ResourceService:
    """
    Validated CRUD over one collection.

    Payloads arrive already validated and sanitized (schemas/*), keyed by
    their wire names. Documents are returned as stored; routes serialize them.

    Error Handling Strategy:
        Application rules raise PiemError subclasses directly. Driver
        failures are translated in `_store_errors`: DuplicateKeyError
        becomes ConflictError, any other PyMongoError becomes DatabaseError.
    """

    def __init__(self, descriptor: ResourceDescriptor, store: MongoStore):
        self.descriptor = descriptor
        self.store = store
        self.collection = store.collection(descriptor.collection)

    # ── Operations ────────────────────────────────────────────────────────

    async def list(
        self, filter_value: Optional[str] = None, caller: Optional[Caller] = None
    ) -> List[Dict[str, Any]]:
        """
        Return every readable document, optionally filtered by equality on
        the descriptor's whitelisted field. No match is an empty list.
        """
        query: Dict[str, Any] = {}
        list_filter = self.descriptor.list_filter
        if list_filter is not None and filter_value is not None:
            query[list_filter.field] = list_filter.parse(filter_value)

        with self._store_errors("list"):
            cursor = self.collection.find(query).sort([tuple(spec) for spec in self.descriptor.sort])
            docs = await cursor.to_list(length=None)

        policy = self.descriptor.policy
        return [doc for doc in docs if policy.can_read(caller, doc)]

    async def get(
        self, resource_id: Union[str, ObjectId], caller: Optional[Caller] = None
    ) -> Dict[str, Any]:
        oid = self._object_id(resource_id)
        doc = await self._find(oid)
        self._authorize(
            self.descriptor.policy.can_read(caller, doc),
            caller,
            self.descriptor.policy.read_denied_message,
        )
        return doc

    async def create(
        self, payload: Dict[str, Any], caller: Optional[Caller] = None
    ) -> Dict[str, Any]:
        """
        Insert a new document.

        Steps:
            1. Resource hooks add defaults / server-managed fields
            2. Case-insensitive natural-key probe (409 on collision)
            3. Insert with createdAt == updatedAt
        """
        hooks = self.descriptor.hooks
        values = {k: v for k, v in payload.items() if v is not None}

        with self._store_errors("create"):
            values = await hooks.before_create(self, caller, values)
            await self._ensure_unique(values)

            now = utcnow()
            doc = {"_id": ObjectId(), **values, "createdAt": now, "updatedAt": now}
            await self.collection.insert_one(doc)
            await hooks.after_create(self, doc)

        logger.info("Created %s %s", self.descriptor.name, doc["_id"])
        return doc

    async def update(
        self,
        resource_id: Union[str, ObjectId],
        changes: Dict[str, Any],
        caller: Optional[Caller] = None,
    ) -> Dict[str, Any]:
        """
        Merge the supplied fields into an existing document.

        Omitted (or null) fields keep their stored values; updatedAt is
        refreshed and always moves forward, even within one millisecond.
        """
        oid = self._object_id(resource_id)
        doc = await self._find(oid)
        policy = self.descriptor.policy
        self._authorize(policy.can_modify(caller, doc), caller, policy.modify_denied_message)

        hooks = self.descriptor.hooks
        values = {k: v for k, v in changes.items() if v is not None}

        with self._store_errors("update"):
            values = await hooks.before_update(self, caller, doc, values)
            await self._ensure_unique(values, exclude_id=oid)

            now = utcnow()
            previous = as_utc(doc.get("updatedAt"))
            if previous is not None and now <= previous:
                now = previous + timedelta(milliseconds=1)
            values["updatedAt"] = now

            result = await self.collection.update_one({"_id": oid}, {"$set": values})
            if result.matched_count == 0:
                raise NotFoundError(resource=self.descriptor.name, resource_id=str(oid))
            updated = await self.collection.find_one({"_id": oid})
            if updated is None:
                raise NotFoundError(resource=self.descriptor.name, resource_id=str(oid))
            await hooks.after_update(self, doc, updated)

        logger.info(
            "Updated %s %s (fields=%s)",
            self.descriptor.name,
            oid,
            ",".join(sorted(k for k in values if k != "updatedAt")) or "-",
        )
        return updated

    async def delete(
        self, resource_id: Union[str, ObjectId], caller: Optional[Caller] = None
    ) -> Dict[str, Any]:
        oid = self._object_id(resource_id)
        doc = await self._find(oid)
        policy = self.descriptor.policy
        self._authorize(policy.can_modify(caller, doc), caller, policy.modify_denied_message)

        hooks = self.descriptor.hooks
        with self._store_errors("delete"):
            await hooks.before_delete(self, caller, doc)
            result = await self.collection.delete_one({"_id": oid})
            if result.deleted_count == 0:
                raise NotFoundError(resource=self.descriptor.name, resource_id=str(oid))
            await hooks.after_delete(self, doc)

        logger.info("Deleted %s %s", self.descriptor.name, oid)
        return doc

    async def present(self, docs: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        with self._store_errors("present"):
            return await self.descriptor.hooks.present(self, docs)

    # ── Internals ─────────────────────────────────────────────────────────

    def _object_id(self, resource_id: Union[str, ObjectId]) -> ObjectId:
        if isinstance(resource_id, ObjectId):
            return resource_id
        return parse_object_id(resource_id)

    async def _find(self, oid: ObjectId) -> Dict[str, Any]:
        with self._store_errors("find"):
            doc = await self.collection.find_one({"_id": oid})
        if doc is None:
            raise NotFoundError(resource=self.descriptor.name, resource_id=str(oid))
        return doc

    async def _ensure_unique(
        self, values: Dict[str, Any], exclude_id: Optional[ObjectId] = None
    ) -> None:
        clauses = [
            {key: case_insensitive(values[key])}
            for key in self.descriptor.natural_keys
            if isinstance(values.get(key), str)
        ]
        if not clauses:
            return
        query: Dict[str, Any] = {"$or": clauses}
        if exclude_id is not None:
            query["_id"] = {"$ne": exclude_id}
        if await self.collection.find_one(query) is not None:
            raise ConflictError(
                message=self.descriptor.conflict_message,
                context={"collection": self.descriptor.collection},
            )

    @staticmethod
    def _authorize(allowed: bool, caller: Optional[Caller], message: str) -> None:
        if allowed:
            return
        if caller is None:
            raise UnauthenticatedError()
        raise ForbiddenError(message=message, context={"caller_id": caller.id})

    @contextmanager
    def _store_errors(self, operation: str) -> Iterator[None]:
        try:
            yield
        except DuplicateKeyError as e:
            raise ConflictError(
                message=self.descriptor.conflict_message,
                context={"operation": operation, "error": str(e)},
            )
        except PyMongoError as e:
            logger.error(
                "Store error during %s on %s: %s",
                operation,
                self.descriptor.collection,
                str(e),
            )
            raise DatabaseError(
                context={
                    "operation": operation,
                    "collection": self.descriptor.collection,
                    "original_error": str(e),
                },
            )
