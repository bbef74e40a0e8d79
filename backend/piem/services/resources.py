"""
PIEM Backend — Resource Definitions
====================================

What:  The four configured resources: users, categories, inventory, suppliers.
How:   Each resource is a `ResourceDescriptor` plus, where it has rules of
       its own, a `ResourceHooks` subclass.

Resource rules:
    users       natural key username+email; self-or-admin; role changes
                admin-only; nobody deletes their own account
    categories  natural key name; creator-or-admin; creator stamped from
                caller (must exist); itemCount recounted from inventory
                on create and rename; delete blocked while items carry its name
    inventory   natural key name; open; keeps category itemCount in step
    suppliers   natural key name; open
"""

import logging
from typing import Any, Dict, Optional

from bson import ObjectId

from piem.database import CATEGORIES, INVENTORY, SUPPLIERS, USERS
from piem.exceptions import (
    ForbiddenError,
    InvalidArgumentError,
    InvalidStateError,
    UnauthenticatedError,
)
from piem.services.policies import CreatorOrAdmin, OpenAccess, SelfOrAdmin
from piem.services.resource_service import (
    ListFilter,
    ResourceDescriptor,
    ResourceHooks,
    ResourceService,
    case_insensitive,
)
from piem.validation import clean_text

logger = logging.getLogger(__name__)


def parse_bool(value: str) -> bool:
    return value.strip().lower() == "true"


# ── Users ─────────────────────────────────────────────────────────────────

class UserHooks(ResourceHooks):
    async def before_create(self, service, caller, values):
        values.setdefault("role", "user")
        return values

    async def before_update(self, service, caller, doc, changes):
        role_changed = "role" in changes and changes["role"] != doc.get("role")
        if role_changed and not (caller and caller.is_admin):
            raise ForbiddenError(message="Only admins can change user roles")
        return changes

    async def before_delete(self, service, caller, doc):
        if caller is not None and caller.id == str(doc["_id"]):
            raise InvalidArgumentError(message="Cannot delete your own account")


USER_RESOURCE = ResourceDescriptor(
    name="user",
    collection=USERS,
    natural_keys=("username", "email"),
    policy=SelfOrAdmin(),
    list_filter=ListFilter(param="role", field="role", description="Filter by role (user or admin)"),
    hooks=UserHooks(),
    conflict_message="User with this email or username already exists",
)


# ── Categories ────────────────────────────────────────────────────────────

class CategoryHooks(ResourceHooks):
    @staticmethod
    async def _count_items(service: ResourceService, name: str) -> int:
        return await service.store.collection(INVENTORY).count_documents(
            {"category": case_insensitive(name)}
        )

    async def before_create(self, service, caller, values):
        if caller is None:
            raise UnauthenticatedError()
        creator = None
        if ObjectId.is_valid(caller.id):
            creator = await service.store.collection(USERS).find_one({"_id": ObjectId(caller.id)})
        if creator is None:
            raise InvalidArgumentError(
                message="Category creator must be an existing user",
                context={"caller_id": caller.id},
            )
        values.setdefault("description", "")
        values.update({
            "createdBy": creator["_id"],
            "itemCount": await self._count_items(service, values["name"]),
            "isActive": True,
        })
        return values

    async def before_update(self, service, caller, doc, changes):
        # Items are matched by label, so a rename adopts the new label's items
        name = changes.get("name")
        if name is not None and name.lower() != doc["name"].lower():
            changes["itemCount"] = await self._count_items(service, name)
        return changes

    async def before_delete(self, service, caller, doc):
        item_count = await self._count_items(service, doc["name"])
        if item_count > 0:
            raise InvalidStateError(
                message="Cannot delete category with existing items. Remove items first.",
                context={"item_count": item_count},
            )

    async def present(self, service, docs):
        creator_ids = {doc["createdBy"] for doc in docs if isinstance(doc.get("createdBy"), ObjectId)}
        if not creator_ids:
            return docs
        cursor = service.store.collection(USERS).find(
            {"_id": {"$in": list(creator_ids)}}, {"username": 1, "email": 1}
        )
        creators = {user["_id"]: user for user in await cursor.to_list(length=None)}
        return [
            {**doc, "createdBy": creators[doc["createdBy"]]} if doc.get("createdBy") in creators else doc
            for doc in docs
        ]


CATEGORY_RESOURCE = ResourceDescriptor(
    name="category",
    collection=CATEGORIES,
    natural_keys=("name",),
    policy=CreatorOrAdmin(field="createdBy", noun="categories"),
    list_filter=ListFilter(
        param="active",
        field="isActive",
        parse=parse_bool,
        description="Filter by active status (true or false)",
    ),
    sort=(("name", 1),),
    hooks=CategoryHooks(),
    conflict_message="Category with this name already exists",
)


# ── Inventory ─────────────────────────────────────────────────────────────

class InventoryHooks(ResourceHooks):
    """Keeps `itemCount` of the category named by an item's label in step."""

    async def _adjust_category(
        self, service: ResourceService, label: Optional[str], delta: int
    ) -> None:
        if not label:
            return
        query: Dict[str, Any] = {"name": case_insensitive(label)}
        if delta < 0:
            query["itemCount"] = {"$gt": 0}
        result = await service.store.collection(CATEGORIES).update_one(
            query, {"$inc": {"itemCount": delta}}
        )
        if result.modified_count:
            logger.debug("Category '%s' itemCount %+d", label, delta)

    async def after_create(self, service, doc):
        await self._adjust_category(service, doc.get("category"), 1)

    async def after_update(self, service, before, after):
        old_label, new_label = before.get("category"), after.get("category")
        if (old_label or "").lower() == (new_label or "").lower():
            return
        await self._adjust_category(service, old_label, -1)
        await self._adjust_category(service, new_label, 1)

    async def after_delete(self, service, doc):
        await self._adjust_category(service, doc.get("category"), -1)


INVENTORY_RESOURCE = ResourceDescriptor(
    name="inventory item",
    collection=INVENTORY,
    natural_keys=("name",),
    policy=OpenAccess(),
    list_filter=ListFilter(
        param="status",
        field="status",
        description="Filter by status (Available or Out of Stock)",
    ),
    hooks=InventoryHooks(),
    conflict_message="Inventory item with this name already exists",
)


# ── Suppliers ─────────────────────────────────────────────────────────────

SUPPLIER_RESOURCE = ResourceDescriptor(
    name="supplier",
    collection=SUPPLIERS,
    natural_keys=("name",),
    policy=OpenAccess(),
    list_filter=ListFilter(
        param="state",
        field="state",
        parse=clean_text,
        description="Filter by state",
    ),
    conflict_message="Supplier with this name already exists",
)
