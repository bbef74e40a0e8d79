"""PIEM Backend — /inventory CRUD (writes gated by REQUIRE_AUTH_FOR_WRITES)."""

from piem.routes.crud import build_resource_router
from piem.schemas.inventory import InventoryCreate, InventoryOut, InventoryUpdate
from piem.security import require_writer
from piem.services.resources import INVENTORY_RESOURCE

router = build_resource_router(
    INVENTORY_RESOURCE,
    prefix="/inventory",
    tag="Inventory",
    create_model=InventoryCreate,
    update_model=InventoryUpdate,
    out_model=InventoryOut,
    create_access=require_writer,
    update_access=require_writer,
    delete_access=require_writer,
)
