"""PIEM Backend — /supplier CRUD (writes gated by REQUIRE_AUTH_FOR_WRITES)."""

from piem.routes.crud import build_resource_router
from piem.schemas.supplier import SupplierCreate, SupplierOut, SupplierUpdate
from piem.security import require_writer
from piem.services.resources import SUPPLIER_RESOURCE

router = build_resource_router(
    SUPPLIER_RESOURCE,
    prefix="/supplier",
    tag="Suppliers",
    create_model=SupplierCreate,
    update_model=SupplierUpdate,
    out_model=SupplierOut,
    create_access=require_writer,
    update_access=require_writer,
    delete_access=require_writer,
)
