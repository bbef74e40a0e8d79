"""
PIEM Backend — Category Routes
===============================

What:  /categories CRUD. Reads are public; writes need a signed-in user,
       and update/delete are limited to the category's creator or an admin.
"""

from piem.routes.crud import build_resource_router
from piem.schemas.category import CategoryCreate, CategoryOut, CategoryUpdate
from piem.security import require_authenticated
from piem.services.resources import CATEGORY_RESOURCE

router = build_resource_router(
    CATEGORY_RESOURCE,
    prefix="/categories",
    tag="Categories",
    create_model=CategoryCreate,
    update_model=CategoryUpdate,
    out_model=CategoryOut,
    create_access=require_authenticated,
    update_access=require_authenticated,
    delete_access=require_authenticated,
)
