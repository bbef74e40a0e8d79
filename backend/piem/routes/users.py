"""
PIEM Backend — User Routes
===========================

What:  /users CRUD.
Who:   Admins list, create and delete users. Any signed-in user may read
       and update their own profile; only admins may change a role.
"""

from piem.routes.crud import build_resource_router
from piem.schemas.user import UserCreate, UserOut, UserUpdate
from piem.security import require_admin, require_authenticated
from piem.services.resources import USER_RESOURCE

router = build_resource_router(
    USER_RESOURCE,
    prefix="/users",
    tag="Users",
    create_model=UserCreate,
    update_model=UserUpdate,
    out_model=UserOut,
    list_access=require_admin,
    read_access=require_authenticated,
    create_access=require_admin,
    update_access=require_authenticated,
    delete_access=require_admin,
)
