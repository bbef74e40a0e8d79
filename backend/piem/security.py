"""
PIEM Backend — Authorization Dependencies
==========================================

What:  FastAPI dependencies that resolve the caller and gate routes.
How:   The Starlette session cookie carries `user_id`; `get_caller` looks
       it up in `users` and yields a `Caller(id, role)` or None. The
       `require_*` dependencies turn a missing/insufficient caller into
       401/403 before the route body runs.
Who:   routes/crud.py wires these per verb; tests override `get_caller`.

Gates:
    get_caller             → Optional[Caller] (never raises)
    require_authenticated  → Caller, else 401
    require_admin          → admin Caller, else 401/403
    require_writer         → Caller or None; 401 only with REQUIRE_AUTH_FOR_WRITES
"""

import logging
from typing import Optional

from bson import ObjectId
from fastapi import Depends, Request
from fastapi.security import APIKeyCookie
from pymongo.errors import PyMongoError

from piem.config import settings
from piem.database import MongoStore, USERS, get_store
from piem.exceptions import DatabaseError, ForbiddenError, UnauthenticatedError
from piem.services.policies import Caller

logger = logging.getLogger(__name__)

SESSION_USER_KEY = "user_id"

# Documents the session cookie in OpenAPI; the value itself is read from request.session
session_cookie = APIKeyCookie(name="session", auto_error=False, description="GitHub login session")


async def get_caller(
    request: Request,
    store: MongoStore = Depends(get_store),
    _cookie: Optional[str] = Depends(session_cookie),
) -> Optional[Caller]:
    """Resolve the session's user into a Caller, or None when absent or stale."""
    session = request.scope.get("session") or {}
    user_id = session.get(SESSION_USER_KEY)
    if not user_id or not ObjectId.is_valid(str(user_id)):
        return None

    try:
        user = await store.collection(USERS).find_one({"_id": ObjectId(str(user_id))})
    except PyMongoError as e:
        logger.error("Store error while resolving session user: %s", str(e))
        raise DatabaseError(context={"operation": "resolve_caller", "original_error": str(e)})

    if user is None:
        logger.info("Session refers to unknown user %s; treating as anonymous", user_id)
        return None
    return Caller(id=str(user["_id"]), role=user.get("role", "user"), username=user.get("username"))


async def require_authenticated(caller: Optional[Caller] = Depends(get_caller)) -> Caller:
    if caller is None:
        raise UnauthenticatedError()
    return caller


async def require_admin(caller: Caller = Depends(require_authenticated)) -> Caller:
    if not caller.is_admin:
        raise ForbiddenError(context={"caller_id": caller.id, "role": caller.role})
    return caller


async def require_writer(caller: Optional[Caller] = Depends(get_caller)) -> Optional[Caller]:
    """Inventory/supplier writes: open unless REQUIRE_AUTH_FOR_WRITES is enabled."""
    if settings.require_auth_for_writes and caller is None:
        raise UnauthenticatedError()
    return caller
