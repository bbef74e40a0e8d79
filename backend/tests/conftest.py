"""
PIEM Backend — Test Configuration (conftest.py)
================================================

What:  Shared pytest fixtures for the entire test suite.
How:   Each test gets a fresh in-memory document store (mongomock-motor)
       attached to a fresh app instance; the caller identity is injected
       through `app.dependency_overrides[get_caller]`.

Fixture Hierarchy (all function-scoped):
    ├── store:      MongoStore over AsyncMongoMockClient
    ├── app:        create_app() with the store on app.state
    ├── client:     HTTPX AsyncClient over ASGITransport
    ├── make_user:  inserts a user document, returns it
    └── act_as:     sets (or clears) the request caller
"""

import os
from typing import Any, Dict, Optional

# Override settings for testing BEFORE any app imports
os.environ["ENVIRONMENT"] = "test"
os.environ["LOG_LEVEL"] = "WARNING"
os.environ["GITHUB_CLIENT_ID"] = ""
os.environ["GITHUB_CLIENT_SECRET"] = ""
os.environ["REQUIRE_AUTH_FOR_WRITES"] = "false"

import pytest
import pytest_asyncio
from bson import ObjectId
from httpx import ASGITransport, AsyncClient
from mongomock_motor import AsyncMongoMockClient

from piem.database import USERS, MongoStore
from piem.security import get_caller
from piem.services.policies import Caller
from piem.services.resource_service import utcnow


@pytest.fixture
def store() -> MongoStore:
    return MongoStore(AsyncMongoMockClient(), "piem_test")


@pytest.fixture
def app(store):
    from piem.main import create_app

    application = create_app()
    application.state.store = store
    yield application
    application.dependency_overrides.clear()


@pytest_asyncio.fixture
async def client(app):
    """
    Async HTTP client talking to the app in-process.

    raise_app_exceptions=False lets tests assert on the 500 envelope
    instead of the exception propagating out of the transport.
    """
    transport = ASGITransport(app=app, raise_app_exceptions=False)
    async with AsyncClient(transport=transport, base_url="http://test") as http:
        yield http


@pytest.fixture
def make_user(store):
    """
    Insert a user document straight into the store.

    Usage:
        admin = await make_user("root", role="admin")
    """
    async def _make_user(username: str, role: str = "user", email: Optional[str] = None) -> Dict[str, Any]:
        now = utcnow()
        doc = {
            "_id": ObjectId(),
            "username": username,
            "email": email or f"{username}@example.com",
            "role": role,
            "createdAt": now,
            "updatedAt": now,
        }
        await store.collection(USERS).insert_one(doc)
        return doc

    return _make_user


@pytest.fixture
def act_as(app):
    """
    Make subsequent requests run as `user` (a user document) or anonymously.

    Usage:
        act_as(admin)   # requests carry the admin's identity
        act_as(None)    # anonymous
    """
    def _act_as(user: Optional[Dict[str, Any]]) -> Optional[Caller]:
        if user is None:
            app.dependency_overrides[get_caller] = lambda: None
            return None
        caller = Caller(id=str(user["_id"]), role=user.get("role", "user"), username=user.get("username"))
        app.dependency_overrides[get_caller] = lambda: caller
        return caller

    return _act_as
