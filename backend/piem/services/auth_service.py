"""
PIEM Backend — GitHub Login Service
====================================

What:  Maps a GitHub profile onto a user document.
How:   Looks the user up by `githubId`, then by username (unlinked accounts
       only); creates one when neither matches. Logins listed in
       ADMIN_GITHUB_LOGINS are given the admin role.
Who:   routes/auth.py (OAuth callback).
"""

import logging
from typing import Any, Dict

from pymongo.errors import DuplicateKeyError, PyMongoError

from piem.config import settings
from piem.database import MongoStore, USERS
from piem.exceptions import ConflictError, DatabaseError, InvalidArgumentError
from piem.services.resource_service import case_insensitive, utcnow
from piem.validation import escape_html

logger = logging.getLogger(__name__)


class GitHubLoginService:
    def __init__(self, store: MongoStore):
        self.users = store.collection(USERS)

    async def resolve_user(self, profile: Dict[str, Any]) -> Dict[str, Any]:
        """
        Return the user document for a GitHub profile, creating it on first login.

        A local account is linked by username only while it has no GitHub
        account of its own; otherwise the newcomer gets a suffixed username.

        Args:
            profile: The JSON body of GitHub's `GET /user`, optionally with
                     `email` filled from `GET /user/emails`.

        Raises:
            InvalidArgumentError: profile lacks `login` or `id`
            ConflictError: the email already belongs to another user
        """
        login = (profile.get("login") or "").strip()
        github_id = profile.get("id")
        if not login or github_id is None:
            raise InvalidArgumentError(message="GitHub profile is missing login or id")

        github_id = str(github_id)
        username = escape_html(login)
        email = (profile.get("email") or f"{github_id}+{login}@users.noreply.github.com").strip().lower()
        is_admin = login.lower() in settings.admin_github_logins_set

        try:
            user = await self.users.find_one({"githubId": github_id})
            if user is None:
                namesake = await self.users.find_one({"username": case_insensitive(username)})
                if namesake is not None and not namesake.get("githubId"):
                    user = namesake
                elif namesake is not None:
                    username = await self._free_username(username)

            now = utcnow()
            if user is None:
                if await self.users.find_one({"email": case_insensitive(email)}) is not None:
                    raise ConflictError(
                        message="User with this email already exists",
                        context={"github_login": login},
                    )
                user = {
                    "username": username,
                    "email": email,
                    "role": "admin" if is_admin else "user",
                    "githubId": github_id,
                    "createdAt": now,
                    "updatedAt": now,
                }
                result = await self.users.insert_one(user)
                user["_id"] = result.inserted_id
                logger.info("Created user %s from GitHub login '%s'", user["_id"], login)
                return user

            changes: Dict[str, Any] = {}
            if user.get("githubId") != github_id:
                changes["githubId"] = github_id
                logger.info("Linked user %s to GitHub login '%s'", user["_id"], login)
            if is_admin and user.get("role") != "admin":
                changes["role"] = "admin"
            if changes:
                changes["updatedAt"] = now
                await self.users.update_one({"_id": user["_id"]}, {"$set": changes})
                user.update(changes)
            return user
        except DuplicateKeyError as e:
            raise ConflictError(
                message="User with this email or username already exists",
                context={"github_login": login, "error": str(e)},
            )
        except PyMongoError as e:
            logger.error("Store error while resolving GitHub user '%s': %s", login, str(e))
            raise DatabaseError(context={"operation": "github_login", "original_error": str(e)})

    async def _free_username(self, username: str) -> str:
        suffix = 2
        while await self.users.find_one({"username": case_insensitive(f"{username}{suffix}")}):
            suffix += 1
        return f"{username}{suffix}"
