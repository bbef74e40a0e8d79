"""
PIEM Backend — GitHub OAuth Routes
===================================

What:  Session login through GitHub.
How:   authlib's Starlette client performs the authorization-code flow;
       on callback the GitHub profile is mapped to a user document and its
       id stored in the signed session cookie under `user_id`.
When:  Only mounted when GITHUB_CLIENT_ID and GITHUB_CLIENT_SECRET are set.

Flow:
    GET /login             → 302 to github.com/login/oauth/authorize
    GET /github/callback   → exchange code, upsert user, 302 to /api-docs
    GET /logout            → clear session, 302 to /api-docs
"""

import logging

from authlib.integrations.starlette_client import OAuth, OAuthError
from fastapi import APIRouter, Depends, Request
from fastapi.responses import RedirectResponse

from piem.config import settings
from piem.database import MongoStore, get_store
from piem.security import SESSION_USER_KEY
from piem.services.auth_service import GitHubLoginService

logger = logging.getLogger(__name__)

DOCS_PATH = "/api-docs"


def build_oauth() -> OAuth:
    oauth = OAuth()
    oauth.register(
        "github",
        client_id=settings.github_client_id,
        client_secret=settings.github_client_secret,
        authorize_url="https://github.com/login/oauth/authorize",
        access_token_url="https://github.com/login/oauth/access_token",
        api_base_url="https://api.github.com/",
        client_kwargs={"scope": "user:email"},
    )
    return oauth


def build_auth_router(oauth: OAuth) -> APIRouter:
    router = APIRouter(tags=["Auth"])

    @router.get("/login", summary="Start GitHub login")
    async def login(request: Request):
        redirect_uri = settings.github_callback_url or str(request.url_for("github_callback"))
        return await oauth.github.authorize_redirect(request, redirect_uri)

    @router.get("/github/callback", name="github_callback", summary="GitHub OAuth callback")
    async def github_callback(request: Request, store: MongoStore = Depends(get_store)):
        try:
            token = await oauth.github.authorize_access_token(request)
        except OAuthError as e:
            logger.warning("GitHub login failed: %s", e.error)
            return RedirectResponse(url=DOCS_PATH, status_code=302)

        profile = (await oauth.github.get("user", token=token)).json()
        if not profile.get("email"):
            emails = (await oauth.github.get("user/emails", token=token)).json()
            if not isinstance(emails, list):
                emails = []
            primary = next((e for e in emails if e.get("primary")), emails[0] if emails else {})
            profile["email"] = primary.get("email")

        user = await GitHubLoginService(store).resolve_user(profile)
        request.session[SESSION_USER_KEY] = str(user["_id"])
        logger.info("User %s logged in via GitHub", user["_id"])
        return RedirectResponse(url=DOCS_PATH, status_code=302)

    @router.get("/logout", summary="End the session")
    async def logout(request: Request):
        request.session.clear()
        return RedirectResponse(url=DOCS_PATH, status_code=302)

    return router
