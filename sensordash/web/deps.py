from __future__ import annotations

import secrets
from typing import Annotated

from fastapi import Form, HTTPException, Request, status
from pydantic import ValidationError

from sensordash.api.deps import start_live_updates
from sensordash.schemas.auth import User

SESSION_USER_KEY = "user"
CSRF_TOKEN_KEY = "csrf_token"


def ensure_csrf_token(request: Request) -> str:
    token = request.session.get(CSRF_TOKEN_KEY)
    if not isinstance(token, str) or not token:
        token = secrets.token_urlsafe(32)
        request.session[CSRF_TOKEN_KEY] = token
    return token


def validate_csrf_token(request: Request, csrf_token: str) -> None:
    expected = request.session.get(CSRF_TOKEN_KEY)
    if not isinstance(expected, str) or not secrets.compare_digest(expected, csrf_token):
        raise HTTPException(status_code=400, detail="Invalid CSRF token")


def csrf_protect(
    request: Request,
    csrf_token: Annotated[str, Form()],
) -> None:
    validate_csrf_token(request, csrf_token)


def start_session(request: Request, user: User) -> None:
    request.session[SESSION_USER_KEY] = user.model_dump()
    # Fresh token after login so a pre-login token cannot be replayed.
    request.session[CSRF_TOKEN_KEY] = secrets.token_urlsafe(32)


def get_session_user(request: Request) -> User | None:
    raw = request.session.get(SESSION_USER_KEY)
    if not isinstance(raw, dict):
        return None
    try:
        return User.model_validate(raw)
    except ValidationError:
        return None


async def require_session_user(request: Request) -> User:
    user = get_session_user(request)
    if not user:
        raise HTTPException(
            status_code=status.HTTP_303_SEE_OTHER,
            headers={"Location": "/ui/login"},
        )
    # Signed session cookies survive a restart; the loop has to follow them.
    await start_live_updates(request)
    return user


async def require_session_user_json(request: Request) -> User:
    """Same as require_session_user, for endpoints polled by the browser script."""
    user = get_session_user(request)
    if not user:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Not logged in")
    await start_live_updates(request)
    return user
