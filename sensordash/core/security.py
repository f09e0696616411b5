from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any

import jwt
from passlib.context import CryptContext

from sensordash.core.config import Settings

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

DASHBOARD_SCOPES = ["dashboard:read", "dashboard:refresh"]


def get_password_hash(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    return pwd_context.verify(plain_password, hashed_password)


def create_access_token(
    *,
    subject: str,
    scopes: list[str],
    settings: Settings,
    expires_delta: timedelta | None = None,
) -> str:
    now = datetime.now(tz=timezone.utc)
    expire = now + (expires_delta or timedelta(minutes=settings.access_token_expire_minutes))
    payload: dict[str, Any] = {
        "sub": subject,
        "scopes": scopes,
        "iat": now,
        "exp": expire,
    }
    return jwt.encode(payload, settings.secret_key, algorithm=settings.algorithm)


class AuthGate:
    """Opens once an operator has authenticated; the refresh loop asks it
    before it starts polling."""

    def __init__(self, *, open_: bool = False) -> None:
        self._open = open_

    def grant(self) -> None:
        self._open = True

    def __call__(self) -> bool:
        return self._open
