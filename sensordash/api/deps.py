from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Annotated

import jwt
from fastapi import Depends, HTTPException, Request, Security, status
from fastapi.security import OAuth2PasswordBearer, SecurityScopes

from sensordash.core.config import Settings
from sensordash.core.security import DASHBOARD_SCOPES, AuthGate, verify_password
from sensordash.repositories.base import MeasurementSource
from sensordash.schemas.auth import User
from sensordash.services.live_state import ChartFeed, LiveStateStore
from sensordash.services.refresh import RefreshLoop

logger = logging.getLogger(__name__)

oauth2_scheme = OAuth2PasswordBearer(
    tokenUrl="/api/v1/auth/token",
    scopes={
        "dashboard:read": "Read live sensor data and exports",
        "dashboard:refresh": "Trigger a refresh from the backend",
    },
)


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_measurement_source(request: Request) -> MeasurementSource:
    return request.app.state.measurement_source


def get_live_state(request: Request) -> LiveStateStore:
    return request.app.state.live_state


def get_chart_feed(request: Request) -> ChartFeed:
    return request.app.state.chart_feed


def get_refresh_loop(request: Request) -> RefreshLoop:
    return request.app.state.refresh_loop


def get_auth_gate(request: Request) -> AuthGate:
    return request.app.state.auth_gate


def authenticate_user(*, username: str, password: str, settings: Settings) -> User | None:
    if username != settings.admin_username:
        return None
    if not verify_password(password, settings.admin_password_hash):
        return None
    return User(username=username, scopes=list(DASHBOARD_SCOPES))


async def start_live_updates(request: Request) -> bool:
    """Open the auth gate and make sure the refresh loop is polling."""
    get_auth_gate(request).grant()
    loop = get_refresh_loop(request)
    if loop.stopped:
        return False
    try:
        return await loop.start()
    except RuntimeError:
        logger.warning("Refresh loop could not be started", exc_info=True)
        return False


async def get_current_user(
    request: Request,
    security_scopes: SecurityScopes,
    token: Annotated[str, Depends(oauth2_scheme)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> User:
    authenticate_value = "Bearer"
    if security_scopes.scopes:
        authenticate_value = f'Bearer scope="{security_scopes.scope_str}"'

    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": authenticate_value},
    )

    try:
        payload = jwt.decode(
            token,
            settings.secret_key,
            algorithms=[settings.algorithm],
            options={"require": ["exp", "sub"]},
        )
    except jwt.PyJWTError as e:  # noqa: BLE001 - normalize to 401
        raise credentials_exception from e

    sub = payload.get("sub")
    token_scopes = payload.get("scopes", [])
    if not isinstance(sub, str) or not isinstance(token_scopes, list):
        raise credentials_exception

    exp = payload.get("exp")
    if isinstance(exp, (int, float)) and exp < datetime.now(tz=timezone.utc).timestamp():
        raise credentials_exception

    user = User(username=sub, scopes=[str(s) for s in token_scopes])

    for scope in security_scopes.scopes:
        if not user.has_scope(scope):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Not enough permissions",
                headers={"WWW-Authenticate": authenticate_value},
            )

    # A token issued before a restart still proves a login.
    await start_live_updates(request)
    return user


ReadUser = Annotated[User, Security(get_current_user, scopes=["dashboard:read"])]
RefreshUser = Annotated[User, Security(get_current_user, scopes=["dashboard:refresh"])]
