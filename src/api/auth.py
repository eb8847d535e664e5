"""
Caller identity from bearer tokens.

Tokens are HS256 JWTs issued by the auth server.  Claims used:

* ``role``   -- admin, dispatcher, driver, booker or passenger
* ``uid``    -- driver uid (drivers only carry a meaningful value)
* ``userId`` -- identity id, falling back to ``uid`` then ``sub``
* ``email``  -- matched against booker / passenger emails
"""

from __future__ import annotations

import logging
from typing import Optional

import jwt
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from src.config import settings
from src.domain.entities import CallerIdentity
from src.domain.enums import STAFF_ROLES, CallerRole

logger = logging.getLogger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)


class InvalidToken(Exception):
    """Missing, malformed, expired or wrongly signed token."""


def _parse_role(value) -> Optional[CallerRole]:
    if isinstance(value, (list, tuple)):
        value = value[0] if value else None
    if not value:
        return None
    try:
        return CallerRole(str(value).lower())
    except ValueError:
        return None


def identity_from_claims(claims: dict) -> CallerIdentity:
    return CallerIdentity(
        role=_parse_role(claims.get("role")),
        driver_uid=claims.get("uid") or None,
        user_id=claims.get("userId") or claims.get("uid") or claims.get("sub"),
        email=claims.get("email") or None,
    )


def decode_token(token: str | None) -> CallerIdentity:
    if not token:
        raise InvalidToken("Missing bearer token")
    try:
        claims = jwt.decode(
            token, settings.jwt_secret, algorithms=[settings.jwt_algorithm]
        )
    except jwt.PyJWTError as exc:
        logger.debug("Token rejected: %s", exc)
        raise InvalidToken(str(exc)) from exc
    return identity_from_claims(claims)


def issue_token(claims: dict) -> str:
    """Sign *claims* with the shared secret (dev tooling and tests)."""
    return jwt.encode(claims, settings.jwt_secret, algorithm=settings.jwt_algorithm)


async def get_caller(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> CallerIdentity:
    try:
        return decode_token(credentials.credentials if credentials else None)
    except InvalidToken:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )


def require_roles(*roles: CallerRole):
    allowed = frozenset(roles)

    async def _check(caller: CallerIdentity = Depends(get_caller)) -> CallerIdentity:
        if caller.role not in allowed:
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Forbidden")
        return caller

    return _check


driver_only = require_roles(CallerRole.DRIVER)
staff_only = require_roles(*STAFF_ROLES)
