"""Bearer-token authentication for the Ordering API.

Tokens are issued elsewhere; this module only verifies them (HS256 by default)
and exposes the caller as a ``Principal``. Expected claims: ``sub`` (account
id), optional ``is_admin``, ``email`` and ``name``.
"""

from dataclasses import dataclass

import jwt
import structlog
from fastapi import Depends, HTTPException
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from ordering import settings

logger = structlog.get_logger(__name__)

_bearer = HTTPBearer(auto_error=False)


@dataclass(frozen=True)
class Principal:
    account_id: str
    is_admin: bool = False
    email: str | None = None
    name: str | None = None


def issue_token(account_id: str, is_admin: bool = False, email: str | None = None, name: str | None = None) -> str:
    """Sign a token for ``account_id``. Used by tests and local tooling."""
    claims = {"sub": str(account_id), "is_admin": is_admin}
    if email:
        claims["email"] = email
    if name:
        claims["name"] = name
    return jwt.encode(claims, settings.jwt_secret(), algorithm=settings.jwt_algorithm())


def current_principal(credentials: HTTPAuthorizationCredentials | None = Depends(_bearer)) -> Principal:
    if credentials is None:
        raise HTTPException(status_code=401, detail="Not authorized, no token")
    try:
        claims = jwt.decode(
            credentials.credentials,
            settings.jwt_secret(),
            algorithms=[settings.jwt_algorithm()],
            options={"require": ["sub"]},
        )
    except jwt.PyJWTError as exc:
        logger.info("bearer_token_rejected", error=type(exc).__name__)
        raise HTTPException(status_code=401, detail="Not authorized, token failed") from None

    return Principal(
        account_id=str(claims["sub"]),
        is_admin=bool(claims.get("is_admin", False)),
        email=claims.get("email"),
        name=claims.get("name"),
    )


def admin_principal(principal: Principal = Depends(current_principal)) -> Principal:
    if not principal.is_admin:
        raise HTTPException(status_code=403, detail="Not authorized as an admin")
    return principal
