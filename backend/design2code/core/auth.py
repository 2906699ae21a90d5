"""Session token authentication for FastAPI.

Session tokens are HS256 JWTs issued by the web frontend. ``sub`` is the
user id; ``email`` and ``name`` are optional profile claims used when the
user is provisioned on first sight.
"""

from dataclasses import dataclass

import jwt as pyjwt
import structlog
from fastapi import Depends, HTTPException, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy import select

from design2code.core.config import get_settings
from design2code.db.base import get_session_factory
from design2code.db.models.user import User

logger = structlog.get_logger(__name__)

_bearer_scheme = HTTPBearer(auto_error=False)

# In-memory cache of provisioned user IDs to avoid DB queries on every request
_provisioned_cache: set[str] = set()


@dataclass(frozen=True)
class SessionUser:
    """Authenticated user extracted from a session token."""

    user_id: str
    claims: dict


def decode_session_token(token: str) -> SessionUser:
    """Verify and decode a session JWT.

    Raises ``HTTPException(401)`` on any validation failure.
    """
    settings = get_settings()
    try:
        payload = pyjwt.decode(
            token,
            settings.session_secret,
            algorithms=[settings.session_algorithm],
            options={"require": ["sub", "exp"]},
        )
    except pyjwt.ExpiredSignatureError:
        raise HTTPException(status_code=401, detail="Token expired")
    except pyjwt.MissingRequiredClaimError as exc:
        raise HTTPException(status_code=401, detail=f"Missing required claim: {exc}")
    except pyjwt.InvalidTokenError as exc:
        raise HTTPException(status_code=401, detail=f"Invalid token: {exc}")

    sub = payload.get("sub")
    if not sub:
        raise HTTPException(status_code=401, detail="Token missing sub claim")

    return SessionUser(user_id=str(sub), claims=payload)


async def get_or_create_user(user: SessionUser) -> User:
    """Return the User row for ``user``, creating it with the starter plan if missing."""
    factory = get_session_factory()
    async with factory() as session:
        result = await session.execute(select(User).where(User.id == user.user_id))
        row = result.scalar_one_or_none()
        if row is not None:
            return row

        row = User(
            id=user.user_id,
            email=user.claims.get("email"),
            name=user.claims.get("name"),
            plan="starter",
        )
        session.add(row)
        await session.commit()
        await session.refresh(row)
        logger.info("user_provisioned", user_id=user.user_id)
        return row


async def require_auth(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Depends(_bearer_scheme),
) -> SessionUser:
    """FastAPI dependency that extracts and validates the session token.

    Also provisions new users on their first API call.

    Usage::

        @router.get("/protected")
        async def protected(user: SessionUser = Depends(require_auth)):
            ...
    """
    if credentials is None:
        raise HTTPException(status_code=401, detail="Missing authorization header")

    user = decode_session_token(credentials.credentials)

    if user.user_id not in _provisioned_cache:
        await get_or_create_user(user)
        _provisioned_cache.add(user.user_id)

    # Set user_id on request state for downstream use (error handlers, audit logging)
    request.state.user_id = user.user_id

    return user


async def optional_auth(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Depends(_bearer_scheme),
) -> SessionUser | None:
    """Like require_auth, but a missing or invalid token yields None."""
    if credentials is None:
        return None
    try:
        return await require_auth(request, credentials)
    except HTTPException as exc:
        logger.info("session_token_rejected", detail=exc.detail)
        return None
