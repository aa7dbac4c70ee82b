"""Caller identity resolution for requests forwarded by the identity gateway.

The gateway authenticates end users and forwards each request with the shared
service token plus the user's identity-provider subject and profile headers.
This module only verifies the token and syncs the user row.
"""

from __future__ import annotations

from dataclasses import dataclass
from hmac import compare_digest
from typing import TYPE_CHECKING

from fastapi import Depends, HTTPException, Request, status

from taskboard.core.config import settings
from taskboard.core.logging import get_logger
from taskboard.core.time import utcnow
from taskboard.db.session import get_session
from taskboard.db.transactions import atomic
from taskboard.models.users import User

if TYPE_CHECKING:
    from sqlmodel.ext.asyncio.session import AsyncSession

logger = get_logger(__name__)
SESSION_DEP = Depends(get_session)

USER_ID_HEADER = "X-User-Id"
USER_EMAIL_HEADER = "X-User-Email"
USER_NAME_HEADER = "X-User-Name"
USER_AVATAR_HEADER = "X-User-Avatar"


@dataclass
class AuthContext:
    """Authenticated user context resolved from inbound headers."""

    user: User


@dataclass(frozen=True)
class IdentityClaims:
    """Profile fields asserted by the identity gateway."""

    subject: str
    email: str | None = None
    name: str | None = None
    avatar: str | None = None


def _extract_bearer_token(authorization: str | None) -> str | None:
    if not authorization:
        return None
    value = authorization.strip()
    if not value.lower().startswith("bearer "):
        return None
    token = value.split(" ", maxsplit=1)[1].strip()
    return token or None


def _non_empty_str(value: object) -> str | None:
    if not isinstance(value, str):
        return None
    cleaned = value.strip()
    return cleaned or None


def _normalize_email(value: object) -> str | None:
    text = _non_empty_str(value)
    if text is None or "@" not in text:
        return None
    return text.lower()


def claims_from_request(request: Request) -> IdentityClaims | None:
    subject = _non_empty_str(request.headers.get(USER_ID_HEADER))
    if subject is None:
        return None
    return IdentityClaims(
        subject=subject,
        email=_normalize_email(request.headers.get(USER_EMAIL_HEADER)),
        name=_non_empty_str(request.headers.get(USER_NAME_HEADER)),
        avatar=_non_empty_str(request.headers.get(USER_AVATAR_HEADER)),
    )


async def sync_user(session: AsyncSession, claims: IdentityClaims) -> User | None:
    """Create, link by email, or refresh the user row for `claims`.

    Returns `None` when no row exists and the claims carry no email to create
    one with.
    """
    subject_log = claims.subject[-6:]
    user = await User.objects.filter_by(external_id=claims.subject).first(session)
    created = False
    changed = False
    if user is None and claims.email:
        user = await User.objects.filter_by(email=claims.email).first(session)
        if user is not None:
            user.external_id = claims.subject
            changed = True
    if user is None:
        if not claims.email:
            logger.warning("auth.user.sync.missing_email", extra={"subject": subject_log})
            return None
        user = User(
            external_id=claims.subject,
            email=claims.email,
            name=claims.name or claims.email.split("@", 1)[0],
            avatar=claims.avatar,
        )
        created = True
    else:
        for field in ("email", "name", "avatar"):
            value = getattr(claims, field)
            if value and getattr(user, field) != value:
                setattr(user, field, value)
                changed = True
    if not (created or changed):
        logger.debug("auth.user.sync.noop", extra={"subject": subject_log})
        return user
    async with atomic(session):
        user.updated_at = utcnow()
        session.add(user)
    logger.info(
        "auth.user.sync",
        extra={"subject": subject_log, "user_created": created, "user_updated": changed},
    )
    return user


async def get_auth_context(
    request: Request,
    session: AsyncSession = SESSION_DEP,
) -> AuthContext:
    """Require the gateway token and a resolvable user identity."""
    token = _extract_bearer_token(request.headers.get("Authorization"))
    expected = settings.local_auth_token.strip()
    if token is None or not expected or not compare_digest(token, expected):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED)
    claims = claims_from_request(request)
    if claims is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED)
    user = await sync_user(session, claims)
    if user is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED)
    return AuthContext(user=user)
