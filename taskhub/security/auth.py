from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone

import jwt
from fastapi import HTTPException, Request, status
from sqlalchemy import select
from sqlalchemy.orm import Session

from taskhub.models import User
from taskhub.security.config import SecurityConfig
from taskhub.security.context import Principal
from taskhub.settings import Settings

logger = logging.getLogger(__name__)


def extract_bearer_token(request: Request, config: SecurityConfig) -> str | None:
    """
    Read `Authorization: Bearer <token>`.

    Returns None when the header is absent; raises 400 when it is present but malformed.
    """

    header_name = config.auth.authorization_header
    bearer_prefix = config.auth.bearer_prefix

    raw = request.headers.get(header_name)
    if not raw:
        logger.info("Missing Authorization header (auth required) path=%s method=%s", request.url.path, request.method)
        return None

    prefix = f"{bearer_prefix} "
    if not raw.startswith(prefix):
        logger.warning("Invalid Authorization header format path=%s method=%s", request.url.path, request.method)
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Invalid {header_name}. Expected '{bearer_prefix} <token>'.",
        )

    token = raw[len(prefix) :].strip()
    if not token:
        logger.warning("Empty bearer token path=%s method=%s", request.url.path, request.method)
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Invalid {header_name}. Missing token after '{bearer_prefix}'.",
        )

    return token


def verify_credential(token: str, settings: Settings) -> int:
    """
    Verify a signed access token and return the user id it was issued for.

    Do not log the token.
    """

    try:
        payload = jwt.decode(
            token,
            settings.jwt_secret,
            algorithms=[settings.jwt_algorithm],
            options={"require": ["sub", "exp"]},
        )
    except jwt.ExpiredSignatureError as exc:
        logger.info("Token expired")
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Token expired") from exc
    except jwt.InvalidTokenError as exc:
        logger.info("Token invalid: %s", type(exc).__name__)
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Invalid token") from exc

    try:
        return int(payload["sub"])
    except (TypeError, ValueError) as exc:
        logger.info("Token subject is not a user id")
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Invalid token") from exc


def issue_access_token(user_id: int, settings: Settings, *, ttl: timedelta | None = None) -> str:
    now = datetime.now(timezone.utc)
    expires = now + (ttl if ttl is not None else timedelta(minutes=settings.access_token_ttl_minutes))
    claims = {"sub": str(user_id), "iat": now, "exp": expires}
    return jwt.encode(claims, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def load_principal(db: Session, user_id: int) -> Principal:
    user = db.execute(select(User).where(User.id == user_id)).scalar_one_or_none()

    if user is None or not user.is_active:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid or inactive user")

    return Principal(id=user.id, global_role=user.global_role)
