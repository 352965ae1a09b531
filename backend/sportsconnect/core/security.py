"""Bearer-token identity. Token issuance belongs to the auth service; this module only verifies."""

import logging
from datetime import datetime, timedelta, timezone

import jwt
from fastapi import Depends, HTTPException
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from sportsconnect.core.config import settings

logger = logging.getLogger(__name__)

_bearer = HTTPBearer(auto_error=False)


def create_access_token(user_id: int, expires_in: timedelta = timedelta(days=7)) -> str:
    payload = {
        "sub": str(user_id),
        "exp": datetime.now(timezone.utc) + expires_in,
    }
    return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def decode_access_token(token: str) -> int:
    """Return the user id carried by the token. Raises jwt.InvalidTokenError."""
    payload = jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_algorithm])
    # Older tokens carry {"user": {"id": ...}} instead of "sub"
    subject = payload.get("sub") or (payload.get("user") or {}).get("id")
    if subject is None:
        raise jwt.InvalidTokenError("Token has no subject")
    try:
        return int(subject)
    except (TypeError, ValueError):
        raise jwt.InvalidTokenError(f"Malformed subject: {subject!r}")


async def get_current_user_id(
    credentials: HTTPAuthorizationCredentials | None = Depends(_bearer),
) -> int:
    if credentials is None or credentials.scheme.lower() != "bearer":
        raise HTTPException(status_code=401, detail="Not authorized")
    try:
        return decode_access_token(credentials.credentials)
    except jwt.InvalidTokenError as e:
        logger.debug(f"Rejected token: {e}")
        raise HTTPException(status_code=401, detail="Not authorized")
