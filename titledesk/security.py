"""
TitleDesk Backend — Password Hashing and Tokens
=================================================

What:  bcrypt password hashing (passlib) and HS256 JWT handling (PyJWT).
Who:   AuthService (login, register, reset) and the auth dependencies.

Token types:
    access:  {sub, email, role, iat, exp, typ="access"}
             Lifetime JWT_EXPIRES_MINUTES. `iat` is compared against the
             user's last_forced_logout_at on every request.
    reset:   {sub, fp, iat, exp, typ="reset"}
             `fp` is a fingerprint of the password hash at issue time, so
             a reset token stops working once the password changes.
"""

import hashlib
import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

import jwt
from passlib.context import CryptContext

from titledesk.config import settings

logger = logging.getLogger(__name__)

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

ACCESS_TOKEN = "access"
RESET_TOKEN = "reset"


class TokenError(Exception):
    """Token is malformed, has a bad signature, is expired, or has the wrong type."""


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """
    Check a plaintext password against a stored bcrypt hash.

    Malformed or unknown hashes count as a mismatch rather than an error.
    """
    try:
        return pwd_context.verify(plain_password, hashed_password)
    except (ValueError, TypeError):
        logger.warning("Stored password hash could not be verified")
        return False


def _encode(claims: Dict[str, Any], lifetime: timedelta, now: Optional[datetime] = None) -> str:
    issued = now or datetime.now(timezone.utc)
    payload = {
        **claims,
        "iat": int(issued.timestamp()),
        "exp": int((issued + lifetime).timestamp()),
    }
    return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def _decode(token: str, expected_type: str) -> Dict[str, Any]:
    try:
        payload = jwt.decode(
            token,
            settings.jwt_secret,
            algorithms=[settings.jwt_algorithm],
            options={"require": ["exp", "iat", "sub"]},
        )
    except jwt.PyJWTError as e:
        raise TokenError(str(e)) from e
    if payload.get("typ") != expected_type:
        raise TokenError(f"Expected a {expected_type} token")
    return payload


def create_access_token(
    user_id: int,
    email: str,
    role: Optional[str],
    now: Optional[datetime] = None,
) -> str:
    return _encode(
        {"sub": str(user_id), "email": email, "role": role, "typ": ACCESS_TOKEN},
        timedelta(minutes=settings.jwt_expires_minutes),
        now=now,
    )


def decode_access_token(token: str) -> Dict[str, Any]:
    """
    Verify signature and expiry of an access token.

    Returns:
        Claims dict with `sub` (user id as string) and `iat` (epoch seconds).

    Raises:
        TokenError: on any verification failure
    """
    return _decode(token, ACCESS_TOKEN)


def password_fingerprint(password_hash: str) -> str:
    return hashlib.sha256(password_hash.encode("utf-8")).hexdigest()[:16]


def create_reset_token(user_id: int, password_hash: str) -> str:
    return _encode(
        {"sub": str(user_id), "fp": password_fingerprint(password_hash), "typ": RESET_TOKEN},
        timedelta(minutes=settings.password_reset_expires_minutes),
    )


def decode_reset_token(token: str) -> Dict[str, Any]:
    return _decode(token, RESET_TOKEN)


def issued_before(iat: int, cutoff: Optional[datetime]) -> bool:
    """
    True when a token issued at `iat` predates a forced-logout cutoff.

    `iat` has one-second resolution, so the cutoff is truncated to whole
    seconds as well; a token minted in the same second survives.
    """
    if cutoff is None:
        return False
    if cutoff.tzinfo is None:
        cutoff = cutoff.replace(tzinfo=timezone.utc)
    return int(iat) < int(cutoff.timestamp())
