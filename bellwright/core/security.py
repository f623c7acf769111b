from __future__ import annotations

import hashlib
import hmac
import uuid
from datetime import datetime, timedelta, timezone
from typing import Any

from jose import JWTError, jwt
from passlib.context import CryptContext

from bellwright.core.settings import settings


pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

# Verified against when the account does not exist so both branches cost a bcrypt round.
_DUMMY_HASH = pwd_context.hash("bellwright-timing-equalizer")


def get_password_hash(password: str) -> str:
    min_len = settings.password_min_length
    if len(password) < min_len:
        raise ValueError(f"Password too short; minimum {min_len} characters")
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str | None) -> bool:
    if not hashed_password:
        pwd_context.verify(plain_password, _DUMMY_HASH)
        return False
    try:
        return pwd_context.verify(plain_password, hashed_password)
    except ValueError:
        return False


def hash_code(code: str) -> str:
    return hashlib.sha256(code.encode("utf-8")).hexdigest()


def codes_match(candidate: str, code_hash: str) -> bool:
    return hmac.compare_digest(hash_code(candidate), code_hash)


def create_access_token(
    subject: str,
    *,
    email: str,
    scope: str = "user",
    token_version: int | None = None,
    expires_delta: timedelta | None = None,
) -> tuple[str, datetime]:
    expire = datetime.now(timezone.utc) + (
        expires_delta or timedelta(minutes=settings.access_token_expire_minutes)
    )
    to_encode: dict[str, Any] = {
        "sub": subject,
        "email": email,
        "scope": scope,
        "exp": expire,
        "type": "access",
        "jti": uuid.uuid4().hex,
    }
    if token_version is not None:
        to_encode["tv"] = token_version
    token = jwt.encode(to_encode, settings.secret_key, algorithm=settings.jwt_algorithm)
    return token, expire


def decode_token(token: str) -> dict[str, Any]:
    try:
        payload = jwt.decode(token, settings.secret_key, algorithms=[settings.jwt_algorithm])
    except JWTError as exc:
        raise ValueError("Invalid token") from exc
    if payload.get("type") != "access":
        raise ValueError(f"Unexpected token type: {payload.get('type')}")
    return payload
