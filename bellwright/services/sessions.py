from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone

from sqlalchemy.ext.asyncio import AsyncSession

from bellwright.core.exceptions import AuthError, ConflictError, ValidationError
from bellwright.core.security import (
    create_access_token,
    decode_token,
    get_password_hash,
    verify_password,
)
from bellwright.db.data_access import DataAccess
from bellwright.models import Identity
from bellwright.schemas.auth import ProfileUpdate, SignUpRequest
from bellwright.services.identity import CallerIdentity, Role, Session
from bellwright.utils.login_security import (
    check_lockout,
    is_token_revoked,
    register_login_attempt,
    revoke_token,
)

logger = logging.getLogger(__name__)


def normalize_email(email: str) -> str:
    return email.strip().lower()


def issue_session(identity: Identity) -> Session:
    token, expires_at = create_access_token(
        str(identity.id),
        email=identity.email,
        scope=Role.USER.value,
        token_version=identity.token_version,
    )
    return Session(
        subject=str(identity.id),
        email=identity.email,
        scope=Role.USER.value,
        expires_at=expires_at,
        token_version=identity.token_version,
        access_token=token,
    )


async def sign_up(db: AsyncSession, payload: SignUpRequest) -> Identity:
    data = DataAccess(db)
    email = normalize_email(payload.email)
    existing = await data.select_one(Identity, Identity.email == email)
    if existing:
        raise ConflictError("An account with this email already exists")
    try:
        hashed = get_password_hash(payload.password)
    except ValueError as exc:
        raise ValidationError(str(exc)) from exc
    identity = await data.insert(
        Identity(
            email=email,
            hashed_password=hashed,
            first_name=payload.first_name.strip(),
            last_name=payload.last_name.strip(),
            token_version=0,
            is_active=True,
        )
    )
    logger.info("Identity %s signed up", identity.id)
    return identity


async def verify_credentials(db: AsyncSession, email: str, password: str) -> Identity:
    email = normalize_email(email)
    await check_lockout(email)
    data = DataAccess(db)
    identity = await data.select_one(Identity, Identity.email == email)
    hashed = identity.hashed_password if identity else None
    if not verify_password(password, hashed) or identity is None or not identity.is_active:
        await register_login_attempt(email, success=False)
        raise AuthError("Invalid email or password")
    await register_login_attempt(email, success=True)
    return identity


async def start_session(db: AsyncSession, identity: Identity) -> Session:
    # Bumping the version first invalidates every session issued before this one
    identity.token_version = (identity.token_version or 0) + 1
    identity.last_sign_in_at = datetime.now(timezone.utc)
    await DataAccess(db).commit()
    logger.info("Identity %s signed in", identity.id)
    return issue_session(identity)


async def authenticate(db: AsyncSession, email: str, password: str) -> Session:
    identity = await verify_credentials(db, email, password)
    return await start_session(db, identity)


async def current_session(token: str | None) -> Session | None:
    if not token:
        return None
    try:
        payload = decode_token(token)
    except ValueError as exc:
        raise AuthError("Session expired or invalid") from exc

    subject = payload.get("sub")
    if not subject:
        raise AuthError("Session expired or invalid")
    scope = payload.get("scope", Role.USER.value)
    jti = payload.get("jti")
    if scope == Role.SUPERADMIN.value and jti and await is_token_revoked(jti):
        raise AuthError("Session has been signed out")

    return Session(
        subject=subject,
        email=payload.get("email", ""),
        scope=scope,
        expires_at=datetime.fromtimestamp(payload["exp"], tz=timezone.utc),
        token_version=payload.get("tv"),
        jti=jti,
        access_token=token,
    )


async def sign_out(db: AsyncSession, session: Session) -> None:
    if session.scope == Role.SUPERADMIN.value:
        if session.jti:
            await revoke_token(session.jti, session.expires_at)
        logger.info("Superadmin signed out")
        return

    data = DataAccess(db)
    rows = await data.update(
        Identity,
        [
            Identity.id == uuid.UUID(session.subject),
            Identity.token_version == session.token_version,
        ],
        {"token_version": Identity.token_version + 1},
    )
    if rows:
        logger.info("Identity %s signed out", session.subject)


async def list_all_identities(db: AsyncSession, caller: CallerIdentity) -> list[Identity]:
    caller.require(Role.ADMIN)
    return await DataAccess(db).select(Identity, order_by=Identity.created_at.desc())


async def get_profile(db: AsyncSession, caller: CallerIdentity) -> Identity:
    caller.require(Role.USER)
    identity = await DataAccess(db).select_one(Identity, Identity.id == caller.id)
    if identity is None:
        raise AuthError("Account not found or inactive")
    return identity


async def update_profile(
    db: AsyncSession, caller: CallerIdentity, payload: ProfileUpdate
) -> Identity:
    caller.require(Role.USER)
    patch = {
        key: value.strip()
        for key, value in payload.model_dump(exclude_unset=True).items()
        if value is not None
    }
    if not patch:
        return await get_profile(db, caller)
    rows = await DataAccess(db).update(Identity, [Identity.id == caller.id], patch)
    if not rows:
        raise AuthError("Account not found or inactive")
    return rows[0]
