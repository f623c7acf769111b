from __future__ import annotations

import hmac
import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from bellwright.core.exceptions import AuthError, DataError, PermissionDeniedError
from bellwright.core.security import create_access_token, verify_password
from bellwright.core.settings import settings
from bellwright.db.data_access import DataAccess
from bellwright.models import AdminUser, Identity

logger = logging.getLogger(__name__)

PENDING_ADMIN_NOTICE = "Your admin account is pending approval by a superadmin."
REJECTED_ADMIN_NOTICE = "Your admin account request has been rejected."


class Role(str, Enum):
    ANONYMOUS = "anonymous"
    USER = "user"
    ADMIN = "admin"
    SUPERADMIN = "superadmin"


_ROLE_RANK = {
    Role.ANONYMOUS: 0,
    Role.USER: 1,
    Role.ADMIN: 2,
    Role.SUPERADMIN: 3,
}


@dataclass(frozen=True, slots=True)
class Session:
    subject: str
    email: str
    scope: str
    expires_at: datetime
    token_version: Optional[int] = None
    jti: Optional[str] = None
    access_token: Optional[str] = None


@dataclass(frozen=True, slots=True)
class CallerIdentity:
    id: Optional[uuid.UUID]
    email: Optional[str]
    roles: frozenset[Role]
    notices: tuple[str, ...] = field(default=())

    @property
    def role(self) -> Role:
        return max(self.roles, key=_ROLE_RANK.__getitem__)

    @property
    def is_anonymous(self) -> bool:
        return self.roles == frozenset({Role.ANONYMOUS})

    def has_role(self, role: Role) -> bool:
        return role in self.roles

    def require(self, role: Role) -> "CallerIdentity":
        if role in self.roles:
            return self
        if self.is_anonymous:
            raise AuthError("Authentication required")
        if role == Role.ADMIN and self.notices:
            raise PermissionDeniedError(self.notices[0])
        raise PermissionDeniedError(f"The {role.value} role is required for this action")


ANONYMOUS_CALLER = CallerIdentity(id=None, email=None, roles=frozenset({Role.ANONYMOUS}))


def is_superadmin_email(email: str | None) -> bool:
    configured = settings.superadmin_email
    if not configured or not email:
        return False
    # Exact match: no case folding, no trimming
    return hmac.compare_digest(email.encode("utf-8"), configured.encode("utf-8"))


def superadmin_caller(email: str) -> CallerIdentity:
    return CallerIdentity(id=None, email=email, roles=frozenset({Role.SUPERADMIN}))


def caller_for_identity(identity: Identity) -> CallerIdentity:
    """Caller with the plain ``user`` role, for flows that run right after sign-up."""
    return CallerIdentity(id=identity.id, email=identity.email, roles=frozenset({Role.USER}))


async def _admin_status(data: DataAccess, identity: Identity) -> str | None:
    try:
        grant = await data.select_one(AdminUser, AdminUser.id == identity.id)
    except DataError:
        logger.error("Admin lookup failed for identity %s; treating as non-admin", identity.id)
        return None
    return grant.status if grant else None


async def resolve_caller(db: AsyncSession, session: Session | None) -> CallerIdentity:
    if session is None:
        return ANONYMOUS_CALLER

    if session.scope == Role.SUPERADMIN.value:
        if is_superadmin_email(session.subject):
            return superadmin_caller(session.subject)
        logger.warning("Rejected superadmin session for %s", session.subject)
        raise AuthError("Invalid session")

    try:
        identity_id = uuid.UUID(session.subject)
    except ValueError as exc:
        raise AuthError("Invalid session") from exc

    data = DataAccess(db)
    identity = await data.select_one(Identity, Identity.id == identity_id)
    if identity is None or not identity.is_active:
        raise AuthError("Account not found or inactive")
    if session.token_version != identity.token_version:
        raise AuthError("Session has been signed out")

    roles = {Role.USER}
    notices: list[str] = []
    status = await _admin_status(data, identity)
    if status == "approved":
        roles.add(Role.ADMIN)
    elif status == "pending":
        notices.append(PENDING_ADMIN_NOTICE)
    elif status == "rejected":
        notices.append(REJECTED_ADMIN_NOTICE)

    return CallerIdentity(
        id=identity.id,
        email=identity.email,
        roles=frozenset(roles),
        notices=tuple(notices),
    )


def authenticate_superadmin(email: str, password: str) -> Session:
    """Both the configured e-mail and the bcrypt hash must match."""
    password_hash = settings.superadmin_password_hash
    email_ok = is_superadmin_email(email)
    # Always pay for the bcrypt check so a wrong e-mail is not faster to reject
    password_ok = verify_password(password, password_hash if email_ok else None)
    if not (email_ok and password_ok and password_hash):
        logger.warning("Superadmin sign-in denied")
        raise AuthError("Invalid superadmin credentials")

    token, expires_at = create_access_token(email, email=email, scope=Role.SUPERADMIN.value)
    logger.info("Superadmin signed in")
    return Session(
        subject=email,
        email=email,
        scope=Role.SUPERADMIN.value,
        expires_at=expires_at,
        access_token=token,
    )
