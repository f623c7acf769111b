"""Admin role grants: self-service registration, superadmin decision."""

from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone

from sqlalchemy.ext.asyncio import AsyncSession

from bellwright.core.exceptions import (
    AuthError,
    ConflictError,
    PermissionDeniedError,
    ValidationError,
)
from bellwright.core.security import get_password_hash, verify_password
from bellwright.db.data_access import DataAccess
from bellwright.models import AdminUser, Identity
from bellwright.schemas.admin import AdminStatus
from bellwright.schemas.auth import AdminRegisterRequest
from bellwright.services import sessions
from bellwright.services.audit import model_snapshot, record_audit_log
from bellwright.services.identity import (
    PENDING_ADMIN_NOTICE,
    REJECTED_ADMIN_NOTICE,
    CallerIdentity,
    Role,
    Session,
)
from bellwright.services.transitions import transition_from_pending

logger = logging.getLogger(__name__)

ADMIN_DECISIONS = {AdminStatus.APPROVED, AdminStatus.REJECTED}


async def register_admin(db: AsyncSession, payload: AdminRegisterRequest) -> AdminUser:
    data = DataAccess(db)
    email = sessions.normalize_email(payload.email)
    if await data.select_one(AdminUser, AdminUser.email == email):
        raise ConflictError("An admin registration already exists for this email")

    identity = await data.select_one(Identity, Identity.email == email)
    if identity is None:
        try:
            hashed = get_password_hash(payload.password)
        except ValueError as exc:
            raise ValidationError(str(exc)) from exc
        # Staged only; the grant insert below commits both rows together
        identity = data.stage(
            Identity(
                id=uuid.uuid4(),
                email=email,
                hashed_password=hashed,
                first_name=payload.first_name.strip(),
                last_name=payload.last_name.strip(),
                token_version=0,
                is_active=True,
            )
        )
    elif not verify_password(payload.password, identity.hashed_password):
        raise AuthError("An account with this email already exists; use its password")

    grant = await data.insert(
        AdminUser(
            id=identity.id,
            email=email,
            first_name=payload.first_name.strip(),
            last_name=payload.last_name.strip(),
            status=AdminStatus.PENDING.value,
        )
    )
    logger.info("Admin registration %s submitted; awaiting superadmin approval", grant.id)
    return grant


async def authenticate_admin(db: AsyncSession, email: str, password: str) -> Session:
    grant = await DataAccess(db).select_one(
        AdminUser, AdminUser.email == sessions.normalize_email(email)
    )
    if grant is None:
        raise AuthError("No admin account found for this email")
    if grant.status == AdminStatus.PENDING.value:
        raise PermissionDeniedError(PENDING_ADMIN_NOTICE, code="admin_pending")
    if grant.status == AdminStatus.REJECTED.value:
        raise PermissionDeniedError(REJECTED_ADMIN_NOTICE, code="admin_rejected")
    return await sessions.authenticate(db, email, password)


async def list_admins(
    db: AsyncSession, caller: CallerIdentity, status: AdminStatus | None = None
) -> list[AdminUser]:
    caller.require(Role.SUPERADMIN)
    criteria = [AdminUser.status == status.value] if status is not None else []
    return await DataAccess(db).select(
        AdminUser, *criteria, order_by=AdminUser.created_at.desc()
    )


async def decide_admin(
    db: AsyncSession,
    caller: CallerIdentity,
    admin_id: uuid.UUID,
    target: AdminStatus | str,
) -> AdminUser:
    caller.require(Role.SUPERADMIN)
    try:
        target = AdminStatus(target)
    except ValueError as exc:
        raise ValidationError(f"Unsupported admin status: {target}") from exc
    if target not in ADMIN_DECISIONS:
        raise ValidationError(f"Admin registrations cannot be moved to {target.value}")

    now = datetime.now(timezone.utc)
    if target == AdminStatus.APPROVED:
        patch = {"approved_at": now, "approved_by": caller.email, "rejected_at": None}
    else:
        patch = {"rejected_at": now, "approved_at": None, "approved_by": None}

    data = DataAccess(db)
    grant, changed = await transition_from_pending(
        data, AdminUser, admin_id, target.value, patch, label="Admin registration"
    )
    if not changed:
        return grant

    record_audit_log(
        db,
        caller,
        action=f"admin_user.{target.value}",
        resource_type="admin_user",
        resource_id=str(grant.id),
        old_value={"status": AdminStatus.PENDING.value},
        new_value=model_snapshot(grant, exclude={"created_at"}),
    )
    await data.commit()
    logger.info("Admin registration %s %s", grant.id, target.value)
    return grant
