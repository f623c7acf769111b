from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone
from typing import Literal

from sqlalchemy.ext.asyncio import AsyncSession

from bellwright.core.exceptions import (
    DataError,
    NotFoundError,
    SubmissionError,
    ValidationError,
)
from bellwright.db.data_access import DataAccess
from bellwright.models import LoanApplication
from bellwright.schemas.loan import (
    LOAN_DECISIONS,
    LoanApplicationCreate,
    LoanApplicationStatus,
)
from bellwright.services.audit import record_audit_log
from bellwright.services.identity import CallerIdentity, Role
from bellwright.services.transitions import transition_from_pending

logger = logging.getLogger(__name__)

ListScope = Literal["own", "all"]


async def submit_application(
    db: AsyncSession, caller: CallerIdentity, payload: LoanApplicationCreate
) -> LoanApplication:
    caller.require(Role.USER)
    application = LoanApplication(
        user_id=caller.id,
        loan_type=payload.loan_type,
        amount=payload.amount,
        term=payload.term,
        full_name=payload.full_name,
        email=str(payload.email),
        phone=payload.phone,
        address=payload.address,
        employment=payload.employment,
        income=payload.income,
        purpose=payload.purpose,
        status=LoanApplicationStatus.PENDING.value,
    )
    try:
        application = await DataAccess(db).insert(application)
    except DataError as exc:
        logger.error("Loan application submission failed for %s: %s", caller.id, exc.message)
        raise SubmissionError("Failed to submit loan application. Please try again.") from exc
    logger.info(
        "Loan application %s submitted by %s for %s over %s months",
        application.id,
        caller.id,
        application.amount,
        application.term,
    )
    return application


def _scope_criteria(
    caller: CallerIdentity, scope: ListScope, user_id: uuid.UUID | None = None
) -> list:
    if scope == "all":
        caller.require(Role.ADMIN)
        return [] if user_id is None else [LoanApplication.user_id == user_id]
    caller.require(Role.USER)
    return [LoanApplication.user_id == caller.id]


async def list_applications(
    db: AsyncSession,
    caller: CallerIdentity,
    scope: ListScope = "own",
    *,
    status: LoanApplicationStatus | None = None,
    user_id: uuid.UUID | None = None,
    limit: int | None = None,
    offset: int = 0,
) -> tuple[list[LoanApplication], int]:
    """Return one page of applications and the number matching the filters.

    ``user_id`` narrows the admin-wide scope to a single applicant.
    """
    criteria = _scope_criteria(caller, scope, user_id)
    if status is not None:
        criteria.append(LoanApplication.status == status.value)
    data = DataAccess(db)
    rows = await data.select(
        LoanApplication,
        *criteria,
        order_by=LoanApplication.created_at.desc(),
        limit=limit,
        offset=offset,
    )
    total = await data.count_rows(LoanApplication, *criteria)
    return rows, total


async def get_application(
    db: AsyncSession, caller: CallerIdentity, application_id: uuid.UUID
) -> LoanApplication:
    caller.require(Role.USER)
    criteria = [LoanApplication.id == application_id]
    if not caller.has_role(Role.ADMIN):
        criteria.append(LoanApplication.user_id == caller.id)
    application = await DataAccess(db).select_one(LoanApplication, *criteria)
    if application is None:
        raise NotFoundError("Loan application not found")
    return application


async def transition_application(
    db: AsyncSession,
    caller: CallerIdentity,
    application_id: uuid.UUID,
    target: LoanApplicationStatus | str,
) -> LoanApplication:
    caller.require(Role.ADMIN)
    try:
        target = LoanApplicationStatus(target)
    except ValueError as exc:
        raise ValidationError(f"Unsupported loan status: {target}") from exc
    if target not in LOAN_DECISIONS:
        raise ValidationError(f"Loan applications cannot be moved to {target.value}")

    now = datetime.now(timezone.utc)
    if target == LoanApplicationStatus.APPROVED:
        patch = {"approved_at": now, "rejected_at": None}
    else:
        patch = {"rejected_at": now, "approved_at": None}
    patch.update({"decided_by": caller.id, "updated_at": now})

    data = DataAccess(db)
    application, changed = await transition_from_pending(
        data, LoanApplication, application_id, target.value, patch, label="Loan application"
    )
    if not changed:
        return application

    record_audit_log(
        db,
        caller,
        action=f"loan_application.{target.value}",
        resource_type="loan_application",
        resource_id=str(application.id),
        old_value={"status": LoanApplicationStatus.PENDING.value},
        new_value={
            "status": application.status,
            "approved_at": application.approved_at,
            "rejected_at": application.rejected_at,
        },
    )
    await data.commit()
    logger.info("Loan application %s %s by %s", application.id, target.value, caller.email)
    return application
