from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from bellwright.api import deps
from bellwright.db.session import get_db
from bellwright.schemas.admin import AdminDashboard, UserDetail, UserSummary
from bellwright.schemas.loan import (
    LoanApplicationDTO,
    LoanApplicationListResponse,
    LoanApplicationStatus,
)
from bellwright.schemas.payment import PaymentDTO, PaymentListResponse, PaymentStatus
from bellwright.services import dashboard, loan_applications, payments, user_directory
from bellwright.services.identity import CallerIdentity

router = APIRouter(prefix="/admin", tags=["admin"])


@router.get("/dashboard", response_model=AdminDashboard)
async def read_dashboard(
    caller: CallerIdentity = Depends(deps.require_admin),
    db: AsyncSession = Depends(get_db),
) -> AdminDashboard:
    return await dashboard.admin_dashboard(db, caller)


@router.get("/users", response_model=list[UserSummary])
async def list_users(
    caller: CallerIdentity = Depends(deps.require_admin),
    db: AsyncSession = Depends(get_db),
) -> list[UserSummary]:
    return await user_directory.list_users(db, caller)


@router.get("/users/{user_id}", response_model=UserDetail)
async def read_user(
    user_id: UUID,
    caller: CallerIdentity = Depends(deps.require_admin),
    db: AsyncSession = Depends(get_db),
) -> UserDetail:
    return await user_directory.user_detail(db, caller, user_id)


@router.get("/loan-applications", response_model=LoanApplicationListResponse)
async def list_loan_applications(
    status_filter: Optional[LoanApplicationStatus] = Query(default=None, alias="status"),
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
    caller: CallerIdentity = Depends(deps.require_admin),
    db: AsyncSession = Depends(get_db),
) -> LoanApplicationListResponse:
    rows, total = await loan_applications.list_applications(
        db, caller, "all", status=status_filter, limit=limit, offset=offset
    )
    items = [LoanApplicationDTO.model_validate(row) for row in rows]
    return LoanApplicationListResponse(items=items, total=total)


@router.post("/loan-applications/{application_id}/approve", response_model=LoanApplicationDTO)
async def approve_loan_application(
    application_id: UUID,
    caller: CallerIdentity = Depends(deps.require_admin),
    db: AsyncSession = Depends(get_db),
) -> LoanApplicationDTO:
    application = await loan_applications.transition_application(
        db, caller, application_id, LoanApplicationStatus.APPROVED
    )
    return LoanApplicationDTO.model_validate(application)


@router.post("/loan-applications/{application_id}/reject", response_model=LoanApplicationDTO)
async def reject_loan_application(
    application_id: UUID,
    caller: CallerIdentity = Depends(deps.require_admin),
    db: AsyncSession = Depends(get_db),
) -> LoanApplicationDTO:
    application = await loan_applications.transition_application(
        db, caller, application_id, LoanApplicationStatus.REJECTED
    )
    return LoanApplicationDTO.model_validate(application)


@router.get("/payments", response_model=PaymentListResponse)
async def list_payments(
    status_filter: Optional[PaymentStatus] = Query(default=None, alias="status"),
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
    caller: CallerIdentity = Depends(deps.require_admin),
    db: AsyncSession = Depends(get_db),
) -> PaymentListResponse:
    rows, total = await payments.list_payments(
        db, caller, "all", status=status_filter, limit=limit, offset=offset
    )
    items = [PaymentDTO.model_validate(row) for row in rows]
    return PaymentListResponse(items=items, total=total)


@router.post("/payments/{payment_id}/complete", response_model=PaymentDTO)
async def complete_payment(
    payment_id: UUID,
    caller: CallerIdentity = Depends(deps.require_admin),
    db: AsyncSession = Depends(get_db),
) -> PaymentDTO:
    payment = await payments.transition_payment(db, caller, payment_id, PaymentStatus.COMPLETED)
    return PaymentDTO.model_validate(payment)


@router.post("/payments/{payment_id}/fail", response_model=PaymentDTO)
async def fail_payment(
    payment_id: UUID,
    caller: CallerIdentity = Depends(deps.require_admin),
    db: AsyncSession = Depends(get_db),
) -> PaymentDTO:
    payment = await payments.transition_payment(db, caller, payment_id, PaymentStatus.FAILED)
    return PaymentDTO.model_validate(payment)
