from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from bellwright.api import deps
from bellwright.db.session import get_db
from bellwright.schemas.loan import (
    LoanApplicationCreate,
    LoanApplicationDTO,
    LoanApplicationListResponse,
    LoanApplicationStatus,
)
from bellwright.services import loan_applications
from bellwright.services.identity import CallerIdentity

router = APIRouter(prefix="/me/loan-applications", tags=["loan-applications"])


@router.post("", response_model=LoanApplicationDTO, status_code=status.HTTP_201_CREATED)
async def submit_loan_application(
    payload: LoanApplicationCreate,
    caller: CallerIdentity = Depends(deps.require_user),
    db: AsyncSession = Depends(get_db),
) -> LoanApplicationDTO:
    application = await loan_applications.submit_application(db, caller, payload)
    return LoanApplicationDTO.model_validate(application)


@router.get("", response_model=LoanApplicationListResponse)
async def list_my_loan_applications(
    status_filter: Optional[LoanApplicationStatus] = Query(default=None, alias="status"),
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
    caller: CallerIdentity = Depends(deps.require_user),
    db: AsyncSession = Depends(get_db),
) -> LoanApplicationListResponse:
    rows, total = await loan_applications.list_applications(
        db, caller, "own", status=status_filter, limit=limit, offset=offset
    )
    items = [LoanApplicationDTO.model_validate(row) for row in rows]
    return LoanApplicationListResponse(items=items, total=total)


@router.get("/{application_id}", response_model=LoanApplicationDTO)
async def get_my_loan_application(
    application_id: UUID,
    caller: CallerIdentity = Depends(deps.require_user),
    db: AsyncSession = Depends(get_db),
) -> LoanApplicationDTO:
    application = await loan_applications.get_application(db, caller, application_id)
    return LoanApplicationDTO.model_validate(application)
