from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from bellwright.api import deps
from bellwright.db.session import get_db
from bellwright.schemas.payment import (
    PaymentCreate,
    PaymentDTO,
    PaymentListResponse,
    PaymentStatus,
)
from bellwright.services import payments
from bellwright.services.identity import CallerIdentity

router = APIRouter(prefix="/me/payments", tags=["payments"])


@router.post("", response_model=PaymentDTO, status_code=status.HTTP_201_CREATED)
async def submit_payment(
    payload: PaymentCreate,
    caller: CallerIdentity = Depends(deps.require_user),
    db: AsyncSession = Depends(get_db),
) -> PaymentDTO:
    return PaymentDTO.model_validate(await payments.submit_payment(db, caller, payload))


@router.get("", response_model=PaymentListResponse)
async def list_my_payments(
    status_filter: Optional[PaymentStatus] = Query(default=None, alias="status"),
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
    caller: CallerIdentity = Depends(deps.require_user),
    db: AsyncSession = Depends(get_db),
) -> PaymentListResponse:
    rows, total = await payments.list_payments(
        db, caller, "own", status=status_filter, limit=limit, offset=offset
    )
    items = [PaymentDTO.model_validate(row) for row in rows]
    return PaymentListResponse(items=items, total=total)
