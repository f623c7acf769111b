from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from bellwright.api import deps
from bellwright.db.session import get_db
from bellwright.schemas.payment import (
    PaymentMethodCreate,
    PaymentMethodDTO,
    PaymentMethodListResponse,
)
from bellwright.services import payment_methods
from bellwright.services.identity import CallerIdentity

router = APIRouter(prefix="/me/payment-methods", tags=["payment-methods"])


@router.post("", response_model=PaymentMethodDTO, status_code=status.HTTP_201_CREATED)
async def create_payment_method(
    payload: PaymentMethodCreate,
    caller: CallerIdentity = Depends(deps.require_user),
    db: AsyncSession = Depends(get_db),
) -> PaymentMethodDTO:
    method = await payment_methods.create_payment_method(db, caller, payload)
    return payment_methods.to_dto(method)


@router.get("", response_model=PaymentMethodListResponse)
async def list_payment_methods(
    caller: CallerIdentity = Depends(deps.require_user),
    db: AsyncSession = Depends(get_db),
) -> PaymentMethodListResponse:
    rows = await payment_methods.list_payment_methods(db, caller)
    items = [payment_methods.to_dto(row) for row in rows]
    return PaymentMethodListResponse(items=items, total=len(items))


@router.get("/default", response_model=PaymentMethodDTO)
async def get_default_payment_method(
    caller: CallerIdentity = Depends(deps.require_user),
    db: AsyncSession = Depends(get_db),
) -> PaymentMethodDTO:
    method = await payment_methods.get_default_payment_method(db, caller)
    return payment_methods.to_dto(method)
