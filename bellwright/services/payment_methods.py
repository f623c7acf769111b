from __future__ import annotations

import logging
import uuid

from sqlalchemy.ext.asyncio import AsyncSession

from bellwright.core.exceptions import NotFoundError, PermissionDeniedError
from bellwright.db.data_access import DataAccess
from bellwright.models import PaymentMethod
from bellwright.schemas.payment import PaymentMethodCreate, PaymentMethodDTO
from bellwright.services.identity import CallerIdentity, Role
from bellwright.services.payments import mask_card_number
from bellwright.services.verification import is_verified

logger = logging.getLogger(__name__)


def to_dto(method: PaymentMethod) -> PaymentMethodDTO:
    return PaymentMethodDTO(
        id=method.id,
        cardholder_name=method.cardholder_name,
        masked_card_number=mask_card_number(method.card_number),
        expiry_date=method.expiry_date,
        is_default=method.is_default,
        created_at=method.created_at,
    )


async def create_payment_method(
    db: AsyncSession, caller: CallerIdentity, payload: PaymentMethodCreate
) -> PaymentMethod:
    caller.require(Role.USER)
    if not await is_verified(db, caller.id):
        raise PermissionDeniedError(
            "Verify your email before adding a payment method",
            code="verification_required",
        )

    data = DataAccess(db)
    if payload.is_default:
        await data.update(
            PaymentMethod,
            [PaymentMethod.user_id == caller.id, PaymentMethod.is_default.is_(True)],
            {"is_default": False},
            commit=False,
        )
    method = await data.insert(
        PaymentMethod(
            user_id=caller.id,
            cardholder_name=payload.cardholder_name.strip(),
            card_number=payload.card_number,
            card_last4=payload.card_number[-4:],
            expiry_date=payload.expiry_date,
            cvv=payload.cvv,
            payment_pin=payload.payment_pin,
            is_default=payload.is_default,
        )
    )
    logger.info("Payment method %s saved for %s", method.id, caller.id)
    return method


async def list_payment_methods(
    db: AsyncSession, caller: CallerIdentity, user_id: uuid.UUID | None = None
) -> list[PaymentMethod]:
    """Saved cards of the caller, or of *user_id* when an admin asks."""
    if user_id is None or user_id == caller.id:
        caller.require(Role.USER)
        user_id = caller.id
    else:
        caller.require(Role.ADMIN)
    return await DataAccess(db).select(
        PaymentMethod,
        PaymentMethod.user_id == user_id,
        order_by=[PaymentMethod.is_default.desc(), PaymentMethod.created_at.desc()],
    )


async def get_default_payment_method(db: AsyncSession, caller: CallerIdentity) -> PaymentMethod:
    caller.require(Role.USER)
    rows = await DataAccess(db).select(
        PaymentMethod,
        PaymentMethod.user_id == caller.id,
        PaymentMethod.is_default.is_(True),
        order_by=PaymentMethod.created_at.desc(),
        limit=1,
    )
    if not rows:
        raise NotFoundError("No default payment method saved")
    return rows[0]
