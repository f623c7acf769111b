from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone

from sqlalchemy.ext.asyncio import AsyncSession

from bellwright.core.exceptions import DataError, SubmissionError, ValidationError
from bellwright.db.data_access import DataAccess
from bellwright.models import Payment
from bellwright.schemas.payment import (
    PAYMENT_DECISIONS,
    PaymentCreate,
    PaymentStatus,
    clean_card_number,
)
from bellwright.services.audit import record_audit_log
from bellwright.services.identity import CallerIdentity, Role
from bellwright.services.loan_applications import ListScope
from bellwright.services.transitions import transition_from_pending

logger = logging.getLogger(__name__)

VISIBLE_PREFIX = 4
VISIBLE_SUFFIX = 4


def mask_card_number(number: str) -> str:
    """Keep the first and last four digits; every digit between becomes ``*``."""
    digits = clean_card_number(number)
    if len(digits) <= VISIBLE_PREFIX + VISIBLE_SUFFIX:
        return digits
    hidden = len(digits) - VISIBLE_PREFIX - VISIBLE_SUFFIX
    return digits[:VISIBLE_PREFIX] + "*" * hidden + digits[-VISIBLE_SUFFIX:]


async def submit_payment(
    db: AsyncSession, caller: CallerIdentity, payload: PaymentCreate
) -> Payment:
    caller.require(Role.USER)
    payment = Payment(
        user_id=caller.id,
        amount=payload.amount,
        cardholder_name=payload.cardholder_name.strip(),
        card_number=mask_card_number(payload.card_number),
        payment_type=payload.payment_type.value,
        description=payload.description,
        status=PaymentStatus.PENDING.value,
    )
    try:
        payment = await DataAccess(db).insert(payment)
    except DataError as exc:
        logger.error("Payment submission failed for %s: %s", caller.id, exc.message)
        raise SubmissionError("Payment failed. Please try again.") from exc
    logger.info("Payment %s of %s submitted by %s", payment.id, payment.amount, caller.id)
    return payment


async def list_payments(
    db: AsyncSession,
    caller: CallerIdentity,
    scope: ListScope = "own",
    *,
    status: PaymentStatus | None = None,
    user_id: uuid.UUID | None = None,
    limit: int | None = None,
    offset: int = 0,
) -> tuple[list[Payment], int]:
    if scope == "all":
        caller.require(Role.ADMIN)
        criteria = [] if user_id is None else [Payment.user_id == user_id]
    else:
        caller.require(Role.USER)
        criteria = [Payment.user_id == caller.id]
    if status is not None:
        criteria.append(Payment.status == status.value)
    data = DataAccess(db)
    rows = await data.select(
        Payment,
        *criteria,
        order_by=Payment.created_at.desc(),
        limit=limit,
        offset=offset,
    )
    return rows, await data.count_rows(Payment, *criteria)


async def transition_payment(
    db: AsyncSession,
    caller: CallerIdentity,
    payment_id: uuid.UUID,
    target: PaymentStatus | str,
) -> Payment:
    caller.require(Role.ADMIN)
    try:
        target = PaymentStatus(target)
    except ValueError as exc:
        raise ValidationError(f"Unsupported payment status: {target}") from exc
    if target not in PAYMENT_DECISIONS:
        raise ValidationError(f"Payments cannot be moved to {target.value}")

    patch = {"decided_by": caller.id, "updated_at": datetime.now(timezone.utc)}
    data = DataAccess(db)
    payment, changed = await transition_from_pending(
        data, Payment, payment_id, target.value, patch, label="Payment"
    )
    if not changed:
        return payment

    record_audit_log(
        db,
        caller,
        action=f"payment.{target.value}",
        resource_type="payment",
        resource_id=str(payment.id),
        old_value={"status": PaymentStatus.PENDING.value},
        new_value={"status": payment.status},
    )
    await data.commit()
    logger.info("Payment %s marked %s by %s", payment.id, target.value, caller.email)
    return payment
