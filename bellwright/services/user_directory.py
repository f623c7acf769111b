"""Admin view over registered users and everything they have on file."""

from __future__ import annotations

import logging
import uuid

from sqlalchemy.ext.asyncio import AsyncSession

from bellwright.core.exceptions import NotFoundError
from bellwright.db.data_access import DataAccess
from bellwright.models import Identity
from bellwright.schemas.admin import UserDetail, UserSummary
from bellwright.schemas.loan import LoanApplicationDTO
from bellwright.schemas.payment import PaymentDTO
from bellwright.services import loan_applications, payment_methods, payments
from bellwright.services.identity import CallerIdentity, Role
from bellwright.services.sessions import list_all_identities
from bellwright.services.verification import is_verified, verified_user_ids

logger = logging.getLogger(__name__)


def _summary(identity: Identity, verified: bool) -> UserSummary:
    summary = UserSummary.model_validate(identity)
    summary.is_verified = verified
    return summary


async def list_users(db: AsyncSession, caller: CallerIdentity) -> list[UserSummary]:
    identities = await list_all_identities(db, caller)
    verified = await verified_user_ids(db, [identity.id for identity in identities])
    return [_summary(identity, identity.id in verified) for identity in identities]


async def user_detail(db: AsyncSession, caller: CallerIdentity, user_id: uuid.UUID) -> UserDetail:
    caller.require(Role.ADMIN)
    identity = await DataAccess(db).select_one(Identity, Identity.id == user_id)
    if identity is None:
        raise NotFoundError("User not found")

    applications, _ = await loan_applications.list_applications(
        db, caller, "all", user_id=user_id
    )
    user_payments, _ = await payments.list_payments(db, caller, "all", user_id=user_id)
    methods = await payment_methods.list_payment_methods(db, caller, user_id=user_id)
    verified = await is_verified(db, user_id)

    logger.info("User %s opened by admin %s", user_id, caller.id)
    return UserDetail(
        user=_summary(identity, verified),
        loan_applications=[LoanApplicationDTO.model_validate(row) for row in applications],
        payments=[PaymentDTO.model_validate(row) for row in user_payments],
        payment_methods=[payment_methods.to_dto(method) for method in methods],
    )
