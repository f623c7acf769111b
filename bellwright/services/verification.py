"""E-mail verification codes.

Only the SHA-256 of a code is stored. A caller has at most one active code
(not verified, not superseded); issuing a new one supersedes the rest.
"""

from __future__ import annotations

import logging
import math
import secrets
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from bellwright.core.exceptions import CooldownError, ValidationError, VerificationError
from bellwright.core.security import codes_match, hash_code
from bellwright.core.settings import settings
from bellwright.db.data_access import DataAccess
from bellwright.models import VerificationCode
from bellwright.services.identity import CallerIdentity, Role

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class IssuedCode:
    code: str
    expires_at: datetime
    resend_available_at: datetime


@dataclass(frozen=True, slots=True)
class VerificationStatus:
    verified: bool
    verified_at: Optional[datetime] = None
    active_code_expires_at: Optional[datetime] = None
    resend_available_at: Optional[datetime] = None


def generate_code(length: int | None = None) -> str:
    length = length or settings.verification_code_length
    return f"{secrets.randbelow(10 ** length):0{length}d}"


def deliver_code(email: str | None, code: str, expires_at: datetime) -> None:
    # No mail provider is wired in; delivery is a log line
    logger.info("Verification code sent to %s, expires %s", email, expires_at.isoformat())
    logger.debug("Verification code for %s: %s", email, code)


def _cooldown() -> timedelta:
    return timedelta(seconds=settings.verification_resend_cooldown_seconds)


def _active_criteria(user_id: uuid.UUID) -> list:
    return [
        VerificationCode.user_id == user_id,
        VerificationCode.verified.is_(False),
        VerificationCode.superseded_at.is_(None),
    ]


async def _active_code(data: DataAccess, user_id: uuid.UUID) -> VerificationCode | None:
    rows = await data.select(
        VerificationCode,
        *_active_criteria(user_id),
        order_by=VerificationCode.created_at.desc(),
        limit=1,
    )
    return rows[0] if rows else None


async def issue_code(db: AsyncSession, caller: CallerIdentity) -> IssuedCode:
    caller.require(Role.USER)
    data = DataAccess(db)
    now = datetime.now(timezone.utc)

    # Staged; the insert below commits both
    await data.update(
        VerificationCode,
        _active_criteria(caller.id),
        {"superseded_at": now},
        commit=False,
    )
    code = generate_code()
    expires_at = now + timedelta(minutes=settings.verification_code_ttl_minutes)
    await data.insert(
        VerificationCode(
            user_id=caller.id,
            code_hash=hash_code(code),
            attempts=0,
            verified=False,
            created_at=now,
            expires_at=expires_at,
        )
    )
    deliver_code(caller.email, code, expires_at)
    return IssuedCode(code=code, expires_at=expires_at, resend_available_at=now + _cooldown())


async def resend_code(db: AsyncSession, caller: CallerIdentity) -> IssuedCode:
    caller.require(Role.USER)
    active = await _active_code(DataAccess(db), caller.id)
    if active is not None and active.created_at is not None:
        available_at = active.created_at + _cooldown()
        remaining = (available_at - datetime.now(timezone.utc)).total_seconds()
        if remaining > 0:
            retry_after = math.ceil(remaining)
            raise CooldownError(
                f"Please wait {retry_after} seconds before requesting a new code",
                details={
                    "retry_after_seconds": retry_after,
                    "resend_available_at": available_at.isoformat(),
                },
            )
    return await issue_code(db, caller)


async def verify_code(
    db: AsyncSession, caller: CallerIdentity, candidate: str
) -> VerificationCode:
    caller.require(Role.USER)
    length = settings.verification_code_length
    candidate = (candidate or "").strip()
    if len(candidate) != length or not candidate.isdigit():
        raise ValidationError(
            f"Please enter the {length}-digit code",
            details={"clear_input": True},
        )

    data = DataAccess(db)
    active = await _active_code(data, caller.id)
    if active is None:
        raise VerificationError(
            "No active verification code. Please request a new one.",
            code="no_active_code",
            details={"clear_input": True},
        )

    now = datetime.now(timezone.utc)
    if active.expires_at <= now:
        replacement = await issue_code(db, caller)
        logger.info("Expired verification code %s replaced for %s", active.id, caller.id)
        raise VerificationError(
            "Verification code has expired. A new code has been sent.",
            code="code_expired",
            details={
                "clear_input": True,
                "expires_at": replacement.expires_at.isoformat(),
            },
        )

    max_attempts = settings.verification_max_attempts
    if active.attempts >= max_attempts:
        raise VerificationError(
            "Too many incorrect attempts. Please request a new code.",
            code="too_many_attempts",
            details={"clear_input": True, "attempts_remaining": 0},
        )

    # Claim the attempt before comparing; concurrent guesses cannot share one slot
    claimed = await data.update(
        VerificationCode,
        [
            VerificationCode.id == active.id,
            *_active_criteria(caller.id),
            VerificationCode.attempts < max_attempts,
        ],
        {"attempts": VerificationCode.attempts + 1},
    )
    if not claimed:
        raise VerificationError(
            "Too many incorrect attempts. Please request a new code.",
            code="too_many_attempts",
            details={"clear_input": True, "attempts_remaining": 0},
        )

    if not codes_match(candidate, active.code_hash):
        attempts = claimed[0].attempts
        logger.info("Invalid verification code for %s (attempt %s)", caller.id, attempts)
        raise VerificationError(
            "Invalid verification code. Please try again.",
            code="invalid_code",
            details={
                "clear_input": True,
                "attempts_remaining": max(0, max_attempts - attempts),
            },
        )

    rows = await data.update(
        VerificationCode,
        [VerificationCode.id == active.id, *_active_criteria(caller.id)],
        {"verified": True, "verified_at": now},
    )
    if not rows:
        # Superseded or consumed between the read and the write
        raise VerificationError(
            "No active verification code. Please request a new one.",
            code="no_active_code",
            details={"clear_input": True},
        )
    logger.info("Email verified for %s", caller.id)
    return rows[0]


async def verification_status(db: AsyncSession, caller: CallerIdentity) -> VerificationStatus:
    caller.require(Role.USER)
    data = DataAccess(db)
    verified_rows = await data.select(
        VerificationCode,
        VerificationCode.user_id == caller.id,
        VerificationCode.verified.is_(True),
        order_by=VerificationCode.verified_at.desc(),
        limit=1,
    )
    if verified_rows:
        return VerificationStatus(verified=True, verified_at=verified_rows[0].verified_at)

    active = await _active_code(data, caller.id)
    if active is None:
        return VerificationStatus(verified=False)
    resend_at = active.created_at + _cooldown() if active.created_at else None
    return VerificationStatus(
        verified=False,
        active_code_expires_at=active.expires_at,
        resend_available_at=resend_at,
    )


async def is_verified(db: AsyncSession, user_id: uuid.UUID) -> bool:
    count = await DataAccess(db).count_rows(
        VerificationCode,
        VerificationCode.user_id == user_id,
        VerificationCode.verified.is_(True),
    )
    return count > 0


async def verified_user_ids(db: AsyncSession, user_ids: list[uuid.UUID]) -> set[uuid.UUID]:
    if not user_ids:
        return set()
    rows = await DataAccess(db).distinct_values(
        VerificationCode.user_id,
        VerificationCode.user_id.in_(user_ids),
        VerificationCode.verified.is_(True),
    )
    return set(rows)
