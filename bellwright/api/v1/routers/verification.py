from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from bellwright.api import deps
from bellwright.core.limiter import limiter, verification_limit
from bellwright.db.session import get_db
from bellwright.schemas.verification import (
    CodeIssuedResponse,
    VerificationStatusResponse,
    VerifyCodeRequest,
    VerifyCodeResponse,
)
from bellwright.services import verification
from bellwright.services.identity import CallerIdentity

router = APIRouter(prefix="/me/verification", tags=["verification"])


@router.get("", response_model=VerificationStatusResponse)
async def read_status(
    caller: CallerIdentity = Depends(deps.require_user),
    db: AsyncSession = Depends(get_db),
) -> VerificationStatusResponse:
    current = await verification.verification_status(db, caller)
    return VerificationStatusResponse(
        verified=current.verified,
        verified_at=current.verified_at,
        active_code_expires_at=current.active_code_expires_at,
        resend_available_at=current.resend_available_at,
    )


async def _request_code(db: AsyncSession, caller: CallerIdentity) -> CodeIssuedResponse:
    issued = await verification.resend_code(db, caller)
    return CodeIssuedResponse(
        expires_at=issued.expires_at,
        resend_available_at=issued.resend_available_at,
    )


@router.post("/codes", response_model=CodeIssuedResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit(verification_limit)
async def request_code(
    request: Request,
    caller: CallerIdentity = Depends(deps.require_user),
    db: AsyncSession = Depends(get_db),
) -> CodeIssuedResponse:
    return await _request_code(db, caller)


@router.post("/resend", response_model=CodeIssuedResponse)
@limiter.limit(verification_limit)
async def resend_code(
    request: Request,
    caller: CallerIdentity = Depends(deps.require_user),
    db: AsyncSession = Depends(get_db),
) -> CodeIssuedResponse:
    return await _request_code(db, caller)


@router.post("/verify", response_model=VerifyCodeResponse)
@limiter.limit(verification_limit)
async def verify_code(
    payload: VerifyCodeRequest,
    request: Request,
    caller: CallerIdentity = Depends(deps.require_user),
    db: AsyncSession = Depends(get_db),
) -> VerifyCodeResponse:
    code = await verification.verify_code(db, caller, payload.code)
    return VerifyCodeResponse(verified=code.verified, verified_at=code.verified_at)
