from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from bellwright.api import deps
from bellwright.core.limiter import limiter, sign_in_limit
from bellwright.db.session import get_db
from bellwright.schemas.admin import AdminUserOut
from bellwright.schemas.auth import (
    AdminRegisterRequest,
    CallerOut,
    SessionOut,
    SignInRequest,
    SignUpRequest,
    SuperAdminSignInRequest,
)
from bellwright.services import admin_registrations, sessions, verification
from bellwright.services.identity import (
    CallerIdentity,
    Session,
    authenticate_superadmin,
    caller_for_identity,
)

router = APIRouter(prefix="/auth", tags=["auth"])


def _session_out(session: Session) -> SessionOut:
    return SessionOut(
        access_token=session.access_token,
        expires_at=session.expires_at,
        scope=session.scope,
    )


@router.post("/sign-up", response_model=SessionOut, status_code=status.HTTP_201_CREATED)
@limiter.limit(sign_in_limit)
async def sign_up(
    payload: SignUpRequest,
    request: Request,
    db: AsyncSession = Depends(get_db),
) -> SessionOut:
    """Create the account, sign it in and send the first verification code."""
    identity = await sessions.sign_up(db, payload)
    session = await sessions.start_session(db, identity)
    await verification.issue_code(db, caller_for_identity(identity))
    return _session_out(session)


@router.post("/sign-in", response_model=SessionOut)
@limiter.limit(sign_in_limit)
async def sign_in(
    credentials: SignInRequest,
    request: Request,
    db: AsyncSession = Depends(get_db),
) -> SessionOut:
    session = await sessions.authenticate(db, credentials.email, credentials.password)
    return _session_out(session)


@router.post("/sign-out", status_code=status.HTTP_204_NO_CONTENT)
async def sign_out(
    session: Session = Depends(deps.require_session),
    db: AsyncSession = Depends(get_db),
) -> None:
    await sessions.sign_out(db, session)
    return None


@router.get("/me", response_model=CallerOut)
async def read_caller(caller: CallerIdentity = Depends(deps.get_caller)) -> CallerOut:
    return CallerOut(
        id=caller.id,
        email=caller.email,
        role=caller.role.value,
        roles=sorted(role.value for role in caller.roles),
        notices=list(caller.notices),
    )


@router.post(
    "/admin/register", response_model=AdminUserOut, status_code=status.HTTP_201_CREATED
)
@limiter.limit(sign_in_limit)
async def register_admin(
    payload: AdminRegisterRequest,
    request: Request,
    db: AsyncSession = Depends(get_db),
) -> AdminUserOut:
    grant = await admin_registrations.register_admin(db, payload)
    return AdminUserOut.model_validate(grant)


@router.post("/admin/sign-in", response_model=SessionOut)
@limiter.limit(sign_in_limit)
async def admin_sign_in(
    credentials: SignInRequest,
    request: Request,
    db: AsyncSession = Depends(get_db),
) -> SessionOut:
    session = await admin_registrations.authenticate_admin(
        db, credentials.email, credentials.password
    )
    return _session_out(session)


@router.post("/superadmin/sign-in", response_model=SessionOut)
@limiter.limit(sign_in_limit)
async def superadmin_sign_in(
    credentials: SuperAdminSignInRequest,
    request: Request,
) -> SessionOut:
    return _session_out(authenticate_superadmin(credentials.email, credentials.password))
