from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from bellwright.api import deps
from bellwright.db.session import get_db
from bellwright.schemas.auth import IdentityOut, ProfileUpdate
from bellwright.services import sessions
from bellwright.services.identity import CallerIdentity

router = APIRouter(prefix="/me/profile", tags=["profile"])


@router.get("", response_model=IdentityOut)
async def read_profile(
    caller: CallerIdentity = Depends(deps.require_user),
    db: AsyncSession = Depends(get_db),
) -> IdentityOut:
    return IdentityOut.model_validate(await sessions.get_profile(db, caller))


@router.patch("", response_model=IdentityOut)
async def update_profile(
    payload: ProfileUpdate,
    caller: CallerIdentity = Depends(deps.require_user),
    db: AsyncSession = Depends(get_db),
) -> IdentityOut:
    return IdentityOut.model_validate(await sessions.update_profile(db, caller, payload))
