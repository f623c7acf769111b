from typing import Optional

from fastapi import Depends
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.ext.asyncio import AsyncSession

from bellwright.core import context
from bellwright.core.exceptions import AuthError
from bellwright.db.session import get_db
from bellwright.services import sessions
from bellwright.services.identity import CallerIdentity, Role, Session, resolve_caller

# Optional bearer: anonymous callers resolve to the anonymous role
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/v1/auth/sign-in", auto_error=False)


async def get_session(token: Optional[str] = Depends(oauth2_scheme)) -> Optional[Session]:
    return await sessions.current_session(token)


async def require_session(session: Optional[Session] = Depends(get_session)) -> Session:
    if session is None:
        raise AuthError("Authentication required")
    return session


async def get_caller(
    session: Optional[Session] = Depends(get_session),
    db: AsyncSession = Depends(get_db),
) -> CallerIdentity:
    caller = await resolve_caller(db, session)
    context.bind_caller(caller.id, caller.role.value)
    return caller


def require_role(role: Role):
    async def dependency(caller: CallerIdentity = Depends(get_caller)) -> CallerIdentity:
        return caller.require(role)

    return dependency


require_user = require_role(Role.USER)
require_admin = require_role(Role.ADMIN)
require_superadmin = require_role(Role.SUPERADMIN)
