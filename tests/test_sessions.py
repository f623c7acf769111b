from datetime import datetime, timezone

import pytest

from conftest import FakeResult, entity_handler, make_identity, update_handler

from bellwright.core.exceptions import AuthError, ConflictError
from bellwright.core.security import decode_token, verify_password
from bellwright.core.settings import settings
from bellwright.models import Identity
from bellwright.schemas.auth import SignUpRequest
from bellwright.services import sessions
from bellwright.services.identity import Session, authenticate_superadmin, resolve_caller
from bellwright.utils.login_security import LockedOutError


@pytest.mark.asyncio
async def test_sign_in_bumps_token_version(fake_db):
    identity = make_identity(token_version=2)
    fake_db.on_execute(entity_handler(Identity, FakeResult(scalar=identity)))

    session = await sessions.authenticate(fake_db, "USER@example.com ", "Password123!")

    assert identity.token_version == 3
    assert identity.last_sign_in_at is not None
    assert fake_db.committed
    assert session.token_version == 3
    assert decode_token(session.access_token)["tv"] == 3


@pytest.mark.asyncio
async def test_sign_in_revokes_earlier_sessions(fake_db):
    identity = make_identity(token_version=0)
    fake_db.on_execute(entity_handler(Identity, FakeResult(scalar=identity)))
    earlier = sessions.issue_session(identity)

    fresh = await sessions.authenticate(fake_db, identity.email, "Password123!")

    with pytest.raises(AuthError):
        await resolve_caller(fake_db, earlier)
    caller = await resolve_caller(fake_db, fresh)
    assert caller.id == identity.id


@pytest.mark.asyncio
async def test_wrong_password_is_rejected(fake_db):
    identity = make_identity()
    fake_db.on_execute(entity_handler(Identity, FakeResult(scalar=identity)))

    with pytest.raises(AuthError):
        await sessions.authenticate(fake_db, identity.email, "WrongPassword!")
    assert identity.token_version == 0
    assert not fake_db.committed


@pytest.mark.asyncio
async def test_unknown_email_is_rejected(fake_db):
    with pytest.raises(AuthError):
        await sessions.authenticate(fake_db, "ghost@example.com", "Password123!")


@pytest.mark.asyncio
async def test_repeated_failures_lock_the_account(fake_db, fake_redis, monkeypatch):
    monkeypatch.setattr(settings, "login_attempt_limit", 3)
    identity = make_identity()
    fake_db.on_execute(entity_handler(Identity, FakeResult(scalar=identity)))

    for _ in range(2):
        with pytest.raises(AuthError):
            await sessions.authenticate(fake_db, identity.email, "WrongPassword!")
    with pytest.raises(LockedOutError):
        await sessions.authenticate(fake_db, identity.email, "WrongPassword!")

    # Even the right password is refused while the lock holds
    with pytest.raises(LockedOutError):
        await sessions.authenticate(fake_db, identity.email, "Password123!")
    assert fake_redis.store["lock:user@example.com"]


@pytest.mark.asyncio
async def test_current_session_without_token_is_none():
    assert await sessions.current_session(None) is None


@pytest.mark.asyncio
async def test_current_session_rejects_garbage():
    with pytest.raises(AuthError):
        await sessions.current_session("not-a-token")


@pytest.mark.asyncio
async def test_current_session_round_trips_claims():
    identity = make_identity(token_version=5)
    issued = sessions.issue_session(identity)

    session = await sessions.current_session(issued.access_token)

    assert session.subject == str(identity.id)
    assert session.email == identity.email
    assert session.scope == "user"
    assert session.token_version == 5
    assert session.jti


@pytest.mark.asyncio
async def test_sign_out_bumps_version_conditionally(fake_db):
    identity = make_identity(token_version=1)
    fake_db.on_execute(update_handler(Identity, FakeResult(items=[identity])))
    session = sessions.issue_session(identity)

    await sessions.sign_out(fake_db, session)

    updates = fake_db.updates_of(Identity)
    assert len(updates) == 1
    assert fake_db.committed


@pytest.mark.asyncio
async def test_superadmin_sign_out_revokes_token(fake_db, superadmin_credentials):
    email, password = superadmin_credentials
    issued = authenticate_superadmin(email, password)
    session = await sessions.current_session(issued.access_token)

    await sessions.sign_out(fake_db, session)

    with pytest.raises(AuthError):
        await sessions.current_session(issued.access_token)
    assert fake_db.executed == []


@pytest.mark.asyncio
async def test_sign_up_creates_identity(fake_db):
    payload = SignUpRequest(
        email="New.User@Example.com",
        password="Password123!",
        first_name=" New ",
        last_name="User",
    )

    identity = await sessions.sign_up(fake_db, payload)

    assert identity.email == "new.user@example.com"
    assert identity.first_name == "New"
    assert identity.token_version == 0
    assert verify_password("Password123!", identity.hashed_password)
    assert fake_db.added_of(Identity) == [identity]


@pytest.mark.asyncio
async def test_sign_up_rejects_duplicate_email(fake_db):
    fake_db.on_execute(entity_handler(Identity, FakeResult(scalar=make_identity())))
    payload = SignUpRequest(
        email="user@example.com", password="Password123!", first_name="A", last_name="B"
    )
    with pytest.raises(ConflictError):
        await sessions.sign_up(fake_db, payload)
    assert fake_db.added == []


@pytest.mark.asyncio
async def test_expired_session_object_still_resolves_by_version(fake_db):
    # Expiry is enforced when the token is decoded, not by the resolver
    identity = make_identity(token_version=1)
    fake_db.on_execute(entity_handler(Identity, FakeResult(scalar=identity)))
    session = Session(
        subject=str(identity.id),
        email=identity.email,
        scope="user",
        expires_at=datetime(2000, 1, 1, tzinfo=timezone.utc),
        token_version=1,
    )
    caller = await resolve_caller(fake_db, session)
    assert caller.email == identity.email
