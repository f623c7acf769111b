from datetime import datetime, timezone
from uuid import uuid4

import pytest
from sqlalchemy.exc import OperationalError

from conftest import FakeResult, entity_handler, make_admin_user, make_identity

from bellwright.core.exceptions import AuthError, PermissionDeniedError
from bellwright.models import AdminUser, Identity
from bellwright.services.identity import (
    ANONYMOUS_CALLER,
    PENDING_ADMIN_NOTICE,
    REJECTED_ADMIN_NOTICE,
    CallerIdentity,
    Role,
    Session,
    authenticate_superadmin,
    resolve_caller,
)


def _session_for(identity, **overrides) -> Session:
    fields = dict(
        subject=str(identity.id),
        email=identity.email,
        scope="user",
        expires_at=datetime.now(timezone.utc),
        token_version=identity.token_version,
    )
    fields.update(overrides)
    return Session(**fields)


def _wire(fake_db, identity, grant=None):
    fake_db.on_execute(entity_handler(Identity, FakeResult(scalar=identity)))
    fake_db.on_execute(entity_handler(AdminUser, FakeResult(scalar=grant)))


@pytest.mark.asyncio
async def test_no_session_is_anonymous(fake_db):
    caller = await resolve_caller(fake_db, None)
    assert caller is ANONYMOUS_CALLER
    assert caller.role == Role.ANONYMOUS
    assert fake_db.executed == []


@pytest.mark.asyncio
async def test_plain_user(fake_db):
    identity = make_identity()
    _wire(fake_db, identity)

    caller = await resolve_caller(fake_db, _session_for(identity))

    assert caller.id == identity.id
    assert caller.roles == frozenset({Role.USER})
    assert caller.role == Role.USER
    assert caller.notices == ()


@pytest.mark.asyncio
async def test_approved_admin_holds_user_and_admin(fake_db):
    identity = make_identity(email="admin@example.com")
    _wire(fake_db, identity, make_admin_user(identity_id=identity.id, status="approved"))

    caller = await resolve_caller(fake_db, _session_for(identity))

    assert caller.roles == frozenset({Role.USER, Role.ADMIN})
    assert caller.role == Role.ADMIN


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "status, notice",
    [("pending", PENDING_ADMIN_NOTICE), ("rejected", REJECTED_ADMIN_NOTICE)],
)
async def test_undecided_admin_is_user_with_notice(fake_db, status, notice):
    identity = make_identity(email="admin@example.com")
    _wire(fake_db, identity, make_admin_user(identity_id=identity.id, status=status))

    caller = await resolve_caller(fake_db, _session_for(identity))

    assert caller.roles == frozenset({Role.USER})
    assert caller.notices == (notice,)
    with pytest.raises(PermissionDeniedError) as excinfo:
        caller.require(Role.ADMIN)
    assert excinfo.value.message == notice


@pytest.mark.asyncio
async def test_failed_admin_lookup_fails_closed(fake_db, caplog):
    identity = make_identity()
    fake_db.on_execute(entity_handler(Identity, FakeResult(scalar=identity)))

    def _admin_lookup_down(stmt):
        descriptions = getattr(stmt, "column_descriptions", None)
        if descriptions and descriptions[0].get("entity") is AdminUser:
            raise OperationalError("SELECT admin_users", {}, Exception("connection reset"))
        return None

    fake_db.on_execute(_admin_lookup_down)

    caller = await resolve_caller(fake_db, _session_for(identity))

    assert caller.roles == frozenset({Role.USER})
    assert fake_db.rollbacks == 1
    assert "treating as non-admin" in caplog.text


@pytest.mark.asyncio
async def test_stale_token_version_is_rejected(fake_db):
    identity = make_identity(token_version=4)
    _wire(fake_db, identity)

    with pytest.raises(AuthError):
        await resolve_caller(fake_db, _session_for(identity, token_version=3))


@pytest.mark.asyncio
async def test_inactive_identity_is_rejected(fake_db):
    identity = make_identity(is_active=False)
    _wire(fake_db, identity)

    with pytest.raises(AuthError):
        await resolve_caller(fake_db, _session_for(identity))


@pytest.mark.asyncio
async def test_superadmin_session(fake_db, superadmin_credentials):
    email, _ = superadmin_credentials
    session = Session(
        subject=email, email=email, scope="superadmin", expires_at=datetime.now(timezone.utc)
    )

    caller = await resolve_caller(fake_db, session)

    assert caller.roles == frozenset({Role.SUPERADMIN})
    assert caller.id is None
    assert fake_db.executed == []


@pytest.mark.asyncio
async def test_superadmin_scope_with_other_email_is_rejected(fake_db, superadmin_credentials):
    email, _ = superadmin_credentials
    session = Session(
        subject=email.upper(),
        email=email.upper(),
        scope="superadmin",
        expires_at=datetime.now(timezone.utc),
    )
    with pytest.raises(AuthError):
        await resolve_caller(fake_db, session)


def test_superadmin_sign_in(superadmin_credentials):
    email, password = superadmin_credentials
    session = authenticate_superadmin(email, password)
    assert session.scope == "superadmin"
    assert session.subject == email
    assert session.access_token


def test_wrong_superadmin_email_with_right_password_is_denied(superadmin_credentials):
    _, password = superadmin_credentials
    with pytest.raises(AuthError):
        authenticate_superadmin("someone-else@bellwright.test", password)


def test_superadmin_email_is_case_sensitive(superadmin_credentials):
    email, password = superadmin_credentials
    with pytest.raises(AuthError):
        authenticate_superadmin(email.upper(), password)


def test_right_superadmin_email_with_wrong_password_is_denied(superadmin_credentials):
    email, _ = superadmin_credentials
    with pytest.raises(AuthError):
        authenticate_superadmin(email, "not-the-password")


def test_superadmin_disabled_when_unconfigured(monkeypatch):
    from bellwright.core.settings import settings

    monkeypatch.setattr(settings, "superadmin_email", None)
    monkeypatch.setattr(settings, "superadmin_password_hash", None)
    with pytest.raises(AuthError):
        authenticate_superadmin("root@bellwright.test", "anything")


def test_require_distinguishes_anonymous_from_forbidden():
    with pytest.raises(AuthError) as anonymous:
        ANONYMOUS_CALLER.require(Role.USER)
    assert not isinstance(anonymous.value, PermissionDeniedError)

    user = CallerIdentity(id=uuid4(), email="u@example.com", roles=frozenset({Role.USER}))
    assert user.require(Role.USER) is user
    with pytest.raises(PermissionDeniedError):
        user.require(Role.ADMIN)
