from uuid import uuid4

import pytest

from conftest import (
    FakeResult,
    bound_values,
    count_handler,
    entity_handler,
    make_identity,
    make_loan_application,
    make_payment,
    make_payment_method,
)

from bellwright.core.exceptions import NotFoundError, PermissionDeniedError
from bellwright.models import (
    Identity,
    LoanApplication,
    Payment,
    PaymentMethod,
    VerificationCode,
)
from bellwright.services import payment_methods, user_directory


@pytest.mark.asyncio
async def test_users_are_listed_with_verification_state(fake_db, admin_caller):
    verified = make_identity(email="verified@example.com")
    unverified = make_identity(email="pending@example.com")
    fake_db.on_execute(entity_handler(Identity, FakeResult(items=[verified, unverified])))
    fake_db.on_execute(entity_handler(VerificationCode, FakeResult(items=[verified.id])))

    users = await user_directory.list_users(fake_db, admin_caller)

    assert [(user.email, user.is_verified) for user in users] == [
        ("verified@example.com", True),
        ("pending@example.com", False),
    ]
    # One lookup covers every listed user
    lookup = fake_db.executed[1]
    assert {verified.id, unverified.id} <= set(bound_values(lookup)[0])


@pytest.mark.asyncio
async def test_user_listing_requires_admin(fake_db, user_caller):
    with pytest.raises(PermissionDeniedError):
        await user_directory.list_users(fake_db, user_caller)
    assert fake_db.executed == []


@pytest.mark.asyncio
async def test_detail_gathers_everything_on_file(fake_db, admin_caller):
    identity = make_identity(email="jordan@example.com")
    loan = make_loan_application(user_id=identity.id)
    payment = make_payment(user_id=identity.id)
    card = make_payment_method(user_id=identity.id, card_number="4111111111111234")
    fake_db.on_execute(entity_handler(Identity, FakeResult(scalar=identity)))
    fake_db.on_execute(entity_handler(LoanApplication, FakeResult(items=[loan])))
    fake_db.on_execute(entity_handler(Payment, FakeResult(items=[payment])))
    fake_db.on_execute(entity_handler(PaymentMethod, FakeResult(items=[card])))
    fake_db.on_execute(count_handler(VerificationCode, 1))

    detail = await user_directory.user_detail(fake_db, admin_caller, identity.id)

    assert detail.user.email == "jordan@example.com"
    assert detail.user.is_verified is True
    assert [row.id for row in detail.loan_applications] == [loan.id]
    assert [row.id for row in detail.payments] == [payment.id]
    [method] = detail.payment_methods
    assert method.masked_card_number == "4111********1234"
    assert "cvv" not in method.model_dump()
    # Every follow-up query is narrowed to this user
    for stmt in fake_db.executed[1:]:
        assert identity.id in bound_values(stmt)


@pytest.mark.asyncio
async def test_detail_for_unknown_user_is_not_found(fake_db, admin_caller):
    with pytest.raises(NotFoundError):
        await user_directory.user_detail(fake_db, admin_caller, uuid4())
    assert len(fake_db.executed) == 1


@pytest.mark.asyncio
async def test_user_cannot_read_another_users_cards(fake_db, user_caller):
    with pytest.raises(PermissionDeniedError):
        await payment_methods.list_payment_methods(fake_db, user_caller, user_id=uuid4())
    assert fake_db.executed == []


def test_admin_user_detail_endpoint(client_as, admin_caller, fake_db):
    identity = make_identity()
    fake_db.on_execute(entity_handler(Identity, FakeResult(scalar=identity)))
    fake_db.on_execute(
        entity_handler(PaymentMethod, FakeResult(items=[make_payment_method(user_id=identity.id)]))
    )

    resp = client_as(admin_caller).get(f"/api/v1/admin/users/{identity.id}")

    assert resp.status_code == 200
    data = resp.json()["data"]
    assert data["user"]["id"] == str(identity.id)
    assert data["user"]["is_verified"] is False
    assert data["loan_applications"] == []
    assert data["payments"] == []
    [card] = data["payment_methods"]
    assert card["masked_card_number"] == "4111********1111"
    assert "card_number" not in card and "payment_pin" not in card


def test_user_directory_is_admin_only(client_as, user_caller):
    client = client_as(user_caller)
    assert client.get("/api/v1/admin/users").status_code == 403
    assert client.get(f"/api/v1/admin/users/{uuid4()}").status_code == 403
