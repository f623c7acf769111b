import pytest

from conftest import FakeResult, sequence_handler

from bellwright.core.exceptions import PermissionDeniedError
from bellwright.services import dashboard


@pytest.mark.asyncio
async def test_admin_dashboard_counts(fake_db, admin_caller):
    fake_db.on_execute(sequence_handler([FakeResult(scalar=n) for n in (12, 7, 3, 2, 9, 4)]))

    result = await dashboard.admin_dashboard(fake_db, admin_caller)

    assert result.model_dump() == {
        "total_users": 12,
        "total_loans": 7,
        "pending_loans": 3,
        "approved_loans": 2,
        "total_payments": 9,
        "pending_payments": 4,
    }


@pytest.mark.asyncio
async def test_superadmin_dashboard_counts(fake_db, superadmin_caller):
    fake_db.on_execute(sequence_handler([FakeResult(scalar=n) for n in (12, 7, 3, 1)]))

    result = await dashboard.superadmin_dashboard(fake_db, superadmin_caller)

    assert result.pending_admins == 1
    assert result.user_count == 12


@pytest.mark.asyncio
async def test_dashboards_are_role_gated(fake_db, user_caller, admin_caller):
    with pytest.raises(PermissionDeniedError):
        await dashboard.admin_dashboard(fake_db, user_caller)
    with pytest.raises(PermissionDeniedError):
        await dashboard.superadmin_dashboard(fake_db, admin_caller)
    assert fake_db.executed == []
