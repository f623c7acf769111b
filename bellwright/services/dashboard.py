from __future__ import annotations

from sqlalchemy.ext.asyncio import AsyncSession

from bellwright.db.data_access import DataAccess
from bellwright.models import AdminUser, Identity, LoanApplication, Payment
from bellwright.schemas.admin import AdminDashboard, SuperAdminDashboard
from bellwright.services.identity import CallerIdentity, Role


async def admin_dashboard(db: AsyncSession, caller: CallerIdentity) -> AdminDashboard:
    caller.require(Role.ADMIN)
    data = DataAccess(db)
    return AdminDashboard(
        total_users=await data.count_rows(Identity),
        total_loans=await data.count_rows(LoanApplication),
        pending_loans=await data.count_rows(
            LoanApplication, LoanApplication.status == "pending"
        ),
        approved_loans=await data.count_rows(
            LoanApplication, LoanApplication.status == "approved"
        ),
        total_payments=await data.count_rows(Payment),
        pending_payments=await data.count_rows(Payment, Payment.status == "pending"),
    )


async def superadmin_dashboard(db: AsyncSession, caller: CallerIdentity) -> SuperAdminDashboard:
    caller.require(Role.SUPERADMIN)
    data = DataAccess(db)
    return SuperAdminDashboard(
        user_count=await data.count_rows(Identity),
        loan_count=await data.count_rows(LoanApplication),
        pending_loans=await data.count_rows(
            LoanApplication, LoanApplication.status == "pending"
        ),
        pending_admins=await data.count_rows(AdminUser, AdminUser.status == "pending"),
    )
