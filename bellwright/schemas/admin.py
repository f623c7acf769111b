from datetime import datetime
from enum import Enum
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict

from bellwright.schemas.auth import IdentityOut
from bellwright.schemas.loan import LoanApplicationDTO
from bellwright.schemas.payment import PaymentDTO, PaymentMethodDTO


class AdminStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class AdminUserOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    email: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    status: AdminStatus
    approved_by: Optional[str] = None
    approved_at: Optional[datetime] = None
    rejected_at: Optional[datetime] = None
    created_at: Optional[datetime] = None


class AdminListResponse(BaseModel):
    items: list[AdminUserOut]
    total: int


class AdminDashboard(BaseModel):
    total_users: int
    total_loans: int
    pending_loans: int
    approved_loans: int
    total_payments: int
    pending_payments: int


class SuperAdminDashboard(BaseModel):
    user_count: int
    loan_count: int
    pending_loans: int
    pending_admins: int


class UserSummary(IdentityOut):
    is_verified: bool = False


class UserDetail(BaseModel):
    user: UserSummary
    loan_applications: list[LoanApplicationDTO]
    payments: list[PaymentDTO]
    payment_methods: list[PaymentMethodDTO]
