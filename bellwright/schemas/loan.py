from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator


class LoanApplicationStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


LOAN_DECISIONS = {LoanApplicationStatus.APPROVED, LoanApplicationStatus.REJECTED}


class LoanApplicationCreate(BaseModel):
    loan_type: str = Field(min_length=1, max_length=50)
    amount: Decimal = Field(gt=0, max_digits=14, decimal_places=2)
    term: int = Field(ge=1, le=60)
    full_name: str = Field(min_length=3, max_length=255)
    email: EmailStr
    phone: str = Field(min_length=10, max_length=50)
    address: str = Field(min_length=5, max_length=500)
    employment: str = Field(min_length=1, max_length=50)
    income: Decimal = Field(gt=0, max_digits=14, decimal_places=2)
    purpose: str = Field(min_length=10)

    @field_validator("loan_type", "full_name", "phone", "address", "employment", "purpose")
    @classmethod
    def _strip(cls, value: str) -> str:
        stripped = value.strip()
        if not stripped:
            raise ValueError("must not be blank")
        return stripped


class LoanApplicationDTO(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    user_id: UUID
    loan_type: str
    amount: Decimal
    term: int
    full_name: str
    email: str
    phone: str
    address: str
    employment: str
    income: Decimal
    purpose: str
    status: LoanApplicationStatus
    approved_at: Optional[datetime] = None
    rejected_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class LoanApplicationListResponse(BaseModel):
    items: list[LoanApplicationDTO]
    total: int
