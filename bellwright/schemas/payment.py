import re
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Annotated, Optional
from uuid import UUID

from pydantic import AfterValidator, BaseModel, ConfigDict, Field, field_validator

_NON_DIGITS = re.compile(r"\D")
_EXPIRY = re.compile(r"^(0[1-9]|1[0-2])/(\d{2})$")


def clean_card_number(value: str) -> str:
    return _NON_DIGITS.sub("", value)


class PaymentStatus(str, Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"


PAYMENT_DECISIONS = {PaymentStatus.COMPLETED, PaymentStatus.FAILED}


class PaymentType(str, Enum):
    LOAN = "loan"
    DEPOSIT = "deposit"
    FEE = "fee"


def _validate_card_number(value: str) -> str:
    cleaned = clean_card_number(value)
    if not 16 <= len(cleaned) <= 19:
        raise ValueError("Card number must be 16 to 19 digits")
    return cleaned


CardNumber = Annotated[str, AfterValidator(_validate_card_number)]


class PaymentCreate(BaseModel):
    amount: Decimal = Field(gt=0, max_digits=14, decimal_places=2)
    cardholder_name: str = Field(min_length=3, max_length=255)
    card_number: CardNumber
    payment_type: PaymentType = PaymentType.LOAN
    description: Optional[str] = Field(default=None, max_length=500)


class PaymentDTO(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    user_id: UUID
    amount: Decimal
    cardholder_name: str
    card_number: str
    payment_type: PaymentType
    description: Optional[str] = None
    status: PaymentStatus
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class PaymentListResponse(BaseModel):
    items: list[PaymentDTO]
    total: int


class PaymentMethodCreate(BaseModel):
    cardholder_name: str = Field(min_length=3, max_length=255)
    card_number: CardNumber
    expiry_date: str
    cvv: str = Field(pattern=r"^\d{3,4}$")
    payment_pin: str = Field(pattern=r"^\d{4,6}$")
    is_default: bool = True

    @field_validator("expiry_date")
    @classmethod
    def _expiry_not_past(cls, value: str) -> str:
        match = _EXPIRY.match(value.strip())
        if not match:
            raise ValueError("Expiry date must be MM/YY")
        month, year = int(match.group(1)), 2000 + int(match.group(2))
        now = datetime.now()
        if (year, month) < (now.year, now.month):
            raise ValueError("Card has expired")
        return match.group(0)


class PaymentMethodDTO(BaseModel):
    """Saved card as shown back to its owner; secrets never leave the server."""

    id: UUID
    cardholder_name: str
    masked_card_number: str
    expiry_date: str
    is_default: bool
    created_at: Optional[datetime] = None


class PaymentMethodListResponse(BaseModel):
    items: list[PaymentMethodDTO]
    total: int
