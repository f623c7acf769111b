from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class VerifyCodeRequest(BaseModel):
    code: str = Field(min_length=1, max_length=12)


class CodeIssuedResponse(BaseModel):
    expires_at: datetime
    resend_available_at: datetime


class VerificationStatusResponse(BaseModel):
    verified: bool
    verified_at: Optional[datetime] = None
    active_code_expires_at: Optional[datetime] = None
    resend_available_at: Optional[datetime] = None


class VerifyCodeResponse(BaseModel):
    verified: bool
    verified_at: datetime
