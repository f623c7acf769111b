import uuid

from sqlalchemy import (
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
    func,
)
from sqlalchemy.dialects.postgresql import UUID

from bellwright.db.base import Base


class LoanApplication(Base):
    __tablename__ = "loan_applications"
    __table_args__ = (
        CheckConstraint("amount > 0", name="ck_loan_app_amount_positive"),
        CheckConstraint("income > 0", name="ck_loan_app_income_positive"),
        CheckConstraint("term >= 1 AND term <= 60", name="ck_loan_app_term_range"),
        CheckConstraint(
            "status IN ('pending', 'approved', 'rejected')",
            name="ck_loan_app_status",
        ),
        CheckConstraint(
            "approved_at IS NULL OR rejected_at IS NULL",
            name="ck_loan_app_single_decision",
        ),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(
        UUID(as_uuid=True),
        ForeignKey("identities.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    loan_type = Column(String(50), nullable=False)
    amount = Column(Numeric(14, 2), nullable=False)
    term = Column(Integer, nullable=False)
    full_name = Column(String(255), nullable=False)
    email = Column(String(255), nullable=False)
    phone = Column(String(50), nullable=False)
    address = Column(String(500), nullable=False)
    employment = Column(String(50), nullable=False)
    income = Column(Numeric(14, 2), nullable=False)
    purpose = Column(Text, nullable=False)
    status = Column(String(20), nullable=False, default="pending", index=True)
    decided_by = Column(UUID(as_uuid=True), nullable=True)
    approved_at = Column(DateTime(timezone=True), nullable=True)
    rejected_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(
        DateTime(timezone=True), nullable=False, server_default=func.now(), index=True
    )
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )
