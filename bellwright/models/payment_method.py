import uuid

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Index, String, func, text
from sqlalchemy.dialects.postgresql import UUID

from bellwright.db.base import Base
from bellwright.models.types import EncryptedString


class PaymentMethod(Base):
    __tablename__ = "payment_methods"
    __table_args__ = (
        # At most one default card per user
        Index(
            "uq_payment_methods_one_default",
            "user_id",
            unique=True,
            postgresql_where=text("is_default"),
        ),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(
        UUID(as_uuid=True),
        ForeignKey("identities.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    cardholder_name = Column(String(255), nullable=False)
    card_number = Column(EncryptedString(), nullable=False)
    card_last4 = Column(String(4), nullable=False)
    expiry_date = Column(String(5), nullable=False)
    cvv = Column(EncryptedString(), nullable=False)
    payment_pin = Column(EncryptedString(), nullable=False)
    is_default = Column(Boolean, nullable=False, default=False, server_default="false")
    created_at = Column(
        DateTime(timezone=True), nullable=False, server_default=func.now(), index=True
    )
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )
