from sqlalchemy import CheckConstraint, Column, DateTime, ForeignKey, String, func
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship

from bellwright.db.base import Base


class AdminUser(Base):
    """Admin role grant; usable only once a superadmin has approved it."""

    __tablename__ = "admin_users"
    __table_args__ = (
        CheckConstraint(
            "status IN ('pending', 'approved', 'rejected')",
            name="ck_admin_users_status",
        ),
        CheckConstraint(
            "approved_at IS NULL OR rejected_at IS NULL",
            name="ck_admin_users_single_decision",
        ),
    )

    id = Column(
        UUID(as_uuid=True),
        ForeignKey("identities.id", ondelete="CASCADE"),
        primary_key=True,
    )
    email = Column(String(255), unique=True, nullable=False, index=True)
    first_name = Column(String(100), nullable=True)
    last_name = Column(String(100), nullable=True)
    status = Column(String(20), nullable=False, default="pending", index=True)
    approved_by = Column(String(255), nullable=True)
    approved_at = Column(DateTime(timezone=True), nullable=True)
    rejected_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    identity = relationship("Identity", back_populates="admin_grant")
