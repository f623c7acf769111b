from bellwright.models.admin_user import AdminUser
from bellwright.models.audit_log import AuditLog
from bellwright.models.identity import Identity
from bellwright.models.loan_application import LoanApplication
from bellwright.models.payment import Payment
from bellwright.models.payment_method import PaymentMethod
from bellwright.models.verification_code import VerificationCode

__all__ = [
    "AdminUser",
    "AuditLog",
    "Identity",
    "LoanApplication",
    "Payment",
    "PaymentMethod",
    "VerificationCode",
]
