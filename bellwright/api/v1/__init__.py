from fastapi import APIRouter

from bellwright.api.v1.routers import (
    admin,
    auth,
    health,
    loan_applications,
    payment_methods,
    payments,
    profile,
    superadmin,
    verification,
)

api_router = APIRouter()
api_router.include_router(health.router)
api_router.include_router(auth.router)
api_router.include_router(profile.router)
api_router.include_router(verification.router)
api_router.include_router(loan_applications.router)
api_router.include_router(payments.router)
api_router.include_router(payment_methods.router)
api_router.include_router(admin.router)
api_router.include_router(superadmin.router)

__all__ = ["api_router"]
