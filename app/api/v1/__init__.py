"""
API v1 Router

Aggregates all v1 endpoint routers.
"""

from fastapi import APIRouter

from app.api.v1.endpoints import enrollments, progress, quizzes, certificates, coupons, payments

router = APIRouter()

# Include enrollment routes
router.include_router(enrollments.router)

# Include progress routes
router.include_router(progress.router)

# Include quiz routes
router.include_router(quizzes.router)

# Include certificate routes
router.include_router(certificates.router)

# Include coupon routes
router.include_router(coupons.router)

# Include payment routes
router.include_router(payments.router)
