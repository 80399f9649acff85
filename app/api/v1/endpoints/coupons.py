"""
Coupon Routes

Endpoints for coupon administration and validation.
"""

from typing import Annotated, List

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_current_user, require_roles
from app.core.database import get_db
from app.models.enums import UserRole
from app.models.user import User
from app.schemas.payment import (
    CouponCreate,
    CouponResponse,
    CouponValidateRequest,
    CouponValidationResponse,
)
from app.services import payment_service


router = APIRouter(prefix="/coupons", tags=["Coupons"])


@router.post(
    "",
    response_model=CouponResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a coupon",
)
async def create_coupon(
    coupon_data: CouponCreate,
    current_user: Annotated[User, Depends(require_roles(UserRole.ADMIN))],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> CouponResponse:
    """
    Create a coupon. Admins only.

    The code is stored upper-case and must be unique.
    """
    coupon = await payment_service.create_coupon(
        code=coupon_data.code,
        discount_type=coupon_data.discount_type,
        discount_value=coupon_data.discount_value,
        db=db,
        max_uses=coupon_data.max_uses,
        expires_at=coupon_data.expires_at,
    )
    return CouponResponse.model_validate(coupon)


@router.get(
    "",
    response_model=List[CouponResponse],
    summary="List coupons",
)
async def list_coupons(
    current_user: Annotated[User, Depends(require_roles(UserRole.ADMIN))],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> List[CouponResponse]:
    coupons = await payment_service.get_coupons(db)
    return [CouponResponse.model_validate(c) for c in coupons]


@router.post(
    "/{coupon_id}/deactivate",
    response_model=CouponResponse,
    summary="Deactivate a coupon",
)
async def deactivate_coupon(
    coupon_id: int,
    current_user: Annotated[User, Depends(require_roles(UserRole.ADMIN))],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> CouponResponse:
    coupon = await payment_service.deactivate_coupon(coupon_id, db)
    return CouponResponse.model_validate(coupon)


@router.post(
    "/validate",
    response_model=CouponValidationResponse,
    summary="Validate a coupon",
)
async def validate_coupon(
    request: CouponValidateRequest,
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> CouponValidationResponse:
    """Check whether a coupon applies to a course and how much it takes off."""
    validation = await payment_service.validate_coupon(request.code, request.course_id, db)
    return CouponValidationResponse.model_validate(validation)
