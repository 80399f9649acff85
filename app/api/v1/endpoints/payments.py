"""
Payment Routes

Endpoints for course purchases and the payment lifecycle.
"""

from typing import Annotated, List

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_current_user, require_roles
from app.core.database import get_db
from app.models.enums import UserRole
from app.models.user import User
from app.schemas.payment import (
    PaymentCreate,
    PaymentProcess,
    PaymentRefund,
    PaymentResponse,
)
from app.services import payment_service


router = APIRouter(prefix="/payments", tags=["Payments"])


@router.post(
    "",
    response_model=PaymentResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Start a course purchase",
)
async def create_payment(
    payment_data: PaymentCreate,
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> PaymentResponse:
    """
    Create a pending payment for a course.

    A valid coupon lowers the amount; an invalid one is ignored and the
    full price is charged.
    """
    payment = await payment_service.create_payment(
        user_id=current_user.id,
        course_id=payment_data.course_id,
        db=db,
        coupon_code=payment_data.coupon_code,
        payment_method=payment_data.payment_method,
    )
    return PaymentResponse.model_validate(payment)


@router.get(
    "/me",
    response_model=List[PaymentResponse],
    summary="List my payments",
)
async def list_my_payments(
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> List[PaymentResponse]:
    payments = await payment_service.get_user_payments(current_user.id, db)
    return [PaymentResponse.model_validate(p) for p in payments]


@router.get(
    "/{payment_id}",
    response_model=PaymentResponse,
    summary="Get one of my payments",
)
async def get_payment(
    payment_id: int,
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> PaymentResponse:
    """Get a payment. Other users' payments are reported as not found."""
    owner_id = None if current_user.role == UserRole.ADMIN else current_user.id
    payment = await payment_service.get_payment(payment_id, db, user_id=owner_id)
    return PaymentResponse.model_validate(payment)


@router.post(
    "/{payment_id}/process",
    response_model=PaymentResponse,
    summary="Complete a payment",
)
async def process_payment(
    payment_id: int,
    process_data: PaymentProcess,
    current_user: Annotated[User, Depends(require_roles(UserRole.ADMIN))],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> PaymentResponse:
    """Confirm a pending payment and enroll the buyer. Called by the gateway."""
    payment = await payment_service.process_payment(
        payment_id,
        process_data.transaction_id,
        db,
    )
    return PaymentResponse.model_validate(payment)


@router.post(
    "/{payment_id}/fail",
    response_model=PaymentResponse,
    summary="Fail a payment",
)
async def fail_payment(
    payment_id: int,
    current_user: Annotated[User, Depends(require_roles(UserRole.ADMIN))],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> PaymentResponse:
    payment = await payment_service.fail_payment(payment_id, db)
    return PaymentResponse.model_validate(payment)


@router.post(
    "/{payment_id}/refund",
    response_model=PaymentResponse,
    summary="Refund a payment",
)
async def refund_payment(
    payment_id: int,
    refund_data: PaymentRefund,
    current_user: Annotated[User, Depends(require_roles(UserRole.ADMIN))],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> PaymentResponse:
    """Refund a completed payment and revoke the enrollment it granted."""
    payment = await payment_service.refund_payment(payment_id, refund_data.reason, db)
    return PaymentResponse.model_validate(payment)
