"""
Payment Service

Coupon validation, discounted amounts, and the payment lifecycle.

Payment status moves pending -> completed | failed, and completed ->
refunded. Completing a payment grants the enrollment; refunding it
revokes the enrollment again.
"""

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import ROUND_HALF_UP, Decimal
from typing import List, Optional

from sqlalchemy import or_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.exceptions import (
    AlreadyEnrolledError,
    CouponCodeExistsError,
    CouponNotFoundError,
    InvalidPaymentStateError,
    PaymentNotFoundError,
)
from app.models.coupon import Coupon
from app.models.enums import (
    CouponRejection,
    DiscountType,
    NotificationType,
    PaymentStatus,
)
from app.models.payment import Payment
from app.services import catalog_service, enrollment_service, notification_service


logger = logging.getLogger(__name__)

REJECTION_MESSAGES = {
    CouponRejection.NOT_FOUND: "Coupon not found",
    CouponRejection.INACTIVE: "Coupon is inactive",
    CouponRejection.EXPIRED: "Coupon has expired",
    CouponRejection.LIMIT_EXCEEDED: "Coupon usage limit exceeded",
}


@dataclass
class CouponValidation:
    """Result of validating a coupon against a course."""

    valid: bool
    coupon: Optional[Coupon] = None
    discount_amount: Optional[Decimal] = None
    reason: Optional[CouponRejection] = None
    message: str = "Coupon is valid"


def normalize_coupon_code(code: str) -> str:
    return code.strip().upper()


def calculate_discount(
    discount_type: DiscountType,
    discount_value: Decimal,
    price: Decimal,
) -> Decimal:
    """
    Raw discount of a coupon on a price, clamped to [0, price].

    Percentage coupons take ``value`` percent of the price; fixed coupons
    take ``value`` off. The result is not rounded.
    """
    price = Decimal(price)
    value = Decimal(discount_value)

    if discount_type == DiscountType.PERCENTAGE:
        discount = price * value / Decimal(100)
    else:
        discount = value

    return max(Decimal(0), min(discount, price))


def quantize_amount(amount: Decimal) -> Decimal:
    """Round a currency amount half up to the configured quantum."""
    return Decimal(amount).quantize(settings.CURRENCY_QUANTUM, rounding=ROUND_HALF_UP)


def evaluate_coupon(
    coupon: Optional[Coupon],
    price: Decimal,
    now: Optional[datetime] = None,
) -> CouponValidation:
    """
    Check a coupon against its state and compute the discount.

    Checks run in order: existence, active flag, expiry, usage limit.
    """
    if coupon is None:
        return _rejected(None, CouponRejection.NOT_FOUND)

    if not coupon.is_active:
        return _rejected(coupon, CouponRejection.INACTIVE)

    now = now or datetime.now(timezone.utc)
    if coupon.expires_at is not None and coupon.expires_at < now:
        return _rejected(coupon, CouponRejection.EXPIRED)

    if coupon.max_uses is not None and coupon.used_count >= coupon.max_uses:
        return _rejected(coupon, CouponRejection.LIMIT_EXCEEDED)

    return CouponValidation(
        valid=True,
        coupon=coupon,
        discount_amount=calculate_discount(coupon.discount_type, coupon.discount_value, price),
    )


def _rejected(coupon: Optional[Coupon], reason: CouponRejection) -> CouponValidation:
    return CouponValidation(
        valid=False,
        coupon=coupon,
        reason=reason,
        message=REJECTION_MESSAGES[reason],
    )


async def find_coupon(code: str, db: AsyncSession) -> Optional[Coupon]:
    result = await db.execute(
        select(Coupon).where(Coupon.code == normalize_coupon_code(code))
    )
    return result.scalar_one_or_none()


async def validate_coupon(
    code: str,
    course_id: int,
    db: AsyncSession,
) -> CouponValidation:
    """
    Validate a coupon code for a course. Read only.

    Raises:
        CourseNotFoundError: Unknown course.
    """
    coupon = await find_coupon(code, db)
    validation = evaluate_coupon(coupon, Decimal(0))
    if not validation.valid:
        return validation

    course = await catalog_service.get_course(course_id, db)
    return evaluate_coupon(coupon, course.price)


async def claim_coupon_use(coupon_id: int, db: AsyncSession) -> bool:
    """
    Atomically count one use of a coupon.

    The increment only happens while the coupon is still active, unexpired
    and under its usage limit, so concurrent payments cannot overshoot.

    Returns:
        True if the use was counted.
    """
    result = await db.execute(
        update(Coupon)
        .where(
            Coupon.id == coupon_id,
            Coupon.is_active.is_(True),
            or_(Coupon.max_uses.is_(None), Coupon.used_count < Coupon.max_uses),
            or_(Coupon.expires_at.is_(None), Coupon.expires_at >= datetime.now(timezone.utc)),
        )
        .values(used_count=Coupon.used_count + 1)
        .execution_options(synchronize_session=False)
    )
    return result.rowcount == 1


# ============== Coupons ==============

async def create_coupon(
    code: str,
    discount_type: DiscountType,
    discount_value: Decimal,
    db: AsyncSession,
    max_uses: Optional[int] = None,
    expires_at: Optional[datetime] = None,
) -> Coupon:
    """
    Create a coupon. The code is stored upper-case.

    Raises:
        CouponCodeExistsError: Code already taken.
    """
    coupon = Coupon(
        code=normalize_coupon_code(code),
        discount_type=discount_type,
        discount_value=discount_value,
        max_uses=max_uses,
        used_count=0,
        expires_at=expires_at,
        is_active=True,
    )

    try:
        async with db.begin_nested():
            db.add(coupon)
    except IntegrityError:
        raise CouponCodeExistsError(f"Coupon code {coupon.code} already exists")

    await db.commit()
    await db.refresh(coupon)

    logger.info("Created coupon %s", coupon.code)
    return coupon


async def get_coupons(db: AsyncSession) -> List[Coupon]:
    """All coupons, newest first."""
    result = await db.execute(select(Coupon).order_by(Coupon.created_at.desc()))
    return list(result.scalars().all())


async def deactivate_coupon(coupon_id: int, db: AsyncSession) -> Coupon:
    """
    Switch a coupon off.

    Raises:
        CouponNotFoundError: Unknown coupon.
    """
    result = await db.execute(
        select(Coupon).where(Coupon.id == coupon_id).with_for_update()
    )
    coupon = result.scalar_one_or_none()

    if not coupon:
        raise CouponNotFoundError(f"Coupon with ID {coupon_id} not found")

    coupon.is_active = False

    await db.commit()
    await db.refresh(coupon)

    logger.info("Deactivated coupon %s", coupon.code)
    return coupon


# ============== Payments ==============

async def get_payment(
    payment_id: int,
    db: AsyncSession,
    user_id: Optional[uuid.UUID] = None,
    for_update: bool = False,
) -> Payment:
    """
    Get a payment by ID.

    When ``user_id`` is given, only that user's payment is returned, and
    anyone else's is reported as not found.

    Raises:
        PaymentNotFoundError: Unknown payment.
    """
    query = select(Payment).where(Payment.id == payment_id)
    if user_id is not None:
        query = query.where(Payment.user_id == user_id)
    if for_update:
        query = query.with_for_update()

    result = await db.execute(query)
    payment = result.scalar_one_or_none()

    if not payment:
        raise PaymentNotFoundError(f"Payment with ID {payment_id} not found")

    return payment


async def get_user_payments(
    user_id: uuid.UUID,
    db: AsyncSession,
) -> List[Payment]:
    """All payments of a user, newest first."""
    result = await db.execute(
        select(Payment)
        .where(Payment.user_id == user_id)
        .order_by(Payment.created_at.desc())
    )
    return list(result.scalars().all())


async def create_payment(
    user_id: uuid.UUID,
    course_id: int,
    db: AsyncSession,
    coupon_code: Optional[str] = None,
    payment_method: Optional[str] = None,
) -> Payment:
    """
    Create a pending payment for a course.

    A coupon that validates and can still be claimed lowers the amount.
    An invalid coupon is not an error; the original price is charged.

    Args:
        user_id: Paying user.
        course_id: Course being bought.
        db: Database session.
        coupon_code: Optional coupon code.
        payment_method: Free-form method label.

    Returns:
        The pending Payment.

    Raises:
        StudentNotFoundError: Unknown user.
        CourseNotFoundError: Unknown course.
    """
    await catalog_service.get_user(user_id, db)
    course = await catalog_service.get_course(course_id, db)

    original_amount = Decimal(course.price)
    amount = original_amount
    coupon_id = None

    if coupon_code:
        validation = evaluate_coupon(await find_coupon(coupon_code, db), original_amount)

        if not validation.valid:
            logger.info("Coupon %s not applied: %s", coupon_code, validation.message)
        elif await claim_coupon_use(validation.coupon.id, db):
            amount = original_amount - validation.discount_amount
            coupon_id = validation.coupon.id
        else:
            logger.warning("Coupon %s was used up by a concurrent payment", validation.coupon.code)

    payment = Payment(
        user_id=user_id,
        course_id=course_id,
        amount=quantize_amount(amount),
        original_amount=quantize_amount(original_amount),
        coupon_id=coupon_id,
        status=PaymentStatus.PENDING,
        payment_method=payment_method,
    )
    db.add(payment)

    await db.commit()
    await db.refresh(payment)

    logger.info("Created payment %s for course %s", payment.id, course_id)
    return payment


def _ensure_status(payment: Payment, expected: PaymentStatus, target: PaymentStatus) -> None:
    if payment.status != expected:
        raise InvalidPaymentStateError(
            f"Payment {payment.id} is {payment.status.value} and cannot become {target.value}"
        )


async def process_payment(
    payment_id: int,
    transaction_id: str,
    db: AsyncSession,
) -> Payment:
    """
    Complete a pending payment and enroll the buyer.

    An enrollment that already exists is kept as is.

    Raises:
        PaymentNotFoundError: Unknown payment.
        InvalidPaymentStateError: Payment is not pending.
    """
    payment = await get_payment(payment_id, db, for_update=True)
    _ensure_status(payment, PaymentStatus.PENDING, PaymentStatus.COMPLETED)

    payment.status = PaymentStatus.COMPLETED
    payment.transaction_id = transaction_id

    try:
        await enrollment_service.create_enrollment(payment.user_id, payment.course_id, db)
    except AlreadyEnrolledError:
        logger.info(
            "User %s already enrolled in course %s, keeping enrollment",
            payment.user_id, payment.course_id,
        )

    await db.commit()
    await db.refresh(payment)

    logger.info("Payment %s completed", payment.id)

    await notification_service.notify(
        payment.user_id,
        NotificationType.PAYMENT_CONFIRMED,
        "Payment confirmed",
        "Your payment was received and you are now enrolled in the course.",
    )
    return payment


async def fail_payment(payment_id: int, db: AsyncSession) -> Payment:
    """
    Mark a pending payment as failed.

    Raises:
        PaymentNotFoundError: Unknown payment.
        InvalidPaymentStateError: Payment is not pending.
    """
    payment = await get_payment(payment_id, db, for_update=True)
    _ensure_status(payment, PaymentStatus.PENDING, PaymentStatus.FAILED)

    payment.status = PaymentStatus.FAILED

    await db.commit()
    await db.refresh(payment)

    logger.info("Payment %s failed", payment.id)
    return payment


async def refund_payment(
    payment_id: int,
    reason: str,
    db: AsyncSession,
) -> Payment:
    """
    Refund a completed payment and revoke the enrollment it granted,
    along with any certificate earned on it.

    The coupon use is not given back.

    Raises:
        PaymentNotFoundError: Unknown payment.
        InvalidPaymentStateError: Payment is not completed.
    """
    payment = await get_payment(payment_id, db, for_update=True)
    _ensure_status(payment, PaymentStatus.COMPLETED, PaymentStatus.REFUNDED)

    payment.status = PaymentStatus.REFUNDED
    payment.refund_reason = reason

    removal = await enrollment_service.remove_enrollment(
        payment.user_id, payment.course_id, db
    )

    await db.commit()
    await db.refresh(payment)

    removal.discard_certificate_files()
    logger.info(
        "Payment %s refunded, %s enrollment(s) and %s certificate(s) revoked",
        payment.id, removal.enrollments, len(removal.certificate_codes),
    )
    return payment
