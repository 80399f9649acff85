"""
Payment Model

Course purchase with optional coupon discount.
"""

import uuid
from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING, Optional

from sqlalchemy import DateTime, Enum, ForeignKey, Integer, Numeric, String, Text, func
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.core.database import Base
from app.models.enums import PaymentStatus

if TYPE_CHECKING:
    from app.models.coupon import Coupon
    from app.models.course import Course


class Payment(Base):
    """
    Payment model.

    Attributes:
        id: Integer primary key.
        user_id: Paying user.
        course_id: Purchased course.
        amount: Charged amount after discount.
        original_amount: Course price at purchase time.
        coupon_id: Applied coupon, if any.
        status: pending, completed, failed or refunded.
        payment_method: Free-form method label from the gateway.
        transaction_id: Gateway transaction reference.
        refund_reason: Reason recorded on refund.
    """

    __tablename__ = "payments"

    id: Mapped[int] = mapped_column(
        Integer,
        primary_key=True,
        autoincrement=True,
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("users.id", ondelete="RESTRICT"),
        index=True,
        nullable=False,
    )
    course_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("courses.id", ondelete="RESTRICT"),
        nullable=False,
    )
    amount: Mapped[Decimal] = mapped_column(
        Numeric(10, 2),
        nullable=False,
    )
    original_amount: Mapped[Decimal] = mapped_column(
        Numeric(10, 2),
        nullable=False,
    )
    coupon_id: Mapped[Optional[int]] = mapped_column(
        Integer,
        ForeignKey("coupons.id", ondelete="SET NULL"),
        nullable=True,
    )
    status: Mapped[PaymentStatus] = mapped_column(
        Enum(
            PaymentStatus,
            name="payment_status",
            create_constraint=True,
            values_callable=lambda e: [m.value for m in e],
        ),
        default=PaymentStatus.PENDING,
        nullable=False,
    )
    payment_method: Mapped[Optional[str]] = mapped_column(
        String(50),
        nullable=True,
    )
    transaction_id: Mapped[Optional[str]] = mapped_column(
        String(255),
        nullable=True,
    )
    refund_reason: Mapped[Optional[str]] = mapped_column(
        Text,
        nullable=True,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    # Relationships
    coupon: Mapped[Optional["Coupon"]] = relationship("Coupon")
    course: Mapped["Course"] = relationship("Course")

    def __repr__(self) -> str:
        return f"<Payment(id={self.id}, status={self.status}, amount={self.amount})>"
