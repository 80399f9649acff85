"""
Coupon Model

Discount codes applied at payment time.
"""

from datetime import datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy import Boolean, CheckConstraint, DateTime, Enum, Integer, Numeric, String, func
from sqlalchemy.orm import Mapped, mapped_column

from app.core.database import Base
from app.models.enums import DiscountType


class Coupon(Base):
    """
    Coupon model.

    ``used_count`` is only ever changed by a conditional UPDATE, and the
    check constraint backs the usage limit at the database level.

    Attributes:
        id: Integer primary key.
        code: Globally unique code (stored upper-case).
        discount_type: percentage or fixed.
        discount_value: Percent (0-100) or currency amount.
        max_uses: Usage cap (None = unlimited).
        used_count: Times the coupon has been applied to a payment.
        expires_at: Optional expiry instant.
        is_active: Manual on/off switch.
    """

    __tablename__ = "coupons"

    __table_args__ = (
        CheckConstraint(
            "max_uses IS NULL OR used_count <= max_uses",
            name="ck_coupon_used_count_within_limit",
        ),
    )

    id: Mapped[int] = mapped_column(
        Integer,
        primary_key=True,
        autoincrement=True,
    )
    code: Mapped[str] = mapped_column(
        String(64),
        unique=True,
        index=True,
        nullable=False,
    )
    discount_type: Mapped[DiscountType] = mapped_column(
        Enum(
            DiscountType,
            name="discount_type",
            create_constraint=True,
            values_callable=lambda e: [m.value for m in e],
        ),
        nullable=False,
    )
    discount_value: Mapped[Decimal] = mapped_column(
        Numeric(10, 2),
        nullable=False,
    )
    max_uses: Mapped[Optional[int]] = mapped_column(
        Integer,
        nullable=True,
    )
    used_count: Mapped[int] = mapped_column(
        Integer,
        default=0,
        nullable=False,
    )
    expires_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )
    is_active: Mapped[bool] = mapped_column(
        Boolean,
        default=True,
        nullable=False,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )

    def __repr__(self) -> str:
        return f"<Coupon(id={self.id}, code={self.code}, used={self.used_count}/{self.max_uses})>"
