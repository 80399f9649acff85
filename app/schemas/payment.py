"""
Payment Schemas

Pydantic models for coupons and payments.
"""

import uuid
from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field, model_validator

from app.models.enums import CouponRejection, DiscountType, PaymentStatus


# ============== Coupons ==============

class CouponCreate(BaseModel):
    """Schema for creating a coupon."""

    code: str = Field(..., min_length=1, max_length=64)
    discount_type: DiscountType
    discount_value: Decimal = Field(..., ge=0, decimal_places=2)
    max_uses: Optional[int] = Field(None, gt=0, description="Omit for unlimited uses")
    expires_at: Optional[datetime] = None

    @model_validator(mode="after")
    def check_percentage(self) -> "CouponCreate":
        if self.discount_type == DiscountType.PERCENTAGE and self.discount_value > 100:
            raise ValueError("Percentage discount cannot exceed 100")
        return self


class CouponResponse(BaseModel):
    """Schema for coupon response."""

    id: int
    code: str
    discount_type: DiscountType
    discount_value: Decimal
    max_uses: Optional[int] = None
    used_count: int
    expires_at: Optional[datetime] = None
    is_active: bool
    created_at: datetime

    model_config = {"from_attributes": True}


class CouponValidateRequest(BaseModel):
    """Schema for checking a coupon against a course."""

    code: str = Field(..., min_length=1)
    course_id: int


class CouponValidationResponse(BaseModel):
    """Schema for coupon validation result."""

    valid: bool
    coupon: Optional[CouponResponse] = None
    discount_amount: Optional[Decimal] = None
    reason: Optional[CouponRejection] = None
    message: str

    model_config = {"from_attributes": True}


# ============== Payments ==============

class PaymentCreate(BaseModel):
    """Schema for starting a course purchase."""

    course_id: int
    coupon_code: Optional[str] = None
    payment_method: Optional[str] = Field(None, max_length=50)


class PaymentProcess(BaseModel):
    """Schema for confirming a payment from the gateway."""

    transaction_id: str = Field(..., min_length=1, max_length=255)


class PaymentRefund(BaseModel):
    """Schema for refunding a payment."""

    reason: str = Field(..., min_length=1)


class PaymentResponse(BaseModel):
    """Schema for payment response."""

    id: int
    user_id: uuid.UUID
    course_id: int
    amount: Decimal
    original_amount: Decimal
    coupon_id: Optional[int] = None
    status: PaymentStatus
    payment_method: Optional[str] = None
    transaction_id: Optional[str] = None
    refund_reason: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}
