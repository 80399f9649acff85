"""
Certificate Schemas
"""

import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class CertificateCreate(BaseModel):
    """Schema for requesting a certificate."""

    course_id: int = Field(..., description="Completed course")


class CertificateResponse(BaseModel):
    """Schema for certificate response."""

    id: int
    student_id: uuid.UUID
    course_id: int
    certificate_code: str
    certificate_url: Optional[str] = None
    issued_at: datetime

    model_config = {"from_attributes": True}


class CertificateVerification(BaseModel):
    """Schema for the public verification lookup."""

    valid: bool
    certificate: Optional[CertificateResponse] = None
