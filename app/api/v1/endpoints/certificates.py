"""
Certificate Routes

Endpoints for claiming, listing, regenerating and verifying certificates.
"""

import os
from typing import Annotated, List

from fastapi import APIRouter, Depends, status
from fastapi.responses import FileResponse
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_current_user, require_roles
from app.core.database import get_db
from app.core.exceptions import PermissionDeniedError
from app.models.enums import UserRole
from app.models.user import User
from app.schemas.certificate import (
    CertificateCreate,
    CertificateResponse,
    CertificateVerification,
)
from app.services import certificate_service


router = APIRouter(prefix="/certificates", tags=["Certificates"])


@router.post(
    "",
    response_model=CertificateResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Claim course certificate",
)
async def claim_certificate(
    certificate_data: CertificateCreate,
    current_user: Annotated[User, Depends(require_roles(UserRole.STUDENT))],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> CertificateResponse:
    """
    Claim a certificate for a completed course.

    **Requirements:**
    - User must be enrolled.
    - The enrollment must be completed.

    **Action:**
    - Generates a PDF certificate.
    - Returns the certificate with its verification code.

    **Errors:**
    - 400 if the course is not completed
    - 409 if the certificate was already issued
    """
    certificate = await certificate_service.generate(
        student_id=current_user.id,
        course_id=certificate_data.course_id,
        db=db,
    )
    return CertificateResponse.model_validate(certificate)


@router.get(
    "/me",
    response_model=List[CertificateResponse],
    summary="List my certificates",
)
async def list_my_certificates(
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> List[CertificateResponse]:
    certificates = await certificate_service.get_student_certificates(current_user.id, db)
    return [CertificateResponse.model_validate(c) for c in certificates]


@router.get(
    "/verify/{code}",
    response_model=CertificateVerification,
    summary="Verify certificate",
)
async def verify_certificate(
    code: str,
    db: Annotated[AsyncSession, Depends(get_db)],
) -> CertificateVerification:
    """
    Verify a certificate by its code.

    Public endpoint for verification links/QR codes.
    """
    certificate = await certificate_service.verify(code, db)

    if certificate is None:
        return CertificateVerification(valid=False)

    return CertificateVerification(
        valid=True,
        certificate=CertificateResponse.model_validate(certificate),
    )


@router.post(
    "/{certificate_id}/regenerate",
    response_model=CertificateResponse,
    summary="Regenerate certificate",
)
async def regenerate_certificate(
    certificate_id: int,
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> CertificateResponse:
    """Reissue a certificate with a new code and PDF. Owner or admin only."""
    certificate = await certificate_service.get_certificate(certificate_id, db)
    _ensure_owner_or_admin(certificate.student_id, current_user)

    certificate = await certificate_service.regenerate(certificate_id, db)
    return CertificateResponse.model_validate(certificate)


@router.get(
    "/{certificate_id}/download",
    summary="Download certificate PDF",
)
async def download_certificate(
    certificate_id: int,
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
):
    """Download the rendered PDF of a certificate. Owner or admin only."""
    certificate = await certificate_service.get_certificate(certificate_id, db)
    _ensure_owner_or_admin(certificate.student_id, current_user)

    path = certificate_service.certificate_pdf_path(certificate.certificate_code)
    if not os.path.exists(path):
        path = await certificate_service.publish_certificate_pdf(certificate, db)

    return FileResponse(
        path=path,
        media_type="application/pdf",
        filename=f"Certificate-{certificate.certificate_code}.pdf",
    )


def _ensure_owner_or_admin(owner_id, user: User) -> None:
    if user.id != owner_id and user.role != UserRole.ADMIN:
        raise PermissionDeniedError("Not your certificate", "permission_denied")
