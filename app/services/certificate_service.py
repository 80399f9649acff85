"""
Certificate Service

Handles certificate eligibility, issuance, regeneration, verification and
PDF generation.
"""

import asyncio
import contextlib
import logging
import os
import secrets
import uuid
from datetime import datetime, timezone
from typing import List, Optional, Tuple

from reportlab.lib.colors import HexColor
from reportlab.lib.pagesizes import A4, landscape
from reportlab.lib.units import inch
from reportlab.pdfgen import canvas
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.exceptions import (
    AlreadyIssuedError,
    CertificateNotFoundError,
    NotCompletedError,
    ServiceError,
)
from app.models.certificate import Certificate
from app.models.course import Course
from app.models.enrollment import Enrollment
from app.models.enums import NotificationType
from app.models.user import User
from app.services import catalog_service, notification_service


logger = logging.getLogger(__name__)

# Fresh codes tried before giving up on a unique one
CODE_ALLOCATION_ATTEMPTS = 5

PAGE_MARGIN = 0.5 * inch
FRAME_COLOR = HexColor("#1F3A68")


def generate_certificate_code(
    student_id: uuid.UUID,
    course_id: int,
    issued_at: datetime,
) -> str:
    """
    Build a certificate code.

    The code names the course, the student and the issue time, and ends in
    a random token so two certificates issued in the same second still get
    different codes.
    """
    return "-".join([
        settings.CERTIFICATE_CODE_PREFIX,
        issued_at.strftime("%Y%m%d%H%M%S"),
        str(course_id),
        student_id.hex[:8].upper(),
        secrets.token_hex(4).upper(),
    ])


async def check_eligibility(
    student_id: uuid.UUID,
    course_id: int,
    db: AsyncSession,
) -> Tuple[bool, List[str]]:
    """
    Check if a student may receive a certificate for a course.

    A certificate requires an enrollment that is marked completed.

    Returns:
        Tuple of (is_eligible, list_of_missing_requirements).
    """
    result = await db.execute(
        select(Enrollment).where(
            Enrollment.student_id == student_id,
            Enrollment.course_id == course_id,
        )
    )
    enrollment = result.scalar_one_or_none()

    if not enrollment:
        return False, ["Student is not enrolled in this course"]

    if not enrollment.is_completed:
        return False, [
            f"Course progress is {enrollment.progress_percentage}%, 100% required"
        ]

    return True, []


def certificate_pdf_path(code: str) -> str:
    """Filesystem path of the PDF rendered for a certificate code."""
    return os.path.join(settings.CERTIFICATES_DIR, f"{code}.pdf")


def certificate_pdf_url(code: str) -> str:
    """URL of the PDF under the static mount."""
    return f"/{settings.CERTIFICATES_DIR}/{code}.pdf"


def render_certificate_pdf(
    path: str,
    student_name: str,
    course_title: str,
    code: str,
    issued_at: datetime,
) -> None:
    """
    Draw a one-page landscape certificate with ReportLab.

    Blocking; async callers go through publish_certificate_pdf.
    """
    os.makedirs(os.path.dirname(path) or ".", exist_ok=True)

    width, height = landscape(A4)
    pdf = canvas.Canvas(path, pagesize=(width, height))
    pdf.setTitle(f"Certificate {code}")

    # Double frame
    pdf.setStrokeColor(FRAME_COLOR)
    pdf.setLineWidth(3)
    pdf.rect(PAGE_MARGIN, PAGE_MARGIN, width - 2 * PAGE_MARGIN, height - 2 * PAGE_MARGIN)
    pdf.setLineWidth(0.75)
    inset = PAGE_MARGIN + 8
    pdf.rect(inset, inset, width - 2 * inset, height - 2 * inset)

    lines = [
        ("Helvetica", 14, "COURSEHUB"),
        ("Helvetica-Bold", 36, "Certificate of Completion"),
        ("Helvetica-Oblique", 16, "awarded to"),
        ("Helvetica-Bold", 28, student_name),
        ("Helvetica-Oblique", 16, "for completing the course"),
        ("Helvetica-Bold", 22, course_title),
    ]
    y = height - 1.6 * inch
    for font, size, text in lines:
        pdf.setFont(font, size)
        pdf.drawCentredString(width / 2, y, text)
        y -= size + 0.35 * inch

    footer_y = PAGE_MARGIN + 0.4 * inch
    pdf.setFont("Helvetica", 10)
    pdf.drawString(PAGE_MARGIN + 0.4 * inch, footer_y, f"Issued {issued_at:%d %B %Y}")
    pdf.drawRightString(width - PAGE_MARGIN - 0.4 * inch, footer_y, f"Verify with code {code}")

    pdf.showPage()
    pdf.save()


async def publish_certificate_pdf(certificate: Certificate, db: AsyncSession) -> str:
    """
    Render the PDF of a stored certificate in a worker thread.

    Call only after commit, so a rolled back issuance never leaves a file.

    Returns:
        Path of the written file.
    """
    student = await db.get(User, certificate.student_id)
    course = await db.get(Course, certificate.course_id)
    path = certificate_pdf_path(certificate.certificate_code)

    loop = asyncio.get_running_loop()
    await loop.run_in_executor(
        None,
        render_certificate_pdf,
        path,
        student.full_name,
        course.title,
        certificate.certificate_code,
        certificate.issued_at,
    )
    return path


def discard_certificate_pdf(code: str) -> None:
    """Delete the PDF of a code that is no longer valid, if one was rendered."""
    with contextlib.suppress(FileNotFoundError):
        os.remove(certificate_pdf_path(code))


async def find_certificate(
    student_id: uuid.UUID,
    course_id: int,
    db: AsyncSession,
) -> Optional[Certificate]:
    """Get the certificate of a (student, course) pair, or None."""
    result = await db.execute(
        select(Certificate).where(
            Certificate.student_id == student_id,
            Certificate.course_id == course_id,
        )
    )
    return result.scalar_one_or_none()


async def issue_certificate(
    student_id: uuid.UUID,
    course_id: int,
    db: AsyncSession,
) -> Certificate:
    """
    Create the certificate row without committing.

    The insert runs in a savepoint. A unique violation either means the
    pair already has a certificate (reported as such) or the random code
    collided, in which case a new code is drawn. The PDF is rendered by
    announce_certificate once the row is committed.

    Raises:
        AlreadyIssuedError: If the pair already has a certificate.
    """
    if await find_certificate(student_id, course_id, db):
        raise AlreadyIssuedError()

    for _ in range(CODE_ALLOCATION_ATTEMPTS):
        issued_at = datetime.now(timezone.utc)
        code = generate_certificate_code(student_id, course_id, issued_at)
        certificate = Certificate(
            student_id=student_id,
            course_id=course_id,
            certificate_code=code,
            certificate_url=certificate_pdf_url(code),
            issued_at=issued_at,
        )
        try:
            async with db.begin_nested():
                db.add(certificate)
        except IntegrityError:
            if await find_certificate(student_id, course_id, db):
                raise AlreadyIssuedError()
            logger.warning("Certificate code collision for course %s, retrying", course_id)
            continue

        await db.flush()

        logger.info(
            "Issued certificate %s to student %s for course %s",
            code, student_id, course_id,
        )
        return certificate

    raise ServiceError("Could not allocate a unique certificate code", "certificate_code_exhausted")


async def issue_if_absent(
    student_id: uuid.UUID,
    course_id: int,
    db: AsyncSession,
) -> Optional[Certificate]:
    """
    Issue a certificate unless one already exists. Does not commit.

    Returns:
        The new certificate, or None if the pair already had one.
    """
    try:
        return await issue_certificate(student_id, course_id, db)
    except AlreadyIssuedError:
        return None


async def announce_certificate(certificate: Certificate, db: AsyncSession) -> None:
    """
    Render the PDF and notify the owner. Call only after commit.

    A failed render is logged; the download endpoint renders missing files
    on demand.
    """
    try:
        await publish_certificate_pdf(certificate, db)
    except OSError as e:
        logger.error("Rendering certificate %s failed: %s", certificate.certificate_code, e)

    await notification_service.notify(
        certificate.student_id,
        NotificationType.CERTIFICATE_ISSUED,
        "Certificate issued",
        f"Your certificate is ready. Verification code: {certificate.certificate_code}",
    )


async def generate(
    student_id: uuid.UUID,
    course_id: int,
    db: AsyncSession,
) -> Certificate:
    """
    Issue a certificate to a student for a completed course.

    Args:
        student_id: Student ID.
        course_id: Course ID.
        db: Database session.

    Returns:
        Certificate object.

    Raises:
        StudentNotFoundError: Unknown student.
        CourseNotFoundError: Unknown course.
        AlreadyIssuedError: The pair already has a certificate.
        NotCompletedError: No enrollment, or the enrollment is not completed.
    """
    await catalog_service.get_user(student_id, db)
    await catalog_service.get_course(course_id, db)

    if await find_certificate(student_id, course_id, db):
        raise AlreadyIssuedError()

    is_eligible, missing = await check_eligibility(student_id, course_id, db)
    if not is_eligible:
        raise NotCompletedError("; ".join(missing))

    certificate = await issue_certificate(student_id, course_id, db)

    await db.commit()
    await db.refresh(certificate)

    await announce_certificate(certificate, db)
    return certificate


async def regenerate(
    certificate_id: int,
    db: AsyncSession,
) -> Certificate:
    """
    Reissue a certificate with a new code, PDF and issue time.

    The row id, student and course stay the same. The PDF of the old code
    is deleted after commit.

    Raises:
        CertificateNotFoundError: Unknown certificate.
    """
    result = await db.execute(
        select(Certificate)
        .where(Certificate.id == certificate_id)
        .with_for_update()
    )
    certificate = result.scalar_one_or_none()

    if not certificate:
        raise CertificateNotFoundError(f"Certificate with ID {certificate_id} not found")

    old_code = certificate.certificate_code
    certificate.issued_at = datetime.now(timezone.utc)
    certificate.certificate_code = generate_certificate_code(
        certificate.student_id, certificate.course_id, certificate.issued_at
    )
    certificate.certificate_url = certificate_pdf_url(certificate.certificate_code)

    await db.commit()
    await db.refresh(certificate)

    discard_certificate_pdf(old_code)
    logger.info("Regenerated certificate %s (was %s)", certificate.certificate_code, old_code)

    await announce_certificate(certificate, db)
    return certificate


async def verify(
    code: str,
    db: AsyncSession,
) -> Optional[Certificate]:
    """Look up a certificate by its public code. No side effects."""
    result = await db.execute(
        select(Certificate).where(Certificate.certificate_code == code.strip())
    )
    return result.scalar_one_or_none()


async def get_certificate(
    certificate_id: int,
    db: AsyncSession,
) -> Certificate:
    """
    Get certificate by ID.

    Raises:
        CertificateNotFoundError: If not found.
    """
    result = await db.execute(
        select(Certificate).where(Certificate.id == certificate_id)
    )
    certificate = result.scalar_one_or_none()

    if not certificate:
        raise CertificateNotFoundError(f"Certificate with ID {certificate_id} not found")

    return certificate


async def get_student_certificates(
    student_id: uuid.UUID,
    db: AsyncSession,
) -> list[Certificate]:
    """All certificates of a student, most recently issued first."""
    result = await db.execute(
        select(Certificate)
        .where(Certificate.student_id == student_id)
        .order_by(Certificate.issued_at.desc())
    )
    return list(result.scalars().all())
