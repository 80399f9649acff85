"""
Certificate Service Unit Tests

Tests for certificate codes, the completion gate, uniqueness, regeneration
and PDF files.
"""

import os
import uuid
from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from app.core.config import settings
from app.core.exceptions import (
    AlreadyIssuedError,
    CertificateNotFoundError,
    NotCompletedError,
    StudentNotFoundError,
)
from app.models.certificate import Certificate
from app.models.enrollment import Enrollment
from app.models.enums import NotificationType
from app.services import certificate_service
from app.services.certificate_service import generate_certificate_code

from tests.conftest import Savepoint, make_result


@pytest.fixture
def publish_pdf():
    """Skip PDF rendering; return a fixed path."""
    with patch(
        "app.services.certificate_service.publish_certificate_pdf",
        new=AsyncMock(return_value="static/certificates/test.pdf"),
    ) as publish:
        yield publish


@pytest.fixture
def notify():
    with patch("app.services.notification_service.notify", new=AsyncMock(return_value=True)) as notify_mock:
        yield notify_mock


@pytest.fixture
def certificates_dir(tmp_path):
    """Point certificate files at a temporary directory."""
    with patch.object(settings, "CERTIFICATES_DIR", str(tmp_path)):
        yield tmp_path


def _completed_enrollment(student_id, course_id=7) -> Enrollment:
    return Enrollment(
        student_id=student_id,
        course_id=course_id,
        progress_percentage=100,
        is_completed=True,
    )


class TestCertificateCode:
    """Tests for certificate code generation."""

    def test_code_names_course_student_and_time(self):
        student_id = uuid.UUID("12345678-1234-5678-1234-567812345678")
        issued_at = datetime(2024, 5, 17, 9, 30, 0, tzinfo=timezone.utc)

        code = generate_certificate_code(student_id, 7, issued_at)

        prefix, stamp, course_part, student_part, token = code.split("-")
        assert prefix == "CERT"
        assert stamp == "20240517093000"
        assert course_part == "7"
        assert student_part == "12345678"
        assert len(token) == 8

    def test_codes_differ_within_the_same_second(self):
        student_id = uuid.uuid4()
        issued_at = datetime.now(timezone.utc)

        codes = {generate_certificate_code(student_id, 7, issued_at) for _ in range(20)}

        assert len(codes) == 20


class TestGenerate:
    """Tests for generate."""

    @pytest.mark.asyncio
    async def test_issues_certificate_for_completed_course(
        self, mock_async_session, student, course, publish_pdf, notify
    ):
        mock_async_session.execute.side_effect = [
            make_result(scalar=student),
            make_result(scalar=course),
            make_result(scalar=None),
            make_result(scalar=_completed_enrollment(student.id)),
            make_result(scalar=None),
        ]

        async def _render_after_commit(certificate, db):
            db.commit.assert_awaited_once()
            return "static/certificates/test.pdf"

        publish_pdf.side_effect = _render_after_commit

        certificate = await certificate_service.generate(student.id, course.id, mock_async_session)

        assert certificate.student_id == student.id
        assert certificate.course_id == course.id
        assert certificate.certificate_code.startswith("CERT-")
        assert certificate.certificate_url == f"/static/certificates/{certificate.certificate_code}.pdf"
        publish_pdf.assert_awaited_once_with(certificate, mock_async_session)
        mock_async_session.commit.assert_awaited_once()
        notify.assert_awaited_once()
        assert notify.await_args.args[1] == NotificationType.CERTIFICATE_ISSUED

    @pytest.mark.asyncio
    async def test_second_generate_is_already_issued(self, mock_async_session, student, course, notify):
        existing = Certificate(student_id=student.id, course_id=course.id, certificate_code="CERT-X")
        mock_async_session.execute.side_effect = [
            make_result(scalar=student),
            make_result(scalar=course),
            make_result(scalar=existing),
        ]

        with pytest.raises(AlreadyIssuedError) as exc_info:
            await certificate_service.generate(student.id, course.id, mock_async_session)

        assert exc_info.value.kind == "ALREADY_EXISTS"
        mock_async_session.add.assert_not_called()
        notify.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_incomplete_course(self, mock_async_session, student, course):
        enrollment = Enrollment(student_id=student.id, course_id=course.id, progress_percentage=50, is_completed=False)
        mock_async_session.execute.side_effect = [
            make_result(scalar=student),
            make_result(scalar=course),
            make_result(scalar=None),
            make_result(scalar=enrollment),
        ]

        with pytest.raises(NotCompletedError) as exc_info:
            await certificate_service.generate(student.id, course.id, mock_async_session)

        assert "50%" in exc_info.value.message
        mock_async_session.commit.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_not_enrolled_is_not_completed(self, mock_async_session, student, course):
        mock_async_session.execute.side_effect = [
            make_result(scalar=student),
            make_result(scalar=course),
            make_result(scalar=None),
            make_result(scalar=None),
        ]

        with pytest.raises(NotCompletedError):
            await certificate_service.generate(student.id, course.id, mock_async_session)

    @pytest.mark.asyncio
    async def test_unknown_student(self, mock_async_session):
        mock_async_session.execute.side_effect = [make_result(scalar=None)]

        with pytest.raises(StudentNotFoundError):
            await certificate_service.generate(uuid.uuid4(), 7, mock_async_session)

    @pytest.mark.asyncio
    async def test_failed_commit_renders_nothing(
        self, mock_async_session, student, course, publish_pdf, notify
    ):
        mock_async_session.execute.side_effect = [
            make_result(scalar=student),
            make_result(scalar=course),
            make_result(scalar=None),
            make_result(scalar=_completed_enrollment(student.id)),
            make_result(scalar=None),
        ]
        mock_async_session.commit.side_effect = RuntimeError("connection lost")

        with pytest.raises(RuntimeError):
            await certificate_service.generate(student.id, course.id, mock_async_session)

        publish_pdf.assert_not_awaited()
        notify.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_concurrent_issue_reports_already_issued(
        self, mock_async_session, student, course, publish_pdf
    ):
        winner = Certificate(student_id=student.id, course_id=course.id, certificate_code="CERT-W")
        mock_async_session.execute.side_effect = [
            make_result(scalar=None),
            make_result(scalar=winner),
        ]
        mock_async_session.begin_nested.side_effect = lambda: Savepoint(fail=True)

        with pytest.raises(AlreadyIssuedError):
            await certificate_service.issue_certificate(student.id, course.id, mock_async_session)

        publish_pdf.assert_not_awaited()


class TestIssueIfAbsent:
    """Tests for the completion-triggered issuance."""

    @pytest.mark.asyncio
    async def test_existing_certificate_returns_none(self, mock_async_session, student):
        existing = Certificate(student_id=student.id, course_id=7, certificate_code="CERT-X")
        mock_async_session.execute.side_effect = [make_result(scalar=existing)]

        assert await certificate_service.issue_if_absent(student.id, 7, mock_async_session) is None
        mock_async_session.commit.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_issues_without_committing_or_rendering(
        self, mock_async_session, student, course, publish_pdf
    ):
        mock_async_session.execute.side_effect = [make_result(scalar=None)]

        certificate = await certificate_service.issue_if_absent(student.id, course.id, mock_async_session)

        assert certificate is not None
        assert certificate.certificate_url.endswith(f"{certificate.certificate_code}.pdf")
        mock_async_session.add.assert_called_once_with(certificate)
        mock_async_session.commit.assert_not_awaited()
        publish_pdf.assert_not_awaited()


class TestAnnounceCertificate:
    """Tests for the post-commit render and notification."""

    @pytest.mark.asyncio
    async def test_render_failure_still_notifies(self, mock_async_session, publish_pdf, notify):
        certificate = Certificate(student_id=uuid.uuid4(), course_id=7, certificate_code="CERT-1")
        publish_pdf.side_effect = OSError("disk full")

        await certificate_service.announce_certificate(certificate, mock_async_session)

        notify.assert_awaited_once()


class TestRegenerate:
    """Tests for regenerate."""

    @pytest.mark.asyncio
    async def test_keeps_identity_and_replaces_code(
        self, mock_async_session, student, course, publish_pdf, notify
    ):
        old_issued = datetime(2023, 1, 1, tzinfo=timezone.utc)
        certificate = Certificate(
            id=5,
            student_id=student.id,
            course_id=course.id,
            certificate_code="CERT-OLD",
            certificate_url="/static/certificates/CERT-OLD.pdf",
            issued_at=old_issued,
        )
        mock_async_session.execute.side_effect = [make_result(scalar=certificate)]

        with patch("app.services.certificate_service.discard_certificate_pdf") as discard:
            result = await certificate_service.regenerate(5, mock_async_session)

        assert result is certificate
        assert result.id == 5
        assert result.certificate_code != "CERT-OLD"
        assert result.issued_at > old_issued
        assert result.certificate_url == f"/static/certificates/{result.certificate_code}.pdf"
        mock_async_session.commit.assert_awaited_once()
        discard.assert_called_once_with("CERT-OLD")
        publish_pdf.assert_awaited_once_with(certificate, mock_async_session)

    @pytest.mark.asyncio
    async def test_unknown_certificate(self, mock_async_session):
        mock_async_session.execute.side_effect = [make_result(scalar=None)]

        with pytest.raises(CertificateNotFoundError):
            await certificate_service.regenerate(5, mock_async_session)


class TestCertificateFiles:
    """Tests for rendering and discarding PDF files."""

    def test_render_writes_pdf(self, certificates_dir):
        path = certificate_service.certificate_pdf_path("CERT-PDF")

        certificate_service.render_certificate_pdf(
            path, "Ada Lovelace", "Analytical Engines", "CERT-PDF", datetime(2024, 5, 17, tzinfo=timezone.utc)
        )

        with open(path, "rb") as f:
            assert f.read(4) == b"%PDF"

    @pytest.mark.asyncio
    async def test_publish_renders_in_worker_thread(self, certificates_dir, mock_async_session, student, course):
        certificate = Certificate(
            student_id=student.id,
            course_id=course.id,
            certificate_code="CERT-ASYNC",
            issued_at=datetime(2024, 5, 17, tzinfo=timezone.utc),
        )
        mock_async_session.get.side_effect = [student, course]

        path = await certificate_service.publish_certificate_pdf(certificate, mock_async_session)

        assert path == os.path.join(str(certificates_dir), "CERT-ASYNC.pdf")
        assert os.path.exists(path)

    def test_discard_removes_file(self, certificates_dir):
        path = certificates_dir / "CERT-OLD.pdf"
        path.write_bytes(b"%PDF-1.4")

        certificate_service.discard_certificate_pdf("CERT-OLD")

        assert not path.exists()

    def test_discard_missing_file_is_a_no_op(self, certificates_dir):
        certificate_service.discard_certificate_pdf("CERT-NEVER-RENDERED")


class TestVerify:
    """Tests for verify."""

    @pytest.mark.asyncio
    async def test_lookup_has_no_side_effects(self, mock_async_session):
        certificate = MagicMock()
        mock_async_session.execute.side_effect = [make_result(scalar=certificate)]

        assert await certificate_service.verify(" CERT-1 ", mock_async_session) is certificate
        mock_async_session.commit.assert_not_awaited()
        mock_async_session.add.assert_not_called()

    @pytest.mark.asyncio
    async def test_unknown_code(self, mock_async_session):
        mock_async_session.execute.side_effect = [make_result(scalar=None)]

        assert await certificate_service.verify("nope", mock_async_session) is None
