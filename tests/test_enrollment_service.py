"""
Enrollment Service Unit Tests

Tests for progress recomputation, completion and enrollment lifecycle.
"""

import uuid
from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from app.core.exceptions import (
    AlreadyEnrolledError,
    CourseNotFoundError,
    EnrollmentNotFoundError,
    InvalidRoleError,
)
from app.models.enrollment import Enrollment
from app.models.enums import NotificationType
from app.services import enrollment_service
from app.services.enrollment_service import calculate_progress_percentage

from tests.conftest import Savepoint, make_result


def _enrollment(student_id, course_id=7, completed=False, completion_date=None):
    return Enrollment(
        student_id=student_id,
        course_id=course_id,
        progress_percentage=100 if completed else 0,
        is_completed=completed,
        completion_date=completion_date,
    )


class TestCalculateProgressPercentage:
    """Tests for the progress percentage formula."""

    @pytest.mark.parametrize(
        "completed,total,expected",
        [
            (0, 2, 0),
            (1, 2, 50),
            (2, 2, 100),
            (1, 3, 33),
            (2, 3, 67),
            (1, 8, 13),   # 12.5 rounds half up
            (0, 0, 0),    # course without lessons
        ],
    )
    def test_rounded_share(self, completed, total, expected):
        assert calculate_progress_percentage(completed, total) == expected

    def test_half_percent_rounds_up(self):
        assert calculate_progress_percentage(198, 200) == 99
        assert calculate_progress_percentage(199, 200) == 100

    def test_never_exceeds_bounds(self):
        assert calculate_progress_percentage(5, 2) == 100
        assert calculate_progress_percentage(-1, 2) == 0


class TestEnroll:
    """Tests for enroll."""

    @pytest.mark.asyncio
    async def test_enroll_creates_enrollment_at_zero(self, mock_async_session, student, course):
        mock_async_session.execute.side_effect = [
            make_result(scalar=student),
            make_result(scalar=course),
        ]

        enrollment = await enrollment_service.enroll(student.id, course.id, mock_async_session)

        assert enrollment.student_id == student.id
        assert enrollment.course_id == course.id
        assert enrollment.progress_percentage == 0
        assert enrollment.is_completed is False
        mock_async_session.add.assert_called_once_with(enrollment)
        mock_async_session.commit.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_enroll_rejects_non_students(self, mock_async_session, instructor, course):
        mock_async_session.execute.side_effect = [make_result(scalar=instructor)]

        with pytest.raises(InvalidRoleError):
            await enrollment_service.enroll(instructor.id, course.id, mock_async_session)

        mock_async_session.commit.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_enroll_unknown_course(self, mock_async_session, student):
        mock_async_session.execute.side_effect = [
            make_result(scalar=student),
            make_result(scalar=None),
        ]

        with pytest.raises(CourseNotFoundError):
            await enrollment_service.enroll(student.id, 999, mock_async_session)

    @pytest.mark.asyncio
    async def test_duplicate_enrollment_hits_unique_constraint(self, mock_async_session, student, course):
        mock_async_session.execute.side_effect = [
            make_result(scalar=student),
            make_result(scalar=course),
        ]
        mock_async_session.begin_nested.side_effect = lambda: Savepoint(fail=True)

        with pytest.raises(AlreadyEnrolledError) as exc_info:
            await enrollment_service.enroll(student.id, course.id, mock_async_session)

        assert exc_info.value.kind == "ALREADY_EXISTS"
        mock_async_session.commit.assert_not_awaited()


class TestRecomputeProgress:
    """Tests for recompute_progress (Scenario A and completion_date handling)."""

    @pytest.mark.asyncio
    async def test_half_the_lessons(self, mock_async_session):
        student_id = uuid.uuid4()
        enrollment = _enrollment(student_id)
        mock_async_session.execute.side_effect = [
            make_result(scalar=enrollment),
            make_result(scalar=2),
            make_result(scalar=1),
        ]

        with patch("app.services.certificate_service.issue_if_absent", new=AsyncMock()) as issue:
            outcome = await enrollment_service.recompute_progress(student_id, 7, mock_async_session)

        assert enrollment.progress_percentage == 50
        assert enrollment.is_completed is False
        assert enrollment.completion_date is None
        assert outcome.just_completed is False
        issue.assert_not_awaited()
        mock_async_session.commit.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_all_lessons_completes_and_issues_certificate(self, mock_async_session):
        student_id = uuid.uuid4()
        enrollment = _enrollment(student_id)
        certificate = MagicMock()
        mock_async_session.execute.side_effect = [
            make_result(scalar=enrollment),
            make_result(scalar=2),
            make_result(scalar=2),
        ]

        with patch(
            "app.services.certificate_service.issue_if_absent",
            new=AsyncMock(return_value=certificate),
        ) as issue:
            outcome = await enrollment_service.recompute_progress(student_id, 7, mock_async_session)

        assert enrollment.progress_percentage == 100
        assert enrollment.is_completed is True
        assert enrollment.completion_date is not None
        assert outcome.just_completed is True
        assert outcome.certificate is certificate
        issue.assert_awaited_once_with(student_id, 7, mock_async_session)
        mock_async_session.commit.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_regression_keeps_completion_date(self, mock_async_session):
        student_id = uuid.uuid4()
        completed_on = datetime(2024, 1, 1, tzinfo=timezone.utc)
        enrollment = _enrollment(student_id, completed=True, completion_date=completed_on)
        mock_async_session.execute.side_effect = [
            make_result(scalar=enrollment),
            make_result(scalar=3),
            make_result(scalar=2),
        ]

        outcome = await enrollment_service.recompute_progress(student_id, 7, mock_async_session)

        assert enrollment.progress_percentage == 67
        assert enrollment.is_completed is False
        assert enrollment.completion_date == completed_on
        assert outcome.just_completed is False

    @pytest.mark.asyncio
    async def test_course_without_lessons_is_zero(self, mock_async_session):
        student_id = uuid.uuid4()
        enrollment = _enrollment(student_id)
        mock_async_session.execute.side_effect = [
            make_result(scalar=enrollment),
            make_result(scalar=0),
            make_result(scalar=0),
        ]

        await enrollment_service.recompute_progress(student_id, 7, mock_async_session)

        assert enrollment.progress_percentage == 0
        assert enrollment.is_completed is False

    @pytest.mark.asyncio
    async def test_missing_enrollment(self, mock_async_session):
        mock_async_session.execute.side_effect = [make_result(scalar=None)]

        with pytest.raises(EnrollmentNotFoundError):
            await enrollment_service.recompute_progress(uuid.uuid4(), 7, mock_async_session)


class TestCompleteCourse:
    """Tests for the explicit completion override."""

    @pytest.mark.asyncio
    async def test_forces_completion_and_notifies_after_commit(self, mock_async_session):
        student_id = uuid.uuid4()
        enrollment = _enrollment(student_id)
        certificate = MagicMock()
        mock_async_session.execute.side_effect = [make_result(scalar=enrollment)]

        with patch(
            "app.services.certificate_service.issue_if_absent",
            new=AsyncMock(return_value=certificate),
        ), patch(
            "app.services.certificate_service.announce_certificate", new=AsyncMock()
        ) as announce, patch(
            "app.services.notification_service.notify", new=AsyncMock(return_value=True)
        ) as notify:
            result = await enrollment_service.complete_course(student_id, 7, mock_async_session)

        assert result.progress_percentage == 100
        assert result.is_completed is True
        assert result.completion_date is not None
        mock_async_session.commit.assert_awaited_once()
        notify.assert_awaited_once()
        assert notify.await_args.args[1] == NotificationType.COURSE_UPDATE
        announce.assert_awaited_once_with(certificate, mock_async_session)

    @pytest.mark.asyncio
    async def test_existing_certificate_is_not_an_error(self, mock_async_session):
        student_id = uuid.uuid4()
        completed_on = datetime(2024, 1, 1, tzinfo=timezone.utc)
        enrollment = _enrollment(student_id, completed=True, completion_date=completed_on)
        mock_async_session.execute.side_effect = [make_result(scalar=enrollment)]

        with patch(
            "app.services.certificate_service.issue_if_absent", new=AsyncMock(return_value=None)
        ), patch(
            "app.services.notification_service.notify", new=AsyncMock(return_value=True)
        ) as notify:
            result = await enrollment_service.complete_course(student_id, 7, mock_async_session)

        assert result.completion_date == completed_on
        notify.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_not_enrolled(self, mock_async_session):
        mock_async_session.execute.side_effect = [make_result(scalar=None)]

        with pytest.raises(EnrollmentNotFoundError):
            await enrollment_service.complete_course(uuid.uuid4(), 7, mock_async_session)

        mock_async_session.commit.assert_not_awaited()


class TestUnenroll:
    """Tests for unenroll."""

    @pytest.mark.asyncio
    async def test_deletes_progress_certificate_then_enrollment(self, mock_async_session):
        student_id = uuid.uuid4()
        mock_async_session.execute.side_effect = [
            make_result(scalar=_enrollment(student_id, completed=True)),
            make_result(rowcount=3),
            make_result(scalars=["CERT-GONE"]),
            make_result(rowcount=1),
        ]

        with patch("app.services.certificate_service.discard_certificate_pdf") as discard:
            await enrollment_service.unenroll(student_id, 7, mock_async_session)

        assert mock_async_session.execute.await_count == 4
        statements = [str(c.args[0]) for c in mock_async_session.execute.await_args_list[1:]]
        assert "DELETE FROM lesson_progress" in statements[0]
        assert "DELETE FROM certificates" in statements[1]
        assert "DELETE FROM enrollments" in statements[2]
        mock_async_session.commit.assert_awaited_once()
        discard.assert_called_once_with("CERT-GONE")

    @pytest.mark.asyncio
    async def test_remove_enrollment_reports_revoked_rows(self, mock_async_session):
        mock_async_session.execute.side_effect = [
            make_result(rowcount=2),
            make_result(scalars=["CERT-A"]),
            make_result(rowcount=1),
        ]

        removal = await enrollment_service.remove_enrollment(uuid.uuid4(), 7, mock_async_session)

        assert removal.enrollments == 1
        assert removal.certificate_codes == ["CERT-A"]
        mock_async_session.commit.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_not_enrolled(self, mock_async_session):
        mock_async_session.execute.side_effect = [make_result(scalar=None)]

        with pytest.raises(EnrollmentNotFoundError):
            await enrollment_service.unenroll(uuid.uuid4(), 7, mock_async_session)

        mock_async_session.commit.assert_not_awaited()
