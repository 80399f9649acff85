"""
Enrollment Routes

Endpoints for enrolling, tracking course progress and leaving courses.
"""

from typing import Annotated, List

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_current_user, require_roles
from app.core.database import get_db
from app.models.enums import UserRole
from app.models.user import User
from app.schemas.enrollment import (
    CourseProgressResponse,
    EnrollmentCreate,
    EnrollmentResponse,
)
from app.services import enrollment_service


router = APIRouter(prefix="", tags=["Enrollments"])


@router.post(
    "/enrollments",
    response_model=EnrollmentResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Enroll in a course",
)
async def enroll(
    enrollment_data: EnrollmentCreate,
    current_user: Annotated[User, Depends(require_roles(UserRole.STUDENT))],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> EnrollmentResponse:
    """
    Enroll the current student in a course.

    **Errors:**
    - 404 if the course does not exist
    - 409 if already enrolled
    """
    enrollment = await enrollment_service.enroll(
        student_id=current_user.id,
        course_id=enrollment_data.course_id,
        db=db,
    )
    return EnrollmentResponse.model_validate(enrollment)


@router.get(
    "/enrollments/me",
    response_model=List[EnrollmentResponse],
    summary="Get my enrollments",
)
async def get_my_enrollments(
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> List[EnrollmentResponse]:
    """Get all courses the current user is enrolled in, newest first."""
    enrollments = await enrollment_service.get_student_enrollments(current_user.id, db)
    return [EnrollmentResponse.model_validate(e) for e in enrollments]


@router.get(
    "/courses/{course_id}/enrollments",
    response_model=List[EnrollmentResponse],
    summary="Get course enrollments",
)
async def get_course_enrollments(
    course_id: int,
    current_user: Annotated[User, Depends(require_roles(UserRole.INSTRUCTOR, UserRole.ADMIN))],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> List[EnrollmentResponse]:
    """List everyone enrolled in a course. Instructors and admins only."""
    enrollments = await enrollment_service.get_course_enrollments(course_id, db)
    return [EnrollmentResponse.model_validate(e) for e in enrollments]


@router.get(
    "/courses/{course_id}/progress",
    response_model=CourseProgressResponse,
    summary="Get my progress in a course",
)
async def get_course_progress(
    course_id: int,
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> CourseProgressResponse:
    """Get the enrollment and per-lesson progress of the current user."""
    progress = await enrollment_service.get_student_progress(current_user.id, course_id, db)
    return CourseProgressResponse.model_validate(progress, from_attributes=True)


@router.post(
    "/courses/{course_id}/complete",
    response_model=EnrollmentResponse,
    summary="Mark a course as completed",
)
async def complete_course(
    course_id: int,
    current_user: Annotated[User, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> EnrollmentResponse:
    """
    Mark the current user's enrollment as completed.

    Issues the certificate if the course has none for this user yet.
    """
    enrollment = await enrollment_service.complete_course(current_user.id, course_id, db)
    return EnrollmentResponse.model_validate(enrollment)


@router.delete(
    "/courses/{course_id}/enrollment",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Leave a course",
)
async def unenroll(
    course_id: int,
    current_user: Annotated[User, Depends(require_roles(UserRole.STUDENT))],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> None:
    """Remove the current student's enrollment and lesson progress."""
    await enrollment_service.unenroll(current_user.id, course_id, db)
