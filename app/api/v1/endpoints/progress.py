"""
Progress Routes

Endpoint for lesson progress heartbeats sent by the video player.
"""

from typing import Annotated

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import require_roles
from app.core.database import get_db
from app.models.enums import UserRole
from app.models.user import User
from app.schemas.enrollment import LessonProgressResponse
from app.schemas.progress import ProgressUpdate
from app.services import progress_service


router = APIRouter(prefix="/progress", tags=["Progress"])


@router.post(
    "/lessons",
    response_model=LessonProgressResponse,
    summary="Report lesson progress",
)
async def record_lesson_progress(
    progress_data: ProgressUpdate,
    current_user: Annotated[User, Depends(require_roles(UserRole.STUDENT))],
    db: Annotated[AsyncSession, Depends(get_db)],
) -> LessonProgressResponse:
    """
    Record watch time and completion for a lesson.

    Course progress is recomputed in the same request. Completing the last
    lesson completes the course and issues the certificate.

    **Errors:**
    - 404 if the lesson does not exist
    - 400 if the student is not enrolled in the lesson's course
    """
    progress = await progress_service.record_progress(
        student_id=current_user.id,
        lesson_id=progress_data.lesson_id,
        watch_time_seconds=progress_data.watch_time_seconds,
        completed=progress_data.completed,
        db=db,
    )
    return LessonProgressResponse.model_validate(progress)
