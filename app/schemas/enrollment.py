"""
Enrollment Schemas

Pydantic models for enrollments and course progress.
"""

import uuid
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field


class EnrollmentCreate(BaseModel):
    """Schema for enrolling in a course."""

    course_id: int = Field(..., description="Course to enroll in")


class EnrollmentResponse(BaseModel):
    """Schema for enrollment response."""

    id: int
    student_id: uuid.UUID
    course_id: int
    enrollment_date: datetime
    progress_percentage: int
    is_completed: bool
    completion_date: Optional[datetime] = None

    model_config = {"from_attributes": True}


class LessonProgressResponse(BaseModel):
    """Schema for one lesson's progress."""

    lesson_id: int
    watch_time_seconds: int
    is_completed: bool
    completed_at: Optional[datetime] = None
    last_accessed_at: datetime

    model_config = {"from_attributes": True}


class CourseProgressResponse(BaseModel):
    """Schema for a student's progress overview in a course."""

    enrollment: EnrollmentResponse
    lesson_progress: List[LessonProgressResponse]
    completed_lessons: int
    total_lessons: int
