"""
Progress Schemas

Pydantic models for lesson progress reports.
"""

from typing import Optional

from pydantic import BaseModel, Field


class ProgressUpdate(BaseModel):
    """Schema for reporting watch progress on a lesson (heartbeat)."""

    lesson_id: int = Field(..., description="Lesson being watched")
    watch_time_seconds: int = Field(..., ge=0, description="Total seconds watched")
    completed: Optional[bool] = Field(
        None,
        description="Completion flag; omit to leave it unchanged",
    )
