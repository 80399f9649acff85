"""
Coursehub Backend - Services Module

Business logic layer.
"""

from app.services import catalog_service
from app.services import notification_service
from app.services import certificate_service
from app.services import enrollment_service
from app.services import progress_service
from app.services import quiz_service
from app.services import payment_service

__all__ = [
    "catalog_service",
    "notification_service",
    "certificate_service",
    "enrollment_service",
    "progress_service",
    "quiz_service",
    "payment_service",
]
