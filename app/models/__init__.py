"""
SQLAlchemy 模型模块
"""
from .base import BaseModel, TimestampMixin, utcnow
from .lead import (
    Lead, LeadNote, LeadStatus, LeadPriority, LeadSource,
    Qualification, Country, can_transition,
)
from .user import User, Role, LanguageLevel, Gender, STAFF_ROLES

__all__ = [
    # Base
    "BaseModel",
    "TimestampMixin",
    "utcnow",
    # Lead
    "Lead",
    "LeadNote",
    "LeadStatus",
    "LeadPriority",
    "LeadSource",
    "Qualification",
    "Country",
    "can_transition",
    # User
    "User",
    "Role",
    "LanguageLevel",
    "Gender",
    "STAFF_ROLES",
]
