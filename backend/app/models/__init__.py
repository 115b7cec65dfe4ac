"""
Database models package.
Import all models to ensure they are registered with SQLAlchemy.
"""
from app.models.user import User, UserRole
from app.models.project import Project

# Design review workflow
from app.models.design_file import (
    DesignFile,
    DesignCategoryVersion,
    ApprovalStatus,
    DesignFileType,
    UNCATEGORIZED,
)
from app.models.design_comment import DesignComment

__all__ = [
    "User",
    "UserRole",
    "Project",
    "DesignFile",
    "DesignCategoryVersion",
    "ApprovalStatus",
    "DesignFileType",
    "UNCATEGORIZED",
    "DesignComment",
]
