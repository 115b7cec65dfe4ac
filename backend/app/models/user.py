"""
User model for authentication and role resolution.
"""
from sqlalchemy import Column, Integer, String, Boolean, DateTime
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from app.database import Base


class UserRole:
    """User role constants"""
    ADMIN = 'admin'
    PROJECT_MANAGER = 'project_manager'
    DESIGNER = 'designer'
    EMPLOYEE = 'employee'

    ALL = [ADMIN, PROJECT_MANAGER, DESIGNER, EMPLOYEE]


class User(Base):
    """User model for storing user account information."""

    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String, unique=True, index=True, nullable=False)
    name = Column(String, nullable=False)
    # Validated at application level against UserRole.ALL
    role = Column(String(30), default=UserRole.EMPLOYEE, nullable=False, server_default=UserRole.EMPLOYEE)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    # Relationships
    projects = relationship("Project", back_populates="owner")

    def __repr__(self):
        return f"<User {self.email} ({self.role})>"

    @property
    def is_admin(self) -> bool:
        """Admins hold every capability."""
        return self.role == UserRole.ADMIN
