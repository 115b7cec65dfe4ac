"""
Design file models.
Uploaded design artifacts grouped per (project, category) into a linear
version lineage, each routed through a review lifecycle.
"""
from sqlalchemy import Column, Integer, String, Text, Boolean, ForeignKey, DateTime, CheckConstraint, UniqueConstraint, Index
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func, text

from app.database import Base


class ApprovalStatus:
    """Approval status constants"""
    PENDING = 'pending'
    APPROVED = 'approved'
    REJECTED = 'rejected'
    NEEDS_CHANGES = 'needs_changes'

    ALL = [PENDING, APPROVED, REJECTED, NEEDS_CHANGES]
    TERMINAL = [APPROVED, REJECTED, NEEDS_CHANGES]


class DesignFileType:
    """Design file type constants"""
    IMAGE = 'image'
    PDF = 'pdf'
    OTHER = 'other'

    ALL = [IMAGE, PDF, OTHER]


UNCATEGORIZED = "Uncategorized"


class DesignFile(Base):
    """
    One uploaded design artifact.

    version_number is unique per (project_id, category) and enforced by the
    database, so two writers racing for the same slot cannot both succeed.
    At most one row per category has is_current_approved = true; the
    approval state machine maintains that invariant.
    is_frozen is stored per row but read category-wide: any frozen row
    locks its category against uploads.
    """
    __tablename__ = 'design_files'

    id = Column(Integer, primary_key=True, index=True)
    project_id = Column(Integer, ForeignKey('projects.id', ondelete='CASCADE'), nullable=False)

    # Lineage
    category = Column(String(100), nullable=False)
    version_number = Column(Integer, nullable=False)

    # Storage metadata (immutable after creation)
    file_name = Column(String(255), nullable=False)
    file_url = Column(String(1000), nullable=False)
    storage_path = Column(String(500))
    file_type = Column(String(10), nullable=False, default=DesignFileType.OTHER)
    file_size = Column(Integer)

    # Review
    approval_status = Column(String(20), nullable=False, default=ApprovalStatus.PENDING)
    is_current_approved = Column(Boolean, nullable=False, default=False)
    approved_by = Column(Integer, ForeignKey('users.id', ondelete='SET NULL'))
    approved_at = Column(DateTime(timezone=True))
    admin_comments = Column(Text)

    # Freeze
    is_frozen = Column(Boolean, nullable=False, default=False)
    frozen_at = Column(DateTime(timezone=True))
    frozen_by = Column(Integer, ForeignKey('users.id', ondelete='SET NULL'))

    uploaded_by = Column(Integer, ForeignKey('users.id', ondelete='SET NULL'))
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    # Relationships
    project = relationship("Project", back_populates="design_files")
    comments = relationship(
        "DesignComment",
        back_populates="design_file",
        cascade="all, delete-orphan",
        order_by="DesignComment.id",
    )

    __table_args__ = (
        UniqueConstraint('project_id', 'category', 'version_number', name='unique_design_category_version'),
        CheckConstraint(
            "approval_status IN ('pending', 'approved', 'rejected', 'needs_changes')",
            name='valid_design_approval_status'
        ),
        CheckConstraint("file_type IN ('image', 'pdf', 'other')", name='valid_design_file_type'),
        CheckConstraint('version_number >= 1', name='positive_design_version'),
        Index('idx_design_files_project_category', 'project_id', 'category'),
        Index(
            'uq_design_files_current_approved', 'project_id', 'category',
            unique=True,
            postgresql_where=text('is_current_approved'),
            sqlite_where=text('is_current_approved'),
        ),
    )

    def __repr__(self):
        return f"<DesignFile {self.category} v{self.version_number} ({self.approval_status})>"


class DesignCategoryVersion(Base):
    """
    High-water mark of allocated version numbers per (project, category).

    Survives deletion of design files so a deleted slot is never handed out
    again. Only a counter: freeze state lives on design_files rows.
    """
    __tablename__ = 'design_category_versions'

    project_id = Column(Integer, ForeignKey('projects.id', ondelete='CASCADE'), primary_key=True)
    category = Column(String(100), primary_key=True)
    last_version = Column(Integer, nullable=False, default=0)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    def __repr__(self):
        return f"<DesignCategoryVersion {self.project_id}/{self.category} last={self.last_version}>"
