"""
Pydantic schemas for design files and the review workflow.
"""
from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field

from app.schemas.design_comment import DesignCommentResponse


# ============ ENUMS ============

class ApprovalStatusEnum(str, Enum):
    PENDING = 'pending'
    APPROVED = 'approved'
    REJECTED = 'rejected'
    NEEDS_CHANGES = 'needs_changes'


class DesignFileTypeEnum(str, Enum):
    IMAGE = 'image'
    PDF = 'pdf'
    OTHER = 'other'


class BulkReviewActionEnum(str, Enum):
    APPROVE = 'approve'
    REJECT = 'reject'
    NEEDS_CHANGES = 'needs_changes'


# ============ DESIGN FILE SCHEMAS ============

class DesignFileCreate(BaseModel):
    """Schema for registering a file already stored in the object store"""
    project_id: int
    category: str = Field(..., min_length=1, max_length=100)
    file_name: str = Field(..., min_length=1, max_length=255)
    file_url: str = Field(..., min_length=1, max_length=1000)
    file_type: Optional[DesignFileTypeEnum] = None
    storage_path: Optional[str] = Field(None, max_length=500)
    file_size: Optional[int] = Field(None, ge=0)
    # Expected version; omitted means "allocate the next one"
    version_number: Optional[int] = Field(None, ge=1)


class DesignFileUpdate(BaseModel):
    """Schema for a review decision"""
    approval_status: ApprovalStatusEnum
    admin_comments: Optional[str] = None


class DesignFileResponse(BaseModel):
    """Schema for design file response"""
    id: int
    project_id: int
    category: str
    version_number: int
    file_name: str
    file_url: str
    file_type: DesignFileTypeEnum
    file_size: Optional[int] = None
    approval_status: ApprovalStatusEnum
    is_current_approved: bool
    approved_by: Optional[int] = None
    approved_at: Optional[datetime] = None
    admin_comments: Optional[str] = None
    is_frozen: bool
    frozen_at: Optional[datetime] = None
    frozen_by: Optional[int] = None
    uploaded_by: Optional[int] = None
    created_at: datetime
    updated_at: Optional[datetime] = None

    # Computed from comments
    comments: List[DesignCommentResponse] = []
    has_pinned_comments: bool = False
    unresolved_pin_count: int = 0

    class Config:
        from_attributes = True


class DesignCategoryResponse(BaseModel):
    """One category lineage, latest version first"""
    name: str
    files: List[DesignFileResponse]
    latest_version: Optional[int] = None
    is_frozen: bool
    current_approved_id: Optional[int] = None


class DesignFileListResponse(BaseModel):
    """Schema for all design files of a project"""
    designs: List[DesignFileResponse]
    categories: List[DesignCategoryResponse]
    total: int


class DesignFileUpdateResponse(BaseModel):
    """Updated file plus its category, whose current-approved flags may have moved"""
    design: DesignFileResponse
    category_files: List[DesignFileResponse]


class DesignVersionHistory(BaseModel):
    """Schema for the version lineage of a design file"""
    current_id: int
    category: str
    versions: List[DesignFileResponse]
    total_versions: int


# ============ UPLOAD SCHEMAS ============

class UploadFailureResponse(BaseModel):
    file_name: str
    reason: str
    detail: str


class BatchUploadResponse(BaseModel):
    """Per-file outcome of a batch upload"""
    category: str
    total: int
    succeeded: List[DesignFileResponse]
    failed: List[UploadFailureResponse]
    succeeded_count: int
    failed_count: int
    cancelled: bool = False


class StorageLimitsResponse(BaseModel):
    max_bytes: int


# ============ REVIEW / FREEZE SCHEMAS ============

class BulkReviewRequest(BaseModel):
    """Schema for reviewing several design files at once"""
    design_ids: List[int] = Field(..., min_length=1)
    action: BulkReviewActionEnum
    admin_comments: Optional[str] = None


class BulkReviewFailure(BaseModel):
    id: int
    reason: str
    detail: str


class BulkReviewResponse(BaseModel):
    message: str
    updated: List[DesignFileResponse]
    failed: List[BulkReviewFailure]
    updated_count: int


class FreezeResponse(BaseModel):
    message: str
    design: DesignFileResponse


class FreezeStatusResponse(BaseModel):
    """Whether uploads are locked in a project or one of its categories"""
    project_id: int
    category: Optional[str] = None
    is_frozen: bool
    frozen_count: int
    frozen_categories: List[str]
    frozen_at: Optional[datetime] = None
    frozen_by: Optional[int] = None


class ProjectFreezeResponse(BaseModel):
    message: str
    project_id: int
    category: Optional[str] = None
    count: int
