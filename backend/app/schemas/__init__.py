"""
Pydantic schemas package for data validation and serialization.
"""
from app.schemas.design_comment import (
    CommentPin, DesignCommentCreate, DesignCommentResolve,
    DesignCommentResponse, DesignCommentListResponse
)
from app.schemas.design_file import (
    # Enums
    ApprovalStatusEnum, DesignFileTypeEnum, BulkReviewActionEnum,
    # Design file schemas
    DesignFileCreate, DesignFileUpdate, DesignFileResponse, DesignCategoryResponse,
    DesignFileListResponse, DesignFileUpdateResponse, DesignVersionHistory,
    # Upload schemas
    UploadFailureResponse, BatchUploadResponse, StorageLimitsResponse,
    # Review / freeze schemas
    BulkReviewRequest, BulkReviewFailure, BulkReviewResponse,
    FreezeResponse, FreezeStatusResponse, ProjectFreezeResponse,
)
