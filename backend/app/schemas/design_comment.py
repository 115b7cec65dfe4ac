"""
Pydantic schemas for design review comments.
"""
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field


class CommentPin(BaseModel):
    """
    Normalized position of a comment on the rendered document.

    Percentages are relative to the rendered viewport so a pin stays put
    across zoom levels and screen sizes.
    """
    x_percent: float = Field(..., ge=0, le=100)
    y_percent: float = Field(..., ge=0, le=100)
    page_number: int = Field(1, ge=1)
    zoom_level: Optional[float] = Field(None, gt=0)


class DesignCommentCreate(BaseModel):
    """Schema for adding a comment to a design file"""
    comment: str = Field(..., min_length=1)
    pin: Optional[CommentPin] = None
    mentioned_user_ids: Optional[List[int]] = None
    linked_task_id: Optional[int] = None


class DesignCommentResolve(BaseModel):
    """Schema for toggling a comment's resolution"""
    is_resolved: bool


class DesignCommentResponse(BaseModel):
    """Schema for comment response"""
    id: int
    design_file_id: int
    user_id: Optional[int] = None
    comment: str
    x_percent: Optional[float] = None
    y_percent: Optional[float] = None
    page_number: Optional[int] = None
    zoom_level: Optional[float] = None
    mentioned_user_ids: Optional[List[int]] = None
    linked_task_id: Optional[int] = None
    is_resolved: bool
    resolved_at: Optional[datetime] = None
    resolved_by: Optional[int] = None
    created_at: datetime

    class Config:
        from_attributes = True


class DesignCommentListResponse(BaseModel):
    """Schema for the comments of one design file"""
    comments: List[DesignCommentResponse]
    total: int
    pinned_count: int
    unresolved_pin_count: int
