"""API routes for design review comments and pin annotations."""
from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.orm import Session

from app.database import get_db
from app.models.user import User
from app.rate_limiter import limiter, RateLimits
from app.schemas.design_comment import (
    DesignCommentCreate,
    DesignCommentResolve,
    DesignCommentResponse,
    DesignCommentListResponse
)
from app.services.design_comment_service import DesignCommentService
from app.services.notification_service import DesignEvent, get_notification_service
from app.services.permission_service import Permission, require_permission

router = APIRouter(tags=["design-comments"])


@router.post(
    "/design-files/{design_id}/comments",
    response_model=DesignCommentResponse,
    status_code=status.HTTP_201_CREATED
)
@limiter.limit(RateLimits.API_WRITE)
async def add_design_comment(
    request: Request,
    design_id: int,
    data: DesignCommentCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission(Permission.DESIGNS_COMMENT))
):
    """Add a comment, optionally pinned to a position on the page."""
    service = DesignCommentService(db)
    comment = service.add_comment(
        design_id,
        current_user,
        data.comment,
        pin=data.pin,
        mentioned_user_ids=data.mentioned_user_ids,
        linked_task_id=data.linked_task_id
    )
    design = comment.design_file
    await get_notification_service().notify_design_event(
        DesignEvent.COMMENT_ADDED, design.project_id, design.id, design.category,
        comment_id=comment.id,
        author_id=current_user.id,
        uploaded_by=design.uploaded_by,
        mentioned_user_ids=comment.mentioned_user_ids or []
    )
    return comment


@router.get("/design-files/{design_id}/comments", response_model=DesignCommentListResponse)
async def list_design_comments(
    design_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission(Permission.DESIGNS_VIEW))
):
    """List the comments of a design file in creation order."""
    comments = DesignCommentService(db).list_comments(design_id)
    pinned = [c for c in comments if c.x_percent is not None]
    return DesignCommentListResponse(
        comments=comments,
        total=len(comments),
        pinned_count=len(pinned),
        unresolved_pin_count=sum(1 for c in pinned if not c.is_resolved)
    )


@router.patch("/design-comments/{comment_id}/resolve", response_model=DesignCommentResponse)
async def resolve_design_comment(
    comment_id: int,
    data: DesignCommentResolve,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_permission(Permission.DESIGNS_COMMENT))
):
    """Mark a comment resolved or reopen it. The text itself never changes."""
    return DesignCommentService(db).set_resolved(comment_id, data.is_resolved, current_user)
