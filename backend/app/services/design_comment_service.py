"""
Design comment service.
Append-only review comments, optionally pinned to a page position.
"""
import logging
from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy.orm import Session

from app.models.design_comment import DesignComment
from app.models.design_file import DesignFile
from app.models.user import User
from app.schemas.design_comment import CommentPin
from app.services.design_errors import DesignNotFound, DesignValidationError

logger = logging.getLogger(__name__)

# Pins are stored as DECIMAL(5,2)
PIN_PRECISION = 2


def _check_percent(name: str, value: float) -> float:
    if value is None or not 0 <= value <= 100:
        raise DesignValidationError(f"{name} must be between 0 and 100")
    return round(float(value), PIN_PRECISION)


class DesignCommentService:
    """Service for design review comments"""

    def __init__(self, db: Session):
        self.db = db

    def _get_design(self, design_file_id: int) -> DesignFile:
        design = self.db.query(DesignFile).filter(DesignFile.id == design_file_id).first()
        if not design:
            raise DesignNotFound("Design file", design_file_id)
        return design

    def get_comment(self, comment_id: int) -> DesignComment:
        comment = self.db.query(DesignComment).filter(DesignComment.id == comment_id).first()
        if not comment:
            raise DesignNotFound("Comment", comment_id)
        return comment

    def add_comment(
        self,
        design_file_id: int,
        author: User,
        text: str,
        pin: Optional[CommentPin] = None,
        mentioned_user_ids: Optional[List[int]] = None,
        linked_task_id: Optional[int] = None
    ) -> DesignComment:
        """Append a comment. Commits."""
        design = self._get_design(design_file_id)
        if not text or not text.strip():
            raise DesignValidationError("Comment text is required")

        comment = DesignComment(
            design_file_id=design.id,
            user_id=author.id,
            comment=text,
            mentioned_user_ids=list(mentioned_user_ids) if mentioned_user_ids else None,
            linked_task_id=linked_task_id,
            is_resolved=False
        )
        if pin is not None:
            comment.x_percent = _check_percent("x_percent", pin.x_percent)
            comment.y_percent = _check_percent("y_percent", pin.y_percent)
            comment.page_number = pin.page_number or 1
            comment.zoom_level = pin.zoom_level

        self.db.add(comment)
        self.db.commit()
        self.db.refresh(comment)

        logger.info(
            f"[Comments] {author.email} commented on design {design.id}"
            f"{' (pinned)' if comment.is_pinned else ''}",
            extra={"project_id": design.project_id, "design_file_id": design.id}
        )
        return comment

    def list_comments(self, design_file_id: int) -> List[DesignComment]:
        """Comments of a design file in creation order."""
        self._get_design(design_file_id)
        return self.db.query(DesignComment).filter(
            DesignComment.design_file_id == design_file_id
        ).order_by(DesignComment.created_at, DesignComment.id).all()

    def set_resolved(self, comment_id: int, is_resolved: bool, user: User) -> DesignComment:
        """Toggle resolution, the only mutable part of a comment. Commits."""
        comment = self.get_comment(comment_id)
        comment.is_resolved = is_resolved
        if is_resolved:
            comment.resolved_at = datetime.now(timezone.utc)
            comment.resolved_by = user.id
        else:
            comment.resolved_at = None
            comment.resolved_by = None
        self.db.commit()
        self.db.refresh(comment)
        return comment


def has_pinned_comments(design: DesignFile) -> bool:
    return any(c.x_percent is not None for c in design.comments)


def unresolved_pin_count(design: DesignFile) -> int:
    return sum(1 for c in design.comments if c.x_percent is not None and not c.is_resolved)
