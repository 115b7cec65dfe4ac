"""
Design Approval State Machine: per-version review lifecycle.

Each design file version is reviewed exactly once:

    pending → approved | rejected | needs_changes

All three outcomes are terminal. Correcting a rejected design means
uploading a new version (which starts at pending), never reopening the
old one; a repeated transition on a reviewed file raises
InvalidTransitionError instead of being re-applied.

Approving a version makes it the category's current-approved file. The
flag is cleared on every sibling and set on the target inside one
transaction, with the whole category locked FOR UPDATE, so no reader can
observe zero or two current-approved files in a category.
"""
import logging
from datetime import datetime, timezone
from typing import Dict, List, Optional

from sqlalchemy.orm import Session

from app.models.design_file import DesignFile, ApprovalStatus
from app.models.user import User
from app.services.design_errors import DesignNotFound, DesignValidationError, InvalidTransitionError

logger = logging.getLogger(__name__)


# Transition table: current status -> list of valid target statuses
TRANSITIONS: Dict[str, List[str]] = {
    ApprovalStatus.PENDING:       [ApprovalStatus.APPROVED, ApprovalStatus.REJECTED, ApprovalStatus.NEEDS_CHANGES],
    ApprovalStatus.APPROVED:      [],
    ApprovalStatus.REJECTED:      [],
    ApprovalStatus.NEEDS_CHANGES: [],
}


def can_transition(current: str, target: str) -> bool:
    return target in TRANSITIONS.get(current, [])


class DesignApprovalStateMachine:
    """
    Applies review decisions to one design file.

    Usage:
        sm = DesignApprovalStateMachine(db, design_file_id)
        design = sm.set_status("approved", reviewer=current_user)
    """

    def __init__(self, db: Session, design_file_id: int):
        self.db = db
        self.design_file_id = design_file_id

    def _get_design(self) -> DesignFile:
        design = self.db.query(DesignFile).filter(DesignFile.id == self.design_file_id).first()
        if not design:
            raise DesignNotFound("Design file", self.design_file_id)
        return design

    def _lock_category(self, project_id: int, category: str) -> List[DesignFile]:
        """
        Lock every file of the category, in id order to avoid deadlocks.

        populate_existing overwrites rows already in the identity map, so
        the returned objects carry the committed state seen under the lock.
        """
        return self.db.query(DesignFile).filter(
            DesignFile.project_id == project_id,
            DesignFile.category == category
        ).order_by(DesignFile.id).with_for_update().populate_existing().all()

    def set_status(self, target: str, reviewer: User, comment: Optional[str] = None) -> DesignFile:
        """
        Apply a review decision. Commits on success.

        Args:
            target: approved, rejected or needs_changes
            reviewer: user taking the decision (capability checked upstream)
            comment: stored as admin_comments; not required to be non-empty

        Returns:
            The updated design file

        Raises:
            DesignNotFound: unknown design file
            DesignValidationError: target is not an approval status
            InvalidTransitionError: file is not pending
        """
        target = getattr(target, "value", target)
        if target not in ApprovalStatus.ALL:
            raise DesignValidationError(f"Unknown approval status: {target}")

        design = self._get_design()
        category_files = self._lock_category(design.project_id, design.category)
        # Re-read under the lock: another reviewer may have just decided
        design = next(f for f in category_files if f.id == self.design_file_id)
        current = design.approval_status

        if not can_transition(current, target):
            self.db.rollback()  # release FOR UPDATE locks
            raise InvalidTransitionError(current, target)

        design.approval_status = target
        if target == ApprovalStatus.APPROVED:
            for sibling in category_files:
                if sibling.id != design.id and sibling.is_current_approved:
                    sibling.is_current_approved = False
                    logger.info(
                        f"[Approval] v{sibling.version_number} superseded as current-approved",
                        extra={"project_id": design.project_id, "design_file_id": sibling.id}
                    )
            # Clear before set so the partial unique index never sees two flags
            self.db.flush()
            design.is_current_approved = True
            design.approved_by = reviewer.id
            design.approved_at = datetime.now(timezone.utc)
            if comment is not None:
                design.admin_comments = comment
        else:
            design.admin_comments = comment

        self.db.commit()

        logger.info(
            f"[Approval] '{design.category}' v{design.version_number}: {current} → {target} by {reviewer.email}",
            extra={"project_id": design.project_id, "design_file_id": design.id, "user_id": reviewer.id}
        )
        return design
