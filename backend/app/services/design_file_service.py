"""
Design file service.
Handles listing, creation, deletion and bulk review of design files.
"""
import logging
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session, selectinload

from app.models.design_file import DesignFile, ApprovalStatus
from app.models.project import Project
from app.models.user import User
from app.schemas.design_file import DesignFileCreate
from app.services.category_grouper import clean_category
from app.services.design_approval_state import DesignApprovalStateMachine
from app.services.design_errors import DesignNotFound, DesignValidationError, DesignWorkflowError, PermissionDenied
from app.services.freeze_lock import FreezeLockService
from app.services.permission_service import Permission, has_permission
from app.services.upload_orchestrator import infer_file_type
from app.services.version_allocator import VersionAllocator

logger = logging.getLogger(__name__)

BULK_ACTIONS = {
    "approve": ApprovalStatus.APPROVED,
    "reject": ApprovalStatus.REJECTED,
    "needs_changes": ApprovalStatus.NEEDS_CHANGES,
}


class DesignFileService:
    """Service for managing design files"""

    def __init__(self, db: Session):
        self.db = db

    def _get_project(self, project_id: int) -> Project:
        project = self.db.query(Project).filter(Project.id == project_id).first()
        if not project:
            raise DesignNotFound("Project", project_id)
        return project

    def get_design(self, design_file_id: int) -> DesignFile:
        design = self.db.query(DesignFile).options(
            selectinload(DesignFile.comments)
        ).filter(DesignFile.id == design_file_id).first()
        if not design:
            raise DesignNotFound("Design file", design_file_id)
        return design

    def list_project_designs(self, project_id: int) -> List[DesignFile]:
        """All design files of a project with their comments, newest first."""
        self._get_project(project_id)
        return self.db.query(DesignFile).options(
            selectinload(DesignFile.comments)
        ).filter(
            DesignFile.project_id == project_id
        ).order_by(DesignFile.created_at.desc(), DesignFile.id.desc()).all()

    def list_category_files(self, project_id: int, category: str) -> List[DesignFile]:
        return self.db.query(DesignFile).options(
            selectinload(DesignFile.comments)
        ).filter(
            DesignFile.project_id == project_id,
            DesignFile.category == category
        ).order_by(DesignFile.version_number.desc()).all()

    def list_versions(self, design_file_id: int) -> List[DesignFile]:
        """Every version in the lineage of a design file, latest first."""
        design = self.get_design(design_file_id)
        return self.list_category_files(design.project_id, design.category)

    def create_design_file(self, data: DesignFileCreate, uploader: User) -> DesignFile:
        """
        Register a file already written to the object store.

        The version is allocated server-side unless the caller pins an
        expected version_number, in which case a taken slot raises
        VersionConflictError instead of moving on to the next number.
        """
        self._get_project(data.project_id)
        category = clean_category(data.category)
        if not category:
            raise DesignValidationError("category is required")

        FreezeLockService(self.db).ensure_category_open(data.project_id, category)

        design = DesignFile(
            project_id=data.project_id,
            category=category,
            file_name=data.file_name,
            file_url=data.file_url,
            storage_path=data.storage_path,
            file_type=data.file_type.value if data.file_type else infer_file_type(data.file_name),
            file_size=data.file_size,
            approval_status=ApprovalStatus.PENDING,
            is_current_approved=False,
            is_frozen=False,
            uploaded_by=uploader.id
        )
        allocator = VersionAllocator(self.db)
        if data.version_number is not None:
            design.version_number = data.version_number
            allocator.insert(design)
        else:
            allocator.allocate_and_insert(design)
        self.db.commit()
        self.db.refresh(design)
        return design

    def delete_design_file(self, design_file_id: int, user: User) -> None:
        """Delete a design file. Its version slot is never handed out again."""
        design = self.get_design(design_file_id)
        if design.uploaded_by != user.id and not has_permission(user, Permission.DESIGNS_DELETE):
            raise PermissionDenied(
                Permission.DESIGNS_DELETE,
                "Only the uploader or a user with designs.delete can delete a design"
            )
        logger.info(
            f"[Designs] Deleting '{design.category}' v{design.version_number}",
            extra={"project_id": design.project_id, "design_file_id": design.id, "user_id": user.id}
        )
        self.db.delete(design)
        self.db.commit()

    def bulk_review(
        self,
        design_ids: List[int],
        action: str,
        reviewer: User,
        admin_comments: Optional[str] = None
    ) -> Dict[str, Any]:
        """
        Apply one review decision to several files, one at a time.

        Each id goes through the approval state machine on its own; a
        failure on one id is reported and does not undo the others.
        """
        target = BULK_ACTIONS.get(action)
        if target is None:
            raise DesignValidationError(f"Unknown bulk action: {action}")

        updated: List[DesignFile] = []
        failed: List[Dict[str, Any]] = []
        for design_id in design_ids:
            try:
                sm = DesignApprovalStateMachine(self.db, design_id)
                updated.append(sm.set_status(target, reviewer, admin_comments))
            except DesignWorkflowError as e:
                failed.append({"id": design_id, "reason": e.error_code, "detail": e.message})

        logger.info(f"[Approval] Bulk {action}: {len(updated)} updated, {len(failed)} failed")
        return {"updated": updated, "failed": failed}
